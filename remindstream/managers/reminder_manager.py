"""Reminder Manager - Stateful reminder operations and workflow orchestration.

This manager handles all reminder mutations and workflow coordination:
- Create / edit / soft-delete reminders
- Completion (reschedule or finish) with undo
- Snoozing
- Stream subscription (template import)
- Race condition protection via asyncio.Lock
- Event emission for downstream systems (notification scheduling)

ARCHITECTURE:
- ReminderManager = STATEFUL workflow orchestration, the only clock reader
- ReminderEngine / RecurrenceEngine / StreamEngine = pure logic (STATELESS)
"""

from __future__ import annotations

import asyncio
from copy import deepcopy
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

from .. import const, data_builders as db
from ..engines.reminder_engine import ReminderEngine
from ..engines.stream_engine import StreamEngine
from ..utils.dt_utils import dt_now_utc, dt_to_iso, dt_to_utc
from .base_manager import BaseManager

if TYPE_CHECKING:
    from datetime import datetime

    from ..type_defs import (
        ActivityCollection,
        ReminderData,
        RemindersCollection,
        StreamData,
        UserSettingsData,
    )


__all__ = ["NothingToUndoError", "ReminderManager", "ReminderNotFoundError"]


class ReminderNotFoundError(KeyError):
    """Raised when a reminder id is unknown or the reminder was deleted.

    Attributes:
        reminder_id: The id that was looked up
    """

    def __init__(self, reminder_id: str) -> None:
        """Initialize ReminderNotFoundError."""
        self.reminder_id = reminder_id
        super().__init__(f"Reminder not found: {reminder_id}")


class NothingToUndoError(Exception):
    """Raised when undo is requested but the reminder has no pending completion."""

    def __init__(self, reminder_id: str) -> None:
        """Initialize NothingToUndoError."""
        self.reminder_id = reminder_id
        super().__init__(f"No completion to undo for reminder: {reminder_id}")


class ReminderManager(BaseManager):
    """Manager for reminder workflows.

    Responsibilities:
    - Own the reminder collection, completion activity and user settings
    - Serialize mutations (one asyncio.Lock)
    - Emit signals a notification scheduler consumes

    NOT responsible for:
    - Recurrence math (delegated to RecurrenceEngine via ReminderEngine)
    - Record validation (delegated to data_builders)
    - Delivering notifications
    """

    # =========================================================================
    # §0 LIFECYCLE & INITIALIZATION
    # =========================================================================

    def __init__(
        self,
        settings: dict[str, Any] | None = None,
        reminders: RemindersCollection | None = None,
    ) -> None:
        """Initialize ReminderManager.

        Args:
            settings: Raw user settings (validated, defaults applied)
            reminders: Previously stored reminders to load
        """
        super().__init__()
        self._lock = asyncio.Lock()
        self._reminders: RemindersCollection = deepcopy(reminders) if reminders else {}
        self._activity: ActivityCollection = {}
        self._undo_snapshots: dict[str, tuple[ReminderData, str]] = {}
        self._settings: UserSettingsData = db.build_settings(settings)
        self._tz = self._settings_timezone()

    def _settings_timezone(self) -> ZoneInfo:
        return ZoneInfo(self._settings[const.DATA_SETTINGS_TIMEZONE])

    @property
    def settings(self) -> UserSettingsData:
        """Current user settings."""
        return self._settings

    @property
    def timezone(self) -> ZoneInfo:
        """Zone this manager reads calendar days and wall-clock times in."""
        return self._tz

    @property
    def activity(self) -> ActivityCollection:
        """Completions per local day (copy)."""
        return dict(self._activity)

    @property
    def reminders(self) -> RemindersCollection:
        """All stored reminders, including soft-deleted ones."""
        return self._reminders

    async def update_settings(self, user_input: dict[str, Any]) -> UserSettingsData:
        """Validate and apply new settings (switches this manager's timezone).

        Raises:
            EntityValidationError: If a setting is invalid
        """
        async with self._lock:
            merged = {**self._settings, **user_input}
            self._settings = db.build_settings(merged)
            self._tz = self._settings_timezone()
            const.LOGGER.info(
                "Settings updated: timezone=%s",
                self._settings[const.DATA_SETTINGS_TIMEZONE],
            )
            return self._settings

    # =========================================================================
    # §1 CRUD
    # =========================================================================

    def get_reminder(
        self, reminder_id: str, *, include_deleted: bool = False
    ) -> ReminderData:
        """Return a stored reminder.

        Raises:
            ReminderNotFoundError: If the id is unknown, or deleted and
                include_deleted is False
        """
        reminder = self._reminders.get(reminder_id)
        if reminder is None:
            raise ReminderNotFoundError(reminder_id)
        if reminder.get(const.DATA_REMINDER_DELETED_AT) and not include_deleted:
            raise ReminderNotFoundError(reminder_id)
        return reminder

    async def create_reminder(self, user_input: dict[str, Any]) -> ReminderData:
        """Create a reminder.

        Raises:
            EntityValidationError: If the input is invalid
        """
        async with self._lock:
            reminder = db.build_reminder(user_input, now=dt_now_utc(), tz=self._tz)
            self._reminders[reminder[const.DATA_REMINDER_ID]] = reminder

        const.LOGGER.info(
            "Reminder created: id=%s title=%s next_fire_at=%s",
            reminder[const.DATA_REMINDER_ID],
            reminder[const.DATA_REMINDER_TITLE],
            reminder[const.DATA_REMINDER_NEXT_FIRE_AT],
        )
        self.emit(
            const.SIGNAL_REMINDER_CREATED,
            reminder_id=reminder[const.DATA_REMINDER_ID],
            next_fire_at=reminder[const.DATA_REMINDER_NEXT_FIRE_AT],
        )
        return reminder

    async def update_reminder(
        self, reminder_id: str, user_input: dict[str, Any]
    ) -> ReminderData:
        """Edit a reminder (bumps version, last_action=edit).

        Raises:
            ReminderNotFoundError: If the reminder is unknown or deleted
            EntityValidationError: If the input is invalid
        """
        async with self._lock:
            existing = self.get_reminder(reminder_id)
            reminder = db.build_reminder(
                user_input, existing, now=dt_now_utc(), tz=self._tz
            )
            self._reminders[reminder_id] = reminder
            self._undo_snapshots.pop(reminder_id, None)

        const.LOGGER.debug("Reminder updated: id=%s", reminder_id)
        self.emit(
            const.SIGNAL_REMINDER_UPDATED,
            reminder_id=reminder_id,
            next_fire_at=reminder[const.DATA_REMINDER_NEXT_FIRE_AT],
        )
        return reminder

    async def delete_reminder(self, reminder_id: str) -> None:
        """Soft-delete a reminder (sets deleted_at).

        Raises:
            ReminderNotFoundError: If the reminder is unknown or already deleted
        """
        async with self._lock:
            reminder = self.get_reminder(reminder_id)
            timestamp = dt_to_iso(dt_now_utc())
            self._apply_updates(
                reminder,
                {
                    const.DATA_REMINDER_DELETED_AT: timestamp,
                    const.DATA_REMINDER_UPDATED_AT: timestamp,
                },
            )
            self._undo_snapshots.pop(reminder_id, None)

        const.LOGGER.info("Reminder deleted: id=%s", reminder_id)
        self.emit(const.SIGNAL_REMINDER_DELETED, reminder_id=reminder_id)

    # =========================================================================
    # §2 WORKFLOW METHODS
    # =========================================================================

    async def complete_reminder(self, reminder_id: str) -> ReminderData:
        """Mark a reminder done.

        Recurring reminders are rescheduled to their next occurrence and stay
        active; one-shot reminders become done. Increments today's activity
        counter either way.

        Raises:
            ReminderNotFoundError: If the reminder is unknown or deleted
        """
        async with self._lock:
            reminder = self.get_reminder(reminder_id)
            now = dt_now_utc()
            previous = deepcopy(reminder)

            effect = ReminderEngine.plan_completion(reminder, now, self._tz)
            self._apply_updates(reminder, effect.updates)

            activity_key = ReminderEngine.activity_key(now, self._tz)
            self._activity[activity_key] = self._activity.get(activity_key, 0) + 1
            self._undo_snapshots[reminder_id] = (previous, activity_key)

        const.LOGGER.info(
            "Reminder completed: id=%s rescheduled=%s next_fire_at=%s",
            reminder_id,
            effect.rescheduled,
            reminder[const.DATA_REMINDER_NEXT_FIRE_AT],
        )
        self.emit(
            const.SIGNAL_REMINDER_COMPLETED,
            reminder_id=reminder_id,
            rescheduled=effect.rescheduled,
        )
        if effect.rescheduled:
            self.emit(
                const.SIGNAL_REMINDER_RESCHEDULED,
                reminder_id=reminder_id,
                next_fire_at=reminder[const.DATA_REMINDER_NEXT_FIRE_AT],
                used_fallback=effect.used_fallback,
            )
        return reminder

    async def undo_completion(self, reminder_id: str) -> ReminderData:
        """Revert the most recent completion of a reminder.

        Raises:
            ReminderNotFoundError: If the reminder is unknown or deleted
            NothingToUndoError: If there is no completion to revert
        """
        async with self._lock:
            reminder = self.get_reminder(reminder_id)
            snapshot = self._undo_snapshots.pop(reminder_id, None)
            if snapshot is None:
                raise NothingToUndoError(reminder_id)
            previous, activity_key = snapshot

            updates = ReminderEngine.plan_undo(reminder, previous, dt_now_utc())
            self._apply_updates(reminder, updates)

            count = self._activity.get(activity_key, 0)
            if count > 1:
                self._activity[activity_key] = count - 1
            else:
                self._activity.pop(activity_key, None)

        const.LOGGER.info("Reminder completion undone: id=%s", reminder_id)
        self.emit(
            const.SIGNAL_REMINDER_RESCHEDULED,
            reminder_id=reminder_id,
            next_fire_at=reminder[const.DATA_REMINDER_NEXT_FIRE_AT],
            used_fallback=False,
        )
        return reminder

    async def snooze_reminder(
        self, reminder_id: str, minutes: int | None = None
    ) -> ReminderData:
        """Postpone a reminder's next firing by `minutes`.

        When minutes is omitted, the reminder's first snooze preset is used,
        falling back to the first preset from settings.

        Raises:
            ReminderNotFoundError: If the reminder is unknown or deleted
            SnoozeError: If minutes is not a positive integer
        """
        async with self._lock:
            reminder = self.get_reminder(reminder_id)
            if minutes is None:
                presets = reminder.get(const.DATA_REMINDER_SNOOZE_PRESET_MINS) or (
                    self._settings[const.DATA_SETTINGS_SNOOZE_PRESETS_MINS]
                )
                minutes = presets[0] if presets else const.DEFAULT_SNOOZE_PRESETS_MINS[0]

            updates = ReminderEngine.plan_snooze(reminder, minutes, dt_now_utc())
            self._apply_updates(reminder, updates)
            self._undo_snapshots.pop(reminder_id, None)

        const.LOGGER.info(
            "Reminder snoozed: id=%s minutes=%s count=%s",
            reminder_id,
            minutes,
            reminder[const.DATA_REMINDER_SNOOZE_COUNT],
        )
        self.emit(
            const.SIGNAL_REMINDER_SNOOZED,
            reminder_id=reminder_id,
            next_fire_at=reminder[const.DATA_REMINDER_NEXT_FIRE_AT],
            minutes=minutes,
        )
        return reminder

    async def subscribe_to_stream(self, stream: StreamData) -> list[ReminderData]:
        """Import every item of a stream as a new reminder.

        Raises:
            EntityValidationError: If any stream item is malformed
        """
        async with self._lock:
            created = StreamEngine.build_reminders_from_stream(
                stream, dt_now_utc(), self._tz
            )
            for reminder in created:
                self._reminders[reminder[const.DATA_REMINDER_ID]] = reminder

        const.LOGGER.info(
            "Stream imported: stream=%s reminders=%d",
            stream.get(const.DATA_STREAM_ID),
            len(created),
        )
        for reminder in created:
            self.emit(
                const.SIGNAL_REMINDER_CREATED,
                reminder_id=reminder[const.DATA_REMINDER_ID],
                next_fire_at=reminder[const.DATA_REMINDER_NEXT_FIRE_AT],
            )
        self.emit(
            const.SIGNAL_STREAM_IMPORTED,
            stream_id=stream.get(const.DATA_STREAM_ID),
            reminder_ids=[r[const.DATA_REMINDER_ID] for r in created],
        )
        return created

    # =========================================================================
    # §3 QUERIES
    # =========================================================================

    def agenda(self, now: datetime | None = None) -> dict[str, list[ReminderData]]:
        """Group active reminders into overdue / today / upcoming.

        Each bucket is sorted by next_fire_at. Done and deleted reminders
        are excluded.
        """
        now = now or dt_now_utc()
        buckets: dict[str, list[ReminderData]] = {
            bucket: [] for bucket in const.DUE_BUCKETS
        }
        for reminder in self._reminders.values():
            if reminder.get(const.DATA_REMINDER_DELETED_AT):
                continue
            if reminder[const.DATA_REMINDER_STATUS] != const.REMINDER_STATUS_ACTIVE:
                continue
            bucket = ReminderEngine.due_bucket(
                reminder[const.DATA_REMINDER_NEXT_FIRE_AT], now, self._tz
            )
            buckets[bucket].append(reminder)

        for entries in buckets.values():
            entries.sort(
                key=lambda r: dt_to_utc(r[const.DATA_REMINDER_NEXT_FIRE_AT], self._tz)  # type: ignore[arg-type,return-value]
            )
        return buckets

    # =========================================================================
    # §4 HELPERS
    # =========================================================================

    @staticmethod
    def _apply_updates(reminder: ReminderData, updates: dict[str, Any]) -> None:
        """Write engine-planned updates and bump the version."""
        reminder.update(updates)  # type: ignore[typeddict-item]
        reminder[const.DATA_REMINDER_VERSION] = (
            reminder.get(const.DATA_REMINDER_VERSION, 0) + 1
        )
