"""Reminder Engine - Pure logic for reminder workflow transitions.

This engine provides stateless, pure Python functions for:
- Completion planning (reschedule recurring reminders, finish one-shots)
- Snooze planning (postpone next_fire_at only)
- Undoing a completion from a pre-completion snapshot
- Agenda bucketing (overdue / today / upcoming)

ARCHITECTURE: All methods are static and receive "now" and the user's zone
explicitly. State management belongs in ReminderManager.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, cast
from zoneinfo import ZoneInfo

from .. import const, data_builders as db
from ..utils.dt_utils import (
    HELPER_RETURN_DATE,
    HELPER_RETURN_ISO_DATE,
    as_local,
    as_utc,
    dt_parse,
    dt_to_iso,
    dt_to_utc,
)
from .recurrence_engine import NoRecurrence, resolve_next_fire

if TYPE_CHECKING:
    from ..type_defs import ReminderData


class SnoozeError(ValueError):
    """Raised when a snooze duration is not a positive whole number of minutes.

    Attributes:
        minutes: The rejected duration
    """

    def __init__(self, minutes: object) -> None:
        """Initialize SnoozeError."""
        self.minutes = minutes
        super().__init__(f"Snooze minutes must be a positive integer, got {minutes!r}")


@dataclass
class CompletionEffect:
    """Effect of completing a reminder.

    Returned by ReminderEngine.plan_completion() to describe the field
    updates the manager should apply.

    Attributes:
        updates: DATA_REMINDER_* fields to write onto the reminder
        rescheduled: True if the reminder recurs and was moved forward,
                     False if it was a one-shot and is now done
        used_fallback: True if the recurrence search hit its iteration bound
    """

    updates: dict[str, Any] = field(default_factory=dict)
    rescheduled: bool = False
    used_fallback: bool = False


# =============================================================================
# REMINDER ENGINE
# =============================================================================


class ReminderEngine:
    """Stateless reminder workflow calculations.

    All methods are static - no instance state.
    """

    @staticmethod
    def plan_completion(
        reminder: ReminderData, now: datetime, tz: ZoneInfo | None = None
    ) -> CompletionEffect:
        """Plan the updates for marking a reminder done.

        Recurring reminders stay active with due_at and next_fire_at moved to
        the next occurrence after `now` (snooze count reset). One-shot
        reminders become done; their times are left untouched.

        Args:
            reminder: The stored reminder
            now: Completion instant
            tz: User zone the recurrence is read in (UTC when omitted)

        Returns:
            CompletionEffect describing the updates

        Raises:
            EntityValidationError: If the stored recurrence record is malformed
        """
        rule = db.reminder_rule(reminder)
        timestamp = dt_to_iso(now)

        if isinstance(rule, NoRecurrence):
            return CompletionEffect(
                updates={
                    const.DATA_REMINDER_STATUS: const.REMINDER_STATUS_DONE,
                    const.DATA_REMINDER_LAST_ACTION: const.REMINDER_ACTION_DONE,
                    const.DATA_REMINDER_UPDATED_AT: timestamp,
                },
            )

        anchor = dt_to_utc(reminder[const.DATA_REMINDER_DUE_AT], tz)
        if anchor is None:
            raise db.EntityValidationError(
                field=const.DATA_REMINDER_DUE_AT,
                error_key=const.ERROR_INVALID_DATETIME,
            )

        result = resolve_next_fire(rule, anchor, now, tz)
        next_iso = dt_to_iso(result.fire_at)
        const.LOGGER.debug(
            "ReminderEngine: Completing %s reschedules %s -> %s",
            reminder.get(const.DATA_REMINDER_ID),
            reminder[const.DATA_REMINDER_DUE_AT],
            next_iso,
        )
        return CompletionEffect(
            updates={
                const.DATA_REMINDER_STATUS: const.REMINDER_STATUS_ACTIVE,
                const.DATA_REMINDER_DUE_AT: next_iso,
                const.DATA_REMINDER_NEXT_FIRE_AT: next_iso,
                const.DATA_REMINDER_SNOOZE_COUNT: 0,
                const.DATA_REMINDER_LAST_ACTION: const.REMINDER_ACTION_DONE,
                const.DATA_REMINDER_UPDATED_AT: timestamp,
            },
            rescheduled=True,
            used_fallback=result.used_fallback,
        )

    @staticmethod
    def plan_snooze(
        reminder: ReminderData, minutes: int, now: datetime
    ) -> dict[str, Any]:
        """Plan the updates for snoozing a reminder by `minutes`.

        Only next_fire_at moves; due_at keeps the user's intent.

        Raises:
            SnoozeError: If minutes is not a positive integer
        """
        if (
            not isinstance(minutes, int)
            or isinstance(minutes, bool)
            or minutes <= 0
        ):
            raise SnoozeError(minutes)

        return {
            const.DATA_REMINDER_NEXT_FIRE_AT: dt_to_iso(now + timedelta(minutes=minutes)),
            const.DATA_REMINDER_SNOOZE_COUNT: reminder.get(
                const.DATA_REMINDER_SNOOZE_COUNT, const.DEFAULT_SNOOZE_COUNT
            )
            + 1,
            const.DATA_REMINDER_LAST_ACTION: const.REMINDER_ACTION_SNOOZE,
            const.DATA_REMINDER_UPDATED_AT: dt_to_iso(now),
        }

    @staticmethod
    def plan_undo(
        reminder: ReminderData, previous: ReminderData, now: datetime
    ) -> dict[str, Any]:
        """Plan the updates that revert a completion.

        Args:
            reminder: The reminder as it is now (after completion)
            previous: Snapshot taken just before the completion
            now: Undo instant
        """
        const.LOGGER.debug(
            "ReminderEngine: Undoing completion of %s",
            reminder.get(const.DATA_REMINDER_ID),
        )
        return {
            const.DATA_REMINDER_STATUS: previous[const.DATA_REMINDER_STATUS],
            const.DATA_REMINDER_DUE_AT: previous[const.DATA_REMINDER_DUE_AT],
            const.DATA_REMINDER_NEXT_FIRE_AT: previous[const.DATA_REMINDER_NEXT_FIRE_AT],
            const.DATA_REMINDER_SNOOZE_COUNT: previous[const.DATA_REMINDER_SNOOZE_COUNT],
            const.DATA_REMINDER_LAST_ACTION: const.REMINDER_ACTION_UNDONE,
            const.DATA_REMINDER_UPDATED_AT: dt_to_iso(now),
        }

    @staticmethod
    def due_bucket(
        next_fire_at: datetime | str, now: datetime, tz: ZoneInfo | None = None
    ) -> str:
        """Classify a fire time against the local calendar day of `now`.

        Naive values are read as wall-clock time in `tz`.

        Returns:
            DUE_BUCKET_OVERDUE for instants before now on an earlier day,
            DUE_BUCKET_TODAY for anything on today's local date,
            DUE_BUCKET_UPCOMING otherwise.
        """
        fire_at = dt_to_utc(next_fire_at, tz)
        if fire_at is None:
            raise db.EntityValidationError(
                field=const.DATA_REMINDER_NEXT_FIRE_AT,
                error_key=const.ERROR_INVALID_DATETIME,
            )
        now_utc = as_utc(now, tz)

        fire_day = dt_parse(as_local(fire_at, tz), return_type=HELPER_RETURN_DATE)
        today = dt_parse(as_local(now_utc, tz), return_type=HELPER_RETURN_DATE)
        if fire_day == today:
            return const.DUE_BUCKET_TODAY
        if fire_at < now_utc:
            return const.DUE_BUCKET_OVERDUE
        return const.DUE_BUCKET_UPCOMING

    @staticmethod
    def activity_key(now: datetime, tz: ZoneInfo | None = None) -> str:
        """Return the local ISO date used to count completions per day."""
        return cast(
            "str", dt_parse(as_local(now, tz), return_type=HELPER_RETURN_ISO_DATE)
        )
