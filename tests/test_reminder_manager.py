"""Tests for ReminderManager - stateful reminder workflows.

The manager is the only component that reads the clock, so these tests
freeze time with freezegun.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from freezegun import freeze_time
import pytest

from remindstream import const
from remindstream.data_builders import EntityValidationError
from remindstream.engines.reminder_engine import SnoozeError
from remindstream.managers.reminder_manager import (
    NothingToUndoError,
    ReminderManager,
    ReminderNotFoundError,
)

DAILY = {"kind": "daily", "interval": 1}


@pytest.fixture
def manager() -> ReminderManager:
    """Return a manager with default settings."""
    return ReminderManager()


def record_signal(manager: ReminderManager, signal: str) -> list[dict[str, Any]]:
    """Collect payloads emitted for `signal`."""
    payloads: list[dict[str, Any]] = []
    manager.listen(signal, payloads.append)
    return payloads


# ============================================================================
# Settings
# ============================================================================


class TestSettings:
    """Settings choose the zone each manager reads calendars in."""

    def test_timezone_applied_on_init(self) -> None:
        """The settings timezone becomes the manager's zone."""
        manager = ReminderManager({"timezone": "Europe/Berlin"})
        assert manager.timezone == ZoneInfo("Europe/Berlin")

    def test_default_timezone_is_utc(self, manager: ReminderManager) -> None:
        """Without settings the manager works in UTC."""
        assert manager.timezone == ZoneInfo("UTC")

    def test_invalid_settings_rejected(self) -> None:
        """Unknown zones fail construction."""
        with pytest.raises(EntityValidationError):
            ReminderManager({"timezone": "Nowhere/Special"})

    async def test_update_settings(self, manager: ReminderManager) -> None:
        """Updates merge with current settings."""
        settings = await manager.update_settings({"timezone": "America/New_York"})
        assert settings["timezone"] == "America/New_York"
        assert settings["snooze_presets_mins"] == [10, 60, 180]
        assert manager.timezone == ZoneInfo("America/New_York")

    async def test_managers_keep_their_own_zone(self) -> None:
        """A second manager in another zone leaves the first one's results alone."""
        with freeze_time("2023-12-31 12:00:00", tz_offset=0):
            first = ReminderManager({"timezone": "UTC"})
            reminder = await first.create_reminder(
                {"title": "Standup", "due_at": "2024-01-01T14:00:00Z", "recurrence": DAILY}
            )
            second = ReminderManager(
                {"timezone": "America/New_York"}, {reminder["id"]: reminder}
            )

        with freeze_time("2024-07-01 00:00:00", tz_offset=0):
            first_result = await first.complete_reminder(reminder["id"])
            second_result = await second.complete_reminder(reminder["id"])

        # 14:00 UTC stays 14:00; 09:00 New York is 13:00 UTC in summer
        assert first_result["next_fire_at"] == "2024-07-01T14:00:00+00:00"
        assert second_result["next_fire_at"] == "2024-07-01T13:00:00+00:00"
        assert first.timezone == ZoneInfo("UTC")

    async def test_update_settings_does_not_touch_other_managers(self) -> None:
        """Switching one manager's zone changes only that manager."""
        first = ReminderManager({"timezone": "Europe/Berlin"})
        second = ReminderManager({"timezone": "Europe/Berlin"})

        await second.update_settings({"timezone": "America/New_York"})

        assert first.timezone == ZoneInfo("Europe/Berlin")
        assert second.timezone == ZoneInfo("America/New_York")


# ============================================================================
# CRUD
# ============================================================================


class TestCrud:
    """Create, edit, soft delete."""

    @freeze_time("2024-01-01 08:00:00", tz_offset=0)
    async def test_create_and_get(self, manager: ReminderManager) -> None:
        """Created reminders are stored and announced."""
        created_events = record_signal(manager, const.SIGNAL_REMINDER_CREATED)

        reminder = await manager.create_reminder(
            {"title": "Call Mom", "due_at": "2024-01-01T18:00:00Z"}
        )

        assert manager.get_reminder(reminder["id"]) is reminder
        assert reminder["created_at"] == "2024-01-01T08:00:00+00:00"
        assert created_events == [
            {"reminder_id": reminder["id"], "next_fire_at": "2024-01-01T18:00:00+00:00"}
        ]

    async def test_create_invalid(self, manager: ReminderManager) -> None:
        """Invalid input is rejected and nothing is stored."""
        with pytest.raises(EntityValidationError):
            await manager.create_reminder({"title": ""})
        assert manager.reminders == {}

    async def test_update_bumps_version(self, manager: ReminderManager) -> None:
        """Edits bump the version and mark last_action=edit."""
        reminder = await manager.create_reminder(
            {"title": "Call Mom", "due_at": "2024-01-01T18:00:00Z"}
        )

        updated = await manager.update_reminder(reminder["id"], {"title": "Call Dad"})

        assert updated["version"] == 2
        assert updated["last_action"] == const.REMINDER_ACTION_EDIT
        assert manager.get_reminder(reminder["id"])["title"] == "Call Dad"

    async def test_unknown_id(self, manager: ReminderManager) -> None:
        """Unknown ids raise ReminderNotFoundError."""
        with pytest.raises(ReminderNotFoundError):
            await manager.update_reminder("missing", {"title": "x"})
        with pytest.raises(ReminderNotFoundError):
            await manager.complete_reminder("missing")

    @freeze_time("2024-01-02 12:00:00", tz_offset=0)
    async def test_soft_delete(self, manager: ReminderManager) -> None:
        """Deleted reminders are kept with deleted_at but hidden."""
        reminder = await manager.create_reminder(
            {"title": "Call Mom", "due_at": "2024-01-03T18:00:00Z"}
        )

        await manager.delete_reminder(reminder["id"])

        stored = manager.get_reminder(reminder["id"], include_deleted=True)
        assert stored["deleted_at"] == "2024-01-02T12:00:00+00:00"
        assert stored["version"] == 2
        with pytest.raises(ReminderNotFoundError):
            manager.get_reminder(reminder["id"])
        with pytest.raises(ReminderNotFoundError):
            await manager.complete_reminder(reminder["id"])
        with pytest.raises(ReminderNotFoundError):
            await manager.snooze_reminder(reminder["id"], 10)


# ============================================================================
# Completion
# ============================================================================


class TestCompletion:
    """Complete / undo workflows."""

    async def test_complete_recurring(self, manager: ReminderManager) -> None:
        """Daily reminder completed late moves to tomorrow's slot."""
        with freeze_time("2024-01-01 07:00:00", tz_offset=0):
            reminder = await manager.create_reminder(
                {"title": "Vitamins", "due_at": "2024-01-01T09:00:00Z", "recurrence": DAILY}
            )
        rescheduled = record_signal(manager, const.SIGNAL_REMINDER_RESCHEDULED)
        completed = record_signal(manager, const.SIGNAL_REMINDER_COMPLETED)

        with freeze_time("2024-01-03 10:00:00", tz_offset=0):
            result = await manager.complete_reminder(reminder["id"])

        assert result["status"] == const.REMINDER_STATUS_ACTIVE
        assert result["due_at"] == "2024-01-04T09:00:00+00:00"
        assert result["next_fire_at"] == "2024-01-04T09:00:00+00:00"
        assert result["version"] == 2
        assert manager.activity == {"2024-01-03": 1}
        assert completed == [{"reminder_id": reminder["id"], "rescheduled": True}]
        assert rescheduled == [
            {
                "reminder_id": reminder["id"],
                "next_fire_at": "2024-01-04T09:00:00+00:00",
                "used_fallback": False,
            }
        ]

    @freeze_time("2024-01-03 10:00:00", tz_offset=0)
    async def test_complete_one_shot(self, manager: ReminderManager) -> None:
        """One-shot reminders become done and leave the agenda."""
        rescheduled = record_signal(manager, const.SIGNAL_REMINDER_RESCHEDULED)
        reminder = await manager.create_reminder(
            {"title": "Pay bill", "due_at": "2024-01-03T09:00:00Z"}
        )

        result = await manager.complete_reminder(reminder["id"])

        assert result["status"] == const.REMINDER_STATUS_DONE
        assert result["due_at"] == "2024-01-03T09:00:00+00:00"
        assert rescheduled == []
        assert all(not bucket for bucket in manager.agenda().values())

    @freeze_time("2024-01-03 10:00:00", tz_offset=0)
    async def test_undo_completion(self, manager: ReminderManager) -> None:
        """Undo restores the previous schedule and the activity count."""
        reminder = await manager.create_reminder(
            {"title": "Vitamins", "due_at": "2024-01-03T09:00:00Z", "recurrence": DAILY}
        )
        await manager.snooze_reminder(reminder["id"], 10)
        before = dict(manager.get_reminder(reminder["id"]))
        await manager.complete_reminder(reminder["id"])

        restored = await manager.undo_completion(reminder["id"])

        assert restored["status"] == before["status"]
        assert restored["due_at"] == before["due_at"]
        assert restored["next_fire_at"] == before["next_fire_at"]
        assert restored["snooze_count"] == 1
        assert restored["last_action"] == const.REMINDER_ACTION_UNDONE
        assert manager.activity == {}
        with pytest.raises(NothingToUndoError):
            await manager.undo_completion(reminder["id"])

    @freeze_time("2024-01-03 10:00:00", tz_offset=0)
    async def test_concurrent_completions_serialize(
        self, manager: ReminderManager
    ) -> None:
        """Parallel completions each apply once."""
        reminder = await manager.create_reminder(
            {"title": "Vitamins", "due_at": "2024-01-01T09:00:00Z", "recurrence": DAILY}
        )

        await asyncio.gather(
            *(manager.complete_reminder(reminder["id"]) for _ in range(5))
        )

        assert manager.get_reminder(reminder["id"])["version"] == 6
        assert manager.activity == {"2024-01-03": 5}


# ============================================================================
# Snooze
# ============================================================================


class TestSnooze:
    """Snoozing postpones next_fire_at only."""

    @freeze_time("2024-01-03 10:00:00", tz_offset=0)
    async def test_snooze_explicit_minutes(self, manager: ReminderManager) -> None:
        """next_fire_at = now + minutes, due_at unchanged."""
        snoozed = record_signal(manager, const.SIGNAL_REMINDER_SNOOZED)
        reminder = await manager.create_reminder(
            {"title": "Stretch", "due_at": "2024-01-03T09:30:00Z"}
        )

        result = await manager.snooze_reminder(reminder["id"], 60)

        assert result["next_fire_at"] == "2024-01-03T11:00:00+00:00"
        assert result["due_at"] == "2024-01-03T09:30:00+00:00"
        assert result["snooze_count"] == 1
        assert snoozed[0]["minutes"] == 60

    @freeze_time("2024-01-03 10:00:00", tz_offset=0)
    async def test_snooze_uses_presets(self) -> None:
        """Reminder presets win over settings presets."""
        manager = ReminderManager({"snooze_presets_mins": [15]})
        plain = await manager.create_reminder(
            {"title": "A", "due_at": "2024-01-03T09:30:00Z"}
        )
        custom = await manager.create_reminder(
            {"title": "B", "due_at": "2024-01-03T09:30:00Z", "snooze_preset_mins": [5]}
        )

        assert (await manager.snooze_reminder(plain["id"]))[
            "next_fire_at"
        ] == "2024-01-03T10:15:00+00:00"
        assert (await manager.snooze_reminder(custom["id"]))[
            "next_fire_at"
        ] == "2024-01-03T10:05:00+00:00"

    async def test_snooze_invalid_minutes(self, manager: ReminderManager) -> None:
        """Non-positive minutes are rejected."""
        reminder = await manager.create_reminder(
            {"title": "Stretch", "due_at": "2024-01-03T09:30:00Z"}
        )
        with pytest.raises(SnoozeError):
            await manager.snooze_reminder(reminder["id"], 0)


# ============================================================================
# Streams and agenda
# ============================================================================


class TestStreamsAndAgenda:
    """Stream import and agenda grouping."""

    @freeze_time("2024-01-01 15:00:00", tz_offset=0)
    async def test_subscribe_to_stream(self, manager: ReminderManager) -> None:
        """Every item becomes a stored reminder."""
        imported = record_signal(manager, const.SIGNAL_STREAM_IMPORTED)
        stream = {
            "id": "stream-1",
            "title": "Evening",
            "items": [
                {"title": "Journal", "recurrence_rule": DAILY, "day_offset": 0, "time_of_day": "21:00"},
                {"title": "Plan week", "recurrence_rule": {"kind": "weekly"}, "day_offset": 6},
            ],
        }

        created = await manager.subscribe_to_stream(stream)

        assert len(created) == 2
        assert {r["id"] for r in created} == set(manager.reminders)
        assert created[0]["next_fire_at"] == "2024-01-01T21:00:00+00:00"
        assert imported[0]["stream_id"] == "stream-1"
        assert imported[0]["reminder_ids"] == [r["id"] for r in created]

    @freeze_time("2024-01-03 10:00:00", tz_offset=0)
    async def test_agenda_groups_and_sorts(self, manager: ReminderManager) -> None:
        """Overdue / today / upcoming, each sorted by next_fire_at."""
        late = await manager.create_reminder({"title": "late", "due_at": "2024-01-02T08:00:00Z"})
        today_later = await manager.create_reminder({"title": "t2", "due_at": "2024-01-03T20:00:00Z"})
        today_early = await manager.create_reminder({"title": "t1", "due_at": "2024-01-03T06:00:00Z"})
        soon = await manager.create_reminder({"title": "soon", "due_at": "2024-01-05T08:00:00Z"})
        gone = await manager.create_reminder({"title": "gone", "due_at": "2024-01-05T09:00:00Z"})
        await manager.delete_reminder(gone["id"])

        agenda = manager.agenda()

        assert [r["id"] for r in agenda[const.DUE_BUCKET_OVERDUE]] == [late["id"]]
        assert [r["id"] for r in agenda[const.DUE_BUCKET_TODAY]] == [
            today_early["id"],
            today_later["id"],
        ]
        assert [r["id"] for r in agenda[const.DUE_BUCKET_UPCOMING]] == [soon["id"]]

    @freeze_time("2024-01-03 10:00:00", tz_offset=0)
    async def test_agenda_accepts_naive_now(self, manager: ReminderManager) -> None:
        """A naive now is read in the manager's zone instead of failing to compare."""
        late = await manager.create_reminder({"title": "late", "due_at": "2024-01-02T08:00:00Z"})
        soon = await manager.create_reminder({"title": "soon", "due_at": "2024-01-05T08:00:00Z"})

        agenda = manager.agenda(datetime(2024, 1, 3, 10, 0))

        assert [r["id"] for r in agenda[const.DUE_BUCKET_OVERDUE]] == [late["id"]]
        assert [r["id"] for r in agenda[const.DUE_BUCKET_UPCOMING]] == [soon["id"]]

    @freeze_time("2024-01-03 10:00:00", tz_offset=0)
    async def test_agenda_uses_manager_zone(self) -> None:
        """23:30 UTC on Jan 3 is already Jan 4 for a Berlin user."""
        manager = ReminderManager({"timezone": "Europe/Berlin"})
        late_night = await manager.create_reminder(
            {"title": "late night", "due_at": "2024-01-03T23:30:00Z"}
        )

        agenda = manager.agenda(datetime(2024, 1, 3, 12, 0))

        assert [r["id"] for r in agenda[const.DUE_BUCKET_UPCOMING]] == [late_night["id"]]
        assert agenda[const.DUE_BUCKET_TODAY] == []


# ============================================================================
# Signals
# ============================================================================


class TestSignals:
    """listen / emit plumbing."""

    async def test_async_listener_scheduled(self, manager: ReminderManager) -> None:
        """Coroutine callbacks run on the event loop."""
        received: list[dict[str, Any]] = []

        async def _on_created(payload: dict[str, Any]) -> None:
            received.append(payload)

        manager.listen(const.SIGNAL_REMINDER_CREATED, _on_created)
        await manager.create_reminder({"title": "x", "due_at": "2024-01-03T09:30:00Z"})
        await asyncio.sleep(0)

        assert len(received) == 1

    async def test_unsubscribe(self, manager: ReminderManager) -> None:
        """The returned function removes the listener."""
        received: list[dict[str, Any]] = []
        unsub = manager.listen(const.SIGNAL_REMINDER_CREATED, received.append)
        unsub()

        await manager.create_reminder({"title": "x", "due_at": "2024-01-03T09:30:00Z"})

        assert received == []
