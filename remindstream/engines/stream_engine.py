"""Stream Engine - turns shared routine templates into reminders.

A stream item carries a day offset from the subscription day and an
optional "HH:MM" wall-clock time. Importing a stream creates one active
reminder per item, anchored at that resolved instant.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
import uuid
from zoneinfo import ZoneInfo

from .. import const, data_builders as db
from ..utils.dt_utils import (
    as_utc,
    dt_add_days,
    dt_parse_time_of_day,
    dt_to_iso,
    dt_with_time_of_day,
)

if TYPE_CHECKING:
    from ..type_defs import ReminderData, StreamData, StreamItemData


class StreamEngine:
    """Stateless stream import calculations."""

    @staticmethod
    def resolve_item_anchor(
        item: StreamItemData, start: datetime, tz: ZoneInfo | None = None
    ) -> datetime:
        """Return the UTC instant a stream item first fires.

        `start` plus `day_offset` calendar days in `tz`; when the item has a
        time of day, the wall-clock time is set to it (seconds zeroed).

        Raises:
            EntityValidationError: If time_of_day is present but not "HH:MM"
        """
        anchor = dt_add_days(start, item[const.DATA_STREAM_ITEM_DAY_OFFSET], tz)

        raw_time = item.get(const.DATA_STREAM_ITEM_TIME_OF_DAY)
        if raw_time:
            time_of_day = dt_parse_time_of_day(raw_time)
            if time_of_day is None:
                raise db.EntityValidationError(
                    field=const.DATA_STREAM_ITEM_TIME_OF_DAY,
                    error_key=const.ERROR_INVALID_TIME_OF_DAY,
                    placeholders={"value": str(raw_time)},
                )
            anchor = dt_with_time_of_day(anchor, time_of_day, tz)

        return as_utc(anchor)

    @staticmethod
    def build_reminders_from_stream(
        stream: StreamData, now: datetime, tz: ZoneInfo | None = None
    ) -> list[ReminderData]:
        """Create one new reminder per stream item.

        Args:
            stream: Stream template with its items
            now: Subscription instant (day offsets count from here)
            tz: User zone for day offsets and times of day

        Returns:
            New ReminderData records, in item order

        Raises:
            EntityValidationError: If any item is malformed (nothing is built)
        """
        items: list[dict[str, Any]] = list(stream.get(const.DATA_STREAM_ITEMS, []))
        timestamp = dt_to_iso(now)
        reminders: list[ReminderData] = []

        for raw_item in items:
            item = db.validate_stream_item(raw_item)
            anchor_iso = dt_to_iso(StreamEngine.resolve_item_anchor(item, now, tz))
            rule = db.build_recurrence(item[const.DATA_STREAM_ITEM_RECURRENCE_RULE])

            reminders.append(
                {
                    const.DATA_REMINDER_ID: str(uuid.uuid4()),
                    const.DATA_REMINDER_TITLE: item[const.DATA_STREAM_ITEM_TITLE],
                    const.DATA_REMINDER_NOTES: const.SENTINEL_EMPTY,
                    const.DATA_REMINDER_CATEGORY_ID: stream.get(
                        const.DATA_STREAM_CATEGORY
                    ),
                    const.DATA_REMINDER_STATUS: const.REMINDER_STATUS_ACTIVE,
                    const.DATA_REMINDER_DUE_AT: anchor_iso,
                    const.DATA_REMINDER_NEXT_FIRE_AT: anchor_iso,
                    const.DATA_REMINDER_RECURRENCE: db.recurrence_to_data(rule),
                    const.DATA_REMINDER_SNOOZE_PRESET_MINS: [],
                    const.DATA_REMINDER_SNOOZE_COUNT: const.DEFAULT_SNOOZE_COUNT,
                    const.DATA_REMINDER_CREATED_AT: timestamp,
                    const.DATA_REMINDER_UPDATED_AT: timestamp,
                    const.DATA_REMINDER_DELETED_AT: None,
                    const.DATA_REMINDER_VERSION: const.DEFAULT_REMINDER_VERSION,
                    const.DATA_REMINDER_LAST_ACTION: const.REMINDER_ACTION_CREATE,
                }
            )

        const.LOGGER.debug(
            "StreamEngine: Built %d reminders from stream %s",
            len(reminders),
            stream.get(const.DATA_STREAM_ID),
        )
        return reminders
