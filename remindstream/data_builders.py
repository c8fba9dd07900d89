"""Record validation and building helpers.

This module is the SINGLE SOURCE OF TRUTH for:
- Persisted record shapes (voluptuous schemas)
- Record field defaults
- Conversion between persisted recurrence records and rule dataclasses

### Build Functions
Each record type has a `build_<record>()` function that:
- Takes user_input (DATA_* keys)
- Generates the id (UUID) for new records
- Sets timestamps (created_at, updated_at)
- Applies field defaults
- Returns a complete record dict ready for storage

### Validation Functions
`validate_<record>_data()` returns a dict of errors (empty if valid);
`build_<record>()` raises EntityValidationError instead.

Consumers:
- engines/reminder_engine.py (completion planning reads recurrence records)
- engines/stream_engine.py (template import)
- managers/reminder_manager.py (create/update)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
import uuid
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import voluptuous as vol

from . import const
from .engines.recurrence_engine import (
    DailyRule,
    HourlyRule,
    InvalidRecurrenceError,
    MinutelyRule,
    MonthlyRule,
    NoRecurrence,
    RecurrenceRule,
    WeekdaysRule,
    WeeklyRule,
)
from .type_defs import RecurrenceData, ReminderData, StreamItemData, UserSettingsData
from .utils.dt_utils import dt_now_utc, dt_to_iso, dt_to_utc

# ==============================================================================
# EXCEPTIONS
# ==============================================================================


class EntityValidationError(Exception):
    """Validation error with field-specific information.

    Attributes:
        field: The DATA_* key of the field that failed
        error_key: The ERROR_* constant describing the failure
        placeholders: Optional dict with details for the message

    Example:
        raise EntityValidationError(
            field=const.DATA_REMINDER_TITLE,
            error_key=const.ERROR_INVALID_REMINDER_TITLE,
        )
    """

    def __init__(
        self,
        field: str,
        error_key: str,
        placeholders: dict[str, str] | None = None,
    ) -> None:
        """Initialize EntityValidationError."""
        self.field = field
        self.error_key = error_key
        self.placeholders = placeholders or {}
        detail = self.placeholders.get("error")
        super().__init__(f"{error_key}: {field}" + (f" ({detail})" if detail else ""))


# ==============================================================================
# SCHEMAS
# ==============================================================================


def _timezone_name(value: Any) -> str:
    """Voluptuous validator: value must be a known IANA timezone name."""
    if not isinstance(value, str) or not value:
        raise vol.Invalid("timezone must be a non-empty string")
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as err:
        raise vol.Invalid(f"unknown timezone: {value}") from err
    return value


def _datetime_value(value: Any) -> Any:
    """Voluptuous validator: ISO string or datetime that parses to an instant."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and dt_to_utc(value) is not None:
        return value
    raise vol.Invalid(f"invalid datetime: {value!r}")


_POSITIVE_INT = vol.All(int, vol.Range(min=1))

RECURRENCE_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_RECURRENCE_KIND): vol.In(const.RECURRENCE_KINDS),
        vol.Optional(
            const.DATA_RECURRENCE_INTERVAL, default=const.DEFAULT_RECURRENCE_INTERVAL
        ): vol.Any(None, int),
        vol.Optional(const.DATA_RECURRENCE_WEEKDAYS, default=list): vol.Any(
            None, [int]
        ),
        vol.Optional(const.DATA_RECURRENCE_DAY_OF_MONTH, default=None): vol.Any(
            None, int
        ),
    },
    extra=vol.REMOVE_EXTRA,
)

REMINDER_SCHEMA = vol.Schema(
    {
        vol.Optional(const.DATA_REMINDER_TITLE): str,
        vol.Optional(const.DATA_REMINDER_NOTES): vol.Any(None, str),
        vol.Optional(const.DATA_REMINDER_CATEGORY_ID): vol.Any(None, str),
        vol.Optional(const.DATA_REMINDER_STATUS): vol.In(const.REMINDER_STATUSES),
        vol.Optional(const.DATA_REMINDER_DUE_AT): _datetime_value,
        vol.Optional(const.DATA_REMINDER_NEXT_FIRE_AT): _datetime_value,
        vol.Optional(const.DATA_REMINDER_RECURRENCE): dict,
        vol.Optional(const.DATA_REMINDER_SNOOZE_PRESET_MINS): [_POSITIVE_INT],
    },
    extra=vol.ALLOW_EXTRA,
)

STREAM_ITEM_SCHEMA = vol.Schema(
    {
        vol.Required(const.DATA_STREAM_ITEM_TITLE): vol.All(str, vol.Length(min=1)),
        vol.Required(const.DATA_STREAM_ITEM_RECURRENCE_RULE): dict,
        vol.Required(const.DATA_STREAM_ITEM_DAY_OFFSET): vol.All(
            int, vol.Range(min=0)
        ),
        vol.Optional(const.DATA_STREAM_ITEM_TIME_OF_DAY): vol.Any(None, str),
    },
    extra=vol.ALLOW_EXTRA,
)

SETTINGS_SCHEMA = vol.Schema(
    {
        vol.Optional(
            const.DATA_SETTINGS_SNOOZE_PRESETS_MINS,
            default=list(const.DEFAULT_SNOOZE_PRESETS_MINS),
        ): [_POSITIVE_INT],
        vol.Optional(
            const.DATA_SETTINGS_TIMEZONE, default=const.DEFAULT_TIMEZONE
        ): _timezone_name,
        vol.Optional(
            const.DATA_SETTINGS_NOTIFICATIONS_ENABLED,
            default=const.DEFAULT_NOTIFICATIONS_ENABLED,
        ): bool,
    },
    extra=vol.REMOVE_EXTRA,
)


# ==============================================================================
# RECURRENCE
# ==============================================================================


def _normalize_recurrence_keys(data: dict[str, Any]) -> dict[str, Any]:
    """Map the mobile client's legacy keys (`type`, `dayOfMonth`) to DATA_* keys."""
    normalized = dict(data)
    if const.DATA_RECURRENCE_LEGACY_TYPE in normalized:
        legacy_kind = normalized.pop(const.DATA_RECURRENCE_LEGACY_TYPE)
        normalized.setdefault(const.DATA_RECURRENCE_KIND, legacy_kind)
    if const.DATA_RECURRENCE_LEGACY_DAY_OF_MONTH in normalized:
        legacy_day = normalized.pop(const.DATA_RECURRENCE_LEGACY_DAY_OF_MONTH)
        normalized.setdefault(const.DATA_RECURRENCE_DAY_OF_MONTH, legacy_day)
    return normalized


def build_recurrence(data: dict[str, Any] | None) -> RecurrenceRule:
    """Build a validated recurrence rule from a persisted record.

    Args:
        data: RecurrenceData-shaped dict (legacy keys accepted), or None for
            a one-shot reminder.

    Returns:
        The matching rule dataclass.

    Raises:
        EntityValidationError: If the record is malformed or out of range.

    Examples:
        build_recurrence({"kind": "weekly", "weekdays": [3, 5]})
        → WeeklyRule(interval=1, weekdays=frozenset({3, 5}))

        build_recurrence({"type": "monthly", "dayOfMonth": 31})
        → MonthlyRule(interval=1, day_of_month=31)
    """
    if data is None:
        return NoRecurrence()
    if not isinstance(data, dict):
        raise EntityValidationError(
            field=const.DATA_REMINDER_RECURRENCE,
            error_key=const.ERROR_INVALID_RECURRENCE,
            placeholders={"error": f"expected a mapping, got {type(data).__name__}"},
        )

    try:
        validated = RECURRENCE_SCHEMA(_normalize_recurrence_keys(data))
    except vol.Invalid as err:
        const.LOGGER.warning("Rejected recurrence record %s: %s", data, err)
        raise EntityValidationError(
            field=const.DATA_REMINDER_RECURRENCE,
            error_key=const.ERROR_INVALID_RECURRENCE,
            placeholders={"error": str(err)},
        ) from err

    kind = validated[const.DATA_RECURRENCE_KIND]
    interval = validated[const.DATA_RECURRENCE_INTERVAL]
    if interval is None:
        interval = const.DEFAULT_RECURRENCE_INTERVAL
    weekdays = validated[const.DATA_RECURRENCE_WEEKDAYS] or []
    day_of_month = validated[const.DATA_RECURRENCE_DAY_OF_MONTH]

    try:
        if kind == const.RECURRENCE_NONE:
            return NoRecurrence()
        if kind == const.RECURRENCE_DAILY:
            return DailyRule(interval=interval)
        if kind == const.RECURRENCE_WEEKLY:
            return WeeklyRule(interval=interval, weekdays=frozenset(weekdays))
        if kind == const.RECURRENCE_WEEKDAYS:
            if interval != const.DEFAULT_RECURRENCE_INTERVAL:
                const.LOGGER.debug(
                    "Ignoring interval %s on weekdays recurrence", interval
                )
            return WeekdaysRule()
        if kind == const.RECURRENCE_MONTHLY:
            return MonthlyRule(interval=interval, day_of_month=day_of_month)
        if kind == const.RECURRENCE_HOURLY:
            return HourlyRule(interval=interval)
        return MinutelyRule(interval=interval)
    except InvalidRecurrenceError as err:
        const.LOGGER.warning("Rejected recurrence record %s: %s", data, err)
        raise EntityValidationError(
            field=const.DATA_REMINDER_RECURRENCE,
            error_key=const.ERROR_INVALID_RECURRENCE,
            placeholders={"error": str(err)},
        ) from err


def recurrence_to_data(rule: RecurrenceRule) -> RecurrenceData:
    """Serialize a rule to its persisted record (JSON-compatible)."""
    weekdays = sorted(rule.weekdays) if isinstance(rule, WeeklyRule) else []
    day_of_month = rule.day_of_month if isinstance(rule, MonthlyRule) else None
    return RecurrenceData(
        kind=rule.kind,
        interval=rule.interval,
        weekdays=weekdays,
        day_of_month=day_of_month,
    )


# ==============================================================================
# REMINDERS
# ==============================================================================


def validate_reminder_data(
    data: dict[str, Any],
    *,
    is_update: bool = False,
) -> dict[str, str]:
    """Validate reminder business rules.

    Args:
        data: Reminder data dict with DATA_* keys
        is_update: True if updating an existing reminder (title/due_at optional)

    Returns:
        Dict of errors: {field: error_key}. Empty dict means validation passed.

    Validation Rules:
        1. Field shapes match REMINDER_SCHEMA
        2. Title not blank (required on create)
        3. due_at present on create
        4. Recurrence record valid (if provided)
    """
    errors: dict[str, str] = {}

    # === 1. Shape ===
    try:
        REMINDER_SCHEMA(data)
    except vol.MultipleInvalid as err:
        for error in err.errors:
            field_name = str(error.path[0]) if error.path else const.DATA_REMINDER_ID
            if field_name in (
                const.DATA_REMINDER_DUE_AT,
                const.DATA_REMINDER_NEXT_FIRE_AT,
            ):
                errors[field_name] = const.ERROR_INVALID_DATETIME
            else:
                errors[field_name] = const.ERROR_INVALID_REMINDER
        return errors

    # === 2. Title ===
    title = str(data.get(const.DATA_REMINDER_TITLE, "")).strip()
    if not title and (not is_update or const.DATA_REMINDER_TITLE in data):
        errors[const.DATA_REMINDER_TITLE] = const.ERROR_INVALID_REMINDER_TITLE
        return errors

    # === 3. Due date ===
    if not is_update and not data.get(const.DATA_REMINDER_DUE_AT):
        errors[const.DATA_REMINDER_DUE_AT] = const.ERROR_INVALID_DATETIME
        return errors

    # === 4. Recurrence ===
    if const.DATA_REMINDER_RECURRENCE in data:
        try:
            build_recurrence(data[const.DATA_REMINDER_RECURRENCE])
        except EntityValidationError as err:
            errors[err.field] = err.error_key

    return errors


def build_reminder(
    user_input: dict[str, Any],
    existing: ReminderData | None = None,
    *,
    now: datetime | None = None,
    tz: ZoneInfo | None = None,
) -> ReminderData:
    """Build reminder data for create or update operations.

    One function handles both create (existing=None) and update
    (existing=ReminderData).

    Args:
        user_input: Data with DATA_* keys (may have missing fields)
        existing: None for create, existing ReminderData for update
        now: Timestamp for created_at/updated_at (defaults to current UTC time)
        tz: Zone naive due_at / next_fire_at values are read in

    Returns:
        Complete ReminderData TypedDict ready for storage

    Raises:
        EntityValidationError: If validation fails

    Examples:
        # CREATE mode - generates UUID, next_fire_at defaults to due_at
        reminder = build_reminder({"title": "Call Mom", "due_at": "2024-01-01T09:00:00+00:00"})

        # UPDATE mode - preserves fields not in user_input, bumps version
        reminder = build_reminder({"title": "Call Dad"}, existing=reminder)
    """
    is_create = existing is None
    errors = validate_reminder_data(user_input, is_update=not is_create)
    if errors:
        field_name, error_key = next(iter(errors.items()))
        raise EntityValidationError(field=field_name, error_key=error_key)

    timestamp = dt_to_iso(now or dt_now_utc())

    def get_field(data_key: str, default: Any) -> Any:
        """Get field value: user_input > existing > default."""
        if data_key in user_input:
            return user_input[data_key]
        if existing is not None:
            return existing.get(data_key, default)
        return default

    raw_due = get_field(const.DATA_REMINDER_DUE_AT, None)
    due_at = dt_to_iso(dt_to_utc(raw_due, tz))  # type: ignore[arg-type]
    raw_next_fire = get_field(const.DATA_REMINDER_NEXT_FIRE_AT, None)
    if is_create and const.DATA_REMINDER_NEXT_FIRE_AT not in user_input:
        raw_next_fire = due_at
    next_fire_at = dt_to_iso(dt_to_utc(raw_next_fire, tz))  # type: ignore[arg-type]

    rule = build_recurrence(get_field(const.DATA_REMINDER_RECURRENCE, None))

    if existing is None:
        reminder_id = str(uuid.uuid4())
        created_at = timestamp
        version = const.DEFAULT_REMINDER_VERSION
        last_action = const.REMINDER_ACTION_CREATE
    else:
        reminder_id = existing[const.DATA_REMINDER_ID]
        created_at = existing.get(const.DATA_REMINDER_CREATED_AT, timestamp)
        version = existing.get(const.DATA_REMINDER_VERSION, 0) + 1
        last_action = const.REMINDER_ACTION_EDIT

    return ReminderData(
        id=reminder_id,
        title=str(get_field(const.DATA_REMINDER_TITLE, "")).strip(),
        notes=str(get_field(const.DATA_REMINDER_NOTES, None) or const.SENTINEL_EMPTY),
        category_id=get_field(const.DATA_REMINDER_CATEGORY_ID, None),
        status=get_field(const.DATA_REMINDER_STATUS, const.REMINDER_STATUS_ACTIVE),
        due_at=due_at,
        next_fire_at=next_fire_at,
        recurrence=recurrence_to_data(rule),
        snooze_preset_mins=list(get_field(const.DATA_REMINDER_SNOOZE_PRESET_MINS, [])),
        snooze_count=int(
            get_field(const.DATA_REMINDER_SNOOZE_COUNT, const.DEFAULT_SNOOZE_COUNT)
        ),
        created_at=created_at,
        updated_at=timestamp,
        deleted_at=get_field(const.DATA_REMINDER_DELETED_AT, None),
        version=version,
        last_action=last_action,
    )


def reminder_rule(reminder: ReminderData) -> RecurrenceRule:
    """Return the validated rule of a stored reminder."""
    return build_recurrence(reminder.get(const.DATA_REMINDER_RECURRENCE))


# ==============================================================================
# STREAM ITEMS
# ==============================================================================


def validate_stream_item(item: dict[str, Any]) -> StreamItemData:
    """Validate a stream template item.

    Raises:
        EntityValidationError: If the item is malformed
    """
    try:
        validated = STREAM_ITEM_SCHEMA(item)
    except vol.Invalid as err:
        raise EntityValidationError(
            field=const.DATA_STREAM_ITEM_TITLE,
            error_key=const.ERROR_INVALID_STREAM_ITEM,
            placeholders={"error": str(err)},
        ) from err
    build_recurrence(validated[const.DATA_STREAM_ITEM_RECURRENCE_RULE])
    return validated  # type: ignore[no-any-return]


# ==============================================================================
# SETTINGS
# ==============================================================================


def build_settings(user_input: dict[str, Any] | None = None) -> UserSettingsData:
    """Build user settings with defaults applied.

    Raises:
        EntityValidationError: If a setting is invalid (unknown timezone, etc.)
    """
    try:
        validated = SETTINGS_SCHEMA(dict(user_input or {}))
    except vol.Invalid as err:
        field_name = (
            str(err.path[0]) if err.path else const.DATA_SETTINGS_TIMEZONE
        )
        raise EntityValidationError(
            field=field_name,
            error_key=const.ERROR_INVALID_SETTINGS,
            placeholders={"error": str(err)},
        ) from err

    return UserSettingsData(
        snooze_presets_mins=list(validated[const.DATA_SETTINGS_SNOOZE_PRESETS_MINS]),
        timezone=validated[const.DATA_SETTINGS_TIMEZONE],
        notifications_enabled=validated[const.DATA_SETTINGS_NOTIFICATIONS_ENABLED],
    )
