"""Type definitions for RemindStream data structures.

TypedDicts describe the persisted (JSON-compatible) shape of reminders,
recurrence rules, stream templates and user settings. Runtime recurrence
logic works on the frozen rule dataclasses in engines/recurrence_engine.py;
these dicts are the storage/sync boundary only.

NOTE: TypedDict is STATIC ANALYSIS ONLY. Runtime validation lives in
data_builders.py (voluptuous schemas).
"""

from typing import NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

ReminderId = str  # UUID string
StreamId = str  # UUID string
ISODatetime = str  # ISO 8601 datetime string "2024-01-01T09:00:00+00:00"
ISODate = str  # ISO 8601 date string (no time) "2024-01-01"


# =============================================================================
# Recurrence
# =============================================================================


class RecurrenceData(TypedDict):
    """Persisted recurrence rule. `kind` is the string tag."""

    kind: str  # RECURRENCE_* constant
    interval: int
    weekdays: list[int]  # ISO weekdays (1=Mon, 7=Sun), weekly only
    day_of_month: int | None  # 1..31, monthly only


# =============================================================================
# Reminders
# =============================================================================


class ReminderData(TypedDict):
    """A single reminder record."""

    id: ReminderId
    title: str
    notes: str
    category_id: str | None
    status: str  # REMINDER_STATUS_*

    due_at: ISODatetime  # User intent (anchor)
    next_fire_at: ISODatetime  # Scheduling target

    recurrence: RecurrenceData
    snooze_preset_mins: list[int]
    snooze_count: int

    created_at: ISODatetime
    updated_at: ISODatetime
    deleted_at: ISODatetime | None
    version: int
    last_action: str  # REMINDER_ACTION_*


# =============================================================================
# Streams (shared routine templates)
# =============================================================================


class StreamItemData(TypedDict):
    """One template item of a stream."""

    id: str
    stream_id: StreamId
    title: str
    recurrence_rule: RecurrenceData
    day_offset: int
    time_of_day: NotRequired[str | None]  # "HH:MM"


class StreamData(TypedDict):
    """A shared routine template."""

    id: StreamId
    creator_id: str
    title: str
    description: NotRequired[str]
    category: NotRequired[str]
    tags: NotRequired[list[str]]
    is_public: bool
    likes_count: int
    created_at: ISODatetime
    items: NotRequired[list[StreamItemData]]


# =============================================================================
# Settings
# =============================================================================


class UserSettingsData(TypedDict):
    """Per-user scheduling preferences."""

    snooze_presets_mins: list[int]
    timezone: str  # IANA zone name
    notifications_enabled: bool


# Completion activity counter: local ISO date -> completions that day
ActivityCollection = dict[ISODate, int]
RemindersCollection = dict[ReminderId, ReminderData]
