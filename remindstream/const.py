# File: const.py
"""Constants for RemindStream.

This file centralizes data keys, defaults, recurrence kinds, status values and
signal names for consistency across the engines, builders and managers.
"""

import logging

# ------------------------------------------------------------------------------------------------
# General
# ------------------------------------------------------------------------------------------------
# Logger
LOGGER = logging.getLogger(__package__)

# ------------------------------------------------------------------------------------------------
# Recurrence Kinds
# ------------------------------------------------------------------------------------------------
RECURRENCE_NONE = "none"
RECURRENCE_DAILY = "daily"
RECURRENCE_WEEKLY = "weekly"
RECURRENCE_MONTHLY = "monthly"
RECURRENCE_WEEKDAYS = "weekdays"
RECURRENCE_HOURLY = "hourly"
RECURRENCE_MINUTELY = "minutely"

RECURRENCE_KINDS = [
    RECURRENCE_NONE,
    RECURRENCE_DAILY,
    RECURRENCE_WEEKLY,
    RECURRENCE_MONTHLY,
    RECURRENCE_WEEKDAYS,
    RECURRENCE_HOURLY,
    RECURRENCE_MINUTELY,
]

# Kinds stepped by a fixed number of hours/minutes
SUB_DAILY_KINDS: frozenset[str] = frozenset({RECURRENCE_HOURLY, RECURRENCE_MINUTELY})

# ISO weekday numbers (1=Monday .. 7=Sunday)
ISO_MONDAY = 1
ISO_FRIDAY = 5
ISO_SUNDAY = 7
DAYS_PER_WEEK = 7

# Rule field limits
MIN_INTERVAL = 1
MIN_DAY_OF_MONTH = 1
MAX_DAY_OF_MONTH = 31

# Safety limit for the day-granularity search loop
MAX_RECURRENCE_ITERATIONS = 1000

# Fallback offset (days after the reference) when the search limit is hit
FALLBACK_DAYS = 1

# ------------------------------------------------------------------------------------------------
# Recurrence Data Keys (persisted record)
# ------------------------------------------------------------------------------------------------
DATA_RECURRENCE_KIND = "kind"
DATA_RECURRENCE_INTERVAL = "interval"
DATA_RECURRENCE_WEEKDAYS = "weekdays"
DATA_RECURRENCE_DAY_OF_MONTH = "day_of_month"

# Legacy keys written by the mobile client
DATA_RECURRENCE_LEGACY_TYPE = "type"
DATA_RECURRENCE_LEGACY_DAY_OF_MONTH = "dayOfMonth"

# ------------------------------------------------------------------------------------------------
# Reminder Data Keys
# ------------------------------------------------------------------------------------------------
DATA_REMINDER_ID = "id"
DATA_REMINDER_TITLE = "title"
DATA_REMINDER_NOTES = "notes"
DATA_REMINDER_CATEGORY_ID = "category_id"
DATA_REMINDER_STATUS = "status"
DATA_REMINDER_DUE_AT = "due_at"
DATA_REMINDER_NEXT_FIRE_AT = "next_fire_at"
DATA_REMINDER_RECURRENCE = "recurrence"
DATA_REMINDER_SNOOZE_PRESET_MINS = "snooze_preset_mins"
DATA_REMINDER_SNOOZE_COUNT = "snooze_count"
DATA_REMINDER_CREATED_AT = "created_at"
DATA_REMINDER_UPDATED_AT = "updated_at"
DATA_REMINDER_DELETED_AT = "deleted_at"
DATA_REMINDER_VERSION = "version"
DATA_REMINDER_LAST_ACTION = "last_action"

# Reminder status values
REMINDER_STATUS_ACTIVE = "active"
REMINDER_STATUS_DONE = "done"
REMINDER_STATUSES = [REMINDER_STATUS_ACTIVE, REMINDER_STATUS_DONE]

# Reminder last_action values
REMINDER_ACTION_CREATE = "create"
REMINDER_ACTION_EDIT = "edit"
REMINDER_ACTION_SNOOZE = "snooze"
REMINDER_ACTION_DONE = "done"
REMINDER_ACTION_UNDONE = "undone"

# Agenda buckets
DUE_BUCKET_OVERDUE = "overdue"
DUE_BUCKET_TODAY = "today"
DUE_BUCKET_UPCOMING = "upcoming"
DUE_BUCKETS = [DUE_BUCKET_OVERDUE, DUE_BUCKET_TODAY, DUE_BUCKET_UPCOMING]

# ------------------------------------------------------------------------------------------------
# Stream (routine template) Data Keys
# ------------------------------------------------------------------------------------------------
DATA_STREAM_ID = "id"
DATA_STREAM_CREATOR_ID = "creator_id"
DATA_STREAM_TITLE = "title"
DATA_STREAM_DESCRIPTION = "description"
DATA_STREAM_CATEGORY = "category"
DATA_STREAM_TAGS = "tags"
DATA_STREAM_IS_PUBLIC = "is_public"
DATA_STREAM_LIKES_COUNT = "likes_count"
DATA_STREAM_CREATED_AT = "created_at"
DATA_STREAM_ITEMS = "items"

DATA_STREAM_ITEM_ID = "id"
DATA_STREAM_ITEM_STREAM_ID = "stream_id"
DATA_STREAM_ITEM_TITLE = "title"
DATA_STREAM_ITEM_RECURRENCE_RULE = "recurrence_rule"
DATA_STREAM_ITEM_DAY_OFFSET = "day_offset"
DATA_STREAM_ITEM_TIME_OF_DAY = "time_of_day"

# ------------------------------------------------------------------------------------------------
# User Settings
# ------------------------------------------------------------------------------------------------
DATA_SETTINGS_SNOOZE_PRESETS_MINS = "snooze_presets_mins"
DATA_SETTINGS_TIMEZONE = "timezone"
DATA_SETTINGS_NOTIFICATIONS_ENABLED = "notifications_enabled"

DEFAULT_SNOOZE_PRESETS_MINS = [10, 60, 180]
DEFAULT_TIMEZONE = "UTC"
DEFAULT_NOTIFICATIONS_ENABLED = True

# ------------------------------------------------------------------------------------------------
# Defaults
# ------------------------------------------------------------------------------------------------
DEFAULT_RECURRENCE_INTERVAL = 1
DEFAULT_SNOOZE_COUNT = 0
DEFAULT_REMINDER_VERSION = 1
SENTINEL_EMPTY = ""

# ------------------------------------------------------------------------------------------------
# Validation Error Keys
# ------------------------------------------------------------------------------------------------
ERROR_INVALID_RECURRENCE = "invalid_recurrence"
ERROR_INVALID_REMINDER_TITLE = "invalid_reminder_title"
ERROR_INVALID_DATETIME = "invalid_datetime"
ERROR_INVALID_REMINDER = "invalid_reminder"
ERROR_INVALID_STREAM_ITEM = "invalid_stream_item"
ERROR_INVALID_TIME_OF_DAY = "invalid_time_of_day"
ERROR_INVALID_SETTINGS = "invalid_settings"

# ------------------------------------------------------------------------------------------------
# Manager Signals
# ------------------------------------------------------------------------------------------------
SIGNAL_REMINDER_CREATED = "reminder_created"
SIGNAL_REMINDER_UPDATED = "reminder_updated"
SIGNAL_REMINDER_DELETED = "reminder_deleted"
SIGNAL_REMINDER_COMPLETED = "reminder_completed"
SIGNAL_REMINDER_RESCHEDULED = "reminder_rescheduled"
SIGNAL_REMINDER_SNOOZED = "reminder_snoozed"
SIGNAL_STREAM_IMPORTED = "stream_imported"
