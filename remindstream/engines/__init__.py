"""Engine modules for RemindStream.

Contains pure computation engines:
- recurrence_engine: Next-fire computation for recurrence rules
- reminder_engine: Completion, snooze and agenda calculations
- stream_engine: Stream template import
"""

# Use relative imports within package to avoid mypy module resolution issues
from .recurrence_engine import (
    RULE_TYPES,
    DailyRule,
    HourlyRule,
    InvalidRecurrenceError,
    MinutelyRule,
    MonthlyRule,
    NextFireResult,
    NoRecurrence,
    RecurrenceEngine,
    RecurrenceRule,
    WeekdaysRule,
    WeeklyRule,
    advance_candidate,
    compute_next_fire_at,
    matches_rule,
    resolve_next_fire,
)
from .reminder_engine import CompletionEffect, ReminderEngine, SnoozeError
from .stream_engine import StreamEngine

__all__ = [
    "RULE_TYPES",
    "CompletionEffect",
    "DailyRule",
    "HourlyRule",
    "InvalidRecurrenceError",
    "MinutelyRule",
    "MonthlyRule",
    "NextFireResult",
    "NoRecurrence",
    "RecurrenceEngine",
    "RecurrenceRule",
    "ReminderEngine",
    "SnoozeError",
    "StreamEngine",
    "WeekdaysRule",
    "WeeklyRule",
    "advance_candidate",
    "compute_next_fire_at",
    "matches_rule",
    "resolve_next_fire",
]
