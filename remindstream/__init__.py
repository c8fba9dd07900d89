# File: __init__.py
"""RemindStream reminder scheduling core.

Key Features:
- Recurrence engine computing the next fire time of a reminder.
- Reminder workflows (complete, snooze, undo) with in-process signals.
- Stream template import.
"""

from __future__ import annotations

from . import const
from .data_builders import EntityValidationError
from .engines import (
    NextFireResult,
    RecurrenceEngine,
    ReminderEngine,
    StreamEngine,
    compute_next_fire_at,
    resolve_next_fire,
)
from .managers import ReminderManager, ReminderNotFoundError

__all__ = [
    "EntityValidationError",
    "NextFireResult",
    "RecurrenceEngine",
    "ReminderEngine",
    "ReminderManager",
    "ReminderNotFoundError",
    "StreamEngine",
    "compute_next_fire_at",
    "const",
    "resolve_next_fire",
]
