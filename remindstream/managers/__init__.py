"""Manager modules for RemindStream.

Managers orchestrate workflows and coordinate between engines.
They are stateful, event-aware, and handle cross-cutting concerns.
"""

from .base_manager import BaseManager
from .reminder_manager import (
    NothingToUndoError,
    ReminderManager,
    ReminderNotFoundError,
)

__all__ = [
    "BaseManager",
    "NothingToUndoError",
    "ReminderManager",
    "ReminderNotFoundError",
]
