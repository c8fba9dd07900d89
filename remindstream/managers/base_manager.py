"""Base manager class for RemindStream managers."""

from __future__ import annotations

import asyncio
from collections import defaultdict
import inspect
from typing import TYPE_CHECKING, Any

from .. import const

if TYPE_CHECKING:
    from collections.abc import Callable


class BaseManager:
    """Base class for RemindStream managers with scoped event support.

    Provides:
    - Instance-scoped event emitting (emit)
    - Instance-scoped event listening (listen)

    Listeners receive the payload dict as their only argument. Sync callbacks
    run inline; coroutine callbacks are scheduled on the running event loop.
    """

    def __init__(self) -> None:
        """Initialize manager."""
        self._listeners: defaultdict[str, list[Callable[..., Any]]] = defaultdict(
            list
        )
        self._pending_tasks: set[asyncio.Task[Any]] = set()

    def emit(self, signal: str, **payload: Any) -> None:
        """Emit an instance-scoped event to listeners.

        Args:
            signal: Signal constant (e.g., const.SIGNAL_REMINDER_RESCHEDULED)
            **payload: Event data dict passed to listeners (must be JSON-serializable)

        Example:
            self.emit(
                const.SIGNAL_REMINDER_RESCHEDULED,
                reminder_id=reminder_id,
                next_fire_at="2024-01-02T09:00:00+00:00",
            )
        """
        const.LOGGER.debug(
            "Emitting event '%s' from %s with payload keys: %s",
            signal,
            self.__class__.__name__,
            list(payload.keys()),
        )
        for callback in list(self._listeners[signal]):
            result = callback(payload)
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._pending_tasks.add(task)
                task.add_done_callback(self._pending_tasks.discard)

    def listen(self, signal: str, callback: Callable[..., Any]) -> Callable[[], None]:
        """Subscribe to an instance-scoped event.

        Args:
            signal: Signal constant to listen for
            callback: Function called when event fires (receives payload dict as arg)
                      Can be sync (returns None) or async (returns Coroutine)

        Returns:
            Function that removes the subscription.

        Example:
            def _on_rescheduled(payload: dict[str, Any]) -> None:
                schedule_notification(payload["reminder_id"], payload["next_fire_at"])

            unsub = manager.listen(const.SIGNAL_REMINDER_RESCHEDULED, _on_rescheduled)
        """
        self._listeners[signal].append(callback)
        const.LOGGER.debug(
            "Manager %s registered listener for event '%s'",
            self.__class__.__name__,
            signal,
        )

        def _unsubscribe() -> None:
            if callback in self._listeners[signal]:
                self._listeners[signal].remove(callback)

        return _unsubscribe
