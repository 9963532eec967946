"""Event hooks for populate runs (plan_ready, task_start, task_complete, task_fail)."""
import asyncio
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)


class EventEmitter:
    """
    Dispatches populate events to sync or async listeners.

    A failing listener is logged and skipped so progress displays can never
    break an upload run.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}

    def on(self, event_name: str, callback: Callable) -> None:
        """Subscribe to an event."""
        listeners = self._listeners.setdefault(event_name, [])
        if callback not in listeners:
            listeners.append(callback)

    def off(self, event_name: str, callback: Callable) -> None:
        """Unsubscribe from an event."""
        listeners = self._listeners.get(event_name, [])
        if callback in listeners:
            listeners.remove(callback)

    def listener_count(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, ()))

    async def emit(self, event_name: str, *args) -> int:
        """Call every listener of event_name, returning how many were called."""
        called = 0
        for callback in list(self._listeners.get(event_name, ())):
            try:
                outcome = callback(*args)
                if asyncio.iscoroutine(outcome):
                    await outcome
            except Exception as e:
                logger.error("Error in %s listener %r: %s", event_name, callback, e)
            called += 1
        return called
