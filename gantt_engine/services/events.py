"""Change notifications emitted after committed mutations."""

from collections import defaultdict
from enum import Enum
from typing import Any, Callable

from gantt_engine.logging_config import get_logger

logger = get_logger(__name__)

Listener = Callable[[dict[str, Any]], Any]


class Event(str, Enum):
    TASK_ADDED = "task_added"
    TASK_UPDATED = "task_updated"
    TASK_DELETED = "task_deleted"
    TASK_MOVED = "task_moved"
    TASKS_LOADED = "tasks_loaded"
    LINK_ADDED = "link_added"
    LINK_REMOVED = "link_removed"
    SCHEDULE_CASCADED = "schedule_cascaded"


def _key(event) -> str:
    return event.value if isinstance(event, Event) else str(event)


class EventBus:
    """
    Synchronous publish/subscribe.

    A failing listener is logged and skipped; the remaining listeners still run.
    """

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def on(self, event, listener: Listener) -> Callable[[], None]:
        """Subscribe; returns a callable that unsubscribes."""
        name = _key(event)
        self._listeners[name].append(listener)
        return lambda: self.off(name, listener)

    def off(self, event, listener: Listener) -> None:
        listeners = self._listeners.get(_key(event))
        if listeners and listener in listeners:
            listeners.remove(listener)

    def once(self, event, listener: Listener) -> Callable[[], None]:
        name = _key(event)

        def wrapper(payload):
            self.off(name, wrapper)
            return listener(payload)

        return self.on(name, wrapper)

    def emit(self, event, payload: dict[str, Any] | None = None) -> bool:
        """Call every listener of ``event``; True if at least one was registered."""
        name = _key(event)
        listeners = list(self._listeners.get(name, []))
        payload = payload or {}
        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                logger.exception(f"Listener for '{name}' failed")
        return bool(listeners)

    def has_listeners(self, event) -> bool:
        return bool(self._listeners.get(_key(event)))

    def event_names(self) -> list[str]:
        return [name for name, listeners in self._listeners.items() if listeners]

    def clear(self) -> None:
        self._listeners.clear()
