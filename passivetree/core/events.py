"""
Tree event bus.

A SkillTreeSession publishes a TreeEvent after every change to its tree
so UI panels and the combat loop can refresh without polling.

Usage:
    bus = EventBus()
    bus.subscribe(TreeEvent.NODE_ALLOCATED, on_node_allocated)
    session = SkillTreeSession(graph, event_bus=bus)
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable

logger = logging.getLogger(__name__)


class TreeEvent(Enum):
    """Changes a session reports."""
    NODE_ALLOCATED = auto()     # node_id, points
    NODE_REFUNDED = auto()      # node_id, points
    TREE_RESET = auto()         # returned, points
    STATE_RESTORED = auto()     # allocated, points
    CONTEXT_CHANGED = auto()    # level, character_class


@dataclass(frozen=True)
class Event:
    """A published event and its payload."""
    type: TreeEvent
    data: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]


EventHandler = Callable[[Event], None]


class EventBus:
    """
    Routes tree events to subscribed handlers.

    Handlers run in subscription order. An event published from inside a
    handler is delivered after the current event has reached every
    handler, so subscribers always see changes in the order they happened.
    A failing handler is logged and does not stop delivery.
    """

    def __init__(self):
        self._handlers: dict[TreeEvent, list[EventHandler]] = {}
        self._pending: deque[Event] = deque()
        self._delivering = False

    def subscribe(self, event_type: TreeEvent, handler: EventHandler) -> None:
        """Call handler(event) for every event of this type."""
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_type: TreeEvent, handler: EventHandler) -> None:
        """Stop calling handler; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event_type: TreeEvent, **data: Any) -> Event:
        """Deliver an event, or queue it if a delivery is in progress."""
        event = Event(event_type, data)
        self._pending.append(event)
        if not self._delivering:
            self._drain()
        return event

    def clear(self, event_type: TreeEvent | None = None) -> None:
        """Drop the handlers of one event type, or of all types."""
        if event_type is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event_type, None)

    def handler_count(self, event_type: TreeEvent) -> int:
        return len(self._handlers.get(event_type, []))

    def _drain(self) -> None:
        self._delivering = True
        try:
            while self._pending:
                event = self._pending.popleft()
                # Copy: handlers may unsubscribe while being called
                for handler in list(self._handlers.get(event.type, [])):
                    try:
                        handler(event)
                    except Exception as e:
                        logger.error(f"Handler {handler!r} failed on {event.type.name}: {e}")
        finally:
            self._delivering = False
