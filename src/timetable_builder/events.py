"""Assignment and conflict events for external logging/reporting."""

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Kinds of events emitted by the editor."""

    ASSIGNMENT_PLACED = "assignment.placed"
    ASSIGNMENT_MOVED = "assignment.moved"
    ASSIGNMENT_REMOVED = "assignment.removed"
    FACULTY_ASSIGNED = "faculty.assigned"
    CONFLICT_DETECTED = "conflict.detected"
    CONFLICT_RESOLVED = "conflict.resolved"
    GRID_RESET = "grid.reset"
    GRID_SAVED = "grid.saved"
    GRID_PUBLISHED = "grid.published"


@dataclass
class Event:
    """An event emitted after a mutation has been applied."""

    type: EventType
    instance_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "instance_id": self.instance_id,
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat(),
        }


Handler = Callable[[Event], None]


class EventBus:
    """Synchronous publish/subscribe for editor events.

    Handlers subscribe to one event type or, with ``None``, to all of them.
    A failing handler is logged and does not affect the other handlers or the
    operation that emitted the event.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventType | None, list[Handler]] = defaultdict(list)

    def subscribe(self, handler: Handler, event_type: EventType | None = None) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, handler: Handler, event_type: EventType | None = None) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: Event) -> None:
        for handler in [*self._handlers.get(event.type, []), *self._handlers.get(None, [])]:
            try:
                handler(event)
            except Exception:
                logger.exception(f"Event handler failed for {event.type.value}")
