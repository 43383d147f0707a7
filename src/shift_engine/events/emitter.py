"""Event emitter for publishing domain events.

The emitter provides:
- Handler registration
- Error isolation (handler failures don't break other handlers)
- Event batching, so a unit of work publishes only once it has committed
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol, TypeVar

from shift_engine.events.types import DomainEvent

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=DomainEvent)

EventHandler = Callable[[DomainEvent], None]


class EventPublisher(Protocol):
    """Anything services can hand events to."""

    def emit(self, event: DomainEvent) -> list[Exception]: ...


class EventEmitter:
    """Synchronous event emitter.

    Usage:
        emitter = EventEmitter()
        emitter.on_all(log_event)

        with emitter.batch() as batch:
            service = ShiftService(session, settings, batch)
            ...
            await session.commit()
        # All events emitted when the context exits cleanly
    """

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def on_all(self, handler: EventHandler) -> None:
        """Register handler for all events."""
        self._handlers.append(handler)

    def emit(self, event: DomainEvent) -> list[Exception]:
        """Emit an event to all handlers.

        Returns list of any exceptions raised by handlers.
        """
        errors: list[Exception] = []
        for handler in self._handlers:
            try:
                handler(event)
            except Exception as e:
                logger.exception("Handler %s failed for event %s", handler, event.event_type)
                errors.append(e)
        return errors

    def batch(self) -> EventBatch:
        """Hold events until the context exits, then emit them together."""
        return EventBatch(self)


class EventBatch:
    """Buffer of events for one unit of work.

    Events are dispatched through the emitter when the context exits
    without an exception and dropped otherwise.
    """

    def __init__(self, emitter: EventEmitter) -> None:
        self._emitter = emitter
        self._events: list[DomainEvent] = []

    def __enter__(self) -> EventBatch:
        self._events = []
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        events, self._events = self._events, []
        if exc_type is not None:
            if events:
                logger.debug("Discarding %d events from failed unit of work", len(events))
            return
        for event in events:
            self._emitter.emit(event)

    def emit(self, event: DomainEvent) -> list[Exception]:
        self._events.append(event)
        return []


class EventCollector:
    """Handler that records every event it receives."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    def __call__(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type[T]) -> list[T]:
        return [e for e in self.events if isinstance(e, event_type)]


def log_event(event: DomainEvent) -> None:
    """Default handler: write every event to the module logger."""
    logger.info("event %s %s", event.event_type, event.to_json())
