"""In-memory event publisher.

Delivers domain events to handlers registered in the same process.
"""

from collections.abc import Awaitable, Callable

import structlog

from catalog_items.domain.base import DomainEvent

logger = structlog.get_logger()

EventHandler = Callable[[DomainEvent], Awaitable[None]]


class InMemoryEventPublisher:
    """Simple in-process event publisher.

    Handlers are awaited one after another in subscription order. A failing
    handler aborts publishing and its exception reaches the caller.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[DomainEvent], list[EventHandler]] = {}

    def subscribe(self, event_class: type[DomainEvent], handler: EventHandler) -> None:
        """Register a handler for an event class.

        Args:
            event_class: Exact event class to handle.
            handler: Async callable receiving the event.
        """
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_class: type[DomainEvent], handler: EventHandler) -> None:
        """Remove a handler if registered."""
        handlers = self._handlers.get(event_class, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: DomainEvent) -> None:
        """Deliver an event to its handlers.

        Args:
            event: Event to publish.
        """
        handlers = list(self._handlers.get(type(event), []))
        logger.debug(
            "Publishing event",
            event_type=event.event_type,
            event_id=str(event.event_id),
            handler_count=len(handlers),
        )
        for handler in handlers:
            await handler(event)


# Global publisher instance
_event_publisher: InMemoryEventPublisher | None = None


def get_event_publisher() -> InMemoryEventPublisher:
    """Get event publisher singleton."""
    global _event_publisher
    if _event_publisher is None:
        _event_publisher = InMemoryEventPublisher()
    return _event_publisher


def reset_event_publisher() -> None:
    """Reset event publisher (for testing)."""
    global _event_publisher
    _event_publisher = InMemoryEventPublisher()
