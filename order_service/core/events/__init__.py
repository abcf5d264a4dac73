"""Domain event system backed by the transactional outbox.

Aggregates raise events while changing state; the unit of work captures
them into the outbox inside the same transaction and the dispatcher
publishes them to the broker afterwards.

Usage:
    from order_service.core.events import AggregateRoot, DomainEvent, event_registry

    @event_registry.register
    class OrderCreatedEvent(DomainEvent):
        event_type: ClassVar[str] = "OrderCreatedEvent"
        identity_field: ClassVar[str | None] = "order_id"
        order_id: int = 0

    class Order(Base, AggregateRoot):
        ...
        def place(self) -> None:
            self._raise_event(OrderCreatedEvent())
"""

from order_service.core.events.aggregate import AggregateRoot
from order_service.core.events.base import DomainEvent
from order_service.core.events.exceptions import (
    EventDecodeError,
    EventRegistryError,
    OutboxError,
    UnknownEventTypeError,
)
from order_service.core.events.publisher import EventPublisher, PublishOutcome
from order_service.core.events.registry import EventDecoder, EventRegistry, event_registry

__all__ = [
    "AggregateRoot",
    "DomainEvent",
    "EventDecodeError",
    "EventDecoder",
    "EventPublisher",
    "EventRegistry",
    "EventRegistryError",
    "OutboxError",
    "PublishOutcome",
    "UnknownEventTypeError",
    "event_registry",
]
