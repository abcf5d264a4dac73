"""Domain event base class.

Domain events represent something meaningful that happened in the domain.
They are raised by aggregates, captured into the outbox in the same
transaction as the state change, and later published to the broker.

Key features:
- Automatic event id and UTC timestamp generation
- Lower-camel-case wire format (``order_id`` -> ``orderId``)
- Routing key generation from an optional format string
- Optional identity field patched once the aggregate id is known
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, ClassVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DomainEvent(BaseModel):
    """Base class for all domain events.

    Subclasses must define:
    - event_type: ClassVar[str] - Type tag used to resolve the decoder at dispatch time

    Subclasses may define:
    - routing_key_fmt: ClassVar[str] - Broker routing key or format string
      (e.g. "order.created" or "order.{status}"); defaults to event_type
    - identity_field: ClassVar[str] - Field holding the owning aggregate's
      identifier. When the aggregate has no identifier yet at capture time,
      the field carries a placeholder and is rewritten after commit.

    Example:
        class OrderCreatedEvent(DomainEvent):
            event_type: ClassVar[str] = "OrderCreatedEvent"
            routing_key_fmt: ClassVar[str | None] = "order.created"
            identity_field: ClassVar[str | None] = "order_id"

            order_id: int = 0
            customer_email: str

    Attributes:
        event_id: Unique identifier for this event instance
        timestamp: When the event occurred (UTC)
    """

    event_type: ClassVar[str] = "domain.event"
    routing_key_fmt: ClassVar[str | None] = None
    identity_field: ClassVar[str | None] = None

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier",
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Event timestamp in UTC",
    )

    model_config = ConfigDict(
        frozen=True,  # Events are immutable
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",  # Strict schema validation
    )

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """Validate subclass has required class variables."""
        super().__init_subclass__(**kwargs)
        if not hasattr(cls, "event_type") or cls.event_type == "domain.event":
            msg = f"{cls.__name__} must define 'event_type' class variable"
            raise TypeError(msg)

    @classmethod
    def get_event_type(cls) -> str:
        """Get the event type tag."""
        return cls.event_type

    @property
    def routing_key(self) -> str:
        """Generate routing key for message publishing.

        If routing_key_fmt is defined, uses it as a format string with
        event fields as values. Otherwise, returns the event_type.

        Example:
            class OrderStatusChanged(DomainEvent):
                event_type: ClassVar[str] = "OrderStatusChanged"
                routing_key_fmt: ClassVar[str | None] = "order.{status}"
                status: str

            assert OrderStatusChanged(status="shipped").routing_key == "order.shipped"
        """
        if self.routing_key_fmt is None:
            return self.event_type

        try:
            return self.routing_key_fmt.format(**self.model_dump())
        except KeyError:
            return self.event_type

    def to_payload(self) -> str:
        """Serialize the event for outbox storage (camelCase JSON)."""
        return self.model_dump_json(by_alias=True)

    def with_identity(self, identity: Any) -> DomainEvent:
        """Return a copy with the aggregate identity field set.

        Raises:
            ValueError: If the event does not declare an identity field.
        """
        if self.identity_field is None:
            msg = f"{type(self).__name__} does not declare an identity field"
            raise ValueError(msg)
        return self.model_copy(update={self.identity_field: identity})

    def headers(self) -> dict[str, Any]:
        """Generate message headers for broker publishing."""
        return {
            "x-event-type": self.event_type,
            "x-event-id": str(self.event_id),
            "x-timestamp": self.timestamp.isoformat(),
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"event_id={str(self.event_id)!r}, "
            f"event_type={self.event_type!r}, "
            f"timestamp={self.timestamp.isoformat()}"
            f")"
        )


__all__ = ["DomainEvent"]
