"""EventOutbox SQLAlchemy model for the transactional outbox pattern.

The outbox table stores events that need to be published to the message broker.
Events are written to this table in the same transaction as domain changes,
ensuring that either both succeed or both fail.

A background dispatcher reads pending rows in creation order, publishes them
to RabbitMQ, and flags them as processed upon successful delivery.
"""

from __future__ import annotations

from datetime import datetime
import uuid

from sqlalchemy import Boolean, DateTime, Index, String, Text, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from order_service.core.database.base import Base


class EventOutbox(Base):
    """Outbox table for reliable event publishing.

    Attributes:
        id: Event identifier (equal to the domain event id, so a record can
            never be captured twice for the same occurrence)
        type_tag: Event type tag used to resolve the decoder at dispatch time
        routing_key: Broker routing key (e.g. "order.created")
        payload: Serialized event data (camelCase JSON)
        content_type: Encoding declaration of the payload
        created_at: Logical time of the domain event (not capture time)
        processed: Whether the event has been delivered to the broker
        processed_at: When the event was delivered

    The composite index on (processed, created_at) serves the dispatcher's
    "oldest pending first" query.
    """

    __tablename__ = "event_outbox"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        comment="Domain event identifier",
    )
    type_tag: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="Event type tag",
    )
    routing_key: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Broker routing key",
    )
    payload: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Serialized event data",
    )
    content_type: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="application/json",
        comment="Payload encoding",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the domain event occurred",
    )
    processed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
        comment="Whether the event has been published",
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the event was successfully published",
    )

    __table_args__ = (
        Index("ix_event_outbox_processed_created_at", "processed", "created_at"),
    )

    @property
    def is_pending(self) -> bool:
        """Check if the event still awaits delivery."""
        return not self.processed

    def __repr__(self) -> str:
        """Human-readable representation."""
        status = "delivered" if self.processed else "pending"
        return (
            f"EventOutbox("
            f"id={self.id}, "
            f"type_tag={self.type_tag!r}, "
            f"routing_key={self.routing_key!r}, "
            f"status={status}"
            f")"
        )


__all__ = ["EventOutbox"]
