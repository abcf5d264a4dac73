"""Domain events raised by the order aggregate."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import ClassVar

from pydantic import Field

from order_service.core.events import DomainEvent, event_registry


@event_registry.register
class OrderCreatedEvent(DomainEvent):
    """An order was placed.

    ``order_id`` is 0 when the event is raised, since the store assigns the
    order id on insert; the outbox patches the real id in after commit.
    """

    event_type: ClassVar[str] = "OrderCreatedEvent"
    routing_key_fmt: ClassVar[str | None] = "order.created"
    identity_field: ClassVar[str | None] = "order_id"

    order_id: int = Field(default=0, ge=0, description="Order id (0 until assigned)")
    customer_name: str
    customer_email: str
    total_amount: Decimal
    order_date: datetime


# Event kinds the order feature raises; each must have a registered decoder
ORDER_EVENTS: tuple[type[DomainEvent], ...] = (OrderCreatedEvent,)


__all__ = ["ORDER_EVENTS", "OrderCreatedEvent"]
