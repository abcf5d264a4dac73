"""Broker publishing capability used by the outbox dispatcher.

The dispatcher only needs to hand a decoded event and its routing key to
something that can deliver it. Connection handling, transport retries and
exchange topology belong to the implementation (see
``order_service.infra.messaging.broker.RabbitEventPublisher``).
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from order_service.core.events.base import DomainEvent


class PublishOutcome(str, Enum):
    """Result of a publish attempt.

    Attributes:
        DELIVERED: The broker accepted the message.
        TRANSIENT_FAILURE: Not delivered yet (broker down, timeout); retry later.
        PERMANENT_FAILURE: Will not succeed as is (message cannot be encoded).
    """

    DELIVERED = "delivered"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"

    @property
    def delivered(self) -> bool:
        return self is PublishOutcome.DELIVERED


@runtime_checkable
class EventPublisher(Protocol):
    """Anything that can deliver a domain event under a routing key."""

    async def publish(self, routing_key: str, event: DomainEvent) -> PublishOutcome: ...


__all__ = ["EventPublisher", "PublishOutcome"]
