"""RabbitMQ broker setup using FastStream.

This module owns the process-wide ``RabbitBroker``:
- Lazy creation from ``RabbitSettings``
- Startup with a connection timeout and declaration of the events exchange
- Shutdown
- ``RabbitEventPublisher``, the broker-backed ``EventPublisher`` used by the
  outbox dispatcher

Usage:
    broker = await start_broker()
    publisher = RabbitEventPublisher(broker, build_events_exchange())
    outcome = await publisher.publish("order.created", event)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from faststream.rabbit import ExchangeType, RabbitBroker, RabbitExchange

from order_service.core.events.publisher import PublishOutcome
from order_service.core.settings import get_rabbit_settings

if TYPE_CHECKING:
    from order_service.core.events import DomainEvent
    from order_service.core.settings import RabbitSettings

logger = logging.getLogger(__name__)

_broker: RabbitBroker | None = None


def build_events_exchange(settings: RabbitSettings | None = None) -> RabbitExchange:
    """Describe the durable exchange that domain events are published to."""
    settings = settings or get_rabbit_settings()
    return RabbitExchange(
        name=settings.exchange_name,
        type=ExchangeType(settings.exchange_type),
        durable=True,
        auto_delete=False,
    )


def create_broker(settings: RabbitSettings | None = None) -> RabbitBroker:
    """Create a RabbitBroker from settings without connecting it."""
    settings = settings or get_rabbit_settings()
    return RabbitBroker(
        settings.get_url(),
        graceful_timeout=settings.graceful_timeout,
        logger=logger,
    )


def get_broker() -> RabbitBroker | None:
    """Get the process broker, or None when it was never started."""
    return _broker


def is_broker_connected(broker: RabbitBroker | None) -> bool:
    return broker is not None and bool(getattr(broker, "running", False))


async def start_broker(settings: RabbitSettings | None = None) -> RabbitBroker | None:
    """Connect the process broker and declare the events exchange.

    The connection is wrapped with a timeout to prevent indefinite blocking
    if RabbitMQ is unavailable.

    Returns:
        The connected broker, or None when RabbitMQ is not configured.

    Raises:
        ConnectionError: If the connection times out.
    """
    global _broker
    settings = settings or get_rabbit_settings()

    if not settings.is_configured:
        logger.warning("RabbitMQ not configured, skipping broker startup")
        return None

    if is_broker_connected(_broker):
        logger.debug("RabbitMQ broker already running")
        return _broker

    broker = _broker or create_broker(settings)
    logger.info(
        "Starting RabbitMQ broker",
        extra={
            "host": settings.host,
            "exchange": settings.exchange_name,
            "connection_timeout": settings.connection_timeout,
        },
    )

    try:
        await asyncio.wait_for(broker.start(), timeout=settings.connection_timeout)
        await broker.declare_exchange(build_events_exchange(settings))
    except TimeoutError:
        error_msg = f"RabbitMQ connection timeout after {settings.connection_timeout}s"
        logger.error(error_msg, extra={"connection_timeout": settings.connection_timeout})
        raise ConnectionError(error_msg) from None
    except Exception as e:
        logger.exception("Failed to start RabbitMQ broker", extra={"error": str(e)})
        raise

    _broker = broker
    logger.info("RabbitMQ broker started successfully")
    return broker


async def stop_broker() -> None:
    """Close the process broker connection."""
    global _broker
    if _broker is None:
        logger.debug("RabbitMQ broker not started, skipping shutdown")
        return

    logger.info("Stopping RabbitMQ broker")
    try:
        await _broker.close()
        logger.info("RabbitMQ broker stopped successfully")
    except Exception as e:
        logger.exception("Error stopping RabbitMQ broker", extra={"error": str(e)})
    finally:
        _broker = None


class RabbitEventPublisher:
    """Publishes domain events to a RabbitMQ exchange.

    The message body is the event's camelCase JSON; event metadata travels
    in headers and the AMQP message id is the event id, which lets consumers
    drop duplicates.

    Outcomes:
    - broker not connected, timeouts, connection and channel errors:
      ``TRANSIENT_FAILURE``
    - the event cannot be encoded: ``PERMANENT_FAILURE``

    Args:
        broker: FastStream RabbitMQ broker. When None, the process broker
            started by ``start_broker`` is looked up on every publish.
        exchange: Exchange to publish to.
        timeout: Seconds to wait for a single publish.
    """

    def __init__(
        self,
        broker: RabbitBroker | None,
        exchange: RabbitExchange,
        *,
        timeout: float = 5.0,
        content_type: str = "application/json",
    ) -> None:
        self._broker = broker
        self.exchange = exchange
        self.timeout = timeout
        self.content_type = content_type

    @property
    def broker(self) -> RabbitBroker | None:
        return self._broker if self._broker is not None else get_broker()

    async def publish(self, routing_key: str, event: DomainEvent) -> PublishOutcome:
        broker = self.broker
        if not is_broker_connected(broker):
            logger.debug(
                "RabbitMQ broker not connected, event left pending",
                extra={"event_id": str(event.event_id), "routing_key": routing_key},
            )
            return PublishOutcome.TRANSIENT_FAILURE

        try:
            body = event.to_payload().encode()
        except (TypeError, ValueError) as e:
            logger.error(
                "Cannot encode event for publishing",
                extra={"event_id": str(event.event_id), "error": str(e)},
            )
            return PublishOutcome.PERMANENT_FAILURE

        assert broker is not None
        try:
            await asyncio.wait_for(
                broker.publish(
                    body,
                    exchange=self.exchange,
                    routing_key=routing_key,
                    headers=event.headers(),
                    message_id=str(event.event_id),
                    content_type=self.content_type,
                    persist=True,
                ),
                timeout=self.timeout,
            )
        except TimeoutError:
            logger.warning(
                "Publish timed out",
                extra={"event_id": str(event.event_id), "timeout": self.timeout},
            )
            return PublishOutcome.TRANSIENT_FAILURE
        except Exception as e:
            logger.warning(
                "Publish failed",
                extra={
                    "event_id": str(event.event_id),
                    "routing_key": routing_key,
                    "error": str(e),
                },
            )
            return PublishOutcome.TRANSIENT_FAILURE

        return PublishOutcome.DELIVERED


__all__ = [
    "RabbitEventPublisher",
    "build_events_exchange",
    "create_broker",
    "get_broker",
    "is_broker_connected",
    "start_broker",
    "stop_broker",
]
