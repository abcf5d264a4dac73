"""Messaging infrastructure (RabbitMQ via FastStream)."""

from .broker import (
    RabbitEventPublisher,
    build_events_exchange,
    get_broker,
    start_broker,
    stop_broker,
)

__all__ = [
    "RabbitEventPublisher",
    "build_events_exchange",
    "get_broker",
    "start_broker",
    "stop_broker",
]
