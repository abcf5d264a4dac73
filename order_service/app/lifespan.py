"""Application lifespan management.

Startup Order:
1. Core (logging)
2. Database (PostgreSQL, or the local SQLite fallback) and product seed
3. Messaging (RabbitMQ) - conditional on configuration
4. Outbox dispatcher - requires database and messaging

Shutdown Order: Reverse of startup (what starts first, shuts down last)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING

from order_service.core.settings import (
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_outbox_settings,
    get_rabbit_settings,
)
from order_service.infra.logging.config import setup_logging

# Infrastructure modules are imported inside the startup functions:
# - order_service.infra.database.session
# - order_service.infra.messaging.broker
# - order_service.infra.events.outbox.processor

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


async def _startup_core() -> None:
    """Configure logging and publish application info."""
    from order_service.infra.metrics.prometheus import app_info

    app = get_app_settings()
    setup_logging(log_settings=get_logging_settings(), force=True)
    app_info.labels(
        service=app.service_name, version=app.version, environment=app.environment
    ).set(1)
    logger.info(
        "Application starting",
        extra={"service": app.service_name, "environment": app.environment},
    )


async def _startup_database() -> None:
    """Initialize the database connection and seed the product catalog."""
    from order_service.features.orders.service import seed_products
    from order_service.infra.database.session import get_async_session, init_database

    await init_database()
    async with get_async_session() as session:
        await seed_products(session)
    logger.info("Database connection initialized", extra={"sqlite": get_db_settings().is_sqlite})


async def _startup_messaging() -> None:
    """Initialize RabbitMQ/FastStream broker."""
    from order_service.infra.messaging.broker import start_broker

    settings = get_rabbit_settings()

    if not settings.is_configured:
        return

    try:
        await start_broker(settings)
        logger.info("RabbitMQ/FastStream broker initialized")
    except Exception as e:
        if settings.startup_require_rabbit:
            logger.exception("RabbitMQ required but unavailable, failing startup")
            raise
        logger.warning(
            "RabbitMQ unavailable, continuing in degraded mode; events stay in the outbox",
            extra={"error": str(e), "startup_require_rabbit": False},
        )


async def _startup_outbox() -> None:
    """Start the event outbox dispatcher.

    Raises:
        EventRegistryError: If an order event kind has no registered decoder.
    """
    from order_service.features.orders.events import ORDER_EVENTS
    from order_service.infra.events.outbox.processor import start_outbox_dispatcher
    from order_service.infra.messaging.broker import RabbitEventPublisher, build_events_exchange

    rabbit = get_rabbit_settings()
    outbox = get_outbox_settings()

    if not rabbit.is_configured:
        logger.info("RabbitMQ not configured, skipping outbox dispatcher")
        return

    publisher = RabbitEventPublisher(
        None,
        build_events_exchange(rabbit),
        timeout=rabbit.publish_timeout,
        content_type=outbox.content_type,
    )
    await start_outbox_dispatcher(publisher, settings=outbox, required_events=ORDER_EVENTS)


async def _shutdown_outbox() -> None:
    """Stop the event outbox dispatcher."""
    from order_service.infra.events.outbox.processor import stop_outbox_dispatcher

    await stop_outbox_dispatcher()


async def _shutdown_messaging() -> None:
    """Stop RabbitMQ/FastStream broker."""
    from order_service.infra.messaging.broker import stop_broker

    await stop_broker()


async def _shutdown_database() -> None:
    """Close database connections."""
    from order_service.infra.database.session import close_database

    await close_database()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    _ = app
    app_settings = get_app_settings()

    # STARTUP PHASE - Initialize services in dependency order
    await _startup_core()
    await _startup_database()
    await _startup_messaging()
    await _startup_outbox()

    logger.info(
        "Application startup complete",
        extra={
            "service": app_settings.service_name,
            "environment": app_settings.environment,
            "messaging_enabled": get_rabbit_settings().is_configured,
            "outbox_enabled": get_outbox_settings().enabled,
            "host": app_settings.host,
            "port": app_settings.port,
        },
    )

    yield

    # SHUTDOWN PHASE - Close services in reverse order
    logger.info("Application shutting down", extra={"service": app_settings.service_name})

    await _shutdown_outbox()
    await _shutdown_messaging()
    await _shutdown_database()

    logger.info("Application shutdown complete")


__all__ = ["lifespan"]
