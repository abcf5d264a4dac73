"""Modular Pydantic Settings v2 configuration.

Each domain (app/db/broker/outbox/logging) has its own frozen settings model
with an environment prefix. Import settings via the cached loaders:

    from order_service.core.settings import get_outbox_settings

    settings = get_outbox_settings()
    print(settings.poll_interval)

Configuration precedence (highest to lowest):
    1. init kwargs (testing/overrides)
    2. Environment variables (production)
    3. .env file (development only)
"""

from __future__ import annotations

from .app import AppSettings
from .loader import (
    clear_settings_cache,
    get_app_settings,
    get_db_settings,
    get_logging_settings,
    get_outbox_settings,
    get_rabbit_settings,
)
from .logs import LoggingSettings
from .outbox import OutboxSettings
from .postgres import PostgresSettings
from .rabbit import RabbitSettings

__all__ = [
    "AppSettings",
    "LoggingSettings",
    "OutboxSettings",
    "PostgresSettings",
    "RabbitSettings",
    "clear_settings_cache",
    "get_app_settings",
    "get_db_settings",
    "get_logging_settings",
    "get_outbox_settings",
    "get_rabbit_settings",
]
