"""Tests for FastAPI application lifespan management."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock

from fastapi import FastAPI
import pytest
from sqlalchemy import func, select

from order_service.app.lifespan import lifespan
from order_service.core.settings import clear_settings_cache
from order_service.features.orders.models import Product
from order_service.features.orders.service import DEFAULT_PRODUCTS
from order_service.infra.database import session as session_module
from order_service.infra.events.outbox.processor import get_outbox_dispatcher
from order_service.infra.logging import shutdown as shutdown_logging
from order_service.infra.messaging import broker as broker_module


@pytest.fixture
def app_env(tmp_path, monkeypatch):
    """Point the application at a temporary SQLite file."""
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)

    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path}/app.db")
    monkeypatch.setenv("LOG_CONSOLE_ENABLED", "false")
    monkeypatch.setenv("OUTBOX_POLL_INTERVAL", "0.05")
    monkeypatch.setattr(session_module, "_engine", None)
    monkeypatch.setattr(session_module, "_session_factory", None)
    clear_settings_cache()

    yield

    clear_settings_cache()
    shutdown_logging()
    root.handlers[:] = handlers
    root.setLevel(level)


async def _product_count() -> int:
    async with session_module.get_async_session() as session:
        return await session.scalar(select(func.count()).select_from(Product))


@pytest.mark.unit
class TestLifespan:
    """Tests for startup and shutdown ordering."""

    async def test_sqlite_startup_creates_schema_and_seeds(self, app_env, monkeypatch):
        monkeypatch.setenv("RABBIT_ENABLED", "false")
        clear_settings_cache()

        async with lifespan(FastAPI()):
            assert await _product_count() == len(DEFAULT_PRODUCTS)
            assert get_outbox_dispatcher() is None

        assert session_module._engine is None

    async def test_broker_unavailable_runs_degraded_with_dispatcher(self, app_env, monkeypatch):
        """Without a broker the service still starts and the dispatcher keeps polling."""
        monkeypatch.setenv("RABBIT_ENABLED", "true")
        monkeypatch.setenv("OUTBOX_ENABLED", "true")
        monkeypatch.setattr(broker_module, "_broker", None)
        monkeypatch.setattr(
            broker_module, "start_broker", AsyncMock(side_effect=ConnectionError("refused"))
        )
        clear_settings_cache()

        async with lifespan(FastAPI()):
            dispatcher = get_outbox_dispatcher()
            assert dispatcher is not None
            assert dispatcher.is_running
            assert dispatcher.poll_interval == 0.05

        assert get_outbox_dispatcher() is None
        assert not dispatcher.is_running

    async def test_required_broker_fails_startup(self, app_env, monkeypatch):
        monkeypatch.setenv("RABBIT_ENABLED", "true")
        monkeypatch.setenv("RABBIT_STARTUP_REQUIRE_RABBIT", "true")
        monkeypatch.setattr(
            broker_module, "start_broker", AsyncMock(side_effect=ConnectionError("refused"))
        )
        clear_settings_cache()

        with pytest.raises(ConnectionError):
            async with lifespan(FastAPI()):
                pass

        await session_module.close_database()

    async def test_outbox_disabled_skips_dispatcher(self, app_env, monkeypatch):
        monkeypatch.setenv("RABBIT_ENABLED", "true")
        monkeypatch.setenv("OUTBOX_ENABLED", "false")
        monkeypatch.setattr(broker_module, "start_broker", AsyncMock(return_value=None))
        clear_settings_cache()

        async with lifespan(FastAPI()):
            assert get_outbox_dispatcher() is None
