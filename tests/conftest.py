"""Pytest configuration and shared fixtures.

Organization:
    - Database Fixtures: file-backed SQLite engine, session factory, seeded catalog
    - Outbox Fixtures: recording publisher, patcher, unit of work factory
    - Application Fixtures: FastAPI app and HTTP client

Each test gets its own SQLite file so several sessions (business commit,
post-commit patch, dispatcher cycle) can see each other's writes.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Callable
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine

from order_service.core.database.base import Base
from order_service.core.events import PublishOutcome
from order_service.features.orders.models import Product
from order_service.features.orders.service import seed_products
from order_service.infra.database.session import create_session_factory
from order_service.infra.database.uow import UnitOfWork
from order_service.infra.events.outbox.models import EventOutbox
from order_service.infra.events.outbox.patcher import OutboxPatcher

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

    from order_service.core.events import DomainEvent

# Ensure tests run without external infrastructure
os.environ.setdefault("DB_ENABLED", "false")
os.environ.setdefault("RABBIT_ENABLED", "false")
os.environ.setdefault("OUTBOX_ENABLED", "false")


class RecordingPublisher:
    """In-memory EventPublisher that records every publish call.

    Outcomes can be scripted per routing key; anything else is delivered.
    """

    def __init__(self) -> None:
        self.published: list[tuple[str, DomainEvent]] = []
        self.outcomes: dict[str, PublishOutcome] = {}
        self.error: Exception | None = None

    async def publish(self, routing_key: str, event: DomainEvent) -> PublishOutcome:
        self.published.append((routing_key, event))
        if self.error is not None:
            raise self.error
        return self.outcomes.get(routing_key, PublishOutcome.DELIVERED)

    @property
    def event_ids(self) -> list:
        return [event.event_id for _, event in self.published]


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine]:
    """Create an async engine on a per-test SQLite file with all tables."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/outbox.db")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the application's."""
    return create_session_factory(db_engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Provide a session that is rolled back after the test."""
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
async def products(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, Product]:
    """Seed the default catalog and return products by name."""
    async with session_factory() as session:
        await seed_products(session)
        result = await session.execute(select(Product))
        return {product.name: product for product in result.scalars().all()}


@pytest.fixture
def configured_database(db_engine: AsyncEngine, monkeypatch: pytest.MonkeyPatch):
    """Install the test engine as the process database for the duration of a test."""
    from order_service.infra.database import session as session_module

    monkeypatch.setattr(session_module, "_engine", None)
    monkeypatch.setattr(session_module, "_session_factory", None)
    return session_module.configure_database(db_engine)


@pytest.fixture
def fetch_records(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], object]:
    """Return a coroutine function reading all outbox rows in a fresh session."""

    async def _fetch() -> list[EventOutbox]:
        async with session_factory() as session:
            result = await session.execute(
                select(EventOutbox).order_by(EventOutbox.created_at.asc())
            )
            return list(result.scalars().all())

    return _fetch


# ============================================================================
# Outbox Fixtures
# ============================================================================


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def patcher(session_factory: async_sessionmaker[AsyncSession]) -> OutboxPatcher:
    return OutboxPatcher(session_factory)


@pytest.fixture
def uow_factory(
    session_factory: async_sessionmaker[AsyncSession],
    patcher: OutboxPatcher,
) -> Callable[[], UnitOfWork]:
    """Build units of work on fresh sessions with the test patcher."""

    def _make() -> UnitOfWork:
        return UnitOfWork(session_factory(), patcher=patcher)

    return _make


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(configured_database):
    """Create FastAPI application bound to the test database.

    The lifespan is not run by ASGITransport, so no broker or dispatcher
    is started.
    """
    from order_service.app.main import create_app

    return create_app()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
