"""Database session management for the async SQLAlchemy engine.

The engine and session factory are created lazily from ``PostgresSettings``
on first use, so importing this module never opens a connection. Tests and
tools can swap them with ``configure_database``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from order_service.core.database.base import Base
from order_service.core.settings import get_app_settings, get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from order_service.core.settings import PostgresSettings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_engine_from_settings(settings: PostgresSettings | None = None) -> AsyncEngine:
    """Create an async engine from database settings.

    Pool options are only applied to server databases; SQLite uses
    SQLAlchemy's default pool for the aiosqlite driver.
    """
    settings = settings or get_db_settings()
    url = settings.get_sqlalchemy_url()
    kwargs: dict[str, Any] = {
        "echo": settings.echo or get_app_settings().debug,
    }
    if not settings.is_sqlite:
        kwargs.update(
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_recycle=settings.pool_recycle,
            pool_pre_ping=settings.pool_pre_ping,
        )
    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to an engine.

    ``expire_on_commit`` is off so aggregates stay readable after commit,
    which the post-commit identifier patch relies on.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def configure_database(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Install an engine (and a matching session factory) as the process default."""
    global _engine, _session_factory
    _engine = engine
    _session_factory = create_session_factory(engine)
    return _session_factory


def get_engine() -> AsyncEngine:
    """Get the process engine, creating it from settings on first use."""
    if _engine is None:
        configure_database(create_engine_from_settings())
    assert _engine is not None
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the process session factory, creating the engine on first use."""
    if _session_factory is None:
        get_engine()
    assert _session_factory is not None
    return _session_factory


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Yields:
        Database session that is automatically closed.

    Example:
        async with get_async_session() as session:
            result = await session.execute(select(Order))
            orders = result.scalars().all()
    """
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create all mapped tables that do not exist yet.

    Used for the local SQLite fallback and tests, where Alembic migrations
    are not run. The operation is idempotent.
    """
    engine = engine or get_engine()

    # Import models so they are registered on the metadata
    import order_service.features.orders.models  # noqa: F401
    import order_service.infra.events.outbox.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database() -> None:
    """Check database connectivity during startup.

    With the SQLite fallback the schema is created in place, so the service
    can run locally without migrations.

    Raises:
        Exception: The driver error if the database cannot be reached.
    """
    settings = get_db_settings()
    engine = get_engine()
    logger.info("Initializing database connection", extra={"sqlite": settings.is_sqlite})

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        if settings.is_sqlite:
            await create_tables(engine)
        logger.info("Database connection established successfully")
    except Exception as e:
        logger.error("Failed to connect to database", extra={"error": str(e)})
        raise


async def close_database() -> None:
    """Close database connection and cleanup resources.

    This should be called during application shutdown.
    """
    global _engine, _session_factory
    if _engine is None:
        return

    logger.info("Closing database connection")
    try:
        await _engine.dispose()
        logger.info("Database connection closed successfully")
    except Exception as e:
        logger.exception("Error closing database connection", extra={"error": str(e)})
    finally:
        _engine = None
        _session_factory = None


__all__ = [
    "close_database",
    "configure_database",
    "create_engine_from_settings",
    "create_session_factory",
    "create_tables",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
]
