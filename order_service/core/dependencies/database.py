"""Database dependencies for FastAPI route handlers.

Two-Tier Session Pattern:
-------------------------
1. `get_db_session()` (this module) - FastAPI Dependency
   - Use in route handlers with `Depends(get_db_session)`
   - Session lifecycle tied to HTTP request

2. `get_async_session()` (infra.database) - General Context Manager
   - Use in background tasks and scripts

Write paths that change aggregates take `Depends(get_unit_of_work)` so their
domain events are captured into the outbox on commit.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from order_service.infra.database import UnitOfWork, get_async_session


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """FastAPI dependency for database session.

    Yields:
        Database session that is automatically closed after request.
    """
    async with get_async_session() as session:
        yield session


async def get_unit_of_work(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> UnitOfWork:
    """FastAPI dependency for a unit of work on the request session."""
    return UnitOfWork(session)
