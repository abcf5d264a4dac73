"""Database infrastructure package.

- **Session Management**: Async SQLAlchemy engine and session factory
- **Unit of Work**: Commit boundary that captures domain events into the outbox

Example:
    from order_service.infra.database import UnitOfWork, get_async_session

    async with get_async_session() as session:
        async with UnitOfWork(session) as uow:
            uow.add(order)
"""

from .session import (
    close_database,
    configure_database,
    create_engine_from_settings,
    create_session_factory,
    create_tables,
    get_async_session,
    get_engine,
    get_session_factory,
    init_database,
)
from .uow import UnitOfWork

__all__ = [
    "UnitOfWork",
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
