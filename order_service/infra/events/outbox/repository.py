"""Queries over the EventOutbox table.

Provides methods for:
- Fetching pending events for dispatch
- Flagging delivered records
- Counting the backlog for monitoring
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select, update

from order_service.infra.events.outbox.models import EventOutbox

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession


class OutboxRepository:
    """Repository for the outbox queries used by the dispatcher."""

    async def fetch_pending(
        self,
        session: AsyncSession,
        *,
        batch_size: int = 100,
    ) -> Sequence[EventOutbox]:
        """Fetch pending events in creation order (oldest first).

        Rows are not locked. Several dispatchers polling the same table may
        read the same rows and publish them twice; consumers must be
        idempotent.

        Args:
            session: Database session
            batch_size: Maximum number of events to fetch

        Returns:
            Sequence of pending EventOutbox records
        """
        stmt = (
            select(EventOutbox)
            .where(EventOutbox.processed.is_(False))
            .order_by(EventOutbox.created_at.asc(), EventOutbox.id.asc())
            .limit(batch_size)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def mark_delivered(
        self,
        session: AsyncSession,
        record: EventOutbox,
        when: datetime,
    ) -> bool:
        """Flag ``record`` as delivered if it still holds the published payload.

        The write is conditional on the row being pending with the payload
        that was read. A concurrent identity patch changes the payload, in
        which case nothing is written and the patched payload is published
        on a later cycle.

        Returns:
            True if the row was flagged.
        """
        stmt = (
            update(EventOutbox)
            .where(
                EventOutbox.id == record.id,
                EventOutbox.payload == record.payload,
                EventOutbox.processed.is_(False),
            )
            .values(processed=True, processed_at=when)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return bool(result.rowcount)

    async def count_pending(self, session: AsyncSession) -> int:
        """Count events waiting to be published.

        Useful for monitoring and alerting.
        """
        stmt = (
            select(func.count())
            .select_from(EventOutbox)
            .where(EventOutbox.processed.is_(False))
        )
        result = await session.execute(stmt)
        return result.scalar_one()


__all__ = ["OutboxRepository"]
