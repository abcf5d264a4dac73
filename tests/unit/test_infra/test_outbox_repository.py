"""Tests for outbox repository queries."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy import select, update

from order_service.infra.events.outbox.models import EventOutbox
from order_service.infra.events.outbox.repository import OutboxRepository


def _record(minutes_ago: int, *, processed: bool = False) -> EventOutbox:
    created = datetime.now(UTC) - timedelta(minutes=minutes_ago)
    return EventOutbox(
        id=uuid4(),
        type_tag="OrderCreatedEvent",
        routing_key="order.created",
        payload="{}",
        content_type="application/json",
        created_at=created,
        processed=processed,
        processed_at=datetime.now(UTC) if processed else None,
    )


@pytest.mark.unit
class TestOutboxRepository:
    """Tests for OutboxRepository."""

    async def test_fetch_pending_oldest_first(self, db_session):
        middle, newest, oldest = _record(5), _record(1), _record(10)
        delivered = _record(20, processed=True)
        db_session.add_all([middle, newest, oldest, delivered])
        await db_session.commit()

        records = await OutboxRepository().fetch_pending(db_session, batch_size=10)

        assert [r.id for r in records] == [oldest.id, middle.id, newest.id]

    async def test_fetch_pending_respects_batch_size(self, db_session):
        db_session.add_all([_record(i) for i in range(4)])
        await db_session.commit()

        records = await OutboxRepository().fetch_pending(db_session, batch_size=3)

        assert len(records) == 3

    async def test_count_pending(self, db_session):
        db_session.add_all([_record(2), _record(4), _record(3, processed=True)])
        await db_session.commit()

        assert await OutboxRepository().count_pending(db_session) == 2

    async def test_mark_delivered(self, db_session):
        record = _record(0)
        db_session.add(record)
        await db_session.commit()
        when = datetime.now(UTC)

        flagged = await OutboxRepository().mark_delivered(db_session, record, when)
        await db_session.commit()

        assert flagged is True
        stored = await db_session.scalar(
            select(EventOutbox.processed).where(EventOutbox.id == record.id)
        )
        assert stored is True

    async def test_mark_delivered_skips_changed_payload(self, db_session):
        """A row whose payload changed since it was read is left pending."""
        record = _record(0)
        db_session.add(record)
        await db_session.commit()
        await db_session.execute(
            update(EventOutbox)
            .where(EventOutbox.id == record.id)
            .values(payload='{"orderId": 7}')
            .execution_options(synchronize_session=False)
        )

        flagged = await OutboxRepository().mark_delivered(
            db_session, record, datetime.now(UTC)
        )

        assert flagged is False
        assert await OutboxRepository().count_pending(db_session) == 1
