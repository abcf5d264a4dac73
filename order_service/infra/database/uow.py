"""Unit of work that commits business changes and their outbox records together.

Aggregates are registered explicitly with ``add`` (new) or ``track``
(loaded). ``commit`` then runs three steps:

1. capture pending events into the outbox on the same session
2. commit the session (rolled back and re-raised on failure)
3. patch store-assigned identifiers into the captured payloads

Example:
    async with UnitOfWork(session, patcher=patcher) as uow:
        order = Order.create(...)
        uow.add(order)
    # committed, outbox rows written, orderId patched
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from order_service.core.settings import get_outbox_settings
from order_service.infra.events.outbox.capture import OutboxCapture
from order_service.infra.events.outbox.patcher import OutboxPatcher

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from order_service.core.events import AggregateRoot

logger = logging.getLogger(__name__)


class UnitOfWork:
    """SQLAlchemy async unit of work with transactional outbox capture.

    Args:
        session: Session carrying the business change.
        patcher: Post-commit identity patcher. Defaults to one bound to the
            process session factory.
        capture: Pre-commit capture stage. Defaults to one declaring the
            configured outbox content type.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        patcher: OutboxPatcher | None = None,
        capture: OutboxCapture | None = None,
    ) -> None:
        self.session = session
        self._patcher = patcher
        self._capture = capture or OutboxCapture(get_outbox_settings().content_type)
        self._tracked: dict[int, AggregateRoot] = {}

    @property
    def patcher(self) -> OutboxPatcher:
        if self._patcher is None:
            from order_service.infra.database.session import get_session_factory

            self._patcher = OutboxPatcher(get_session_factory())
        return self._patcher

    @property
    def tracked(self) -> list[AggregateRoot]:
        """Aggregates whose events will be captured, in registration order."""
        return list(self._tracked.values())

    def track(self, aggregate: AggregateRoot) -> AggregateRoot:
        """Register an aggregate for event capture without adding it to the session."""
        self._tracked.setdefault(id(aggregate), aggregate)
        return aggregate

    def add(self, aggregate: AggregateRoot) -> AggregateRoot:
        """Add a new aggregate to the session and register it for capture."""
        self.session.add(aggregate)
        return self.track(aggregate)

    async def commit(self) -> None:
        """Capture events, commit, then patch identities.

        Raises:
            Exception: Whatever the session raised while committing; nothing
                was persisted in that case.
        """
        try:
            patch_map = self._capture.capture(self.session, self._tracked.values())
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        finally:
            self._tracked.clear()

        await self.patcher.apply(patch_map)

    async def rollback(self) -> None:
        self._tracked.clear()
        await self.session.rollback()

    async def __aenter__(self) -> UnitOfWork:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()


__all__ = ["UnitOfWork"]
