"""Post-commit identity patch for captured events.

After the business transaction commits, store-assigned identifiers are
known. ``OutboxPatcher`` rewrites the payload of the affected outbox rows in
a separate transaction with plain ``UPDATE`` statements on the payload
column. These statements never pass through a unit of work, so the patch
cannot trigger another capture.

A failed patch is logged and dropped: the business change is already
committed and the rows keep their placeholder payload.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import update

from order_service.infra.events.outbox.metrics import outbox_patch_failures_total
from order_service.infra.events.outbox.models import EventOutbox

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from order_service.infra.events.outbox.capture import PatchBackMap

logger = logging.getLogger(__name__)


class OutboxPatcher:
    """Writes now-known aggregate identifiers into pending outbox payloads.

    Args:
        session_factory: Factory for the short-lived patch session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def apply(self, patch_map: PatchBackMap) -> int:
        """Patch every event in ``patch_map`` and consume the map.

        Only rows still pending are touched; a row the dispatcher already
        delivered keeps the payload that was published.

        Returns:
            Number of rows updated (0 when the patch failed).
        """
        if not patch_map:
            return 0

        updated = 0
        try:
            async with self._session_factory() as session:
                for aggregate, events in patch_map.items():
                    identity = aggregate.aggregate_identity()
                    if identity is None:
                        logger.warning(
                            "Aggregate has no identifier after commit, skipping patch",
                            extra={
                                "aggregate": type(aggregate).__name__,
                                "event_count": len(events),
                            },
                        )
                        continue

                    for event in events:
                        patched = event.with_identity(identity)
                        stmt = (
                            update(EventOutbox)
                            .where(
                                EventOutbox.id == event.event_id,
                                EventOutbox.processed.is_(False),
                            )
                            .values(payload=patched.to_payload())
                            .execution_options(synchronize_session=False)
                        )
                        result = await session.execute(stmt)
                        updated += result.rowcount or 0

                await session.commit()
        except Exception:
            outbox_patch_failures_total.inc()
            logger.warning(
                "Failed to patch outbox payloads, placeholder identifiers kept",
                extra={"event_count": len(patch_map)},
                exc_info=True,
            )
            return 0
        finally:
            patch_map.clear()

        logger.debug("Patched outbox payloads", extra={"updated": updated})
        return updated


__all__ = ["OutboxPatcher"]
