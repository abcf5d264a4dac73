"""Pre-commit capture of domain events into the outbox.

``OutboxCapture`` turns the pending events of every tracked aggregate into
``EventOutbox`` rows and adds them to the session that carries the business
change, so both commit (or roll back) together. It performs no I/O.

Events whose aggregate has no identifier yet are serialized with the
placeholder value and remembered in a ``PatchBackMap`` for the post-commit
patch step.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
import logging
from typing import TYPE_CHECKING

from order_service.infra.events.outbox.metrics import outbox_events_captured_total
from order_service.infra.events.outbox.models import EventOutbox

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from order_service.core.events import AggregateRoot, DomainEvent

logger = logging.getLogger(__name__)


class PatchBackMap:
    """Events captured with a placeholder identity, grouped by aggregate.

    Lives for a single unit of work: built by capture, consumed once by the
    patcher, then cleared.
    """

    def __init__(self) -> None:
        self._entries: dict[int, tuple[AggregateRoot, list[DomainEvent]]] = {}

    def add(self, aggregate: AggregateRoot, event: DomainEvent) -> None:
        entry = self._entries.setdefault(id(aggregate), (aggregate, []))
        entry[1].append(event)

    def items(self) -> Iterator[tuple[AggregateRoot, list[DomainEvent]]]:
        yield from self._entries.values()

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return sum(len(events) for _, events in self._entries.values())

    def __bool__(self) -> bool:
        return bool(self._entries)


class OutboxCapture:
    """Converts aggregate events into pending outbox records.

    Args:
        content_type: Encoding declared on every captured payload.
    """

    def __init__(self, content_type: str = "application/json") -> None:
        self.content_type = content_type

    def to_record(self, event: DomainEvent) -> EventOutbox:
        """Build the pending outbox row for one event.

        The record id is the event id and its creation time is the event's
        own timestamp.
        """
        return EventOutbox(
            id=event.event_id,
            type_tag=event.get_event_type(),
            routing_key=event.routing_key,
            payload=event.to_payload(),
            content_type=self.content_type,
            created_at=event.timestamp,
            processed=False,
            processed_at=None,
        )

    def capture(
        self,
        session: AsyncSession,
        aggregates: Iterable[AggregateRoot],
    ) -> PatchBackMap:
        """Stage outbox records for all pending events of ``aggregates``.

        Records are added to ``session`` in each aggregate's raise order and
        the aggregates' buffers are emptied afterwards.

        Returns:
            The events that need their identity patched after commit.
        """
        patch_map = PatchBackMap()
        seen: set[UUID] = set()
        captured = 0

        for aggregate in aggregates:
            events = aggregate.domain_events
            if not events:
                continue

            identity = aggregate.aggregate_identity()
            records: list[EventOutbox] = []
            for event in events:
                if event.event_id in seen:
                    continue
                seen.add(event.event_id)
                records.append(self.to_record(event))
                outbox_events_captured_total.labels(event_type=event.get_event_type()).inc()
                if identity is None and event.identity_field is not None:
                    patch_map.add(aggregate, event)

            session.add_all(records)
            aggregate.drain_events()
            captured += len(records)

        if captured:
            logger.debug(
                "Captured events into outbox",
                extra={"event_count": captured, "patch_back_count": len(patch_map)},
            )
        return patch_map


__all__ = ["OutboxCapture", "PatchBackMap"]
