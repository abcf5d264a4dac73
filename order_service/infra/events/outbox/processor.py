"""Background outbox dispatcher for reliable event publishing.

The dispatcher runs as a background task that, every ``poll_interval``:
1. Reads pending outbox records, oldest first, up to ``batch_size``
2. Decodes each record through the event registry
3. Publishes it with the record's routing key
4. Flags delivered records and commits the whole cycle at once

A failing record never blocks the rest of its batch, and a failing cycle
never stops the loop. If the final commit fails, every record of the batch
stays pending and is published again next cycle (at-least-once delivery).
A record whose payload was patched while it was in flight is not flagged,
so the patched payload is published on the next cycle.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
import logging
from typing import TYPE_CHECKING

from order_service.core.events import EventDecodeError, EventRegistry, event_registry
from order_service.core.events.publisher import PublishOutcome
from order_service.core.settings import get_outbox_settings
from order_service.infra.events.outbox.metrics import (
    outbox_batch_persist_failures_total,
    outbox_dispatch_cycle_duration_seconds,
    outbox_dispatch_failures_total,
    outbox_events_published_total,
    outbox_pending_events,
)
from order_service.infra.events.outbox.repository import OutboxRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from order_service.core.events import DomainEvent
    from order_service.core.events.publisher import EventPublisher
    from order_service.core.settings import OutboxSettings
    from order_service.infra.events.outbox.models import EventOutbox

logger = logging.getLogger(__name__)

# Global dispatcher instance
_dispatcher: OutboxDispatcher | None = None


@dataclass
class DispatchCycleResult:
    """Counters for one dispatch cycle."""

    fetched: int = 0
    delivered: int = 0
    failed: int = 0
    persisted: bool = True


class OutboxDispatcher:
    """Background dispatcher publishing outbox records to the broker.

    Attributes:
        batch_size: Number of records read per cycle
        poll_interval: Seconds between cycles (also the retry interval)
        shutdown_timeout: Seconds ``stop`` waits for the in-flight cycle
    """

    def __init__(
        self,
        publisher: EventPublisher,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        registry: EventRegistry | None = None,
        batch_size: int = 100,
        poll_interval: float = 5.0,
        shutdown_timeout: float = 30.0,
        required_events: Iterable[type[DomainEvent]] = (),
    ) -> None:
        """Initialize the outbox dispatcher.

        Args:
            publisher: Broker publishing capability
            session_factory: Factory for the per-cycle session
            registry: Type tag to decoder registry (defaults to the global one)
            batch_size: Records to fetch per cycle
            poll_interval: Seconds to wait between cycles
            shutdown_timeout: Seconds to wait for the current cycle on stop
            required_events: Event kinds that must be decodable, checked on start
        """
        self.publisher = publisher
        self.batch_size = batch_size
        self.poll_interval = poll_interval
        self.shutdown_timeout = shutdown_timeout

        self._session_factory = session_factory
        self._registry = registry if registry is not None else event_registry
        self._required_events = tuple(required_events)
        self._repository = OutboxRepository()

        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(
        cls,
        publisher: EventPublisher,
        session_factory: async_sessionmaker[AsyncSession],
        settings: OutboxSettings | None = None,
        **kwargs: object,
    ) -> OutboxDispatcher:
        settings = settings or get_outbox_settings()
        return cls(
            publisher,
            session_factory,
            batch_size=settings.batch_size,
            poll_interval=settings.poll_interval,
            shutdown_timeout=settings.shutdown_timeout,
            **kwargs,  # type: ignore[arg-type]
        )

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background loop.

        Raises:
            EventRegistryError: If a required event kind has no decoder.
        """
        if self.is_running:
            logger.warning("Outbox dispatcher already running")
            return

        self._registry.verify(self._required_events)

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_loop(), name="outbox-dispatcher")
        logger.info(
            "Outbox dispatcher started",
            extra={
                "batch_size": self.batch_size,
                "poll_interval": self.poll_interval,
                "event_types": self._registry.list_types(),
            },
        )

    async def stop(self) -> None:
        """Stop the background loop gracefully.

        No new cycle starts once this is called. The in-flight cycle may
        finish within ``shutdown_timeout``; after that the task is cancelled.
        """
        if self._task is None:
            return

        self._stop_event.set()

        try:
            await asyncio.wait_for(self._task, timeout=self.shutdown_timeout)
        except TimeoutError:
            logger.warning("Outbox dispatcher shutdown timed out, cancelling")
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        self._task = None

        logger.info("Outbox dispatcher stopped")

    async def _run_loop(self) -> None:
        """Main polling loop."""
        while not self._stop_event.is_set():
            try:
                await self.run_cycle()
            except asyncio.CancelledError:
                logger.info("Outbox dispatcher loop cancelled")
                raise
            except Exception:
                logger.exception("Error in outbox dispatch cycle")

            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)

    async def run_cycle(self) -> DispatchCycleResult:
        """Dispatch one batch of pending records.

        Returns:
            Counters for the cycle. ``persisted`` is False when the final
            commit failed and the batch will be retried.
        """
        with outbox_dispatch_cycle_duration_seconds.time():
            result = await self._dispatch_batch()

        if result.delivered or result.failed:
            logger.info(
                "Outbox batch dispatched",
                extra={
                    "delivered": result.delivered,
                    "failed": result.failed,
                    "total": result.fetched,
                    "persisted": result.persisted,
                },
            )
        return result

    async def _dispatch_batch(self) -> DispatchCycleResult:
        result = DispatchCycleResult()
        delivered_types: list[str] = []

        async with self._session_factory() as session:
            records = await self._repository.fetch_pending(session, batch_size=self.batch_size)
            result.fetched = len(records)
            if not records:
                outbox_pending_events.set(0)
                return result

            logger.debug("Dispatching outbox batch", extra={"batch_size": len(records)})

            for record in records:
                if await self._dispatch_record(session, record):
                    result.delivered += 1
                    delivered_types.append(record.type_tag)
                else:
                    result.failed += 1

            if result.delivered:
                try:
                    await session.commit()
                except Exception:
                    outbox_batch_persist_failures_total.inc()
                    logger.exception(
                        "Failed to persist outbox batch, records will be republished",
                        extra={"delivered": result.delivered, "batch_size": len(records)},
                    )
                    await session.rollback()
                    result.persisted = False
                    return result

            outbox_pending_events.set(await self._repository.count_pending(session))

        for event_type in delivered_types:
            outbox_events_published_total.labels(event_type=event_type).inc()
        return result

    async def _dispatch_record(self, session: AsyncSession, record: EventOutbox) -> bool:
        """Decode and publish one record, flagging it delivered on success."""
        log_extra = {
            "event_id": str(record.id),
            "type_tag": record.type_tag,
            "routing_key": record.routing_key,
        }

        try:
            event = self._registry.decode(record.type_tag, record.payload)
        except EventDecodeError as e:
            self._count_failure(record, "decode_error")
            logger.warning(
                "Cannot decode outbox record, leaving it pending",
                extra={**log_extra, "error": str(e)},
            )
            return False

        try:
            outcome = await self.publisher.publish(record.routing_key, event)
        except Exception as e:
            self._count_failure(record, "publisher_error")
            logger.warning(
                "Publisher raised, leaving record pending",
                extra={**log_extra, "error": str(e)},
                exc_info=True,
            )
            return False

        if outcome is PublishOutcome.DELIVERED:
            if await self._repository.mark_delivered(session, record, datetime.now(UTC)):
                logger.debug("Event published successfully", extra=log_extra)
                return True
            self._count_failure(record, "superseded")
            logger.info("Outbox record patched while in flight, republishing", extra=log_extra)
            return False

        self._count_failure(record, outcome.value)
        if outcome is PublishOutcome.PERMANENT_FAILURE:
            logger.error("Event rejected permanently, leaving it pending", extra=log_extra)
        else:
            logger.warning("Event not delivered, retrying next cycle", extra=log_extra)
        return False

    @staticmethod
    def _count_failure(record: EventOutbox, reason: str) -> None:
        outbox_dispatch_failures_total.labels(event_type=record.type_tag, reason=reason).inc()


async def start_outbox_dispatcher(
    publisher: EventPublisher,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    settings: OutboxSettings | None = None,
    required_events: Iterable[type[DomainEvent]] = (),
) -> OutboxDispatcher | None:
    """Start the global outbox dispatcher.

    Returns:
        The running dispatcher, or None when disabled in settings.
    """
    global _dispatcher

    settings = settings or get_outbox_settings()
    if not settings.enabled:
        logger.info("Outbox dispatcher disabled, skipping")
        return None

    if session_factory is None:
        from order_service.infra.database.session import get_session_factory

        session_factory = get_session_factory()

    dispatcher = OutboxDispatcher.from_settings(
        publisher,
        session_factory,
        settings,
        required_events=required_events,
    )
    await dispatcher.start()
    _dispatcher = dispatcher
    return dispatcher


async def stop_outbox_dispatcher() -> None:
    """Stop the global outbox dispatcher."""
    global _dispatcher

    if _dispatcher is not None:
        await _dispatcher.stop()
        _dispatcher = None


def get_outbox_dispatcher() -> OutboxDispatcher | None:
    """Get the global outbox dispatcher instance."""
    return _dispatcher


__all__ = [
    "DispatchCycleResult",
    "OutboxDispatcher",
    "get_outbox_dispatcher",
    "start_outbox_dispatcher",
    "stop_outbox_dispatcher",
]
