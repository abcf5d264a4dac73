"""Transactional outbox pattern implementation.

The outbox pattern ensures reliable event publishing by:
1. Writing events to a database table in the same transaction as domain changes
2. Patching store-assigned identifiers into those rows right after commit
3. Processing the outbox table asynchronously to publish to the message broker
4. Marking events as processed after successful publication

This guarantees at-least-once delivery semantics.
"""

from order_service.infra.events.outbox.capture import OutboxCapture, PatchBackMap
from order_service.infra.events.outbox.models import EventOutbox
from order_service.infra.events.outbox.patcher import OutboxPatcher
from order_service.infra.events.outbox.processor import (
    DispatchCycleResult,
    OutboxDispatcher,
    get_outbox_dispatcher,
    start_outbox_dispatcher,
    stop_outbox_dispatcher,
)
from order_service.infra.events.outbox.repository import OutboxRepository

__all__ = [
    "DispatchCycleResult",
    "EventOutbox",
    "OutboxCapture",
    "OutboxDispatcher",
    "OutboxPatcher",
    "OutboxRepository",
    "PatchBackMap",
    "get_outbox_dispatcher",
    "start_outbox_dispatcher",
    "stop_outbox_dispatcher",
]
