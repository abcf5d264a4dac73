"""Aggregate root mixin that buffers domain events.

ORM-mapped entities inherit from ``AggregateRoot`` alongside ``Base``.
State-changing methods call ``_raise_event``; the unit of work drains the
buffer into the outbox just before commit.

The buffer lives in the instance ``__dict__`` and is created lazily, since
SQLAlchemy builds loaded instances without calling ``__init__``. It is never
mapped to a column.
"""

from __future__ import annotations

from typing import Any

from order_service.core.events.base import DomainEvent

_EVENTS_ATTR = "_domain_events"


class AggregateRoot:
    """Mixin giving an entity an ordered buffer of pending domain events."""

    def _event_buffer(self) -> list[DomainEvent]:
        return self.__dict__.setdefault(_EVENTS_ATTR, [])

    def _raise_event(self, event: DomainEvent) -> None:
        """Record a domain event in raise order."""
        self._event_buffer().append(event)

    @property
    def domain_events(self) -> tuple[DomainEvent, ...]:
        """Pending events, oldest first (read-only view)."""
        return tuple(self._event_buffer())

    def drain_events(self) -> list[DomainEvent]:
        """Return and clear pending domain events."""
        buffer = self._event_buffer()
        events = list(buffer)
        buffer.clear()
        return events

    def aggregate_identity(self) -> Any:
        """Store-assigned identifier, or None while the aggregate is unsaved."""
        return getattr(self, "id", None)


__all__ = ["AggregateRoot"]
