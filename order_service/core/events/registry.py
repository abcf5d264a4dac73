"""Event type registry for outbox deserialization.

The registry maps type tag strings to decoder functions, enabling:
- Safe deserialization of events read back from the outbox
- Fail-fast startup validation of the set of known event kinds

Usage:
    from order_service.core.events import event_registry, DomainEvent

    @event_registry.register
    class OrderCreatedEvent(DomainEvent):
        event_type: ClassVar[str] = "OrderCreatedEvent"
        order_id: int = 0

    # Decode a stored payload
    event = event_registry.decode("OrderCreatedEvent", record.payload)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
import logging
from typing import TYPE_CHECKING, Any, TypeVar, overload

from pydantic import ValidationError

from order_service.core.events.exceptions import (
    EventDecodeError,
    EventRegistryError,
    UnknownEventTypeError,
)

if TYPE_CHECKING:
    from order_service.core.events.base import DomainEvent

logger = logging.getLogger(__name__)

T = TypeVar("T", bound="DomainEvent")

EventDecoder = Callable[[str | bytes], "DomainEvent"]


class EventRegistry:
    """Registry of domain event decoders keyed by type tag.

    Event classes register their ``model_validate_json`` as decoder;
    ``register_decoder`` accepts any function for tags whose payloads need
    custom handling (legacy formats, renamed events).

    Registration is expected during import/startup; lookups are read-only.
    """

    def __init__(self) -> None:
        self._decoders: dict[str, EventDecoder] = {}
        self._classes: dict[str, type[DomainEvent]] = {}

    @overload
    def register(self, event_class: type[T]) -> type[T]: ...

    @overload
    def register(self, event_class: None = None) -> Callable[[type[T]], type[T]]: ...

    def register(self, event_class: type[T] | None = None) -> type[T] | Any:
        """Register an event class in the registry.

        Can be used as a decorator (with or without parentheses) or as a
        direct method call.

        Raises:
            EventRegistryError: If the type tag is already registered with
                a different class.
        """

        def _register(cls: type[T]) -> type[T]:
            event_type = cls.get_event_type()

            existing = self._classes.get(event_type)
            if existing is not None:
                if existing is not cls:
                    raise EventRegistryError(
                        f"Event type '{event_type}' already registered with {existing.__name__}",
                        details={"event_type": event_type, "class": cls.__name__},
                    )
                return cls

            self._classes[event_type] = cls
            self._decoders[event_type] = cls.model_validate_json

            logger.debug(
                "Registered event type",
                extra={"event_type": event_type, "class": cls.__name__},
            )
            return cls

        if event_class is None:
            return _register
        return _register(event_class)

    def register_decoder(self, event_type: str, decoder: EventDecoder) -> None:
        """Register a custom decoder function for a type tag.

        Overrides the default decoder of a registered class, if any.
        """
        self._decoders[event_type] = decoder
        logger.debug("Registered custom event decoder", extra={"event_type": event_type})

    def get(self, event_type: str) -> type[DomainEvent] | None:
        """Get the event class registered for a type tag."""
        return self._classes.get(event_type)

    def get_decoder(self, event_type: str) -> EventDecoder:
        """Get the decoder for a type tag.

        Raises:
            UnknownEventTypeError: If no decoder is registered for the tag.
        """
        decoder = self._decoders.get(event_type)
        if decoder is None:
            raise UnknownEventTypeError(event_type)
        return decoder

    def decode(self, event_type: str, payload: str | bytes) -> DomainEvent:
        """Decode a stored payload into a typed event.

        Raises:
            UnknownEventTypeError: If the tag is not registered.
            EventDecodeError: If the payload does not match the event schema.
        """
        decoder = self.get_decoder(event_type)
        try:
            return decoder(payload)
        except (ValidationError, ValueError, TypeError) as exc:
            raise EventDecodeError(
                f"Cannot decode payload for event type '{event_type}'",
                details={"event_type": event_type, "error": str(exc)},
            ) from exc

    def verify(self, event_classes: Iterable[type[DomainEvent]]) -> None:
        """Check that every given event kind is decodable.

        Called at startup with the event kinds the application raises, so a
        missing registration fails the process instead of leaving records
        pending forever.

        Raises:
            EventRegistryError: If any event kind is missing or registered
                under its tag with a different class.
        """
        missing: list[str] = []
        for cls in event_classes:
            event_type = cls.get_event_type()
            registered = self._classes.get(event_type)
            if registered is not cls and event_type not in self._decoders:
                missing.append(event_type)
            elif registered is not None and registered is not cls:
                raise EventRegistryError(
                    f"Event type '{event_type}' is registered with {registered.__name__}",
                    details={"event_type": event_type, "expected": cls.__name__},
                )
        if missing:
            raise EventRegistryError(
                "Event types raised by the application have no registered decoder",
                details={"event_types": sorted(missing)},
            )

    def list_types(self) -> list[str]:
        """List all registered type tags."""
        return sorted(self._decoders)

    def __contains__(self, event_type: str) -> bool:
        return event_type in self._decoders

    def __len__(self) -> int:
        return len(self._decoders)

    def clear(self) -> None:
        """Clear all registrations (mainly for testing)."""
        self._decoders.clear()
        self._classes.clear()


# Global registry instance
event_registry = EventRegistry()


__all__ = ["EventDecoder", "EventRegistry", "event_registry"]
