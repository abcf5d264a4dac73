"""Errors raised by the event registry and the outbox pipeline."""

from __future__ import annotations

from typing import Any


class OutboxError(Exception):
    """Base exception for outbox and event registry failures.

    Attributes:
        message: Error description
        details: Additional context about the error
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class EventRegistryError(OutboxError):
    """The event registry is misconfigured (conflicting or missing registrations)."""


class EventDecodeError(OutboxError):
    """A stored payload cannot be turned into a typed event for its tag."""


class UnknownEventTypeError(EventDecodeError):
    """No decoder is registered for a type tag."""

    def __init__(self, event_type: str) -> None:
        self.event_type = event_type
        super().__init__(
            f"Unknown event type: '{event_type}'",
            details={"event_type": event_type},
        )


__all__ = [
    "EventDecodeError",
    "EventRegistryError",
    "OutboxError",
    "UnknownEventTypeError",
]
