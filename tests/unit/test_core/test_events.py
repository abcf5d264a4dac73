"""Unit tests for domain events, the event registry and the aggregate root."""

from __future__ import annotations

from datetime import UTC, datetime
import json
from typing import ClassVar
from uuid import UUID, uuid4

from pydantic import ValidationError
import pytest

from order_service.core.events import (
    AggregateRoot,
    DomainEvent,
    EventDecodeError,
    EventRegistry,
    EventRegistryError,
    PublishOutcome,
    UnknownEventTypeError,
    event_registry,
)
from order_service.features.orders.events import ORDER_EVENTS, OrderCreatedEvent


class InvoiceIssuedEvent(DomainEvent):
    """Test event with an identity field and a formatted routing key."""

    event_type: ClassVar[str] = "InvoiceIssued"
    routing_key_fmt: ClassVar[str | None] = "invoice.{currency}"
    identity_field: ClassVar[str | None] = "invoice_id"

    invoice_id: int = 0
    currency: str
    amount_cents: int


class PingEvent(DomainEvent):
    """Test event without routing format or identity field."""

    event_type: ClassVar[str] = "Ping"

    source: str = "test"


class Counter(AggregateRoot):
    """Minimal non-persistent aggregate."""

    def __init__(self, counter_id: int | None = None) -> None:
        self.id = counter_id
        self.value = 0

    def increment(self) -> None:
        self.value += 1
        self._raise_event(PingEvent(source=f"counter-{self.value}"))


@pytest.mark.unit
class TestDomainEvent:
    """Tests for DomainEvent base class."""

    def test_event_has_auto_generated_fields(self):
        """Test that event_id and timestamp are auto-generated."""
        event = PingEvent()

        assert isinstance(event.event_id, UUID)
        assert event.timestamp.tzinfo is not None
        assert event.timestamp <= datetime.now(UTC)

    def test_events_get_distinct_ids(self):
        """Two occurrences never share an event id."""
        assert PingEvent().event_id != PingEvent().event_id

    def test_event_is_immutable(self):
        """Test that events are frozen."""
        event = PingEvent()

        with pytest.raises(ValidationError):
            event.source = "changed"

    def test_event_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            PingEvent(source="x", unexpected=True)

    def test_subclass_must_define_event_type(self):
        """Test that subclasses without event_type raise TypeError."""
        with pytest.raises(TypeError, match="must define 'event_type'"):

            class NamelessEvent(DomainEvent):
                value: int = 0

    def test_payload_uses_camel_case(self):
        """Stored payloads use lower-camel-case property names."""
        event = InvoiceIssuedEvent(currency="eur", amount_cents=1250)

        data = json.loads(event.to_payload())

        assert data["invoiceId"] == 0
        assert data["amountCents"] == 1250
        assert data["eventId"] == str(event.event_id)
        assert "amount_cents" not in data

    def test_payload_decodes_back_by_alias(self):
        event = InvoiceIssuedEvent(currency="eur", amount_cents=1250)

        restored = InvoiceIssuedEvent.model_validate_json(event.to_payload())

        assert restored == event

    def test_routing_key_from_format(self):
        """Test routing key is formatted from event fields."""
        event = InvoiceIssuedEvent(currency="usd", amount_cents=1)
        assert event.routing_key == "invoice.usd"

    def test_routing_key_defaults_to_event_type(self):
        assert PingEvent().routing_key == "Ping"

    def test_with_identity_sets_identity_field_only(self):
        """Patching the identity keeps every other field."""
        event = InvoiceIssuedEvent(currency="eur", amount_cents=1250)

        patched = event.with_identity(42)

        assert patched.invoice_id == 42
        assert patched.event_id == event.event_id
        assert patched.timestamp == event.timestamp
        assert patched.amount_cents == event.amount_cents
        assert event.invoice_id == 0

    def test_with_identity_requires_identity_field(self):
        with pytest.raises(ValueError, match="identity field"):
            PingEvent().with_identity(1)

    def test_headers_carry_event_metadata(self):
        event = PingEvent()

        headers = event.headers()

        assert headers["x-event-type"] == "Ping"
        assert headers["x-event-id"] == str(event.event_id)
        assert headers["x-timestamp"] == event.timestamp.isoformat()


@pytest.mark.unit
class TestEventRegistry:
    """Tests for EventRegistry."""

    def test_register_with_and_without_parentheses(self):
        """Test the decorator forms of register."""
        registry = EventRegistry()

        assert registry.register(PingEvent) is PingEvent
        assert registry.register()(InvoiceIssuedEvent) is InvoiceIssuedEvent

        assert registry.get("Ping") is PingEvent
        assert registry.get("InvoiceIssued") is InvoiceIssuedEvent
        assert len(registry) == 2
        assert "Ping" in registry

    def test_register_same_class_twice_is_noop(self):
        registry = EventRegistry()
        registry.register(PingEvent)
        registry.register(PingEvent)

        assert registry.list_types() == ["Ping"]

    def test_register_conflicting_class_raises(self):
        """A tag can only map to one event class."""
        registry = EventRegistry()
        registry.register(PingEvent)

        class OtherPing(DomainEvent):
            event_type: ClassVar[str] = "Ping"

        with pytest.raises(EventRegistryError, match="already registered"):
            registry.register(OtherPing)

    def test_decode_returns_typed_event(self):
        registry = EventRegistry()
        registry.register(InvoiceIssuedEvent)
        event = InvoiceIssuedEvent(invoice_id=7, currency="eur", amount_cents=99)

        decoded = registry.decode("InvoiceIssued", event.to_payload())

        assert isinstance(decoded, InvoiceIssuedEvent)
        assert decoded == event

    def test_decode_unknown_tag_raises(self):
        """Test decode raises for unregistered tags."""
        registry = EventRegistry()

        with pytest.raises(UnknownEventTypeError) as exc_info:
            registry.decode("Nope", "{}")

        assert exc_info.value.event_type == "Nope"
        assert isinstance(exc_info.value, EventDecodeError)

    @pytest.mark.parametrize(
        "payload",
        ["{not json", '{"currency": "eur"}', '{"invoiceId": -1, "unknownField": 1}'],
    )
    def test_decode_invalid_payload_raises(self, payload: str):
        registry = EventRegistry()
        registry.register(InvoiceIssuedEvent)

        with pytest.raises(EventDecodeError) as exc_info:
            registry.decode("InvoiceIssued", payload)

        assert exc_info.value.details["event_type"] == "InvoiceIssued"

    def test_register_decoder_handles_custom_payloads(self):
        """Custom decoders can map legacy payloads onto current events."""
        registry = EventRegistry()

        def decode_legacy(payload: str | bytes) -> DomainEvent:
            data = json.loads(payload)
            return PingEvent(source=data["origin"])

        registry.register_decoder("LegacyPing", decode_legacy)

        decoded = registry.decode("LegacyPing", '{"origin": "legacy"}')

        assert isinstance(decoded, PingEvent)
        assert decoded.source == "legacy"
        assert registry.get("LegacyPing") is None

    def test_custom_decoder_errors_are_wrapped(self):
        registry = EventRegistry()

        def broken(payload: str | bytes) -> DomainEvent:
            raise ValueError("unsupported layout")

        registry.register_decoder("Broken", broken)

        with pytest.raises(EventDecodeError, match="Broken"):
            registry.decode("Broken", "{}")

    def test_verify_passes_for_registered_events(self):
        registry = EventRegistry()
        registry.register(PingEvent)

        registry.verify([PingEvent])

    def test_verify_accepts_custom_decoder(self):
        registry = EventRegistry()
        registry.register_decoder("Ping", PingEvent.model_validate_json)

        registry.verify([PingEvent])

    def test_verify_reports_missing_events(self):
        """Startup verification names every undecodable kind."""
        registry = EventRegistry()
        registry.register(PingEvent)

        with pytest.raises(EventRegistryError) as exc_info:
            registry.verify([PingEvent, InvoiceIssuedEvent])

        assert exc_info.value.details["event_types"] == ["InvoiceIssued"]

    def test_clear_removes_registrations(self):
        registry = EventRegistry()
        registry.register(PingEvent)

        registry.clear()

        assert len(registry) == 0
        assert registry.get("Ping") is None

    def test_global_registry_knows_order_events(self):
        """Order events are registered on import."""
        assert event_registry.get("OrderCreatedEvent") is OrderCreatedEvent
        event_registry.verify(ORDER_EVENTS)


@pytest.mark.unit
class TestAggregateRoot:
    """Tests for the aggregate event buffer."""

    def test_events_kept_in_raise_order(self):
        counter = Counter()
        counter.increment()
        counter.increment()

        assert [e.source for e in counter.domain_events] == ["counter-1", "counter-2"]

    def test_domain_events_is_read_only_view(self):
        counter = Counter()
        counter.increment()

        assert isinstance(counter.domain_events, tuple)
        assert len(counter.domain_events) == 1

    def test_drain_returns_and_clears(self):
        counter = Counter()
        counter.increment()

        drained = counter.drain_events()

        assert len(drained) == 1
        assert counter.domain_events == ()
        assert counter.drain_events() == []

    def test_buffer_created_without_init(self):
        """Instances built without __init__ (as the ORM does) still buffer events."""
        counter = Counter.__new__(Counter)

        assert counter.domain_events == ()
        assert counter.aggregate_identity() is None

    def test_aggregate_identity_reads_id(self):
        assert Counter(counter_id=5).aggregate_identity() == 5
        assert Counter().aggregate_identity() is None


@pytest.mark.unit
class TestPublishOutcome:
    """Tests for PublishOutcome."""

    def test_only_delivered_counts_as_delivered(self):
        assert PublishOutcome.DELIVERED.delivered is True
        assert PublishOutcome.TRANSIENT_FAILURE.delivered is False
        assert PublishOutcome.PERMANENT_FAILURE.delivered is False

    def test_outcome_values_are_strings(self):
        assert PublishOutcome("delivered") is PublishOutcome.DELIVERED


@pytest.mark.unit
class TestOrderCreatedEvent:
    """Tests for the order event contract."""

    def test_order_id_placeholder_and_routing(self):
        event = OrderCreatedEvent(
            customer_name="Ada",
            customer_email="ada@example.com",
            total_amount="12.50",
            order_date=datetime.now(UTC),
        )

        assert event.order_id == 0
        assert event.routing_key == "order.created"
        assert event.identity_field == "order_id"

    def test_payload_property_names(self):
        event = OrderCreatedEvent(
            event_id=uuid4(),
            order_id=3,
            customer_name="Ada",
            customer_email="ada@example.com",
            total_amount="12.50",
            order_date=datetime.now(UTC),
        )

        data = json.loads(event.to_payload())

        assert set(data) == {
            "eventId",
            "timestamp",
            "orderId",
            "customerName",
            "customerEmail",
            "totalAmount",
            "orderDate",
        }
        assert data["orderId"] == 3
