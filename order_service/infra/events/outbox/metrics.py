"""Prometheus metrics for the transactional outbox.

Capture, patch and dispatch outcomes are counted per event type so a
growing backlog can be traced to the kind of event that is stuck.

All metrics use the shared REGISTRY from infra/metrics/prometheus.py.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

from order_service.infra.metrics.prometheus import DEFAULT_LATENCY_BUCKETS, REGISTRY

# ============================================================================
# Capture Metrics
# ============================================================================

outbox_events_captured_total = Counter(
    "outbox_events_captured_total",
    "Outbox records staged together with a business change. "
    "Counted at capture time; a failed commit discards the records.",
    ["event_type"],
    registry=REGISTRY,
)

outbox_patch_failures_total = Counter(
    "outbox_patch_failures_total",
    "Post-commit identity patches that failed. "
    "The affected records keep their placeholder identifier.",
    registry=REGISTRY,
)

# ============================================================================
# Dispatch Metrics
# ============================================================================

outbox_events_published_total = Counter(
    "outbox_events_published_total",
    "Outbox records delivered to the broker.",
    ["event_type"],
    registry=REGISTRY,
)

outbox_dispatch_failures_total = Counter(
    "outbox_dispatch_failures_total",
    "Outbox records left pending by a dispatch attempt. "
    "Reasons: decode_error, transient_failure, permanent_failure, publisher_error, "
    "superseded (payload patched while in flight).",
    ["event_type", "reason"],
    registry=REGISTRY,
)

outbox_batch_persist_failures_total = Counter(
    "outbox_batch_persist_failures_total",
    "Dispatch cycles whose final commit failed; the batch is published again.",
    registry=REGISTRY,
)

outbox_dispatch_cycle_duration_seconds = Histogram(
    "outbox_dispatch_cycle_duration_seconds",
    "Duration of one dispatch cycle in seconds.",
    buckets=DEFAULT_LATENCY_BUCKETS,
    registry=REGISTRY,
)

outbox_pending_events = Gauge(
    "outbox_pending_events",
    "Outbox records waiting to be published, sampled after each dispatch cycle.",
    registry=REGISTRY,
)


__all__ = [
    "outbox_batch_persist_failures_total",
    "outbox_dispatch_cycle_duration_seconds",
    "outbox_dispatch_failures_total",
    "outbox_events_captured_total",
    "outbox_events_published_total",
    "outbox_patch_failures_total",
    "outbox_pending_events",
]
