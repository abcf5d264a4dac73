"""Shared Prometheus registry and bucket presets."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Gauge

# Custom registry so only service metrics are exposed
REGISTRY = CollectorRegistry()

# Covers operations from 1ms to 10s
DEFAULT_LATENCY_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
)

app_info = Gauge(
    "app_info",
    "Application information",
    ["service", "version", "environment"],
    registry=REGISTRY,
)
