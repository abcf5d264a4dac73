"""Prometheus metrics endpoint for observability.

Endpoints:
    GET /metrics - Prometheus scrape endpoint

Metrics Exposed:
    Outbox Metrics:
        - outbox_events_captured_total - Records written with business changes
        - outbox_events_published_total - Records delivered to the broker
        - outbox_dispatch_failures_total - Records left pending, by reason
        - outbox_batch_persist_failures_total - Dispatch cycles whose commit failed
        - outbox_patch_failures_total - Post-commit identity patches that failed
        - outbox_dispatch_cycle_duration_seconds - Dispatch cycle latency

    Application Info:
        - app_info - Service version, name, and environment labels
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from order_service.infra.metrics.prometheus import REGISTRY

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Expose Prometheus metrics in text exposition format."""
    data = generate_latest(REGISTRY)
    return Response(
        content=data,
        media_type=CONTENT_TYPE_LATEST,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
