# routes_metrics.py

"""Prometheus metrics and /metrics endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

# Counters
notifications_synced_total = Counter(
    "notifications_synced_total",
    "Notifications written locally by sync",
    ["outcome"],
)
notifications_synced_total.labels(outcome="inserted").inc(0)
notifications_synced_total.labels(outcome="updated").inc(0)

notifications_delivered_total = Counter(
    "notifications_delivered_total",
    "Notifications handed to the device notification surface",
)
notifications_delivered_total.inc(0)

remote_failures_total = Counter(
    "remote_failures_total", "Failed calls to the remote service", ["call"]
)
remote_failures_total.labels(call="fetch_notifications").inc(0)
remote_failures_total.labels(call="push_notification_read").inc(0)

ledger_entries_total = Counter(
    "ledger_entries_total", "Credit ledger entries appended", ["type"]
)
ledger_entries_total.labels(type="CREDIT").inc(0)
ledger_entries_total.labels(type="PAYMENT").inc(0)

ledger_rejections_total = Counter(
    "ledger_rejections_total", "Rejected credit ledger operations", ["code"]
)
ledger_rejections_total.labels(code="INVALID_AMOUNT").inc(0)
ledger_rejections_total.labels(code="EXCEEDS_BALANCE").inc(0)

reports_exported_total = Counter(
    "reports_exported_total", "Reports serialized for export", ["kind", "format"]
)

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics in text format."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
