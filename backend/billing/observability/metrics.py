"""Prometheus metrics helpers for billing domain."""
from __future__ import annotations

from prometheus_client import Counter, Histogram

BILLING_REQUEST_COUNT = Counter(
    "billing_request_total",
    "Number of billing API requests",
    labelnames=("endpoint", "method", "status"),
)

BILLING_REQUEST_LATENCY = Histogram(
    "billing_request_duration_seconds",
    "Latency of billing API requests",
    labelnames=("endpoint", "method"),
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)

WEBHOOK_EVENT_COUNT = Counter(
    "billing_webhook_event_total",
    "Gateway payment events by outcome",
    labelnames=("gateway", "kind", "outcome"),
)

WEBHOOK_REJECTED_COUNT = Counter(
    "billing_webhook_rejected_total",
    "Webhook deliveries rejected before processing",
    labelnames=("gateway", "reason"),
)

PAYMENT_SUCCESS_COUNT = Counter(
    "billing_payment_success_total",
    "Count of captured payments",
    labelnames=("gateway",),
)

PAYMENT_FAILURE_COUNT = Counter(
    "billing_payment_failure_total",
    "Count of failed payment attempts",
    labelnames=("gateway", "reason"),
)

PLAN_CHANGE_COUNT = Counter(
    "billing_plan_change_total",
    "Plan change requests by direction and outcome",
    labelnames=("direction", "outcome"),
)

CONCURRENCY_CONFLICT_COUNT = Counter(
    "billing_concurrency_conflict_total",
    "Optimistic concurrency conflicts detected on subscriptions",
    labelnames=("operation",),
)
