"""Prometheus metric definitions shared across services."""

from prometheus_client import Counter, Gauge, Histogram, generate_latest
from starlette.responses import Response


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)
wallet_operations_total = Counter(
    "wallet_operations_total",
    "Wallet credit/debit attempts by outcome",
    ["operation", "outcome"],
)
order_transitions_total = Counter(
    "order_transitions_total",
    "Applied order status transitions",
    ["from_status", "to_status"],
)
order_transition_conflicts_total = Counter(
    "order_transition_conflicts_total",
    "Optimistic concurrency conflicts while transitioning orders",
)
payment_verifications_total = Counter(
    "payment_verifications_total",
    "Payment verification attempts by mode and outcome",
    ["mode", "outcome"],
)
duplicate_payments_skipped_total = Counter(
    "duplicate_payments_skipped_total",
    "Verification requests short-circuited by an existing payment record",
    ["mode"],
)
payment_verification_seconds = Histogram(
    "payment_verification_seconds",
    "Payment verification latency seconds",
    ["mode"],
)
notifications_total = Counter(
    "notifications_total",
    "Push notification attempts by outcome",
    ["outcome"],
)
outbox_pending_total = Gauge(
    "outbox_pending_total",
    "Current count of outbox events not yet sent",
    ["service"],
)
outbox_oldest_pending_age_seconds = Gauge(
    "outbox_oldest_pending_age_seconds",
    "Age in seconds of the oldest pending outbox event",
    ["service"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
