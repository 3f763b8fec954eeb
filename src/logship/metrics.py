"""
Prometheus metrics for the upload engine.

Metrics live in the global REGISTRY; importing logship is enough to expose them.
"""

from prometheus_client import Counter, Histogram

APPENDS_TOTAL = Counter(
    "logship_appends_total",
    "Append requests issued to the log service",
    ["outcome"],  # ok or an ErrorKind value
)

EVENTS_UPLOADED_TOTAL = Counter(
    "logship_events_uploaded_total",
    "Log events accepted by the log service",
)

APPEND_LATENCY_MS = Histogram(
    "logship_append_latency_ms",
    "Append request latency in milliseconds",
    buckets=[5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000],
)

UPLOADS_TOTAL = Counter(
    "logship_uploads_total",
    "Upload attempts by terminal status",
    ["status"],
)

TOKEN_REFRESH_TOTAL = Counter(
    "logship_token_refresh_total",
    "Continuation token re-fetches after a stale-token or not-found append",
)

TRUNCATED_TOTAL = Counter(
    "logship_truncated_messages_total",
    "Messages truncated for exceeding the single-event cap",
)

RETENTION_FAILURES_TOTAL = Counter(
    "logship_retention_failures_total",
    "Retention policy updates that failed (logged, never raised)",
)


class MetricsRegistry:
    """Structured access to logship metrics."""

    appends_total = APPENDS_TOTAL
    events_uploaded_total = EVENTS_UPLOADED_TOTAL
    append_latency_ms = APPEND_LATENCY_MS
    uploads_total = UPLOADS_TOTAL
    token_refresh_total = TOKEN_REFRESH_TOTAL
    truncated_total = TRUNCATED_TOTAL
    retention_failures_total = RETENTION_FAILURES_TOTAL


metrics_registry = MetricsRegistry()
