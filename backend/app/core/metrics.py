"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Participation metrics
participation_operations = Counter(
    'participation_operations_total',
    'Participation engine operations',
    ['operation', 'outcome']  # register/cancel/set_status/reconcile x success/<error kind>
)

participation_latency = Histogram(
    'participation_latency_seconds',
    'Participation operation latency',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

participation_retries = Counter(
    'participation_retry_attempts_total',
    'Participation transactions retried after a transient lock or serialization failure'
)

# Counter consistency
counter_underflows = Counter(
    'participant_counter_underflow_total',
    'Decrements refused because current_participants was already zero'
)

counter_drift_repairs = Counter(
    'participant_counter_drift_repairs_total',
    'Reconciliations that found current_participants out of sync'
)

# Notification metrics
notification_failures = Counter(
    'notification_failures_total',
    'Failed or timed out notification deliveries',
    ['channel']  # dispatcher, live_update
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_participation(operation: str, outcome: str):
    """Record a participation operation. Outcome: success or an error kind."""
    participation_operations.labels(operation=operation, outcome=outcome).inc()


def record_notification_failure(channel: str):
    notification_failures.labels(channel=channel).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
