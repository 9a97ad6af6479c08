"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Attendance transition metrics
attendance_transitions = Counter(
    'attendance_transitions_total',
    'Committed attendance transitions',
    ['action']  # RSVP_CONFIRMED, RSVP_WAITLISTED, RSVP_CANCELLED, CHECKED_IN, MARKED_NO_SHOW
)

waitlist_promotions = Counter(
    'waitlist_promotions_total',
    'Waitlisted attendees promoted into confirmed slots',
    ['trigger']  # cancellation, sweep
)

attendance_errors = Counter(
    'attendance_errors_total',
    'Business-rule violations surfaced to callers',
    ['code']
)

operation_latency = Histogram(
    'attendance_operation_latency_seconds',
    'Attendance engine operation latency, including retries',
    ['operation'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

# Database metrics
db_retries = Counter(
    'db_retry_attempts_total',
    'Transaction retries due to serialization conflicts',
    ['reason']
)

db_retries_exhausted = Counter(
    'db_retries_exhausted_total',
    'Transactions abandoned after exhausting retries'
)

# Sweep metrics
waitlist_sweeps = Counter(
    'waitlist_sweeps_total',
    'Waitlist sweep passes',
    ['scope']  # event, upcoming
)

# Notification metrics
notification_failures = Counter(
    'notification_failures_total',
    'Post-commit notifications that failed to dispatch'
)


def metrics_endpoint() -> Response:
    """
    Prometheus metrics endpoint.

    Usage:
        @app.get("/metrics")
        def metrics():
            return metrics_endpoint()
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_transition(action: str):
    attendance_transitions.labels(action=action).inc()


def record_promotion(trigger: str):
    waitlist_promotions.labels(trigger=trigger).inc()


def record_attendance_error(code: str):
    attendance_errors.labels(code=code).inc()


def record_db_retry(reason: str):
    """Record a transaction retry. Reason: serialization, deadlock, unique_violation, locked, disconnect"""
    db_retries.labels(reason=reason).inc()
