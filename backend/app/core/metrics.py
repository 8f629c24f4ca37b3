"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Record metrics
record_saves = Counter(
    'record_saves_total',
    'Event and booking save attempts',
    ['collection', 'status']  # saved, invalid, conflict
)

validation_failures = Counter(
    'record_validation_failures_total',
    'Saves rejected by the pre-save pipeline',
    ['collection', 'code']
)

# Connection metrics
mongodb_connection_attempts = Counter(
    'mongodb_connection_attempts_total',
    'MongoDB connection attempts',
    ['result']  # success, failure
)

mongodb_connect_latency = Histogram(
    'mongodb_connect_latency_seconds',
    'Time spent establishing the shared MongoDB client',
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_save(collection: str, status: str):
    """Record a save attempt. Status: saved, invalid, conflict"""
    record_saves.labels(collection=collection, status=status).inc()


def record_validation_failure(collection: str, code: str):
    validation_failures.labels(collection=collection, code=code).inc()


def record_connection_attempt(success: bool):
    result = "success" if success else "failure"
    mongodb_connection_attempts.labels(result=result).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
