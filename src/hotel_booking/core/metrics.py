"""
Prometheus metrics for monitoring
"""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
import time
from functools import wraps


# ==================== HTTP Metrics ====================

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

# ==================== Booking Metrics ====================

bookings_created_total = Counter(
    'bookings_created_total',
    'Total bookings created',
    ['status']  # PENDING (guest path), CONFIRMED (admin path)
)

booking_transitions_total = Counter(
    'booking_transitions_total',
    'Total booking status transitions',
    ['from_status', 'to_status']
)

booking_conflicts_total = Counter(
    'booking_conflicts_total',
    'Booking attempts rejected for overlapping dates',
    ['stage']  # precheck, transaction, constraint
)

booking_storage_failures_total = Counter(
    'booking_storage_failures_total',
    'Booking operations aborted by a storage error',
    ['operation']
)

booking_creation_duration_seconds = Histogram(
    'booking_creation_duration_seconds',
    'Time to create a booking',
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0]
)

booking_transition_duration_seconds = Histogram(
    'booking_transition_duration_seconds',
    'Time to apply a booking status transition',
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0]
)

# ==================== Helper Functions ====================

def track_time(metric: Histogram):
    """Decorator to track execution time"""
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return await func(*args, **kwargs)
            finally:
                metric.observe(time.time() - start_time)
        return wrapper
    return decorator


def record_booking_created(booking):
    bookings_created_total.labels(status=booking.status.value).inc()


def record_transition(from_status, to_status):
    booking_transitions_total.labels(
        from_status=from_status.value,
        to_status=to_status.value,
    ).inc()


def record_conflict(stage: str):
    booking_conflicts_total.labels(stage=stage).inc()


def record_storage_failure(operation: str):
    booking_storage_failures_total.labels(operation=operation).inc()


def record_http_request(method: str, endpoint: str, status_code: int, duration_seconds: float):
    http_requests_total.labels(method=method, endpoint=endpoint, status=str(status_code)).inc()
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration_seconds)


def get_metrics():
    """Get current metrics in Prometheus format"""
    return generate_latest()


__all__ = [
    "CONTENT_TYPE_LATEST",
    "track_time",
    "record_booking_created",
    "record_transition",
    "record_conflict",
    "record_storage_failure",
    "record_http_request",
    "get_metrics",
    "booking_creation_duration_seconds",
    "booking_transition_duration_seconds",
]
