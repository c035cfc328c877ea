"""
Prometheus metrics for monitoring
"""
import time
from functools import wraps

from prometheus_client import Counter, Histogram, generate_latest

# ==================== Reservation Metrics ====================

reservations_total = Counter(
    'reservations_total',
    'Reservation attempts',
    ['outcome']  # success, quota_exceeded, insufficient_seats, ...
)

tickets_issued_total = Counter(
    'tickets_issued_total',
    'Tickets created by successful reservations'
)

reservation_duration_seconds = Histogram(
    'reservation_duration_seconds',
    'Time to run a reservation, including lock wait',
    buckets=[0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0]
)

ticket_code_collisions_total = Counter(
    'ticket_code_collisions_total',
    'Generated ticket codes that were already taken'
)

# ==================== Ticket Lifecycle Metrics ====================

cancellations_total = Counter(
    'cancellations_total',
    'Tickets released back to the event'
)

check_ins_total = Counter(
    'check_ins_total',
    'Check-in attempts',
    ['outcome']
)

# ==================== Scheduling Metrics ====================

events_created_total = Counter(
    'events_created_total',
    'Events created'
)

schedule_conflicts_total = Counter(
    'schedule_conflicts_total',
    'Event create/edit attempts rejected for a venue conflict'
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


def record_reservation(outcome: str, quantity: int = 0):
    reservations_total.labels(outcome=outcome).inc()
    if quantity:
        tickets_issued_total.inc(quantity)


def get_metrics():
    """Get current metrics in Prometheus format"""
    return generate_latest()
