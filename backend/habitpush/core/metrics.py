"""
Prometheus Metrics Registry

Provides Prometheus-compatible metrics for:
- HTTP request counts and latencies
- Web Push delivery outcomes and latency
- Reminder job runs and per-subscription outcomes
"""
import re
import time
import logging
from typing import Optional
from prometheus_client import (
    Counter, Histogram, Gauge, Info,
    CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
)

logger = logging.getLogger(__name__)

# Create a custom registry to avoid conflicts with default registry
REGISTRY = CollectorRegistry()

# ============================================================================
# Application Info
# ============================================================================

app_info = Info(
    'app',
    'Application information',
    registry=REGISTRY
)

app_uptime_seconds = Gauge(
    'app_uptime_seconds',
    'Application uptime in seconds',
    registry=REGISTRY
)

_start_time: Optional[float] = None

# ============================================================================
# HTTP Request Metrics
# ============================================================================

http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status_code'],
    registry=REGISTRY
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=REGISTRY
)

# ============================================================================
# Push Notification Metrics
# ============================================================================

push_notifications_sent_total = Counter(
    'push_notifications_sent_total',
    'Total push notifications sent',
    ['status'],  # success, expired, failed, error
    registry=REGISTRY
)

push_notification_duration_seconds = Histogram(
    'push_notification_duration_seconds',
    'Push notification delivery duration in seconds',
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=REGISTRY
)

# ============================================================================
# Reminder Job Metrics
# ============================================================================

reminder_runs_total = Counter(
    'reminder_runs_total',
    'Total reminder job runs',
    ['mode', 'outcome'],  # mode: reminder, test; outcome: completed, failed
    registry=REGISTRY
)

reminder_subscriptions_processed_total = Counter(
    'reminder_subscriptions_processed_total',
    'Subscriptions processed by the reminder job',
    ['status'],  # sent, skipped, deleted, error
    registry=REGISTRY
)


def init_metrics(version: str = "1.0.0"):
    """
    Initialize application metrics.

    Args:
        version: Application version string
    """
    global _start_time
    _start_time = time.time()

    app_info.info({
        'version': version,
        'name': 'HabitPush',
    })

    logger.info("Prometheus metrics initialized", extra={"version": version})


def record_http_request(method: str, path: str, status_code: int, duration_seconds: float):
    """
    Record HTTP request metrics.

    Args:
        method: HTTP method
        path: Request path (normalized)
        status_code: Response status code
        duration_seconds: Request duration
    """
    normalized_path = _normalize_path(path)
    http_requests_total.labels(
        method=method,
        path=normalized_path,
        status_code=str(status_code)
    ).inc()
    http_request_duration_seconds.labels(
        method=method,
        path=normalized_path
    ).observe(duration_seconds)


def record_push_notification_sent(status: str, duration_seconds: float = 0.0):
    """
    Record push notification delivery metrics.

    Args:
        status: Delivery status (success, expired, failed, error)
        duration_seconds: Delivery duration
    """
    push_notifications_sent_total.labels(status=status).inc()
    if duration_seconds > 0:
        push_notification_duration_seconds.observe(duration_seconds)


def record_reminder_run(mode: str, outcome: str):
    """Record a reminder job run (mode: reminder/test, outcome: completed/failed)."""
    reminder_runs_total.labels(mode=mode, outcome=outcome).inc()


def record_reminder_outcome(status: str):
    """Record one subscription's outcome within a reminder run."""
    reminder_subscriptions_processed_total.labels(status=status).inc()


def get_metrics() -> bytes:
    """
    Generate Prometheus metrics output.

    Returns:
        Prometheus text format metrics
    """
    if _start_time:
        app_uptime_seconds.set(time.time() - _start_time)
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST


def _normalize_path(path: str) -> str:
    """
    Normalize request path to avoid high cardinality.

    Replaces UUIDs and numeric IDs with placeholders.
    """
    path = re.sub(
        r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}',
        '{id}',
        path,
        flags=re.IGNORECASE
    )
    path = re.sub(r'/\d+', '/{id}', path)
    return path
