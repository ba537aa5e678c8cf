"""
Prometheus metrics middleware for the Hot Lead API.

Exposes /metrics endpoint with request counters, latency histograms,
and scoring/escalation business metrics.
"""

import logging
import time

from fastapi import Request, Response
from prometheus_client import (
    Counter, Histogram, Gauge,
    generate_latest, CONTENT_TYPE_LATEST,
)
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Request metrics
REQUEST_COUNT = Counter(
    "hotlead_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "hotlead_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)
ACTIVE_REQUESTS = Gauge(
    "hotlead_http_active_requests",
    "Currently active HTTP requests",
)

# Business metrics
LEAD_SCORE_HIST = Histogram(
    "hotlead_lead_score",
    "Hot score distribution",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100],
)
ESCALATION_COUNT = Counter(
    "hotlead_escalations_total",
    "Leads flagged for immediate attention",
    ["priority"],
)
NOTIFICATION_FAILURES = Counter(
    "hotlead_notification_failures_total",
    "Escalation notification deliveries that failed",
    ["channel"],
)


def record_lead_score(score: float):
    """Record a hot score."""
    LEAD_SCORE_HIST.observe(score)


def record_escalation(priority: str):
    """Record an escalation alert."""
    ESCALATION_COUNT.labels(priority=priority).inc()


def record_notification_failure(channel: str):
    """Record a failed notification delivery."""
    NOTIFICATION_FAILURES.labels(channel=channel).inc()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware that records HTTP request metrics."""

    async def dispatch(self, request: Request, call_next):
        ACTIVE_REQUESTS.inc()
        start = time.time()

        try:
            response = await call_next(request)
        except Exception:
            ACTIVE_REQUESTS.dec()
            raise

        duration = time.time() - start
        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)

        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()
        REQUEST_LATENCY.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)
        ACTIVE_REQUESTS.dec()

        return response


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
