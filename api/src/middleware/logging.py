"""
Request logging and metrics middleware.

Emits one structured log entry per request with the client address, method,
path, protocol, status, latency, user agent and error, and records the
request in Prometheus metrics.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable

import structlog
from fastapi import Request
from prometheus_client import Counter, Gauge, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from shared.logging import bind_context, unbind_context

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# ============================================================================
# Prometheus Metrics
# ============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"]
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently in progress",
    ["method"]
)


def _endpoint_label(request: Request) -> str:
    """Route template when routing matched, raw path otherwise."""
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging and metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log details."""
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        method = request.method
        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"
        client_ip = request.client.host if request.client else "unknown"
        protocol = f"HTTP/{request.scope.get('http_version', '1.1')}"
        user_agent = request.headers.get("User-Agent", "unknown")

        http_requests_in_progress.labels(method=method).inc()
        bind_context(correlation_id=correlation_id)
        started_at = datetime.now(timezone.utc)
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            latency = time.perf_counter() - start_time
            endpoint = _endpoint_label(request)

            http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status=response.status_code
            ).inc()
            http_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint
            ).observe(latency)

            logger.info(
                "request_completed",
                client_ip=client_ip,
                time=started_at.isoformat(),
                method=method,
                path=path,
                protocol=protocol,
                status_code=response.status_code,
                latency=f"{latency:.6f}s",
                user_agent=user_agent,
                error=getattr(request.state, "error", None),
            )

            response.headers[CORRELATION_HEADER] = correlation_id
            return response

        except Exception as e:
            latency = time.perf_counter() - start_time
            http_requests_total.labels(
                method=method,
                endpoint=_endpoint_label(request),
                status=500
            ).inc()
            logger.error(
                "request_failed",
                client_ip=client_ip,
                time=started_at.isoformat(),
                method=method,
                path=path,
                protocol=protocol,
                latency=f"{latency:.6f}s",
                user_agent=user_agent,
                error=str(e),
                exc_info=True
            )
            raise

        finally:
            unbind_context("correlation_id")
            http_requests_in_progress.labels(method=method).dec()
