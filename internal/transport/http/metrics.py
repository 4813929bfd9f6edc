"""
Metrics collection middleware for HTTP requests.

Collects metrics for all HTTP requests using Prometheus.
"""

import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from internal.infrastructure.metrics import CatalogMetrics


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect HTTP request metrics.

    Tracks request count and duration per route template, so ``/v1/{sku}``
    is one series regardless of the sku requested.
    """

    def __init__(self, app: ASGIApp, metrics: CatalogMetrics) -> None:
        super().__init__(app)
        self._metrics = metrics

    async def dispatch(self, request: Request, call_next) -> Response:
        """
        Process request and collect metrics.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware/handler in chain.

        Returns:
            HTTP response.
        """
        start_time = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start_time

        route = request.scope.get("route")
        endpoint = getattr(route, "path", request.url.path)
        method = request.method

        self._metrics.http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        self._metrics.http_request_duration.labels(
            method=method,
            endpoint=endpoint,
        ).observe(duration)

        return response
