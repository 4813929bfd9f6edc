"""
HTTP Middleware for Catalog Service.

Provides middleware components for request processing.
"""

import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from pkg.logger.logger import get_logger, set_request_id
from internal.transport.http.metrics import MetricsMiddleware

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Bind an X-Request-ID to the request and log each request.

    The ID is taken from the incoming header or generated, stored in the
    logging context and echoed on the response.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        set_request_id(request_id)

        start_time = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.debug(
            "Request handled",
            method=request.method,
            uri=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return response


__all__ = [
    "MetricsMiddleware",
    "RequestContextMiddleware",
]
