"""
FastAPI application factory.

Assembles routers, middleware, error handlers and the metrics endpoint.
"""

from typing import Any, Callable, List, Optional

from fastapi import FastAPI, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from internal.infrastructure.metrics import CatalogMetrics
from internal.transport.http.middleware import (
    MetricsMiddleware,
    RequestContextMiddleware,
)
from internal.transport.http.v1.handlers import (
    request_validation_handler,
    router,
)


def build_app(
    metrics: CatalogMetrics,
    lifespan: Optional[Callable[[FastAPI], Any]] = None,
    cors_origins: Optional[List[str]] = None,
    version: str = "1.0.0",
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        metrics: Metrics recorded by the HTTP middleware and exposed on /metrics.
        lifespan: Optional lifespan context for startup and shutdown.
        cors_origins: Allowed CORS origins; CORS is disabled when empty.
        version: Version reported in the OpenAPI document.

    Returns:
        Configured application.
    """
    app = FastAPI(
        title="Catalog Service API",
        description="Product catalog keyed by stock-keeping code",
        version=version,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_middleware(MetricsMiddleware, metrics=metrics)
    # Added last so it runs first and the request ID is set for everything below.
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(router)

    @app.get("/metrics", include_in_schema=False)
    async def prometheus_metrics() -> Response:
        """Prometheus exposition of the service registry."""
        return Response(
            content=generate_latest(metrics.registry),
            media_type=CONTENT_TYPE_LATEST,
        )

    return app
