"""
Prometheus Metrics for Catalog Service.

Collectors are bound to an explicit registry and passed to the components
that record them, so tests and multiple app instances never share state.
"""

import time
from contextlib import contextmanager
from typing import Iterator, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram


class CatalogMetrics:
    """
    Metrics for the HTTP layer, the store and the catalog workflow.

    Attributes:
        registry: Registry all collectors are registered on.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        """
        Create and register all collectors.

        Args:
            registry: Target registry. A fresh one is created when omitted.
        """
        self.registry = registry if registry is not None else CollectorRegistry()

        # API
        self.http_requests_total = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )
        self.http_request_duration = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry,
        )

        # DB
        self.db_query_duration = Histogram(
            "db_query_duration_seconds",
            "Database query duration",
            ["operation"],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
            registry=self.registry,
        )
        self.db_query_errors = Counter(
            "db_query_errors_total",
            "Database operations that raised an error",
            ["operation"],
            registry=self.registry,
        )

        # Catalog workflow
        self.products_created = Counter(
            "catalog_products_created_total",
            "Products newly written by create requests",
            registry=self.registry,
        )
        self.rollback_failures = Counter(
            "catalog_rollback_failures_total",
            "Transactions whose rollback failed",
            registry=self.registry,
        )
        self.publish_failures = Counter(
            "catalog_publish_failures_total",
            "Product events that could not be published",
            registry=self.registry,
        )

    @contextmanager
    def track_query(self, operation: str) -> Iterator[None]:
        """
        Time a database operation and count it as an error if it raises.

        Args:
            operation: Operation label (e.g. ``get_product``).
        """
        start = time.perf_counter()
        try:
            yield
        except Exception:
            self.db_query_errors.labels(operation=operation).inc()
            raise
        finally:
            self.db_query_duration.labels(operation=operation).observe(
                time.perf_counter() - start
            )
