"""
PostgreSQL infrastructure package.
"""
from .repository import (
    PostgresProductRepository,
    PostgresTransaction,
    connect_with_retry,
    create_pool,
)

__all__ = [
    "PostgresProductRepository",
    "PostgresTransaction",
    "connect_with_retry",
    "create_pool",
]
