"""
Domain package for Catalog Service.

Contains the Product value object, transaction scoping and domain errors.
"""
from .product import Product
from .transaction import (
    NO_TRANSACTION,
    NoTransaction,
    Transaction,
    TransactionScope,
    WithTransaction,
)
from .errors import (
    DomainError,
    DomainValidationError,
    ProductNotFoundError,
    InfrastructureError,
    TransactionClosedError,
    RollbackError,
    EventPublishError,
)

__all__ = [
    "Product",
    "NO_TRANSACTION",
    "NoTransaction",
    "Transaction",
    "TransactionScope",
    "WithTransaction",
    "DomainError",
    "DomainValidationError",
    "ProductNotFoundError",
    "InfrastructureError",
    "TransactionClosedError",
    "RollbackError",
    "EventPublishError",
]
