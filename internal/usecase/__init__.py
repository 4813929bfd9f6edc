"""
Use case package for Catalog Service.

Contains business logic and use cases.
"""
from .catalog_service import (
    CatalogService,
    CreateProductInput,
    CreateProductOutput,
    ProductNotifier,
    ProductStore,
)

__all__ = [
    "CatalogService",
    "CreateProductInput",
    "CreateProductOutput",
    "ProductNotifier",
    "ProductStore",
]
