"""
Pytest configuration and fixtures.
"""
import pytest
from prometheus_client import CollectorRegistry

from internal.domain.product import Product
from internal.infrastructure.memory.repository import InMemoryProductRepository
from internal.infrastructure.metrics import CatalogMetrics


@pytest.fixture
def product_data():
    """Sample product data for tests."""
    return {
        "sku": "sku1",
        "upc": "upc1",
        "name": "name1",
    }


@pytest.fixture
def product(product_data):
    """Sample product."""
    return Product(**product_data)


@pytest.fixture
def memory_store():
    """Empty in-memory product store."""
    return InMemoryProductRepository()


@pytest.fixture
def metrics():
    """Metrics bound to a registry private to the test."""
    return CatalogMetrics(registry=CollectorRegistry())
