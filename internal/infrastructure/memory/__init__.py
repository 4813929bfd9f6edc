"""
In-memory infrastructure package.
"""
from .repository import InMemoryProductRepository, InMemoryTransaction

__all__ = ["InMemoryProductRepository", "InMemoryTransaction"]
