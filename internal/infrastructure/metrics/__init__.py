"""
Metrics infrastructure package.
"""
from .prometheus import CatalogMetrics

__all__ = ["CatalogMetrics"]
