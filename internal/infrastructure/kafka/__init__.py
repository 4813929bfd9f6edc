"""
Kafka infrastructure package.
"""

from .producer import KafkaProductNotifier, LoggingProductNotifier

__all__ = [
    "KafkaProductNotifier",
    "LoggingProductNotifier",
]
