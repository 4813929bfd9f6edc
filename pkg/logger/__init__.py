"""
Structured logging helpers with request ID context.
"""
from .logger import (
    setup_logging,
    get_logger,
    set_request_id,
    get_request_id,
    ConsoleFormatter,
    StructuredFormatter,
    StructuredLogger,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "set_request_id",
    "get_request_id",
    "ConsoleFormatter",
    "StructuredFormatter",
    "StructuredLogger",
]
