"""
Structured logging module.

Provides JSON or console structured logging with request context support.
"""
import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Optional
from contextvars import ContextVar


# Context variable for request ID
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Attributes every LogRecord carries; anything else came in as an extra field.
_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "levelname", "levelno",
    "pathname", "filename", "module", "exc_info",
    "exc_text", "stack_info", "lineno", "funcName",
    "created", "msecs", "relativeCreated", "thread",
    "threadName", "processName", "process", "message", "asctime",
    "taskName",
))


def _extra_fields(record: logging.LogRecord) -> dict:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS
    }


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as JSON for easy parsing by log aggregators.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format the log record as JSON.

        Args:
            record: Log record to format.

        Returns:
            JSON-formatted log string.
        """
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        for key, value in _extra_fields(record).items():
            log_data[key] = self._serialize_value(value)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)

    def _serialize_value(self, value: Any) -> Any:
        """
        Serialize a value for JSON output.

        Args:
            value: Value to serialize.

        Returns:
            JSON-serializable value.
        """
        if isinstance(value, (str, int, float, bool, type(None))):
            return value
        if isinstance(value, (list, tuple)):
            return [self._serialize_value(v) for v in value]
        if isinstance(value, dict):
            return {k: self._serialize_value(v) for k, v in value.items()}
        return str(value)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter appending extra fields as ``key=value``."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)-7s %(name)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _extra_fields(record)
        request_id = request_id_var.get()
        if request_id:
            fields["request_id"] = request_id
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


class StructuredLogger(logging.Logger):
    """
    Logger with structured logging support.

    Allows passing extra fields as keyword arguments.
    """

    def _log_with_extras(
        self,
        level: int,
        msg: str,
        args: tuple,
        **kwargs: Any,
    ) -> None:
        """
        Log with extra fields.

        Args:
            level: Log level.
            msg: Log message.
            args: Message arguments.
            **kwargs: Extra fields to include in log.
        """
        if not self.isEnabledFor(level):
            return
        exc_info = kwargs.pop("exc_info", None)
        extra = kwargs.pop("extra", {})
        extra.update(kwargs)
        super()._log(level, msg, args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log debug message with extra fields."""
        self._log_with_extras(logging.DEBUG, msg, args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log info message with extra fields."""
        self._log_with_extras(logging.INFO, msg, args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log warning message with extra fields."""
        self._log_with_extras(logging.WARNING, msg, args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log error message with extra fields."""
        self._log_with_extras(logging.ERROR, msg, args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log critical message with extra fields."""
        self._log_with_extras(logging.CRITICAL, msg, args, **kwargs)


# Set custom logger class
logging.setLoggerClass(StructuredLogger)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
) -> None:
    """
    Set up logging configuration.

    Unknown level names fall back to INFO with a warning.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Whether to use JSON format.
    """
    resolved = logging.getLevelName(level.upper())
    unknown_level = not isinstance(resolved, int)
    if unknown_level:
        resolved = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)
    handler.setFormatter(StructuredFormatter() if json_format else ConsoleFormatter())
    root_logger.addHandler(handler)

    logger = get_logger(__name__)
    if unknown_level:
        logger.warning("Unknown log level, defaulting to info", log_level=level)
    logger.info("Logging configured", log_level=logging.getLevelName(resolved))


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__).

    Returns:
        StructuredLogger instance.
    """
    return logging.getLogger(name)  # type: ignore


def set_request_id(request_id: Optional[str]) -> None:
    """
    Set the request ID in context.

    Args:
        request_id: Request identifier.
    """
    request_id_var.set(request_id)


def get_request_id() -> Optional[str]:
    """
    Get the current request ID from context.

    Returns:
        Request ID or None.
    """
    return request_id_var.get()
