"""
Domain-specific exceptions.

Custom exceptions for request validation, lookups and infrastructure failures.
"""
from typing import Optional


class DomainError(Exception):
    """Base exception for domain errors."""

    def __init__(self, message: str) -> None:
        """
        Initialize domain error.

        Args:
            message: Error message describing the issue.
        """
        self.message = message
        super().__init__(self.message)


class DomainValidationError(DomainError):
    """Exception raised when a request or entity fails validation."""
    pass


class ProductNotFoundError(DomainError):
    """Exception raised when a product is not found."""

    def __init__(self, sku: str) -> None:
        """
        Initialize product not found error.

        Args:
            sku: The stock-keeping code that was not found.
        """
        super().__init__(f"Product with sku {sku} not found")
        self.sku = sku


class InfrastructureError(DomainError):
    """
    Exception raised when the store or another backing service fails.

    The message carries diagnostic context (operation and sku) and is meant
    for logs only. The original driver exception is chained as ``__cause__``.
    """

    def __init__(
        self,
        operation: str,
        reason: str,
        sku: Optional[str] = None,
    ) -> None:
        """
        Initialize infrastructure error.

        Args:
            operation: Name of the operation that failed.
            reason: Short description of the failure.
            sku: Stock-keeping code involved, if any.
        """
        context = f"{operation} failed"
        if sku:
            context += f" for sku {sku}"
        super().__init__(f"{context}: {reason}")
        self.operation = operation
        self.reason = reason
        self.sku = sku


class TransactionClosedError(InfrastructureError):
    """Exception raised on a second commit or rollback of one transaction."""

    def __init__(self, operation: str) -> None:
        super().__init__(operation, "transaction already committed or rolled back")


class RollbackError(InfrastructureError):
    """Exception raised when rolling back a transaction fails."""

    def __init__(self, reason: str) -> None:
        super().__init__("rollback", reason)


class EventPublishError(DomainError):
    """Exception raised when publishing a product event fails."""

    def __init__(self, sku: str, reason: str) -> None:
        """
        Initialize event publish error.

        Args:
            sku: Stock-keeping code of the product being published.
            reason: The reason for the failure.
        """
        super().__init__(f"Failed to publish product '{sku}': {reason}")
        self.sku = sku
        self.reason = reason
