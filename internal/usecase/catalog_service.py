"""
Catalog Service Use Case.

Create-if-absent and lookup workflows for catalog products.
"""
import asyncio
from typing import Optional, Protocol

from internal.domain.errors import (
    DomainValidationError,
    EventPublishError,
    InfrastructureError,
    ProductNotFoundError,
)
from internal.domain.product import Product
from internal.domain.transaction import (
    NO_TRANSACTION,
    Transaction,
    TransactionScope,
    WithTransaction,
)
from internal.infrastructure.metrics import CatalogMetrics
from pkg.logger.logger import get_logger

logger = get_logger(__name__)


class ProductStore(Protocol):
    """Protocol for product persistence."""

    async def get_product(
        self,
        sku: str,
        scope: TransactionScope = NO_TRANSACTION,
    ) -> Product:
        """Get product by sku, raising ProductNotFoundError if absent."""
        ...

    async def save_product(
        self,
        product: Product,
        scope: TransactionScope = NO_TRANSACTION,
    ) -> None:
        """Insert or update a product."""
        ...

    async def begin_transaction(self) -> Transaction:
        """Start a transaction."""
        ...


class ProductNotifier(Protocol):
    """Protocol for publishing product events."""

    async def publish_product(self, product: Product) -> None:
        """Publish a product-changed event."""
        ...


class CreateProductInput:
    """Input DTO for creating a product."""

    def __init__(self, sku: str, upc: str, name: str) -> None:
        """
        Initialize create product input.

        Args:
            sku: Stock-keeping code.
            upc: Universal product code.
            name: Product name.
        """
        self.sku = sku
        self.upc = upc
        self.name = name


class CreateProductOutput:
    """Output DTO for an accepted product."""

    def __init__(self, product: Product, created: bool) -> None:
        """
        Initialize create product output.

        Args:
            product: The accepted product. For an existing sku this is the
                stored product, not the request.
            created: False when the sku already existed and nothing was written.
        """
        self.product = product
        self.created = created

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return self.product.to_dict()


class CatalogService:
    """
    Service for catalog product operations.

    Creation is idempotent: an existing sku short-circuits to success without
    a write. Two concurrent creates of the same new sku may both pass the
    existence check; the store's upsert then makes the last committer win.

    The caller's deadline covers the store phase only. Publishing runs after
    the commit under its own timeout, so a slow broker never turns a durable
    write into a failed request.
    """

    def __init__(
        self,
        store: ProductStore,
        notifier: Optional[ProductNotifier] = None,
        metrics: Optional[CatalogMetrics] = None,
        publish_timeout_seconds: Optional[float] = 5.0,
    ) -> None:
        """
        Initialize the catalog service.

        Args:
            store: Product store.
            notifier: Publisher for product events (optional).
            metrics: Metrics for created products and cleanup failures (optional).
            publish_timeout_seconds: Bound on a single publish; None waits forever.
        """
        self._store = store
        self._notifier = notifier
        self._metrics = metrics
        self._publish_timeout = publish_timeout_seconds

    async def create_product(
        self,
        input_dto: CreateProductInput,
        timeout: Optional[float] = None,
    ) -> CreateProductOutput:
        """
        Create a product unless one with the same sku exists.

        This method:
        1. Validates the input
        2. Returns the stored product if the sku already exists
        3. Writes the product in a transaction and commits it
        4. Publishes the new product (failures are logged only)

        Args:
            input_dto: Input data for creating the product.
            timeout: Deadline in seconds for steps 2 and 3. An expired
                deadline rolls back the open transaction.

        Returns:
            CreateProductOutput with the accepted product.

        Raises:
            DomainValidationError: If a field is missing or empty.
            InfrastructureError: If the store fails.
            asyncio.TimeoutError: If the store phase exceeds ``timeout``.
        """
        product = Product(sku=input_dto.sku, upc=input_dto.upc, name=input_dto.name)

        result = await asyncio.wait_for(self._store_if_absent(product), timeout)

        if result.created:
            if self._metrics:
                self._metrics.products_created.inc()
            await self._publish(product)

        return result

    async def get_product(self, sku: str) -> Product:
        """
        Get a product by sku.

        Args:
            sku: Stock-keeping code.

        Returns:
            The stored product.

        Raises:
            DomainValidationError: If sku is empty.
            ProductNotFoundError: If no product has that sku.
            InfrastructureError: If the store fails.
        """
        if not sku:
            raise DomainValidationError("sku is required")

        logger.info("Getting product", sku=sku)

        try:
            return await self._store.get_product(sku)
        except (ProductNotFoundError, InfrastructureError):
            raise
        except Exception as e:
            raise InfrastructureError("get_product", str(e), sku=sku) from e

    async def _store_if_absent(self, product: Product) -> CreateProductOutput:
        try:
            existing = await self._store.get_product(product.sku)
        except ProductNotFoundError:
            existing = None
        except InfrastructureError:
            raise
        except Exception as e:
            raise InfrastructureError("create_product", str(e), sku=product.sku) from e

        if existing is not None:
            logger.debug("Product already exists", sku=existing.sku)
            return CreateProductOutput(product=existing, created=False)

        try:
            tx = await self._store.begin_transaction()
        except InfrastructureError:
            raise
        except Exception as e:
            raise InfrastructureError("begin_transaction", str(e), sku=product.sku) from e

        logger.info("Creating product", sku=product.sku, upc=product.upc)

        try:
            await self._store.save_product(product, WithTransaction(tx))
        except asyncio.CancelledError:
            await self._rollback(tx, "cancelled")
            raise
        except Exception as e:
            await self._rollback(tx, str(e))
            if isinstance(e, InfrastructureError):
                raise
            raise InfrastructureError("save_product", str(e), sku=product.sku) from e

        try:
            await tx.commit()
        except asyncio.CancelledError:
            await self._rollback(tx, "cancelled")
            raise
        except Exception as e:
            await self._rollback(tx, str(e))
            if isinstance(e, InfrastructureError):
                raise
            raise InfrastructureError("commit", str(e), sku=product.sku) from e

        return CreateProductOutput(product=product, created=True)

    async def _rollback(self, tx: Transaction, cause: str) -> None:
        """Roll back best-effort; a failure here never replaces the cause."""
        try:
            await tx.rollback()
        except Exception as e:
            if self._metrics:
                self._metrics.rollback_failures.inc()
            logger.warning("Failed to rollback", error=str(e), cause=cause)

    async def _publish(self, product: Product) -> None:
        if self._notifier is None:
            return
        try:
            await asyncio.wait_for(
                self._notifier.publish_product(product),
                self._publish_timeout,
            )
        except asyncio.TimeoutError:
            self._publish_failed(product, f"timed out after {self._publish_timeout}s")
        except EventPublishError as e:
            self._publish_failed(product, e.message)
        except Exception as e:
            self._publish_failed(product, str(e))

    def _publish_failed(self, product: Product, reason: str) -> None:
        # The write is already committed; delivery stays best-effort.
        if self._metrics:
            self._metrics.publish_failures.inc()
        logger.error("Failed to publish product", sku=product.sku, error=reason)
