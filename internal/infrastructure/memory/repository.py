"""
In-memory Product Repository.

Dictionary-backed product store with the same transaction semantics as the
PostgreSQL repository. Used for local runs without a database and in tests.
"""
import asyncio
from typing import Dict, Optional

from internal.domain.errors import (
    DomainValidationError,
    ProductNotFoundError,
    TransactionClosedError,
)
from internal.domain.product import Product
from internal.domain.transaction import (
    NO_TRANSACTION,
    TransactionScope,
    WithTransaction,
)


class InMemoryTransaction:
    """
    Transaction that stages writes until commit.

    Staged products are applied to the repository in one step under its
    lock, so readers never observe a partially applied transaction.
    """

    def __init__(self, repository: "InMemoryProductRepository") -> None:
        self._repository = repository
        self._staged: Dict[str, Product] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether commit or rollback already completed."""
        return self._closed

    def stage(self, product: Product) -> None:
        """Record a write to apply on commit."""
        if self._closed:
            raise TransactionClosedError("use transaction")
        self._staged[product.sku] = product

    def staged(self, sku: str) -> Optional[Product]:
        """Product written under ``sku`` in this transaction, if any."""
        if self._closed:
            raise TransactionClosedError("use transaction")
        return self._staged.get(sku)

    async def commit(self) -> None:
        """Apply all staged writes."""
        if self._closed:
            raise TransactionClosedError("commit")
        self._closed = True
        await self._repository._apply(self._staged)

    async def rollback(self) -> None:
        """Discard all staged writes."""
        if self._closed:
            raise TransactionClosedError("rollback")
        self._closed = True
        self._staged.clear()

    async def __aenter__(self) -> "InMemoryTransaction":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self._closed:
            await self.rollback()


class InMemoryProductRepository:
    """In-memory implementation of the product store."""

    def __init__(self) -> None:
        self._products: Dict[str, Product] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._products)

    async def get_product(
        self,
        sku: str,
        scope: TransactionScope = NO_TRANSACTION,
    ) -> Product:
        """
        Get a product by sku.

        Raises:
            DomainValidationError: If sku is empty.
            ProductNotFoundError: If no product has that sku.
        """
        if not sku:
            raise DomainValidationError("sku is required")

        if isinstance(scope, WithTransaction):
            staged = self._transaction_for(scope).staged(sku)
            if staged is not None:
                return staged

        product = self._products.get(sku)
        if product is None:
            raise ProductNotFoundError(sku)
        return product

    async def save_product(
        self,
        product: Product,
        scope: TransactionScope = NO_TRANSACTION,
    ) -> None:
        """Insert a product or overwrite upc and name of an existing one."""
        if isinstance(scope, WithTransaction):
            self._transaction_for(scope).stage(product)
            return

        await self._apply({product.sku: product})

    async def begin_transaction(self) -> InMemoryTransaction:
        """Start a transaction staging writes until commit."""
        return InMemoryTransaction(self)

    async def _apply(self, products: Dict[str, Product]) -> None:
        async with self._lock:
            self._products.update(products)

    def _transaction_for(self, scope: WithTransaction) -> InMemoryTransaction:
        handle = scope.handle
        if not isinstance(handle, InMemoryTransaction):
            raise TypeError(
                f"expected InMemoryTransaction, got {type(handle).__name__}"
            )
        return handle
