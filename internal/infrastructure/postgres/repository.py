"""
PostgreSQL Product Repository.

Implements the product store with asyncpg. Every operation either joins a
caller-supplied transaction or runs on its own pooled connection.
"""

import asyncio
from contextlib import nullcontext
from typing import Any, ContextManager, Optional

import asyncpg
from asyncpg import Pool
from asyncpg.exceptions import InterfaceError, PostgresError

from internal.domain.errors import (
    DomainValidationError,
    InfrastructureError,
    ProductNotFoundError,
    RollbackError,
    TransactionClosedError,
)
from internal.domain.product import Product
from internal.domain.transaction import (
    NO_TRANSACTION,
    TransactionScope,
    WithTransaction,
)
from internal.infrastructure.metrics import CatalogMetrics
from pkg.logger.logger import get_logger


logger = get_logger(__name__)

# OSError covers refused connections and pool acquire timeouts.
DB_ERRORS = (PostgresError, InterfaceError, OSError)


class PostgresTransaction:
    """
    Transaction bound to one pooled connection.

    The connection returns to the pool after the terminal call. A failed or
    cancelled commit also closes the handle: asyncpg marks the transaction
    failed and the pool reset on release discards it, so the rollback that
    follows is a no-op.
    """

    def __init__(
        self,
        pool: Pool,
        conn: asyncpg.Connection,
        tx: Any,
    ) -> None:
        self._pool = pool
        self._conn = conn
        self._tx = tx
        self._closed = False
        self._commit_failed = False

    @property
    def closed(self) -> bool:
        """Whether commit or rollback already completed."""
        return self._closed

    @property
    def connection(self) -> asyncpg.Connection:
        """Connection the transaction runs on."""
        if self._closed:
            raise TransactionClosedError("use transaction")
        return self._conn

    async def commit(self) -> None:
        """
        Commit the transaction and release its connection.

        Raises:
            TransactionClosedError: If the handle was already terminated.
            InfrastructureError: If the commit fails.
        """
        if self._closed:
            raise TransactionClosedError("commit")
        self._closed = True
        try:
            await self._tx.commit()
        except DB_ERRORS as e:
            self._commit_failed = True
            raise InfrastructureError("commit", str(e)) from e
        except BaseException:
            self._commit_failed = True
            raise
        finally:
            await self._release()

    async def rollback(self) -> None:
        """
        Roll back the transaction and release its connection.

        After a failed commit this returns without touching the connection.

        Raises:
            TransactionClosedError: If the handle was already terminated.
            RollbackError: If the rollback fails.
        """
        if self._commit_failed:
            self._commit_failed = False
            logger.debug("Transaction already discarded by failed commit")
            return
        if self._closed:
            raise TransactionClosedError("rollback")
        self._closed = True
        try:
            await self._tx.rollback()
        except DB_ERRORS as e:
            raise RollbackError(str(e)) from e
        finally:
            await self._release()

    async def _release(self) -> None:
        await self._pool.release(self._conn)

    async def __aenter__(self) -> "PostgresTransaction":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self._closed:
            await self.rollback()


class PostgresProductRepository:
    """
    PostgreSQL implementation of the product store.

    Writes are a single ``INSERT ... ON CONFLICT`` statement so concurrent
    writes to the same sku serialize on the row lock.
    """

    def __init__(self, pool: Pool, metrics: Optional[CatalogMetrics] = None) -> None:
        """
        Initialize the repository.

        Args:
            pool: asyncpg connection pool.
            metrics: Optional metrics for query timing.
        """
        self._pool = pool
        self._metrics = metrics

    async def get_product(
        self,
        sku: str,
        scope: TransactionScope = NO_TRANSACTION,
    ) -> Product:
        """
        Get a product by sku.

        Args:
            sku: Stock-keeping code.
            scope: Transaction to read in, if any.

        Returns:
            The committed product (or the one written in ``scope``).

        Raises:
            DomainValidationError: If sku is empty.
            ProductNotFoundError: If no product has that sku.
            InfrastructureError: If the database fails.
        """
        if not sku:
            raise DomainValidationError("sku is required")

        query = "SELECT sku, upc, name FROM products WHERE sku = $1"
        with self._track("get_product"):
            try:
                if isinstance(scope, WithTransaction):
                    row = await self._connection_for(scope).fetchrow(query, sku)
                else:
                    async with self._pool.acquire() as conn:
                        row = await conn.fetchrow(query, sku)
            except DB_ERRORS as e:
                raise InfrastructureError("get_product", str(e), sku=sku) from e

        if row is None:
            raise ProductNotFoundError(sku)

        return self._row_to_entity(row)

    async def save_product(
        self,
        product: Product,
        scope: TransactionScope = NO_TRANSACTION,
    ) -> None:
        """
        Insert a product or overwrite upc and name of an existing one.

        Args:
            product: Product to persist.
            scope: Transaction to write in, if any.

        Raises:
            InfrastructureError: If the database fails.
        """
        query = """
            INSERT INTO products (sku, upc, name)
            VALUES ($1, $2, $3)
            ON CONFLICT (sku) DO UPDATE
               SET upc = EXCLUDED.upc,
                   name = EXCLUDED.name
        """
        with self._track("save_product"):
            try:
                if isinstance(scope, WithTransaction):
                    await self._connection_for(scope).execute(
                        query, product.sku, product.upc, product.name
                    )
                else:
                    async with self._pool.acquire() as conn:
                        await conn.execute(
                            query, product.sku, product.upc, product.name
                        )
            except DB_ERRORS as e:
                raise InfrastructureError(
                    "save_product", str(e), sku=product.sku
                ) from e

    async def begin_transaction(self) -> PostgresTransaction:
        """
        Start a transaction on a dedicated pooled connection.

        Returns:
            Transaction handle; the caller must commit or roll it back.

        Raises:
            InfrastructureError: If no connection or transaction can be obtained.
        """
        with self._track("begin_transaction"):
            try:
                conn = await self._pool.acquire()
            except DB_ERRORS as e:
                raise InfrastructureError("begin_transaction", str(e)) from e

            tx = conn.transaction()
            try:
                await tx.start()
            except DB_ERRORS as e:
                await self._pool.release(conn)
                raise InfrastructureError("begin_transaction", str(e)) from e
            except asyncio.CancelledError:
                await self._pool.release(conn)
                raise

        return PostgresTransaction(self._pool, conn, tx)

    def _connection_for(self, scope: WithTransaction) -> asyncpg.Connection:
        handle = scope.handle
        if not isinstance(handle, PostgresTransaction):
            raise TypeError(
                f"expected PostgresTransaction, got {type(handle).__name__}"
            )
        return handle.connection

    def _track(self, operation: str) -> ContextManager[None]:
        if self._metrics is None:
            return nullcontext()
        return self._metrics.track_query(operation)

    def _row_to_entity(self, row: asyncpg.Record) -> Product:
        return Product.from_dict(row)


async def create_pool(dsn: str, min_size: int = 10, max_size: int = 50) -> Pool:
    """
    Create an asyncpg connection pool.

    Args:
        dsn: Database connection string.
        min_size: Minimum pool size.
        max_size: Maximum pool size.

    Returns:
        asyncpg connection pool.
    """
    return await asyncpg.create_pool(
        dsn=dsn,
        min_size=min_size,
        max_size=max_size,
    )


async def connect_with_retry(
    dsn: str,
    min_size: int,
    max_size: int,
    attempts: int,
    delay_seconds: float,
) -> Pool:
    """
    Create the pool at startup, retrying while the database comes up.

    Args:
        dsn: Database connection string.
        min_size: Minimum pool size.
        max_size: Maximum pool size.
        attempts: Number of attempts before giving up.
        delay_seconds: Pause between attempts.

    Returns:
        asyncpg connection pool.
    """
    for attempt in range(1, attempts + 1):
        try:
            return await create_pool(dsn, min_size=min_size, max_size=max_size)
        except DB_ERRORS as e:
            if attempt == attempts:
                raise
            logger.error(
                "Failed to create connection pool, retrying",
                attempt=attempt,
                error=str(e),
            )
            await asyncio.sleep(delay_seconds)
    raise ValueError("attempts must be positive")
