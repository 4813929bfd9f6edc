"""
Unit tests for the catalog service create and lookup workflows.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from internal.domain.errors import (
    DomainValidationError,
    EventPublishError,
    InfrastructureError,
    ProductNotFoundError,
    RollbackError,
)
from internal.domain.product import Product
from internal.domain.transaction import NO_TRANSACTION, WithTransaction
from internal.infrastructure.memory.repository import InMemoryProductRepository
from internal.usecase.catalog_service import (
    CatalogService,
    CreateProductInput,
)


@pytest.fixture
def mock_transaction():
    """Create a mock transaction handle."""
    tx = MagicMock()
    tx.commit = AsyncMock()
    tx.rollback = AsyncMock()
    return tx


@pytest.fixture
def mock_store(mock_transaction):
    """Create a mock store with an empty catalog."""
    store = MagicMock()
    store.get_product = AsyncMock(side_effect=ProductNotFoundError("sku1"))
    store.save_product = AsyncMock()
    store.begin_transaction = AsyncMock(return_value=mock_transaction)
    return store


@pytest.fixture
def mock_notifier():
    """Create a mock notifier."""
    notifier = MagicMock()
    notifier.publish_product = AsyncMock()
    return notifier


@pytest.fixture
def create_input(product_data):
    """Input for creating the sample product."""
    return CreateProductInput(**product_data)


def assert_no_store_calls(store):
    store.get_product.assert_not_awaited()
    store.save_product.assert_not_awaited()
    store.begin_transaction.assert_not_awaited()


class TestCreateProduct:
    """Tests for CatalogService.create_product."""

    @pytest.mark.asyncio
    async def test_create_new_product(self, memory_store, create_input, product):
        """Test that a new product is stored and can be read back."""
        service = CatalogService(store=memory_store)

        result = await service.create_product(create_input)

        assert result.created is True
        assert result.product == product
        assert await service.get_product("sku1") == Product(
            sku="sku1", upc="upc1", name="name1"
        )

    @pytest.mark.asyncio
    async def test_create_writes_inside_transaction_and_commits(
        self, mock_store, mock_transaction, create_input, product
    ):
        """Test the write joins the transaction which is then committed."""
        service = CatalogService(store=mock_store)

        await service.create_product(create_input)

        mock_store.get_product.assert_awaited_once_with("sku1")
        mock_store.save_product.assert_awaited_once_with(
            product, WithTransaction(mock_transaction)
        )
        mock_transaction.commit.assert_awaited_once()
        mock_transaction.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_is_idempotent(self, memory_store, create_input):
        """Test that creating twice stores one record and both calls succeed."""
        service = CatalogService(store=memory_store)

        first = await service.create_product(create_input)
        second = await service.create_product(create_input)

        assert first.created is True
        assert second.created is False
        assert len(memory_store) == 1

    @pytest.mark.asyncio
    async def test_create_existing_sku_does_not_update(self, memory_store):
        """Test that an existing sku short-circuits without writing."""
        original = Product(sku="sku1", upc="upc1", name="name1")
        await memory_store.save_product(original)
        memory_store.save_product = AsyncMock(wraps=memory_store.save_product)
        memory_store.begin_transaction = AsyncMock(wraps=memory_store.begin_transaction)
        service = CatalogService(store=memory_store)

        result = await service.create_product(
            CreateProductInput(sku="sku1", upc="upc2", name="other name")
        )

        assert result.created is False
        assert result.product == original
        memory_store.save_product.assert_not_awaited()
        memory_store.begin_transaction.assert_not_awaited()
        assert await memory_store.get_product("sku1") == original

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field_name", ["sku", "upc", "name"])
    async def test_create_with_empty_field_fails_without_store_calls(
        self, mock_store, product_data, field_name
    ):
        """Test that validation happens before any store interaction."""
        product_data[field_name] = ""
        service = CatalogService(store=mock_store)

        with pytest.raises(DomainValidationError):
            await service.create_product(CreateProductInput(**product_data))

        assert_no_store_calls(mock_store)

    @pytest.mark.asyncio
    async def test_existence_check_failure_is_infrastructure_error(
        self, mock_store, create_input
    ):
        """Test that a connectivity failure is not mistaken for not-found."""
        cause = ConnectionRefusedError("connection refused")
        mock_store.get_product.side_effect = cause
        service = CatalogService(store=mock_store)

        with pytest.raises(InfrastructureError) as exc_info:
            await service.create_product(create_input)

        assert not isinstance(exc_info.value, ProductNotFoundError)
        assert exc_info.value.sku == "sku1"
        assert exc_info.value.__cause__ is cause
        mock_store.begin_transaction.assert_not_awaited()
        mock_store.save_product.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_existence_check_infrastructure_error_passes_through(
        self, mock_store, create_input
    ):
        """Test that an already classified store error is not re-wrapped."""
        error = InfrastructureError("get_product", "timeout", sku="sku1")
        mock_store.get_product.side_effect = error
        service = CatalogService(store=mock_store)

        with pytest.raises(InfrastructureError) as exc_info:
            await service.create_product(create_input)

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_begin_transaction_failure(self, mock_store, create_input):
        """Test that a failure to open a transaction is reported."""
        mock_store.begin_transaction.side_effect = OSError("pool exhausted")
        service = CatalogService(store=mock_store)

        with pytest.raises(InfrastructureError) as exc_info:
            await service.create_product(create_input)

        assert exc_info.value.operation == "begin_transaction"
        mock_store.save_product.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_write_failure_rolls_back(
        self, mock_store, mock_transaction, create_input
    ):
        """Test that a failed write rolls back and propagates the write error."""
        error = InfrastructureError("save_product", "disk full", sku="sku1")
        mock_store.save_product.side_effect = error
        service = CatalogService(store=mock_store)

        with pytest.raises(InfrastructureError) as exc_info:
            await service.create_product(create_input)

        assert exc_info.value is error
        mock_transaction.rollback.assert_awaited_once()
        mock_transaction.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unclassified_write_failure_is_wrapped(
        self, mock_store, mock_transaction, create_input
    ):
        """Test that a raw driver error from the write is wrapped with context."""
        cause = RuntimeError("driver exploded")
        mock_store.save_product.side_effect = cause
        service = CatalogService(store=mock_store)

        with pytest.raises(InfrastructureError) as exc_info:
            await service.create_product(create_input)

        assert exc_info.value.operation == "save_product"
        assert exc_info.value.__cause__ is cause
        mock_transaction.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_commit_failure_rolls_back(
        self, mock_store, mock_transaction, create_input
    ):
        """Test that a failed commit rolls back and propagates the commit error."""
        error = InfrastructureError("commit", "serialization failure")
        mock_transaction.commit.side_effect = error
        service = CatalogService(store=mock_store)

        with pytest.raises(InfrastructureError) as exc_info:
            await service.create_product(create_input)

        assert exc_info.value is error
        mock_transaction.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rollback_failure_does_not_mask_cause(
        self, mock_store, mock_transaction, create_input, metrics
    ):
        """Test that the caller sees the write error, not the rollback error."""
        error = InfrastructureError("save_product", "disk full", sku="sku1")
        mock_store.save_product.side_effect = error
        mock_transaction.rollback.side_effect = RollbackError("connection lost")
        service = CatalogService(store=mock_store, metrics=metrics)

        with pytest.raises(InfrastructureError) as exc_info:
            await service.create_product(create_input)

        assert exc_info.value is error
        assert metrics.registry.get_sample_value(
            "catalog_rollback_failures_total"
        ) == 1.0

    @pytest.mark.asyncio
    async def test_failed_write_leaves_no_partial_record(self, create_input):
        """Test atomicity: a write that fails after staging is not visible."""

        class FailingStore(InMemoryProductRepository):
            async def save_product(self, product, scope=NO_TRANSACTION):
                await super().save_product(product, scope)
                raise InfrastructureError("save_product", "constraint", sku=product.sku)

        store = FailingStore()
        service = CatalogService(store=store)

        with pytest.raises(InfrastructureError):
            await service.create_product(create_input)

        with pytest.raises(ProductNotFoundError):
            await service.get_product("sku1")

    @pytest.mark.asyncio
    async def test_failed_write_keeps_previous_record(self):
        """Test atomicity: a previously stored record is left unchanged."""

        class FailingStore(InMemoryProductRepository):
            fail = False

            async def get_product(self, sku, scope=NO_TRANSACTION):
                if self.fail:
                    raise ProductNotFoundError(sku)
                return await super().get_product(sku, scope)

            async def save_product(self, product, scope=NO_TRANSACTION):
                await super().save_product(product, scope)
                if self.fail:
                    raise InfrastructureError("save_product", "constraint", sku=product.sku)

        store = FailingStore()
        original = Product(sku="sku1", upc="upc1", name="name1")
        await store.save_product(original)
        store.fail = True
        service = CatalogService(store=store)

        with pytest.raises(InfrastructureError):
            await service.create_product(
                CreateProductInput(sku="sku1", upc="upc2", name="name2")
            )

        store.fail = False
        assert await store.get_product("sku1") == original

    @pytest.mark.asyncio
    async def test_cancelled_write_rolls_back(
        self, mock_store, mock_transaction, create_input
    ):
        """Test that cancellation during the write rolls back and re-raises."""
        mock_store.save_product.side_effect = asyncio.CancelledError()
        service = CatalogService(store=mock_store)

        with pytest.raises(asyncio.CancelledError):
            await service.create_product(create_input)

        mock_transaction.rollback.assert_awaited_once()
        mock_transaction.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancelled_commit_rolls_back(
        self, mock_store, mock_transaction, mock_notifier, create_input
    ):
        """Test that cancellation during commit rolls back and re-raises."""
        mock_transaction.commit.side_effect = asyncio.CancelledError()
        service = CatalogService(store=mock_store, notifier=mock_notifier)

        with pytest.raises(asyncio.CancelledError):
            await service.create_product(create_input)

        mock_transaction.commit.assert_awaited_once()
        mock_transaction.rollback.assert_awaited_once()
        mock_notifier.publish_product.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_deadline_covers_store_phase(self, create_input):
        """Test that an expired deadline rolls back and leaves no record."""
        transactions = []

        class SlowWriteStore(InMemoryProductRepository):
            async def begin_transaction(self):
                tx = await super().begin_transaction()
                transactions.append(tx)
                return tx

            async def save_product(self, product, scope=NO_TRANSACTION):
                await super().save_product(product, scope)
                await asyncio.sleep(10)

        store = SlowWriteStore()
        service = CatalogService(store=store)

        with pytest.raises(asyncio.TimeoutError):
            await service.create_product(create_input, timeout=0.05)

        assert transactions[0].closed
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_timeout_aborts_open_transaction(self, create_input):
        """Test that a caller timeout leaves no open transaction or record."""
        transactions = []

        class SlowStore(InMemoryProductRepository):
            async def begin_transaction(self):
                tx = await super().begin_transaction()
                transactions.append(tx)
                return tx

            async def save_product(self, product, scope=NO_TRANSACTION):
                await super().save_product(product, scope)
                await asyncio.sleep(10)

        store = SlowStore()
        service = CatalogService(store=store)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(service.create_product(create_input), timeout=0.05)

        assert len(transactions) == 1
        assert transactions[0].closed
        assert len(store) == 0


class TestCreateProductNotification:
    """Tests for publishing after a successful create."""

    @pytest.mark.asyncio
    async def test_publishes_new_product_after_commit(
        self, mock_store, mock_transaction, mock_notifier, create_input, product
    ):
        """Test that a committed new product is published once."""
        calls = []
        mock_transaction.commit.side_effect = lambda: calls.append("commit")
        mock_notifier.publish_product.side_effect = lambda p: calls.append("publish")
        service = CatalogService(store=mock_store, notifier=mock_notifier)

        await service.create_product(create_input)

        mock_notifier.publish_product.assert_awaited_once_with(product)
        assert calls == ["commit", "publish"]

    @pytest.mark.asyncio
    async def test_existing_product_is_not_published(
        self, memory_store, mock_notifier, create_input, product
    ):
        """Test that the short-circuit path does not publish."""
        await memory_store.save_product(product)
        service = CatalogService(store=memory_store, notifier=mock_notifier)

        await service.create_product(create_input)

        mock_notifier.publish_product.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_write_is_not_published(
        self, mock_store, mock_notifier, create_input
    ):
        """Test that nothing is published when the write fails."""
        mock_store.save_product.side_effect = InfrastructureError(
            "save_product", "disk full", sku="sku1"
        )
        service = CatalogService(store=mock_store, notifier=mock_notifier)

        with pytest.raises(InfrastructureError):
            await service.create_product(create_input)

        mock_notifier.publish_product.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_failure_keeps_committed_write(
        self, memory_store, mock_notifier, create_input, product, metrics
    ):
        """Test that a publish failure is reported but not propagated."""
        mock_notifier.publish_product.side_effect = EventPublishError(
            "sku1", "broker unavailable"
        )
        service = CatalogService(
            store=memory_store, notifier=mock_notifier, metrics=metrics
        )

        result = await service.create_product(create_input)

        assert result.created is True
        assert await memory_store.get_product("sku1") == product
        assert metrics.registry.get_sample_value(
            "catalog_publish_failures_total"
        ) == 1.0
        assert metrics.registry.get_sample_value(
            "catalog_products_created_total"
        ) == 1.0

    @pytest.mark.asyncio
    async def test_slow_publish_is_bounded_and_counted(
        self, memory_store, create_input, product, metrics
    ):
        """Test that a publish exceeding its timeout does not fail the create."""
        notifier = MagicMock()

        async def slow_publish(_product):
            await asyncio.sleep(5)

        notifier.publish_product = AsyncMock(side_effect=slow_publish)
        service = CatalogService(
            store=memory_store,
            notifier=notifier,
            metrics=metrics,
            publish_timeout_seconds=0.05,
        )

        result = await service.create_product(create_input, timeout=0.05)

        assert result.created is True
        assert await memory_store.get_product("sku1") == product
        assert metrics.registry.get_sample_value(
            "catalog_publish_failures_total"
        ) == 1.0


class TestGetProduct:
    """Tests for CatalogService.get_product."""

    @pytest.mark.asyncio
    async def test_get_existing_product(self, memory_store, product):
        """Test that a stored product is returned."""
        await memory_store.save_product(product)
        service = CatalogService(store=memory_store)

        assert await service.get_product("sku1") == product

    @pytest.mark.asyncio
    async def test_get_absent_product_raises_not_found(self, memory_store):
        """Test that absence is reported as not found, not as a failure."""
        service = CatalogService(store=memory_store)

        with pytest.raises(ProductNotFoundError) as exc_info:
            await service.get_product("absent-code")

        assert not isinstance(exc_info.value, InfrastructureError)
        assert exc_info.value.sku == "absent-code"

    @pytest.mark.asyncio
    async def test_get_with_empty_sku_fails_without_store_calls(self, mock_store):
        """Test that an empty sku is rejected before the store is touched."""
        service = CatalogService(store=mock_store)

        with pytest.raises(DomainValidationError):
            await service.get_product("")

        assert_no_store_calls(mock_store)

    @pytest.mark.asyncio
    async def test_get_store_failure_is_wrapped_with_sku(self, mock_store):
        """Test that an unclassified store failure carries the sku."""
        cause = OSError("network unreachable")
        mock_store.get_product.side_effect = cause
        service = CatalogService(store=mock_store)

        with pytest.raises(InfrastructureError) as exc_info:
            await service.get_product("sku1")

        assert exc_info.value.sku == "sku1"
        assert exc_info.value.operation == "get_product"
        assert exc_info.value.__cause__ is cause

    @pytest.mark.asyncio
    async def test_get_infrastructure_error_passes_through(self, mock_store):
        """Test that a classified store error is propagated unchanged."""
        error = InfrastructureError("get_product", "timeout", sku="sku1")
        mock_store.get_product.side_effect = error
        service = CatalogService(store=mock_store)

        with pytest.raises(InfrastructureError) as exc_info:
            await service.get_product("sku1")

        assert exc_info.value is error
