"""
Transaction scoping for store operations.

A store operation either joins a caller-supplied transaction
(``WithTransaction``) or runs as its own atomic unit (``NoTransaction``).
"""
from dataclasses import dataclass
from typing import Protocol, Union


class Transaction(Protocol):
    """
    Scoped unit-of-work handle obtained from a store.

    Exactly one of ``commit`` or ``rollback`` must be awaited per handle.
    """

    async def commit(self) -> None:
        """Make all writes of the transaction durable."""
        ...

    async def rollback(self) -> None:
        """Discard all writes of the transaction."""
        ...


@dataclass(frozen=True)
class NoTransaction:
    """Run the operation in an implicit single-operation transaction."""


@dataclass(frozen=True)
class WithTransaction:
    """Run the operation inside an explicit transaction."""

    handle: Transaction


TransactionScope = Union[NoTransaction, WithTransaction]

NO_TRANSACTION = NoTransaction()
