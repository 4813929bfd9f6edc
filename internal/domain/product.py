"""
Domain model for catalog Products.

A Product is a SKU able to be produced by the factory.
"""
from dataclasses import dataclass
from typing import Any, Mapping

from .errors import DomainValidationError


@dataclass(frozen=True)
class Product:
    """
    Product value object, identified by its stock-keeping code.

    Attributes:
        sku: Stock-keeping code, unique across the catalog.
        upc: Universal product code (secondary identifier).
        name: Display name.
    """
    sku: str
    upc: str
    name: str

    def __post_init__(self) -> None:
        """Validate domain invariants after initialization."""
        self._validate()

    def _validate(self) -> None:
        """
        Validate domain invariants.

        Raises:
            DomainValidationError: If any field is missing or empty.
        """
        missing = [
            field_name
            for field_name in ("sku", "upc", "name")
            if not isinstance(getattr(self, field_name), str)
            or not getattr(self, field_name)
        ]
        if missing:
            raise DomainValidationError(
                f"missing required field(s): {', '.join(missing)}"
            )

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "sku": self.sku,
            "upc": self.upc,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Product":
        """
        Build a product from a mapping such as a decoded message or a row.

        Args:
            data: Mapping with ``sku``, ``upc`` and ``name`` keys.

        Returns:
            Validated Product.

        Raises:
            DomainValidationError: If a key is missing or empty.
        """
        return cls(
            sku=data.get("sku", ""),
            upc=data.get("upc", ""),
            name=data.get("name", ""),
        )
