"""
Data Transfer Objects for Catalog Service API.

Contains Pydantic models for request/response validation.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from internal.domain.product import Product


class CreateProductRequest(BaseModel):
    """Request body for creating a product."""

    sku: str = Field(..., min_length=1, description="Stock-keeping code")
    upc: str = Field(..., min_length=1, description="Universal product code")
    name: str = Field(..., min_length=1, description="Product name")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"sku": "sku1", "upc": "upc1", "name": "name1"}
        }
    )


class ProductResponse(BaseModel):
    """Response body for a product."""

    sku: str = Field(..., description="Stock-keeping code")
    upc: str = Field(..., description="Universal product code")
    name: str = Field(..., description="Product name")

    @classmethod
    def from_entity(cls, product: Product) -> "ProductResponse":
        """Build the response from a domain product."""
        return cls(sku=product.sku, upc=product.upc, name=product.name)


class ErrorResponse(BaseModel):
    """Error response body."""

    detail: str
    code: str
    request_id: Optional[str] = None
