"""
FastAPI HTTP Handlers for Catalog Service API v1.

Implements the product create and lookup endpoints.
"""

import asyncio
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from internal.domain.errors import (
    DomainValidationError,
    InfrastructureError,
    ProductNotFoundError,
)
from internal.transport.http.dto import (
    CreateProductRequest,
    ErrorResponse,
    ProductResponse,
)
from internal.usecase.catalog_service import CatalogService, CreateProductInput
from pkg.logger.logger import get_logger, get_request_id

logger = get_logger(__name__)


router = APIRouter(prefix="/api/product", tags=["products"])


# Dependency injection container (simplified)
class Dependencies:
    """Container for handler dependencies."""

    catalog_service: Optional[CatalogService] = None
    request_timeout_seconds: float = 10.0


_deps = Dependencies()


def set_dependencies(
    catalog_service: Optional[CatalogService],
    request_timeout_seconds: float = 10.0,
) -> None:
    """
    Set handler dependencies.

    Called during application startup.
    """
    _deps.catalog_service = catalog_service
    _deps.request_timeout_seconds = request_timeout_seconds


def get_catalog_service() -> CatalogService:
    """Get CatalogService instance."""
    if _deps.catalog_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return _deps.catalog_service


def error_response(status_code: int, detail: str, code: str) -> JSONResponse:
    """Render an ErrorResponse body with the current request ID."""
    body = ErrorResponse(detail=detail, code=code, request_id=get_request_id())
    return JSONResponse(status_code=status_code, content=body.model_dump())


def invalid_request(detail: str) -> JSONResponse:
    return error_response(status.HTTP_400_BAD_REQUEST, detail, "invalid_request")


def internal_error() -> JSONResponse:
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal server error",
        "internal_error",
    )


def timeout_error() -> JSONResponse:
    return error_response(
        status.HTTP_504_GATEWAY_TIMEOUT,
        "request timed out",
        "timeout",
    )


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Report malformed request bodies as 400 invalid_request."""
    fields = sorted({
        str(error["loc"][-1])
        for error in exc.errors()
        if error.get("loc")
    })
    detail = "invalid request"
    if fields:
        detail = f"missing or invalid field(s): {', '.join(fields)}"
    logger.warning("Invalid request", path=request.url.path, error=detail)
    return invalid_request(detail)


# Handlers
@router.put(
    "/v1",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Product accepted"},
        400: {"model": ErrorResponse, "description": "Validation error"},
        500: {"model": ErrorResponse, "description": "Internal error"},
        504: {"model": ErrorResponse, "description": "Request timed out"},
    },
)
@router.put(
    "/v1/",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    include_in_schema=False,
)
async def create_product(
    request: CreateProductRequest,
    service: CatalogService = Depends(get_catalog_service),
) -> Union[ProductResponse, JSONResponse]:
    """
    Create a product.

    An existing sku is accepted without being overwritten. The request
    deadline covers the store phase only; publishing is bounded separately.

    Args:
        request: Product creation request.
        service: Injected catalog service.

    Returns:
        The accepted product.
    """
    input_dto = CreateProductInput(sku=request.sku, upc=request.upc, name=request.name)

    try:
        result = await service.create_product(
            input_dto,
            timeout=_deps.request_timeout_seconds,
        )
    except DomainValidationError as e:
        logger.warning("Validation error", error=e.message)
        return invalid_request(e.message)
    except InfrastructureError as e:
        logger.error("Failed to create product", sku=request.sku, error=e.message)
        return internal_error()
    except asyncio.TimeoutError:
        logger.error("Timed out creating product", sku=request.sku)
        return timeout_error()

    return ProductResponse.from_entity(result.product)


@router.get(
    "/v1/{sku}",
    response_model=ProductResponse,
    responses={
        200: {"description": "Product found"},
        400: {"model": ErrorResponse, "description": "Validation error"},
        404: {"model": ErrorResponse, "description": "Product not found"},
        500: {"model": ErrorResponse, "description": "Internal error"},
        504: {"model": ErrorResponse, "description": "Request timed out"},
    },
)
async def get_product(
    sku: str,
    service: CatalogService = Depends(get_catalog_service),
) -> Union[ProductResponse, JSONResponse]:
    """
    Get a product by sku.

    Args:
        sku: Stock-keeping code.
        service: Injected catalog service.

    Returns:
        Product data.
    """
    try:
        product = await asyncio.wait_for(
            service.get_product(sku),
            timeout=_deps.request_timeout_seconds,
        )
    except DomainValidationError as e:
        return invalid_request(e.message)
    except ProductNotFoundError:
        return error_response(
            status.HTTP_404_NOT_FOUND,
            f"Product {sku} not found",
            "not_found",
        )
    except InfrastructureError as e:
        logger.error("Error acquiring product", sku=sku, error=e.message)
        return internal_error()
    except asyncio.TimeoutError:
        logger.error("Timed out getting product", sku=sku)
        return timeout_error()

    return ProductResponse.from_entity(product)


@router.get("/health")
async def health_check() -> dict:
    """
    Health check endpoint.

    Returns:
        Health status.
    """
    return {"status": "healthy", "service": "catalog-service"}
