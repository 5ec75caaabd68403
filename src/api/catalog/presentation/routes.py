"""HTTP routes for products.

``/v1/products`` is tenant-scoped and requires the ``X-Tenant-Code``
header. ``/v1/general`` runs across every live tenant and takes no header.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from catalog.application.services import ProductService
from catalog.dependencies import get_product_service
from catalog.presentation.models import (
    CreateProductRequest,
    ProductCountResponse,
    ProductResponse,
)
from shared_kernel.tenant_scope import TenantScope
from tenancy.dependencies import get_tenant_scope

router = APIRouter(
    prefix="/v1/products",
    tags=["products"],
)

general_router = APIRouter(
    prefix="/v1/general",
    tags=["general"],
)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
)
def create_product(
    request: CreateProductRequest,
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    service: Annotated[ProductService, Depends(get_product_service)],
) -> ProductResponse:
    """Create a product in the requesting tenant's database."""
    product = service.create_product(
        scope,
        name=request.name,
        price=request.price,
        description=request.description,
    )
    return ProductResponse.from_domain(product)


@router.get("")
def list_products(
    scope: Annotated[TenantScope, Depends(get_tenant_scope)],
    service: Annotated[ProductService, Depends(get_product_service)],
) -> list[ProductResponse]:
    """List the products of the requesting tenant."""
    return [ProductResponse.from_domain(p) for p in service.list_products(scope)]


@general_router.get("/products/count")
def count_all_products(
    service: Annotated[ProductService, Depends(get_product_service)],
) -> ProductCountResponse:
    """Count products across every active tenant."""
    return ProductCountResponse(count=service.count_all_tenant_products())
