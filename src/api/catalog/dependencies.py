"""FastAPI dependencies of the catalog context."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from catalog.application.services import ProductService
from tenancy.application.services import TenantService
from tenancy.dependencies import get_connection_router, get_tenant_service
from tenancy.infrastructure.router import ConnectionRouter


def get_product_service(
    router: Annotated[ConnectionRouter, Depends(get_connection_router)],
    tenant_service: Annotated[TenantService, Depends(get_tenant_service)],
) -> ProductService:
    """Get ProductService instance routed through the live tenant pools."""
    return ProductService(router=router, tenant_service=tenant_service)
