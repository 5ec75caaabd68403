"""Product application service."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

import structlog

from catalog.domain.product import Product
from catalog.infrastructure.product_repository import ProductRepository

if TYPE_CHECKING:
    from shared_kernel.tenant_scope import TenantScope
    from tenancy.application.services import TenantService
    from tenancy.domain.tenant import Tenant
    from tenancy.infrastructure.router import ConnectionRouter

logger = structlog.get_logger()


class ProductService:
    """Product operations, each routed to the database of the given scope."""

    def __init__(self, router: ConnectionRouter, tenant_service: TenantService):
        self._router = router
        self._tenant_service = tenant_service

    def create_product(
        self,
        scope: TenantScope,
        name: str,
        price: Decimal,
        description: str | None = None,
    ) -> Product:
        with self._router.session(scope) as session, session.begin():
            return ProductRepository(session).save(
                Product(name=name, price=price, description=description)
            )

    def list_products(self, scope: TenantScope) -> list[Product]:
        with self._router.session(scope) as session:
            return ProductRepository(session).list_all()

    def count_products(self, scope: TenantScope) -> int:
        with self._router.session(scope) as session:
            return ProductRepository(session).count()

    def count_all_tenant_products(self) -> int:
        """Sum of the product counts of every active, live tenant."""

        def count(tenant: Tenant, scope: TenantScope) -> int:
            logger.info("counting_tenant_products")
            return self.count_products(scope)

        return sum(self._tenant_service.iterate_over_tenants(count).values())
