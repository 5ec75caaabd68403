"""Routing of a unit of work to the database of its tenant."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Iterator

from sqlalchemy.orm import Session

from tenancy.ports.exceptions import RoutingError, ScopeExitedError

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from infrastructure.database.pool import DatabasePool
    from shared_kernel.tenant_scope import TenantScope
    from tenancy.infrastructure.live_tenants import LiveTenantMap

__all__ = ["ConnectionRouter"]


class ConnectionRouter:
    """Resolves the pool serving a tenant scope.

    Without a scope the management database serves the call. With a scope
    the tenant's live pool does; a scope naming a tenant without a live
    entry is a RoutingError rather than a silent fallback. Resolution only
    reads the live map and never touches the database.
    """

    def __init__(self, live: LiveTenantMap, management_pool: DatabasePool):
        self._live = live
        self._management_pool = management_pool

    @property
    def management_pool(self) -> DatabasePool:
        return self._management_pool

    def resolve(self, scope: TenantScope | None = None) -> DatabasePool:
        """Return the pool for ``scope``, or the management pool for None.

        Raises:
            ScopeExitedError: If the scope's operation already returned
            RoutingError: If the scope's tenant has no live pool
        """
        if scope is None:
            return self._management_pool

        if not scope.active:
            raise ScopeExitedError(
                f"Tenant scope [{scope.tenant_code}] was used after it exited",
                tenant_code=scope.tenant_code,
            )

        entry = self._live.get(scope.tenant_code)
        if entry is None:
            raise RoutingError(
                f"No live database for tenant [{scope.tenant_code}]",
                tenant_code=scope.tenant_code,
            )
        return entry.pool

    def engine(self, scope: TenantScope | None = None) -> Engine:
        return self.resolve(scope).engine

    @contextlib.contextmanager
    def session(self, scope: TenantScope | None = None) -> Iterator[Session]:
        """ORM session bound to the pool resolved for ``scope``."""
        with Session(bind=self.engine(scope), expire_on_commit=False) as session:
            yield session
