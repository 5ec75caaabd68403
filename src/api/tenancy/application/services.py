"""Tenant application service.

Coordinates the tenant table (management database) with the live tenant
registry: creating, enabling and disabling tenants, loading the active set
at startup and on revalidation, and running work inside a tenant scope.
"""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Callable, Iterator, TypeVar

from shared_kernel.observability_context import ObservationContext
from shared_kernel.tenant_scope import TenantScope, run_scoped, tenant_scope
from tenancy.application.observability import (
    DefaultTenantServiceProbe,
    TenantServiceProbe,
)
from tenancy.domain.tenant import Tenant, normalize_code
from tenancy.infrastructure.tenant_repository import TenantRepository
from tenancy.ports.exceptions import TenantNotFoundError, TenantValidationError

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker

    from tenancy.infrastructure.registry import TenantRegistry
    from tenancy.ports.repositories import ITenantRepository

T = TypeVar("T")

RepositoryFactory = Callable[["Session"], "ITenantRepository"]


class TenantService:
    """Application service for tenant management and tenant-scoped execution.

    One instance is built at startup and shared by the HTTP layer and the
    revalidation worker. Every call opens its own management session, so the
    service holds no per-request state.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        registry: TenantRegistry,
        repository_factory: RepositoryFactory = TenantRepository,
        probe: TenantServiceProbe | None = None,
    ):
        """Initialize TenantService with dependencies.

        Args:
            session_factory: Factory of sessions bound to the management database
            registry: Live tenant registry
            repository_factory: Builds a tenant repository for a session
            probe: Optional domain probe for observability
        """
        self._session_factory = session_factory
        self._registry = registry
        self._repository_factory = repository_factory
        self._probe = probe or DefaultTenantServiceProbe()

    def load_tenants(self, trigger: str = "startup") -> list[Tenant]:
        """Reconcile the live registry with the active tenants of the tenant table.

        Never fails because of individual tenants: the ones that could not be
        provisioned are logged by the registry and left out of the result.

        Returns:
            The tenants that are live afterwards
        """
        with self._session_factory() as session:
            active = self._repository_factory(session).list_by_active(True)

        context = ObservationContext(trigger=trigger)
        probe = self._probe.with_context(context)
        if not active:
            probe.no_active_tenants()

        loaded = self._registry.reconcile(
            {tenant.code: tenant for tenant in active}, context=context
        )
        probe.tenants_loaded([tenant.code for tenant in loaded])
        return loaded

    def revalidate_tenants(self, trigger: str = "api") -> list[Tenant]:
        """Catch up with tenants enabled or disabled directly in the tenant table."""
        return self.load_tenants(trigger=trigger)

    def create_tenant(self, code: str, name: str) -> Tenant:
        """Create an active tenant and provision its database.

        The row is committed before the pool goes live, so a revalidation
        reading the table in between never sees a live tenant without a
        row. If provisioning fails the row is deleted again.

        Raises:
            TenantValidationError: If the code or name is malformed
            TenantAlreadyExistsError: If the code or name is taken
            ProvisioningError: If the database or pool could not be set up
            MigrationError: If a migration scope failed after its retry
        """
        tenant = Tenant.create(code=code, name=name)
        with self._session_factory.begin() as session:
            saved = self._repository_factory(session).save(tenant)

        try:
            self._registry.add_one(saved)
        except Exception:
            self._discard(saved.code)
            raise

        self._probe.tenant_created(saved.code, saved.name)
        return saved

    def _discard(self, code: str) -> None:
        """Undo a creation whose provisioning failed."""
        with self._session_factory.begin() as session:
            self._repository_factory(session).delete(code)
        # A concurrent revalidation may have made the row live meanwhile
        self._registry.remove_one(code)

    def list_tenants(self) -> list[Tenant]:
        with self._session_factory() as session:
            return self._repository_factory(session).list_all()

    def enable_tenant(self, code: str) -> Tenant:
        """Mark a tenant active and make it live, reusing a pool that is still open.

        Raises:
            TenantNotFoundError: If the code is not in the tenant table
            ProvisioningError: If the tenant could not be provisioned (the
                activation is rolled back)
            MigrationError: If a migration scope failed after its retry
        """
        code = normalize_code(code)
        with self._session_factory.begin() as session:
            tenant = self._repository_factory(session).set_active(code, True)
            if tenant is None:
                self._probe.tenant_not_found(code)
                raise TenantNotFoundError(code)
            self._registry.add_one(tenant)

        self._probe.tenant_enabled(code)
        return tenant

    def disable_tenant(self, code: str) -> Tenant:
        """Mark a tenant inactive and close its live pool.

        Raises:
            TenantNotFoundError: If the code is not in the tenant table
        """
        code = normalize_code(code)
        with self._session_factory.begin() as session:
            tenant = self._repository_factory(session).set_active(code, False)
            if tenant is None:
                self._probe.tenant_not_found(code)
                raise TenantNotFoundError(code)

        self._registry.remove_one(tenant)
        self._probe.tenant_disabled(code)
        return tenant

    def tenant_exists_by_active(self, code: str, active: bool | None = True) -> bool:
        """Whether the tenant table holds ``code`` (with the given flag unless None)."""
        try:
            code = normalize_code(code)
        except TenantValidationError:
            return False

        with self._session_factory() as session:
            tenant = self._repository_factory(session).get_by_code(code)
        return tenant is not None and (active is None or tenant.active == active)

    def is_live(self, code: str) -> bool:
        return code in self._registry

    @contextlib.contextmanager
    def tenant_scope(self, code: str) -> Iterator[TenantScope]:
        """Scope for a live tenant, deactivated when the block exits.

        Raises:
            TenantValidationError: If the tenant has no live pool
        """
        code = self._require_live(code)
        with tenant_scope(code) as scope:
            yield scope

    def run_with_tenant(self, code: str, operation: Callable[[TenantScope], T]) -> T:
        """Run ``operation`` inside its own scope for a live tenant.

        Raises:
            TenantValidationError: If the tenant has no live pool
        """
        code = self._require_live(code)
        return run_scoped(code, operation)

    def iterate_over_tenants(
        self, consumer: Callable[[Tenant, TenantScope], T]
    ) -> dict[str, T]:
        """Run ``consumer`` once per active, live tenant, each in its own scope.

        Active tenants without a live pool are skipped.

        Returns:
            The consumer's result per tenant code
        """
        with self._session_factory() as session:
            tenants = self._repository_factory(session).list_by_active(True)

        results: dict[str, T] = {}
        for tenant in tenants:
            if not self.is_live(tenant.code):
                self._probe.tenant_iteration_skipped(tenant.code)
                continue
            try:
                results[tenant.code] = self.run_with_tenant(
                    tenant.code, lambda scope, tenant=tenant: consumer(tenant, scope)
                )
            except TenantValidationError:
                # Removed between the check and the call
                self._probe.tenant_iteration_skipped(tenant.code)
        return results

    def _require_live(self, code: str) -> str:
        code = normalize_code(code)
        if not self.is_live(code):
            self._probe.tenant_not_live(code)
            raise TenantValidationError(
                f"Tenant [{code}] is not active", tenant_code=code
            )
        return code
