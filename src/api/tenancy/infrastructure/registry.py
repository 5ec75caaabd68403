"""Live tenant registry and reconciliation against the tenant table."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Mapping

from tenancy.domain.tenant import Tenant
from tenancy.infrastructure.observability import DefaultRegistryProbe, RegistryProbe
from tenancy.infrastructure.provisioner import ProvisioningFailure

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext
    from tenancy.infrastructure.live_tenants import LiveTenant, LiveTenantMap
    from tenancy.infrastructure.provisioner import TenantProvisioner

__all__ = ["TenantRegistry"]


class TenantRegistry:
    """Keeps the live tenant pools in agreement with a desired tenant set.

    Reconciliation first closes every live pool whose tenant is no longer
    desired, then provisions the desired tenants. With parallel provisioning
    enabled, each tenant is provisioned by its own task on a bounded thread
    pool; a failing tenant is logged and left out of the result without
    affecting the others.
    """

    def __init__(
        self,
        live: LiveTenantMap,
        provisioner: TenantProvisioner,
        parallel: bool = True,
        max_workers: int = 8,
        probe: RegistryProbe | None = None,
    ):
        self._live = live
        self._provisioner = provisioner
        self._parallel = parallel
        self._max_workers = max_workers
        self._probe = probe or DefaultRegistryProbe()

    def reconcile(
        self,
        desired: Mapping[str, Tenant],
        context: ObservationContext | None = None,
    ) -> list[Tenant]:
        """Make the live set equal to the provisionable subset of ``desired``.

        Args:
            desired: Tenants that should be live, keyed by code
            context: Observation context of the run, e.g. its trigger

        Returns:
            The desired tenants that are live afterwards
        """
        live_codes = self._live.codes()
        parallel = self._parallel and len(desired) > 1
        probe = self._probe if context is None else self._probe.with_context(context)
        probe.reconciliation_started(list(desired), list(live_codes), parallel)

        for code in live_codes - set(desired):
            self._close(code)

        tenants = list(desired.values())
        if parallel:
            results = self._provision_in_parallel(tenants)
        else:
            results = [self._provisioner.provision(tenant) for tenant in tenants]

        provisioned = [result for result in results if isinstance(result, Tenant)]
        failed = [
            result.tenant_code
            for result in results
            if isinstance(result, ProvisioningFailure)
        ]
        probe.reconciliation_completed(
            [tenant.code for tenant in provisioned], failed
        )
        return provisioned

    def add_one(self, tenant: Tenant) -> Tenant:
        """Provision a single tenant outside a full reconciliation.

        Raises:
            ProvisioningError: If the tenant's database or pool failed
            MigrationError: If a migration scope failed after its retry
        """
        result = self._provisioner.provision(tenant)
        if isinstance(result, ProvisioningFailure):
            result.raise_error()
        return result

    def remove_one(self, tenant: Tenant | str) -> bool:
        """Close and forget a tenant's pool, whether or not it still exists upstream.

        Returns:
            True if a live entry was removed
        """
        code = tenant if isinstance(tenant, str) else tenant.code
        return self._close(code)

    def close_all(self) -> None:
        """Close every live pool (application shutdown)."""
        for code in self._live.codes():
            self._close(code)

    def get(self, code: str) -> LiveTenant | None:
        return self._live.get(code)

    def codes(self) -> set[str]:
        return self._live.codes()

    def __contains__(self, code: object) -> bool:
        return code in self._live

    def _provision_in_parallel(
        self, tenants: list[Tenant]
    ) -> list[Tenant | ProvisioningFailure]:
        workers = max(1, min(self._max_workers, len(tenants)))
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="tenant-provisioning"
        ) as executor:
            return list(executor.map(self._provisioner.provision, tenants))

    def _close(self, code: str) -> bool:
        with self._live.lock_for(code):
            entry = self._live.pop(code)
            if entry is None:
                return False
            entry.pool.close()

        self._probe.tenant_removed(code, entry.pool.database)
        return True
