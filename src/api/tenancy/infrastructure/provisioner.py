"""Provisioning of one tenant database and its connection pool."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, NoReturn, Sequence

from infrastructure.database.engines import build_url, database_name_for, ensure_database
from infrastructure.database.pool import PoolHandle, PoolLimits
from infrastructure.migrations.runner import MigrationRunner
from tenancy.infrastructure.live_tenants import LiveTenant, LiveTenantMap
from tenancy.infrastructure.observability import (
    DefaultProvisioningProbe,
    ProvisioningProbe,
)
from tenancy.ports.exceptions import MigrationError, ProvisioningError

if TYPE_CHECKING:
    from sqlalchemy.engine import URL

    from infrastructure.database.pool import DatabasePool
    from infrastructure.migrations.runner import MigrationScope
    from infrastructure.observability.probes import PoolProbe
    from infrastructure.settings import DatabaseSettings
    from tenancy.domain.tenant import Tenant

__all__ = [
    "PoolOpener",
    "ProvisioningFailure",
    "TenantProvisioner",
]

PoolOpener = Callable[["URL", PoolLimits, str], "DatabasePool"]


@dataclass(frozen=True)
class ProvisioningFailure:
    """Typed result of a failed provisioning attempt."""

    tenant_code: str
    error: ProvisioningError | MigrationError

    def raise_error(self) -> NoReturn:
        raise self.error


class TenantProvisioner:
    """Makes a tenant live: database, pool, migrations, connectivity check.

    provision() never raises. Batch callers get either the tenant back or a
    ProvisioningFailure, so one broken tenant cannot interrupt the others.
    Provisioning of one code is serialized by that code's lock in the live
    map, and a code that is already live is returned without any work.
    """

    def __init__(
        self,
        live: LiveTenantMap,
        settings: DatabaseSettings,
        management_pool: DatabasePool,
        commons_scope: MigrationScope,
        app_scope: MigrationScope | None = None,
        runner: MigrationRunner | None = None,
        limits: PoolLimits | None = None,
        pool_opener: PoolOpener | None = None,
        probe: ProvisioningProbe | None = None,
        pool_probe: PoolProbe | None = None,
    ):
        """Initialize the provisioner.

        Args:
            live: Live tenant map entries are installed into
            settings: Database server settings (naming, credentials, creation)
            management_pool: Pool of the management database, used to create
                tenant databases on the same server
            commons_scope: Mandatory scope applied to every tenant database
            app_scope: Optional application scope, applied before commons
            runner: Migration runner (default: a new MigrationRunner)
            limits: Pool limits (default: from settings)
            pool_opener: Factory opening a pool for a URL (default: PoolHandle.open)
            probe: Optional domain probe for observability
            pool_probe: Optional probe handed to newly opened pools
        """
        self._live = live
        self._settings = settings
        self._management_pool = management_pool
        self._scopes: tuple[MigrationScope, ...] = tuple(
            scope for scope in (app_scope, commons_scope) if scope is not None
        )
        self._runner = runner or MigrationRunner()
        self._limits = limits or PoolLimits.from_settings(settings)
        self._pool_probe = pool_probe
        self._pool_opener = pool_opener or self._open_pool
        self._probe = probe or DefaultProvisioningProbe()

    @property
    def scopes(self) -> Sequence[MigrationScope]:
        """Migration scopes in the order they are applied."""
        return self._scopes

    def provision(self, tenant: Tenant) -> Tenant | ProvisioningFailure:
        """Make ``tenant`` live unless it already is.

        Returns:
            The tenant on success (or if already live), else a ProvisioningFailure
        """
        code = tenant.code
        with self._live.lock_for(code):
            entry = self._live.get(code)
            if entry is not None:
                if entry.tenant != tenant:
                    # Same database and pool, refreshed tenant record
                    self._live.install(LiveTenant(tenant=tenant, pool=entry.pool))
                self._probe.already_provisioned(code)
                return tenant
            return self._provision_new(tenant)

    def _provision_new(self, tenant: Tenant) -> Tenant | ProvisioningFailure:
        code = tenant.code
        pool: DatabasePool | None = None
        installed = False
        try:
            database = database_name_for(code, self._settings.database_prefix)
            self._probe.provisioning_started(code, database)

            if self._settings.create_databases:
                ensure_database(self._management_pool.engine, database, self._pool_probe)

            pool = self._pool_opener(
                build_url(self._settings, database), self._limits, database
            )

            for scope in self._scopes:
                self._runner.apply(scope, pool)

            self._live.install(LiveTenant(tenant=tenant, pool=pool))
            installed = True

            if not pool.validate():
                raise ProvisioningError(
                    f"Connectivity check failed for tenant [{code}] "
                    f"on database '{database}'",
                    tenant_code=code,
                )
        except Exception as e:
            error = self._failure_error(code, e)
            if installed:
                self._live.pop(code)
            if pool is not None:
                pool.close()
            self._probe.provisioning_failed(code, error)
            return ProvisioningFailure(tenant_code=code, error=error)

        self._probe.tenant_provisioned(code, database)
        return tenant

    def _open_pool(self, url: URL, limits: PoolLimits, database: str) -> DatabasePool:
        return PoolHandle.open(url, limits, database=database, probe=self._pool_probe)

    @staticmethod
    def _failure_error(code: str, error: Exception) -> ProvisioningError | MigrationError:
        if isinstance(error, MigrationError):
            if error.tenant_code is None:
                error.tenant_code = code
            return error
        if isinstance(error, ProvisioningError):
            return error
        wrapped = ProvisioningError(
            f"Failed to provision tenant [{code}]: {error}", tenant_code=code
        )
        wrapped.__cause__ = error
        return wrapped
