"""Construction and teardown of the tenancy runtime.

Everything the routing layer needs is built here, once, and handed to
whoever needs it. Nothing is a module-level singleton, so tests can build
as many isolated runtimes as they like.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy.orm import sessionmaker

from infrastructure.database.engines import build_url, management_database_name
from infrastructure.database.pool import PoolHandle, PoolLimits
from infrastructure.migrations.runner import MigrationRunner, MigrationScope
from infrastructure.settings import DatabaseSettings, TenancySettings
from tenancy.application.services import TenantService
from tenancy.infrastructure.live_tenants import LiveTenantMap
from tenancy.infrastructure.provisioner import TenantProvisioner
from tenancy.infrastructure.registry import TenantRegistry
from tenancy.infrastructure.revalidation import RevalidationWorker
from tenancy.infrastructure.router import ConnectionRouter

logger = structlog.get_logger()

MANAGEMENT_SCOPE = MigrationScope(
    name="management",
    location="tenancy:migrations/management",
    history_table="tenant_management_schema_history",
)

COMMONS_SCOPE = MigrationScope(
    name="commons",
    location="tenancy:migrations/commons",
    history_table="commons_schema_history",
)


def app_scope(settings: TenancySettings) -> MigrationScope | None:
    """The configured application scope, or None when disabled."""
    if settings.app_migration_location is None:
        return None
    return MigrationScope(
        name="app",
        location=settings.app_migration_location,
        history_table=settings.app_migration_table,
    )


@dataclass
class TenancyRuntime:
    """The explicitly constructed tenancy component graph."""

    management_pool: PoolHandle
    live: LiveTenantMap
    provisioner: TenantProvisioner
    registry: TenantRegistry
    router: ConnectionRouter
    tenant_service: TenantService
    worker: RevalidationWorker | None = None

    async def start(self) -> None:
        """Load the active tenants, then start the revalidation loop."""
        self.tenant_service.load_tenants(trigger="startup")
        if self.worker is not None:
            await self.worker.start()

    async def stop(self) -> None:
        """Stop the loop and close every pool, tenants first."""
        if self.worker is not None:
            await self.worker.stop()
        self.close()

    def close(self) -> None:
        self.registry.close_all()
        self.management_pool.close()


def build_runtime(
    database_settings: DatabaseSettings,
    tenancy_settings: TenancySettings,
    runner: MigrationRunner | None = None,
) -> TenancyRuntime:
    """Open the management database and assemble the tenancy components.

    The management scope is applied before anything else, so the tenant
    table exists by the time tenants are loaded.

    Raises:
        DatabaseConnectionError: If the management database is unreachable
        MigrationError: If the management scope cannot be applied
    """
    runner = runner or MigrationRunner()
    limits = PoolLimits.from_settings(database_settings)

    management_database = management_database_name(database_settings)
    management_pool = PoolHandle.open(
        build_url(database_settings, management_database),
        limits,
        database=management_database,
    )
    try:
        runner.apply(MANAGEMENT_SCOPE, management_pool)
    except Exception:
        management_pool.close()
        raise

    live = LiveTenantMap()
    provisioner = TenantProvisioner(
        live=live,
        settings=database_settings,
        management_pool=management_pool,
        commons_scope=COMMONS_SCOPE,
        app_scope=app_scope(tenancy_settings),
        runner=runner,
        limits=limits,
    )
    registry = TenantRegistry(
        live=live,
        provisioner=provisioner,
        parallel=tenancy_settings.parallel_provisioning,
        max_workers=tenancy_settings.provisioning_max_workers,
    )
    router = ConnectionRouter(live=live, management_pool=management_pool)
    tenant_service = TenantService(
        session_factory=sessionmaker(
            bind=management_pool.engine, expire_on_commit=False
        ),
        registry=registry,
    )

    worker = None
    if tenancy_settings.revalidation_enabled:
        worker = RevalidationWorker(
            revalidate=lambda: tenant_service.revalidate_tenants(trigger="schedule"),
            interval_seconds=tenancy_settings.revalidation_interval_seconds,
        )

    logger.info(
        "tenancy_runtime_built",
        management_database=management_database,
        app_scope=tenancy_settings.app_migration_location,
        parallel_provisioning=tenancy_settings.parallel_provisioning,
        revalidation_enabled=tenancy_settings.revalidation_enabled,
    )
    return TenancyRuntime(
        management_pool=management_pool,
        live=live,
        provisioner=provisioner,
        registry=registry,
        router=router,
        tenant_service=tenant_service,
        worker=worker,
    )
