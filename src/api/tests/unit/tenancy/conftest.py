"""Fixtures wiring the tenancy components with fake pools and migrations."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from infrastructure.database.models import ManagementBase
from infrastructure.migrations.runner import MigrationRunner, MigrationScope
from tenancy.bootstrap import COMMONS_SCOPE
from tenancy.infrastructure.live_tenants import LiveTenantMap
from tenancy.infrastructure.models import TenantModel  # noqa: F401 - registers the table
from tenancy.infrastructure.provisioner import TenantProvisioner
from tenancy.infrastructure.registry import TenantRegistry
from tenancy.ports.exceptions import MigrationError

APP_SCOPE = MigrationScope(
    name="app",
    location="catalog:migrations",
    history_table="alembic_version",
)


@pytest.fixture
def app_scope():
    return APP_SCOPE


@pytest.fixture
def failing_databases():
    """Database names whose migrations always fail."""
    return set()


@pytest.fixture
def runner(failing_databases):
    """MigrationRunner double failing for the databases in failing_databases."""
    runner = MagicMock(spec=MigrationRunner)

    def apply(scope, pool):
        if pool.database in failing_databases:
            raise MigrationError(
                f"Migration scope '{scope.name}' failed",
                scope=scope.name,
                database=pool.database,
            )
        return MagicMock(scope=scope.name, database=pool.database)

    runner.apply.side_effect = apply
    return runner


@pytest.fixture
def live():
    return LiveTenantMap()


@pytest.fixture
def management_pool(make_pool):
    return make_pool("db_tenants")


@pytest.fixture
def provisioning_probe():
    return MagicMock()


@pytest.fixture
def provisioner(
    live,
    sqlite_settings,
    management_pool,
    runner,
    pool_limits,
    opener,
    provisioning_probe,
):
    return TenantProvisioner(
        live=live,
        settings=sqlite_settings,
        management_pool=management_pool,
        commons_scope=COMMONS_SCOPE,
        app_scope=APP_SCOPE,
        runner=runner,
        limits=pool_limits,
        pool_opener=opener,
        probe=provisioning_probe,
    )


@pytest.fixture
def registry_probe():
    return MagicMock()


@pytest.fixture
def registry(live, provisioner, registry_probe):
    return TenantRegistry(
        live=live,
        provisioner=provisioner,
        parallel=True,
        max_workers=4,
        probe=registry_probe,
    )


@pytest.fixture
def management_engine(tmp_path):
    """SQLite management database with the tenant table created."""
    engine = create_engine(f"sqlite:///{tmp_path / 'db_tenants.db'}")
    ManagementBase.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(management_engine):
    return sessionmaker(bind=management_engine, expire_on_commit=False)
