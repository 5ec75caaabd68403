"""Unit tests for TenantProvisioner."""

import threading
from unittest.mock import call, patch

import pytest

from infrastructure.database.exceptions import DatabaseConnectionError
from tenancy.bootstrap import COMMONS_SCOPE
from tenancy.domain.tenant import Tenant
from tenancy.infrastructure.provisioner import ProvisioningFailure, TenantProvisioner
from tenancy.ports.exceptions import MigrationError, ProvisioningError

BRA = Tenant(code="BRA", name="Brazil", id=1)


class TestProvision:
    """Tests for provisioning a tenant that is not live yet."""

    def test_new_tenant_becomes_live(self, provisioner, live, opener, provisioning_probe):
        result = provisioner.provision(BRA)

        assert result == BRA
        entry = live.get("BRA")
        assert entry.tenant == BRA
        assert entry.pool is opener.opened[0]
        assert entry.pool.database == "db_bra"
        provisioning_probe.tenant_provisioned.assert_called_once_with("BRA", "db_bra")

    def test_scopes_are_applied_app_first_then_commons(
        self, provisioner, runner, opener, app_scope
    ):
        provisioner.provision(BRA)

        pool = opener.opened[0]
        assert runner.apply.call_args_list == [
            call(app_scope, pool),
            call(COMMONS_SCOPE, pool),
        ]

    def test_scopes_without_app_scope(
        self, live, sqlite_settings, management_pool, runner, opener
    ):
        provisioner = TenantProvisioner(
            live=live,
            settings=sqlite_settings,
            management_pool=management_pool,
            commons_scope=COMMONS_SCOPE,
            runner=runner,
            pool_opener=opener,
        )

        assert list(provisioner.scopes) == [COMMONS_SCOPE]

    def test_database_is_created_when_enabled(
        self, provisioner, sqlite_settings, management_pool
    ):
        sqlite_settings.create_databases = True

        with patch("tenancy.infrastructure.provisioner.ensure_database") as ensure:
            provisioner.provision(BRA)

        ensure.assert_called_once_with(management_pool.engine, "db_bra", None)

    def test_database_is_not_created_when_disabled(self, provisioner):
        with patch("tenancy.infrastructure.provisioner.ensure_database") as ensure:
            provisioner.provision(BRA)

        ensure.assert_not_called()


class TestIdempotence:
    """Tests for provisioning a tenant that is already live."""

    def test_second_call_does_no_work(self, provisioner, runner, opener, provisioning_probe):
        provisioner.provision(BRA)
        applies = runner.apply.call_count

        result = provisioner.provision(BRA)

        assert result == BRA
        assert len(opener.opened) == 1
        assert runner.apply.call_count == applies
        provisioning_probe.already_provisioned.assert_called_once_with("BRA")

    def test_changed_record_refreshes_entry_and_keeps_pool(self, provisioner, live, opener):
        provisioner.provision(BRA)
        renamed = Tenant(code="BRA", name="Brasil", id=1)

        provisioner.provision(renamed)

        entry = live.get("BRA")
        assert entry.tenant.name == "Brasil"
        assert entry.pool is opener.opened[0]

    def test_concurrent_calls_open_one_pool(self, provisioner, opener):
        start = threading.Barrier(8)
        results = []

        def provision():
            start.wait(timeout=5)
            results.append(provisioner.provision(BRA))

        threads = [threading.Thread(target=provision) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert results == [BRA] * 8
        assert len(opener.opened) == 1


class TestFailures:
    """Tests for failures, which are returned instead of raised."""

    def test_migration_failure_is_returned(
        self, provisioner, live, opener, failing_databases, provisioning_probe
    ):
        failing_databases.add("db_bra")

        result = provisioner.provision(BRA)

        assert isinstance(result, ProvisioningFailure)
        assert result.tenant_code == "BRA"
        assert isinstance(result.error, MigrationError)
        assert result.error.tenant_code == "BRA"
        assert "BRA" not in live
        assert opener.opened[0].closed
        provisioning_probe.provisioning_failed.assert_called_once()

    def test_failed_connectivity_check_rolls_back_entry(self, provisioner, live, opener):
        opener.valid = False

        result = provisioner.provision(BRA)

        assert isinstance(result, ProvisioningFailure)
        assert isinstance(result.error, ProvisioningError)
        assert "Connectivity check failed" in str(result.error)
        assert "BRA" not in live
        assert opener.opened[0].closed

    def test_unreachable_database_is_wrapped(self, provisioner, live, opener):
        opener.error = DatabaseConnectionError("refused", database="db_bra")

        result = provisioner.provision(BRA)

        assert isinstance(result.error, ProvisioningError)
        assert isinstance(result.error.__cause__, DatabaseConnectionError)
        assert result.error.tenant_code == "BRA"
        assert "BRA" not in live

    def test_failure_can_be_retried(self, provisioner, live, opener, failing_databases):
        failing_databases.add("db_bra")
        provisioner.provision(BRA)
        failing_databases.clear()

        assert provisioner.provision(BRA) == BRA
        assert len(opener.opened) == 2
        assert live.get("BRA").pool is opener.opened[1]

    def test_raise_error_raises_the_failure(self, provisioner, failing_databases):
        failing_databases.add("db_bra")
        failure = provisioner.provision(BRA)

        with pytest.raises(MigrationError):
            failure.raise_error()
