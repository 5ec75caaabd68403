"""Unit tests for tenant scopes."""

import threading

import pytest
import structlog

from shared_kernel.tenant_scope import (
    NestedTenantScopeError,
    TenantScope,
    run_scoped,
    tenant_scope,
)


def bound_tenant():
    return structlog.contextvars.get_contextvars().get("tenant_code")


class TestRunScoped:
    """Tests for run_scoped."""

    def test_returns_operation_result(self):
        assert run_scoped("BRA", lambda scope: scope.tenant_code * 2) == "BRABRA"

    def test_scope_is_active_only_during_operation(self):
        seen = []

        scope = run_scoped("BRA", lambda s: seen.append(s.active) or s)

        assert seen == [True]
        assert scope.active is False

    def test_tenant_is_bound_for_logging_during_operation(self):
        assert run_scoped("BRA", lambda scope: bound_tenant()) == "BRA"
        assert bound_tenant() is None

    def test_scope_is_cleared_when_operation_raises(self):
        captured = []

        def operation(scope):
            captured.append(scope)
            raise ValueError("boom")

        with pytest.raises(ValueError):
            run_scoped("BRA", operation)

        assert captured[0].active is False
        assert bound_tenant() is None

    def test_scope_for_another_tenant_inside_open_scope_is_rejected(self):
        def outer(scope):
            with pytest.raises(NestedTenantScopeError) as exc_info:
                run_scoped("CAN", lambda inner: None)
            return exc_info.value, bound_tenant(), scope.active

        error, bound, still_active = run_scoped("BRA", outer)

        assert (error.outer_code, error.inner_code) == ("BRA", "CAN")
        assert bound == "BRA"
        assert still_active
        assert bound_tenant() is None

    def test_same_tenant_can_be_reopened_inside_its_scope(self):
        def outer(scope):
            inner_scope = run_scoped("BRA", lambda inner: inner)
            return inner_scope, scope.active, bound_tenant()

        inner_scope, outer_active, bound = run_scoped("BRA", outer)

        assert not inner_scope.active
        assert outer_active
        assert bound == "BRA"

    def test_sequential_scopes_for_different_tenants(self):
        assert run_scoped("BRA", lambda s: bound_tenant()) == "BRA"
        assert run_scoped("CAN", lambda s: bound_tenant()) == "CAN"

    def test_concurrent_operations_do_not_observe_each_other(self):
        barrier = threading.Barrier(2)
        results = {}

        def operation(scope):
            barrier.wait(timeout=5)
            # Both threads are now inside their scope at the same time
            return scope.tenant_code, bound_tenant()

        def worker(code):
            results[code] = run_scoped(code, operation)

        threads = [threading.Thread(target=worker, args=(c,)) for c in ("BRA", "CAN")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert results == {"BRA": ("BRA", "BRA"), "CAN": ("CAN", "CAN")}


class TestTenantScopeContextManager:
    """Tests for the tenant_scope context manager."""

    def test_yields_active_scope(self):
        with tenant_scope("BRA") as scope:
            assert isinstance(scope, TenantScope)
            assert scope.active
            assert scope.tenant_code == "BRA"

        assert not scope.active

    def test_repr(self):
        with tenant_scope("BRA") as scope:
            assert repr(scope) == "<TenantScope(tenant_code=BRA, active)>"
        assert repr(scope) == "<TenantScope(tenant_code=BRA, exited)>"
