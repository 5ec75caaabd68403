"""Explicit tenant scope for one logical operation.

A TenantScope is handed to the operation it scopes and passed down to
whatever needs to route data access. There is no process-wide "current
tenant": two operations running at the same time for different tenants
each hold their own scope object and cannot observe each other.

The scope is active only while its operation runs. Once the operation
returns (or raises) the scope is deactivated, and routing through it
fails instead of silently reaching a database.
"""

from __future__ import annotations

import contextlib
from contextvars import ContextVar
from typing import Callable, Iterator, TypeVar

import structlog

__all__ = [
    "NestedTenantScopeError",
    "TenantScope",
    "run_scoped",
    "tenant_scope",
]

T = TypeVar("T")

_LOG_KEY = "tenant_code"


class NestedTenantScopeError(RuntimeError):
    """Raised when a scope for one tenant is opened inside a scope for another."""

    def __init__(self, outer_code: str, inner_code: str):
        super().__init__(
            f"Cannot open a scope for tenant [{inner_code}] inside the open "
            f"scope for tenant [{outer_code}]"
        )
        self.outer_code = outer_code
        self.inner_code = inner_code


class TenantScope:
    """Handle naming the tenant one operation runs for."""

    __slots__ = ("_tenant_code", "_active")

    def __init__(self, tenant_code: str):
        self._tenant_code = tenant_code
        self._active = True

    @property
    def tenant_code(self) -> str:
        return self._tenant_code

    @property
    def active(self) -> bool:
        """False once the scoped operation has exited."""
        return self._active

    def _deactivate(self) -> None:
        self._active = False

    def __repr__(self) -> str:
        state = "active" if self._active else "exited"
        return f"<TenantScope(tenant_code={self._tenant_code}, {state})>"


_open_scope: ContextVar[TenantScope | None] = ContextVar("tenant_scope", default=None)


@contextlib.contextmanager
def tenant_scope(tenant_code: str) -> Iterator[TenantScope]:
    """Open a scope for ``tenant_code`` for the extent of a ``with`` block.

    The tenant code is bound into structlog's context-local variables so
    every log event emitted inside the block carries it. Only one tenant
    is scoped per call chain: reopening the same tenant is allowed, opening
    a different one inside an open scope is not.

    Raises:
        NestedTenantScopeError: If a scope for another tenant is open in
            the current context
    """
    outer = _open_scope.get()
    if outer is not None and outer.tenant_code != tenant_code:
        raise NestedTenantScopeError(outer.tenant_code, tenant_code)

    scope = TenantScope(tenant_code)
    previous = structlog.contextvars.get_contextvars().get(_LOG_KEY)
    _open_scope.set(scope)
    structlog.contextvars.bind_contextvars(**{_LOG_KEY: tenant_code})
    try:
        yield scope
    finally:
        scope._deactivate()
        _open_scope.set(outer)
        if previous is None:
            structlog.contextvars.unbind_contextvars(_LOG_KEY)
        else:
            structlog.contextvars.bind_contextvars(**{_LOG_KEY: previous})


def run_scoped(tenant_code: str, operation: Callable[[TenantScope], T]) -> T:
    """Run ``operation`` synchronously with its own scope for ``tenant_code``.

    The scope is deactivated on every exit path, including when
    ``operation`` raises.

    Returns:
        Whatever ``operation`` returns
    """
    with tenant_scope(tenant_code) as scope:
        return operation(scope)
