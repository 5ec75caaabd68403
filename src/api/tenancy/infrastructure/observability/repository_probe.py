"""Domain probe for tenant table persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class TenantRepositoryProbe(Protocol):
    """Domain probe for tenant repository operations.

    Records domain events during tenant persistence operations.
    """

    def tenant_saved(self, tenant_code: str) -> None:
        """Record that a tenant was successfully saved."""
        ...

    def tenant_activation_changed(self, tenant_code: str, active: bool) -> None:
        """Record that a tenant was enabled or disabled."""
        ...

    def tenants_listed(self, count: int, active: bool | None) -> None:
        """Record that tenants were listed."""
        ...

    def tenant_deleted(self, tenant_code: str) -> None:
        """Record that a tenant row was deleted."""
        ...

    def duplicate_tenant(self, code: str, name: str) -> None:
        """Record that a duplicate tenant code or name was detected."""
        ...

    def with_context(self, context: ObservationContext) -> TenantRepositoryProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTenantRepositoryProbe:
    """Default implementation of TenantRepositoryProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultTenantRepositoryProbe:
        """Create a new probe with observation context bound."""
        return DefaultTenantRepositoryProbe(logger=self._logger, context=context)

    def tenant_saved(self, tenant_code: str) -> None:
        """Record that a tenant was successfully saved."""
        self._logger.info(
            "tenant_saved",
            tenant=tenant_code,
            **self._get_context_kwargs(),
        )

    def tenant_activation_changed(self, tenant_code: str, active: bool) -> None:
        """Record that a tenant was enabled or disabled."""
        self._logger.info(
            "tenant_activation_changed",
            tenant=tenant_code,
            active=active,
            **self._get_context_kwargs(),
        )

    def tenants_listed(self, count: int, active: bool | None) -> None:
        """Record that tenants were listed."""
        self._logger.debug(
            "tenants_listed",
            count=count,
            active=active,
            **self._get_context_kwargs(),
        )

    def duplicate_tenant(self, code: str, name: str) -> None:
        """Record that a duplicate tenant code or name was detected."""
        self._logger.warning(
            "duplicate_tenant",
            code=code,
            name=name,
            **self._get_context_kwargs(),
        )

    def tenant_deleted(self, tenant_code: str) -> None:
        """Record that a tenant row was deleted."""
        self._logger.info(
            "tenant_deleted",
            tenant=tenant_code,
            **self._get_context_kwargs(),
        )
