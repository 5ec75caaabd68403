"""Protocol for tenant application service observability.

Defines the interface for domain probes that capture application-level
domain events for tenant service operations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Sequence

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class TenantServiceProbe(Protocol):
    """Domain probe for tenant application service operations."""

    def tenant_created(self, tenant_code: str, name: str) -> None:
        """Record that a tenant was created and provisioned."""
        ...

    def tenant_enabled(self, tenant_code: str) -> None:
        """Record that a tenant was enabled."""
        ...

    def tenant_disabled(self, tenant_code: str) -> None:
        """Record that a tenant was disabled."""
        ...

    def tenant_not_found(self, tenant_code: str) -> None:
        """Record that a tenant code is absent from the tenant table."""
        ...

    def tenants_loaded(self, tenant_codes: Sequence[str]) -> None:
        """Record the tenants live after a load or revalidation."""
        ...

    def no_active_tenants(self) -> None:
        """Record that the tenant table holds no active tenant."""
        ...

    def tenant_not_live(self, tenant_code: str) -> None:
        """Record that an operation referenced a tenant without a live pool."""
        ...

    def tenant_iteration_skipped(self, tenant_code: str) -> None:
        """Record that an active tenant was skipped because it is not live."""
        ...

    def with_context(self, context: ObservationContext) -> TenantServiceProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTenantServiceProbe:
    """Default implementation of TenantServiceProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultTenantServiceProbe:
        """Create a new probe with observation context bound."""
        return DefaultTenantServiceProbe(logger=self._logger, context=context)

    def tenant_created(self, tenant_code: str, name: str) -> None:
        """Record that a tenant was created and provisioned."""
        self._logger.info(
            "tenant_created",
            tenant=tenant_code,
            name=name,
            **self._get_context_kwargs(),
        )

    def tenant_enabled(self, tenant_code: str) -> None:
        """Record that a tenant was enabled."""
        self._logger.info(
            "tenant_enabled",
            tenant=tenant_code,
            **self._get_context_kwargs(),
        )

    def tenant_disabled(self, tenant_code: str) -> None:
        """Record that a tenant was disabled."""
        self._logger.info(
            "tenant_disabled",
            tenant=tenant_code,
            **self._get_context_kwargs(),
        )

    def tenant_not_found(self, tenant_code: str) -> None:
        """Record that a tenant code is absent from the tenant table."""
        self._logger.debug(
            "tenant_not_found",
            tenant=tenant_code,
            **self._get_context_kwargs(),
        )

    def tenants_loaded(self, tenant_codes: Sequence[str]) -> None:
        """Record the tenants live after a load or revalidation."""
        self._logger.info(
            "tenant_datasources_loaded",
            tenants=sorted(tenant_codes),
            **self._get_context_kwargs(),
        )

    def no_active_tenants(self) -> None:
        """Record that the tenant table holds no active tenant."""
        self._logger.warning(
            "no_active_tenants",
            hint="Create tenants via POST /v1/tenants",
            **self._get_context_kwargs(),
        )

    def tenant_not_live(self, tenant_code: str) -> None:
        """Record that an operation referenced a tenant without a live pool."""
        self._logger.warning(
            "tenant_not_live",
            tenant=tenant_code,
            **self._get_context_kwargs(),
        )

    def tenant_iteration_skipped(self, tenant_code: str) -> None:
        """Record that an active tenant was skipped because it is not live."""
        self._logger.warning(
            "tenant_iteration_skipped",
            tenant=tenant_code,
            **self._get_context_kwargs(),
        )
