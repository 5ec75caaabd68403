"""Domain probes for tenant provisioning and the live tenant registry."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Sequence

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class ProvisioningProbe(Protocol):
    """Domain probe for provisioning of single tenants."""

    def provisioning_started(self, tenant_code: str, database: str) -> None:
        """Record that a tenant database is being provisioned."""
        ...

    def already_provisioned(self, tenant_code: str) -> None:
        """Record that provisioning was skipped because the tenant is live."""
        ...

    def tenant_provisioned(self, tenant_code: str, database: str) -> None:
        """Record that a tenant is live with a validated pool."""
        ...

    def provisioning_failed(self, tenant_code: str, error: Exception) -> None:
        """Record that provisioning failed and was rolled back."""
        ...

    def with_context(self, context: ObservationContext) -> ProvisioningProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultProvisioningProbe:
    """Default implementation of ProvisioningProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultProvisioningProbe:
        """Create a new probe with observation context bound."""
        return DefaultProvisioningProbe(logger=self._logger, context=context)

    def provisioning_started(self, tenant_code: str, database: str) -> None:
        self._logger.info(
            "tenant_provisioning_started",
            tenant=tenant_code,
            database=database,
            **self._get_context_kwargs(),
        )

    def already_provisioned(self, tenant_code: str) -> None:
        self._logger.debug(
            "tenant_already_provisioned",
            tenant=tenant_code,
            **self._get_context_kwargs(),
        )

    def tenant_provisioned(self, tenant_code: str, database: str) -> None:
        self._logger.info(
            "tenant_provisioned",
            tenant=tenant_code,
            database=database,
            **self._get_context_kwargs(),
        )

    def provisioning_failed(self, tenant_code: str, error: Exception) -> None:
        self._logger.error(
            "tenant_provisioning_failed",
            tenant=tenant_code,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )


class RegistryProbe(Protocol):
    """Domain probe for reconciliation of the live tenant set."""

    def reconciliation_started(
        self, desired: Sequence[str], live: Sequence[str], parallel: bool
    ) -> None:
        """Record the start of a reconciliation."""
        ...

    def reconciliation_completed(
        self, provisioned: Sequence[str], failed: Sequence[str]
    ) -> None:
        """Record the outcome of a reconciliation."""
        ...

    def tenant_removed(self, tenant_code: str, database: str) -> None:
        """Record that a tenant's pool was closed and its entry removed."""
        ...

    def with_context(self, context: ObservationContext) -> RegistryProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultRegistryProbe:
    """Default implementation of RegistryProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultRegistryProbe:
        """Create a new probe with observation context bound."""
        return DefaultRegistryProbe(logger=self._logger, context=context)

    def reconciliation_started(
        self, desired: Sequence[str], live: Sequence[str], parallel: bool
    ) -> None:
        self._logger.debug(
            "tenant_reconciliation_started",
            desired=sorted(desired),
            live=sorted(live),
            parallel=parallel,
            **self._get_context_kwargs(),
        )

    def reconciliation_completed(
        self, provisioned: Sequence[str], failed: Sequence[str]
    ) -> None:
        log = self._logger.warning if failed else self._logger.info
        log(
            "tenant_reconciliation_completed",
            provisioned=sorted(provisioned),
            failed=sorted(failed),
            **self._get_context_kwargs(),
        )

    def tenant_removed(self, tenant_code: str, database: str) -> None:
        self._logger.info(
            "tenant_pool_removed",
            tenant=tenant_code,
            database=database,
            **self._get_context_kwargs(),
        )
