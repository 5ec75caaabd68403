"""Repository protocol (port) for the tenant table."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tenancy.domain.tenant import Tenant


@runtime_checkable
class ITenantRepository(Protocol):
    """Repository for Tenant persistence in the management database."""

    def save(self, tenant: Tenant) -> Tenant:
        """Insert a new tenant.

        Returns:
            The tenant carrying its generated id

        Raises:
            TenantAlreadyExistsError: If the code or name is already taken
        """
        ...

    def get_by_code(self, code: str) -> Tenant | None:
        """Retrieve a tenant by code, or None if absent."""
        ...

    def get_by_name(self, name: str) -> Tenant | None:
        """Retrieve a tenant by name, or None if absent."""
        ...

    def list_all(self) -> list[Tenant]:
        """Retrieve every tenant ordered by code."""
        ...

    def list_by_active(self, active: bool) -> list[Tenant]:
        """Retrieve the tenants with the given active flag."""
        ...

    def set_active(self, code: str, active: bool) -> Tenant | None:
        """Enable or disable a tenant.

        Returns:
            The updated tenant, or None if the code is unknown
        """
        ...

    def delete(self, code: str) -> bool:
        """Delete a tenant.

        Returns:
            True if a row was deleted, False if the code is unknown
        """
        ...
