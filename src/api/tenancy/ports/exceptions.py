"""Exceptions for the tenancy bounded context.

Every failure of tenant routing, provisioning or tenant management derives
from TenancyError so the presentation layer can translate them in one place.
"""

from __future__ import annotations


class TenancyError(Exception):
    """Base exception for tenancy operations."""

    pass


class TenantValidationError(TenancyError):
    """Raised when an operation references a code that is unknown, inactive or not live.

    Surfaced to the immediate caller; never downgraded to a warning.
    """

    def __init__(self, message: str, tenant_code: str | None = None):
        super().__init__(message)
        self.tenant_code = tenant_code


class TenantNotFoundError(TenancyError):
    """Raised when a tenant code is absent from the tenant table."""

    def __init__(self, tenant_code: str):
        super().__init__(f"Tenant [{tenant_code}] not found")
        self.tenant_code = tenant_code


class TenantAlreadyExistsError(TenancyError):
    """Raised when creating a tenant whose code or name is already taken."""

    pass


class ProvisioningError(TenancyError):
    """Raised when a tenant's database, pool or connectivity check failed."""

    def __init__(self, message: str, tenant_code: str):
        super().__init__(message)
        self.tenant_code = tenant_code


class MigrationError(TenancyError):
    """Raised when a migration scope failed on both the first attempt and the retry."""

    def __init__(
        self,
        message: str,
        scope: str,
        database: str,
        tenant_code: str | None = None,
    ):
        super().__init__(message)
        self.scope = scope
        self.database = database
        self.tenant_code = tenant_code


class RoutingError(TenancyError):
    """Raised when a scope names a tenant without a live pool.

    Indicates the live registry and the caller drifted apart, which is an
    ordering bug rather than bad input.
    """

    def __init__(self, message: str, tenant_code: str | None = None):
        super().__init__(message)
        self.tenant_code = tenant_code


class ScopeExitedError(RoutingError):
    """Raised when a tenant scope is used after its operation returned."""

    pass
