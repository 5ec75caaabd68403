"""Tenant entity of the tenancy context."""

from __future__ import annotations

import re
from dataclasses import dataclass

from tenancy.ports.exceptions import TenantValidationError

_CODE_PATTERN = re.compile(r"^[A-Z0-9]{1,3}$")


def normalize_code(code: str) -> str:
    """Return the canonical (upper-case) form of a tenant code.

    Raises:
        TenantValidationError: If the code is not 1-3 alphanumeric characters
    """
    normalized = (code or "").strip().upper()
    if not _CODE_PATTERN.match(normalized):
        raise TenantValidationError(
            f"Tenant code '{code}' must be 1 to 3 letters or digits",
            tenant_code=code,
        )
    return normalized


@dataclass(frozen=True)
class Tenant:
    """A customer whose data lives in its own database.

    Tenants are value-like: the registry compares them by code, and every
    state change (enable/disable) produces a new instance.
    """

    code: str
    name: str
    active: bool = True
    id: int | None = None

    @classmethod
    def create(cls, code: str, name: str) -> Tenant:
        """Factory for a new, active tenant with a validated code and name."""
        name = (name or "").strip()
        if not name:
            raise TenantValidationError("Tenant name must not be empty", tenant_code=code)
        if len(name) > 255:
            raise TenantValidationError(
                "Tenant name must be at most 255 characters", tenant_code=code
            )
        return cls(code=normalize_code(code), name=name, active=True)
