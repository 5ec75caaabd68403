"""Tenancy domain layer."""

from tenancy.domain.tenant import Tenant, normalize_code

__all__ = ["Tenant", "normalize_code"]
