"""Pydantic models for tenant API requests and responses."""

from __future__ import annotations

from pydantic import BaseModel, Field

from tenancy.domain.tenant import Tenant


class CreateTenantRequest(BaseModel):
    """Request model for creating a tenant."""

    code: str = Field(
        ...,
        description="Short tenant code, 1 to 3 letters or digits (e.g. BRA)",
        min_length=1,
        max_length=3,
        pattern=r"^[A-Za-z0-9]+$",
    )
    name: str = Field(..., description="Tenant name", min_length=1, max_length=255)


class TenantResponse(BaseModel):
    """Response model for tenant."""

    id: int | None = Field(None, description="Tenant ID")
    code: str = Field(..., description="Tenant code")
    name: str = Field(..., description="Tenant name")
    active: bool = Field(..., description="Whether the tenant accepts requests")

    @classmethod
    def from_domain(cls, tenant: Tenant) -> TenantResponse:
        """Convert domain Tenant to API response."""
        return cls(
            id=tenant.id,
            code=tenant.code,
            name=tenant.name,
            active=tenant.active,
        )
