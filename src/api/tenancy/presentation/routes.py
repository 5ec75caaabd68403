"""HTTP routes for tenant management.

These routes operate on the management database and never require a
tenant header.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from infrastructure.database.exceptions import DatabaseConnectionError
from tenancy.application.services import TenantService
from tenancy.dependencies import get_tenant_service
from tenancy.ports.exceptions import (
    MigrationError,
    ProvisioningError,
    TenantAlreadyExistsError,
    TenantNotFoundError,
    TenantValidationError,
)
from tenancy.presentation.models import CreateTenantRequest, TenantResponse

router = APIRouter(
    prefix="/v1/tenants",
    tags=["tenants"],
)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
)
def create_tenant(
    request: CreateTenantRequest,
    service: Annotated[TenantService, Depends(get_tenant_service)],
) -> TenantResponse:
    """Create a tenant and provision its database.

    Raises:
        HTTPException: 400 if the code or name is malformed
        HTTPException: 409 if the code or name already exists
        HTTPException: 500 if the tenant database could not be provisioned
        HTTPException: 503 if the management database is unreachable
    """
    try:
        tenant = service.create_tenant(code=request.code, name=request.name)
        return TenantResponse.from_domain(tenant)

    except TenantValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    except TenantAlreadyExistsError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from e
    except (ProvisioningError, MigrationError) as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to provision tenant [{request.code}]",
        ) from e
    except DatabaseConnectionError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Management database unavailable",
        ) from e


@router.get("")
def list_tenants(
    service: Annotated[TenantService, Depends(get_tenant_service)],
) -> list[TenantResponse]:
    """List every tenant, active or not."""
    return [TenantResponse.from_domain(tenant) for tenant in service.list_tenants()]


@router.patch(
    "/enable/{code}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def enable_tenant(
    code: str,
    service: Annotated[TenantService, Depends(get_tenant_service)],
) -> Response:
    """Activate a tenant and make its database live again.

    Raises:
        HTTPException: 404 if the tenant does not exist
        HTTPException: 500 if the tenant database could not be provisioned
    """
    try:
        service.enable_tenant(code)
    except (TenantNotFoundError, TenantValidationError) as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant [{code}] not found",
        ) from e
    except (ProvisioningError, MigrationError) as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to provision tenant [{code}]",
        ) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch(
    "/disable/{code}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def disable_tenant(
    code: str,
    service: Annotated[TenantService, Depends(get_tenant_service)],
) -> Response:
    """Deactivate a tenant and close its connection pool.

    Raises:
        HTTPException: 404 if the tenant does not exist
    """
    try:
        service.disable_tenant(code)
    except (TenantNotFoundError, TenantValidationError) as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant [{code}] not found",
        ) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/revalidate-datasources",
    status_code=status.HTTP_204_NO_CONTENT,
)
def revalidate_datasources(
    service: Annotated[TenantService, Depends(get_tenant_service)],
) -> Response:
    """Reconcile the live tenant pools with the tenant table.

    Use after enabling or disabling tenants directly in the database.
    """
    service.revalidate_tenants(trigger="api")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
