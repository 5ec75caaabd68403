"""FastAPI dependencies of the tenancy context.

The tenancy runtime is built in the application lifespan and stored on
``app.state.tenancy``; these dependencies hand its components to routes.

Tenant-scoped routes depend on get_tenant_scope, which resolves the
``X-Tenant-Code`` header and keeps a tenant scope open for the rest of the
request:

    @router.get("/example")
    def example(scope: Annotated[TenantScope, Depends(get_tenant_scope)]):
        ...
"""

from __future__ import annotations

import contextlib
from typing import Annotated, AsyncIterator

import structlog
from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from shared_kernel.tenant_scope import TenantScope
from tenancy.application.services import TenantService
from tenancy.bootstrap import TenancyRuntime
from tenancy.domain.tenant import normalize_code
from tenancy.infrastructure.router import ConnectionRouter
from tenancy.ports.exceptions import TenantValidationError

TENANT_HEADER = "X-Tenant-Code"

logger = structlog.get_logger()


def get_tenancy_runtime(request: Request) -> TenancyRuntime:
    """Tenancy runtime built during application startup."""
    runtime = getattr(request.app.state, "tenancy", None)
    if runtime is None:
        raise RuntimeError(
            "Tenancy runtime not initialized. Ensure app startup completed successfully."
        )
    return runtime


def get_tenant_service(
    runtime: Annotated[TenancyRuntime, Depends(get_tenancy_runtime)],
) -> TenantService:
    return runtime.tenant_service


def get_connection_router(
    runtime: Annotated[TenancyRuntime, Depends(get_tenancy_runtime)],
) -> ConnectionRouter:
    return runtime.router


async def resolve_tenant_code(
    x_tenant_code: str | None,
    service: TenantService,
) -> str:
    """Validate the tenant header against the tenant table and the live registry.

    Returns:
        The canonical tenant code

    Raises:
        HTTPException 400: If the header is missing or blank
        HTTPException 404: If the tenant is unknown, inactive or not live
    """
    if x_tenant_code is None or not x_tenant_code.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing required header: {TENANT_HEADER}",
        )

    try:
        code = normalize_code(x_tenant_code)
    except TenantValidationError:
        code = None

    if code is None or not await run_in_threadpool(
        service.tenant_exists_by_active, code, True
    ):
        logger.warning("tenant_request_rejected", tenant=x_tenant_code)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant [{x_tenant_code}] not found or inactive",
        )

    if not service.is_live(code):
        logger.warning("tenant_request_rejected_not_live", tenant=code)
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tenant [{code}] not found or inactive",
        )
    return code


async def get_tenant_scope(
    service: Annotated[TenantService, Depends(get_tenant_service)],
    x_tenant_code: Annotated[str | None, Header(alias=TENANT_HEADER)] = None,
) -> AsyncIterator[TenantScope]:
    """Open a tenant scope around the rest of the request.

    Runs on the event loop so the tenant code bound for logging is visible
    to the endpoint. The scope is closed once the response is produced.
    """
    code = await resolve_tenant_code(x_tenant_code, service)
    with contextlib.ExitStack() as stack:
        try:
            scope = stack.enter_context(service.tenant_scope(code))
        except TenantValidationError as e:
            # Removed between the check and the scope
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Tenant [{code}] not found or inactive",
            ) from e
        yield scope
