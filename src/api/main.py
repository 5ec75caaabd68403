"""Main FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from catalog.presentation import routes as catalog_routes
from infrastructure.logging import configure_logging
from infrastructure.settings import (
    DatabaseSettings,
    TenancySettings,
    get_database_settings,
    get_settings,
    get_tenancy_settings,
)
from infrastructure.version import __version__
from tenancy.bootstrap import build_runtime
from tenancy.ports.exceptions import RoutingError
from tenancy.presentation import routes as tenancy_routes


def create_app(
    database_settings: DatabaseSettings | None = None,
    tenancy_settings: TenancySettings | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Settings default to the cached environment settings; tests pass their
    own to point the app at temporary databases.
    """

    @asynccontextmanager
    async def tenancy_lifespan(app: FastAPI):
        """Application lifespan context.

        Manages:
        - Management database migration and tenant loading on startup
        - Revalidation worker start/stop
        - Closing every tenant pool and the management pool on shutdown
        """
        runtime = build_runtime(
            database_settings or get_database_settings(),
            tenancy_settings or get_tenancy_settings(),
        )
        app.state.tenancy = runtime
        try:
            await runtime.start()
            yield
        finally:
            await runtime.stop()
            app.state.tenancy = None

    app = FastAPI(
        title=get_settings().app_name,
        description="Database-per-tenant routing and provisioning",
        version=__version__,
        lifespan=tenancy_lifespan,
    )

    app.include_router(tenancy_routes.router)
    app.include_router(catalog_routes.router)
    app.include_router(catalog_routes.general_router)

    @app.exception_handler(RoutingError)
    async def routing_error_handler(request: Request, exc: RoutingError) -> JSONResponse:
        """A tenant lost its live pool while the request was in flight."""
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": f"Tenant [{exc.tenant_code}] not found or inactive"},
        )

    @app.get("/health")
    def health():
        """Basic health check endpoint."""
        return {"status": "ok"}

    @app.get("/health/db")
    def health_db(request: Request) -> dict:
        """Check the management database and list the live tenants."""
        runtime = request.app.state.tenancy
        is_healthy = runtime.management_pool.validate()
        return {
            "status": "ok" if is_healthy else "unhealthy",
            "management_database": runtime.management_pool.database,
            "live_tenants": sorted(runtime.registry.codes()),
        }

    return app


configure_logging()

app = create_app()
