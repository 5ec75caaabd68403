"""Integration test fixtures.

The application runs end to end against SQLite database files: one for
the management database and one per tenant, all under a temporary
directory. Migrations are applied for real by the application lifespan.
"""

from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient

from infrastructure.settings import DatabaseSettings, TenancySettings
from main import create_app


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: end-to-end tests running the FastAPI app against SQLite tenant databases",
    )


@pytest.fixture
def database_settings(tmp_path) -> DatabaseSettings:
    return DatabaseSettings(
        drivername="sqlite",
        sqlite_directory=str(tmp_path),
        pool_min_idle=1,
        pool_max_size=5,
    )


@pytest.fixture
def tenancy_settings() -> TenancySettings:
    return TenancySettings(revalidation_enabled=False)


@pytest.fixture
def make_client(
    database_settings: DatabaseSettings,
    tenancy_settings: TenancySettings,
) -> Callable[[], TestClient]:
    """Factory of clients for fresh application instances on the same databases."""

    def make() -> TestClient:
        return TestClient(create_app(database_settings, tenancy_settings))

    return make


@pytest.fixture
def client(make_client) -> Generator[TestClient, None, None]:
    """Client of a started application; shut down after the test."""
    with make_client() as client:
        yield client


@pytest.fixture
def create_tenant(client) -> Callable[[str, str], dict]:
    def create(code: str, name: str) -> dict:
        response = client.post("/v1/tenants", json={"code": code, "name": name})
        assert response.status_code == 201, response.text
        return response.json()

    return create
