"""Application settings using pydantic-settings.

Settings are loaded from environment variables with sensible defaults
for development. Production deployments should set all values explicitly.
"""

from functools import lru_cache
from urllib.parse import parse_qsl

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings shared by the management and tenant databases.

    Every database (management and per-tenant) lives on the same server and
    is reached with the same credentials; only the database name differs.

    Environment variables:
        MULTITENANCY_DB_DRIVERNAME: SQLAlchemy driver (default: postgresql+psycopg2)
        MULTITENANCY_DB_HOST: Database host (default: localhost)
        MULTITENANCY_DB_PORT: Database port (default: 5432)
        MULTITENANCY_DB_USERNAME: Database user (default: multitenancy)
        MULTITENANCY_DB_PASSWORD: Database password (required in production)
        MULTITENANCY_DB_OPTIONS: Extra connection-string parameters, ``k=v&k2=v2``
        MULTITENANCY_DB_SQLITE_DIRECTORY: Directory holding SQLite database files
        MULTITENANCY_DB_DATABASE_PREFIX: Prefix of every database name (default: db_)
        MULTITENANCY_DB_MANAGEMENT_SUFFIX: Suffix of the management database (default: tenants)
        MULTITENANCY_DB_CREATE_DATABASES: Create tenant databases on demand (default: true)
        MULTITENANCY_DB_POOL_MIN_IDLE: Connections opened when a pool starts (default: 2)
        MULTITENANCY_DB_POOL_MAX_SIZE: Maximum connections per pool (default: 20)
        MULTITENANCY_DB_CONNECTION_TIMEOUT_SECONDS: Connect/checkout timeout (default: 10)
        MULTITENANCY_DB_IDLE_TIMEOUT_SECONDS: Idle time before a pooled connection is dropped (default: 600)
        MULTITENANCY_DB_MAX_LIFETIME_SECONDS: Maximum age of a pooled connection (default: 1800)
        MULTITENANCY_DB_LIVENESS_QUERY: Query used to validate connections (default: SELECT 1)
    """

    model_config = SettingsConfigDict(
        env_prefix="MULTITENANCY_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    drivername: str = Field(
        default="postgresql+psycopg2",
        description="SQLAlchemy driver name",
    )
    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    username: str = Field(default="multitenancy", description="Database username")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Database password",
    )
    options: str | None = Field(
        default=None,
        description="Extra connection-string parameters (k=v&k2=v2)",
    )
    sqlite_directory: str = Field(
        default=".",
        description="Directory for SQLite database files (sqlite drivers only)",
    )
    database_prefix: str = Field(
        default="db_",
        description="Prefix applied to every generated database name",
    )
    management_suffix: str = Field(
        default="tenants",
        description="Suffix of the management database name",
    )
    create_databases: bool = Field(
        default=True,
        description="Create tenant databases that do not exist yet",
    )
    pool_min_idle: int = Field(
        default=2,
        description="Connections opened when a pool starts",
        ge=0,
        le=100,
    )
    pool_max_size: int = Field(
        default=20,
        description="Maximum connections per pool",
        ge=1,
        le=100,
    )
    connection_timeout_seconds: float = Field(
        default=10.0,
        description="Connect and checkout timeout",
        gt=0,
    )
    idle_timeout_seconds: float = Field(
        default=600.0,
        description="Idle time after which a pooled connection is discarded",
        gt=0,
    )
    max_lifetime_seconds: int = Field(
        default=1800,
        description="Maximum age of a pooled connection",
        gt=0,
    )
    liveness_query: str = Field(
        default="SELECT 1",
        description="Lightweight query used to validate connections",
    )

    @field_validator("options")
    @classmethod
    def validate_options(cls, value: str | None) -> str | None:
        """Reject option strings that do not parse as k=v pairs."""
        if value is None or value.strip() == "":
            return None
        try:
            parse_qsl(value, keep_blank_values=True, strict_parsing=True)
        except ValueError as e:
            raise ValueError(f"options must be k=v pairs joined by '&': {e}") from e
        return value

    @model_validator(mode="after")
    def validate_pool_settings(self) -> "DatabaseSettings":
        """Validate pool max >= min idle."""
        if self.pool_max_size < self.pool_min_idle:
            raise ValueError(
                f"pool_max_size ({self.pool_max_size}) must be >= "
                f"pool_min_idle ({self.pool_min_idle})"
            )
        return self

    @property
    def is_sqlite(self) -> bool:
        """Whether databases are SQLite files rather than server databases."""
        return self.drivername.split("+", 1)[0] == "sqlite"

    @property
    def query_options(self) -> dict[str, str]:
        """Extra connection-string parameters as a mapping."""
        if self.options is None:
            return {}
        return dict(parse_qsl(self.options, keep_blank_values=True))

    @property
    def connection_string(self) -> str:
        """Generate a connection string (without password for logging)."""
        return f"{self.drivername}://{self.username}@{self.host}:{self.port}"


class TenancySettings(BaseSettings):
    """Tenant provisioning and revalidation settings.

    Environment variables:
        MULTITENANCY_APP_MIGRATION_LOCATION: Alembic script location of the app
            scope, applied to every tenant database (default: catalog:migrations;
            set to an empty string to disable)
        MULTITENANCY_APP_MIGRATION_TABLE: History table of the app scope
            (default: alembic_version)
        MULTITENANCY_PARALLEL_PROVISIONING: Provision tenants concurrently (default: true)
        MULTITENANCY_PROVISIONING_MAX_WORKERS: Worker threads for parallel provisioning (default: 8)
        MULTITENANCY_REVALIDATION_ENABLED: Run the periodic revalidation loop (default: true)
        MULTITENANCY_REVALIDATION_INTERVAL_SECONDS: Delay between revalidations (default: 3600)
    """

    model_config = SettingsConfigDict(
        env_prefix="MULTITENANCY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_migration_location: str | None = Field(
        default="catalog:migrations",
        description="Alembic script location of the app migration scope",
    )
    app_migration_table: str = Field(
        default="alembic_version",
        description="History table of the app migration scope",
    )
    parallel_provisioning: bool = Field(
        default=True,
        description="Provision tenants concurrently during reconciliation",
    )
    provisioning_max_workers: int = Field(
        default=8,
        description="Worker threads used for parallel provisioning",
        ge=1,
        le=64,
    )
    revalidation_enabled: bool = Field(
        default=True,
        description="Run the periodic revalidation loop",
    )
    revalidation_interval_seconds: float = Field(
        default=3600.0,
        description="Delay between two revalidation runs",
        gt=0,
    )

    @field_validator("app_migration_location")
    @classmethod
    def blank_location_disables_app_scope(cls, value: str | None) -> str | None:
        """Treat an empty location as 'no app scope'."""
        if value is None or value.strip() == "":
            return None
        return value.strip()


class Settings(BaseSettings):
    """Main application settings aggregating all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="Tenant Router API", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    @property
    def database(self) -> DatabaseSettings:
        """Get database settings."""
        return get_database_settings()

    @property
    def tenancy(self) -> TenancySettings:
        """Get tenancy settings."""
        return get_tenancy_settings()


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Get cached database settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return DatabaseSettings()


@lru_cache
def get_tenancy_settings() -> TenancySettings:
    """Get cached tenancy settings.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return TenancySettings()
