"""Database URL building, naming and on-demand creation.

Every database of the deployment (the management database and one per
tenant) is addressed by a deterministic name derived from a suffix, so
the whole routing layer only ever needs the server settings plus a name.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.engine import URL

from infrastructure.database.exceptions import InvalidDatabaseNameError
from infrastructure.observability.probes import DefaultPoolProbe, PoolProbe

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from infrastructure.settings import DatabaseSettings

__all__ = [
    "build_url",
    "database_name_for",
    "ensure_database",
    "management_database_name",
]

_SAFE_NAME = re.compile(r"^[a-z0-9_]{1,63}$")


def database_name_for(suffix: str, prefix: str = "db_") -> str:
    """Derive the physical database name for a suffix (tenant code or 'tenants').

    The suffix is lower-cased and prefixed, so ``BRA`` maps to ``db_bra``.

    Raises:
        InvalidDatabaseNameError: If the result is not a plain identifier
    """
    name = f"{prefix}{suffix.strip().lower()}"
    if not _SAFE_NAME.match(name):
        raise InvalidDatabaseNameError(
            f"'{suffix}' does not produce a valid database name (got '{name}')"
        )
    return name


def management_database_name(settings: DatabaseSettings) -> str:
    """Name of the database holding the tenant registry."""
    return database_name_for(settings.management_suffix, settings.database_prefix)


def build_url(settings: DatabaseSettings, database: str) -> URL:
    """Build the SQLAlchemy URL of one database on the configured server.

    Credentials are passed to SQLAlchemy's URL builder so special characters
    are percent-encoded. For SQLite drivers the database becomes a file named
    ``<database>.db`` inside ``sqlite_directory``.

    Args:
        settings: Database connection settings
        database: Physical database name

    Returns:
        URL carrying driver, credentials, host, database and extra options
    """
    if settings.is_sqlite:
        path = Path(settings.sqlite_directory) / f"{database}.db"
        return URL.create(
            drivername=settings.drivername,
            database=str(path),
            query=settings.query_options,
        )

    return URL.create(
        drivername=settings.drivername,
        username=settings.username,
        password=settings.password.get_secret_value(),
        host=settings.host,
        port=settings.port,
        database=database,
        query=settings.query_options,
    )


def ensure_database(
    engine: Engine,
    database: str,
    probe: PoolProbe | None = None,
) -> bool:
    """Create ``database`` on the server reached by ``engine`` if it is missing.

    ``engine`` must point at an existing database on the same server
    (normally the management database). CREATE DATABASE cannot run inside
    a transaction, so the statement is issued on an AUTOCOMMIT connection.

    Returns:
        True if the database was created, False if it already existed or the
        dialect creates databases implicitly (SQLite files).
    """
    probe = probe or DefaultPoolProbe()
    dialect = engine.dialect.name

    if dialect == "sqlite":
        return False

    # Names come from database_name_for, so quoting is only a second line.
    quoted = engine.dialect.identifier_preparer.quote(database)

    with engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
        if dialect == "postgresql":
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": database},
            ).scalar()
            if exists:
                return False
            conn.execute(text(f"CREATE DATABASE {quoted}"))
        elif dialect in ("mysql", "mariadb"):
            result = conn.execute(text(f"CREATE DATABASE IF NOT EXISTS {quoted}"))
            if result.rowcount == 0:
                return False
        else:
            raise NotImplementedError(
                f"Creating databases is not supported for dialect '{dialect}'"
            )

    probe.database_created(database)
    return True
