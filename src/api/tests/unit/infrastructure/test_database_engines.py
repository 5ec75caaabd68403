"""Unit tests for database naming, URL building and on-demand creation."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from pydantic import SecretStr
from sqlalchemy import create_engine

from infrastructure.database.engines import (
    build_url,
    database_name_for,
    ensure_database,
    management_database_name,
)
from infrastructure.database.exceptions import InvalidDatabaseNameError
from infrastructure.settings import DatabaseSettings


class TestDatabaseNaming:
    """Tests for deterministic database names."""

    def test_tenant_code_is_lowercased_and_prefixed(self):
        assert database_name_for("BRA") == "db_bra"

    def test_custom_prefix(self):
        assert database_name_for("CAN", prefix="shop_") == "shop_can"

    def test_management_database_name(self, mock_db_settings):
        assert management_database_name(mock_db_settings) == "db_tenants"

    @pytest.mark.parametrize("suffix", ["B-R", "a b", "x;drop", "Ç"])
    def test_unsafe_names_are_rejected(self, suffix):
        with pytest.raises(InvalidDatabaseNameError):
            database_name_for(suffix)

    def test_invalid_name_is_a_value_error(self):
        with pytest.raises(ValueError):
            database_name_for("B/R")


class TestBuildUrl:
    """Tests for build_url."""

    def test_server_url(self, mock_db_settings):
        url = build_url(mock_db_settings, "db_bra")

        assert url.drivername == "postgresql+psycopg2"
        assert url.host == "testhost"
        assert url.port == 5432
        assert url.username == "testuser"
        assert url.password == "testpass"
        assert url.database == "db_bra"

    def test_password_with_special_characters_is_encoded(self):
        settings = DatabaseSettings(username="app", password=SecretStr("p@ss"))

        url = build_url(settings, "db_bra")

        assert url.password == "p@ss"
        assert "p@ss" not in url.render_as_string(hide_password=False)

    def test_options_become_query_parameters(self):
        settings = DatabaseSettings(options="sslmode=require")

        url = build_url(settings, "db_bra")

        assert url.query == {"sslmode": "require"}

    def test_sqlite_database_is_a_file_in_directory(self, tmp_path):
        settings = DatabaseSettings(drivername="sqlite", sqlite_directory=str(tmp_path))

        url = build_url(settings, "db_bra")

        assert url.drivername == "sqlite"
        assert Path(url.database) == tmp_path / "db_bra.db"


class TestEnsureDatabase:
    """Tests for ensure_database."""

    @staticmethod
    def _server_engine(dialect):
        engine = MagicMock()
        engine.dialect.name = dialect
        engine.dialect.identifier_preparer.quote.side_effect = lambda name: name
        conn = engine.connect.return_value.execution_options.return_value.__enter__.return_value
        return engine, conn

    def test_sqlite_creates_nothing(self, sqlite_engine):
        assert ensure_database(sqlite_engine, "db_bra") is False

    def test_postgres_creates_missing_database(self):
        engine, conn = self._server_engine("postgresql")
        conn.execute.return_value.scalar.return_value = None
        probe = MagicMock()

        created = ensure_database(engine, "db_bra", probe=probe)

        assert created is True
        engine.connect.return_value.execution_options.assert_called_once_with(
            isolation_level="AUTOCOMMIT"
        )
        assert str(conn.execute.call_args_list[1].args[0]) == "CREATE DATABASE db_bra"
        probe.database_created.assert_called_once_with("db_bra")

    def test_postgres_existing_database_is_left_alone(self):
        engine, conn = self._server_engine("postgresql")
        conn.execute.return_value.scalar.return_value = 1
        probe = MagicMock()

        created = ensure_database(engine, "db_bra", probe=probe)

        assert created is False
        assert conn.execute.call_count == 1
        probe.database_created.assert_not_called()

    def test_mysql_uses_if_not_exists(self):
        engine, conn = self._server_engine("mysql")
        conn.execute.return_value.rowcount = 1

        assert ensure_database(engine, "db_bra", probe=MagicMock()) is True
        assert "IF NOT EXISTS" in str(conn.execute.call_args.args[0])

    def test_unsupported_dialect_raises(self):
        engine, _ = self._server_engine("oracle")

        with pytest.raises(NotImplementedError):
            ensure_database(engine, "db_bra", probe=MagicMock())


def test_in_memory_sqlite_creates_nothing():
    """In-memory SQLite databases exist as soon as they are connected to."""
    engine = create_engine("sqlite://")
    try:
        assert ensure_database(engine, "db_any") is False
    finally:
        engine.dispose()
