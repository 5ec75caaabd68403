"""Unit tests for PoolHandle against SQLite database files."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import text
from sqlalchemy.engine import URL

from infrastructure.database.exceptions import DatabaseConnectionError, PoolClosedError
from infrastructure.database.pool import DatabasePool, PoolHandle, PoolLimits


@pytest.fixture
def url(tmp_path):
    return URL.create("sqlite", database=str(tmp_path / "db_bra.db"))


@pytest.fixture
def probe():
    return MagicMock()


@pytest.fixture
def handle(url, pool_limits, probe):
    handle = PoolHandle.open(url, pool_limits, database="db_bra", probe=probe)
    yield handle
    handle.close()


class TestPoolLimits:
    """Tests for PoolLimits."""

    def test_defaults(self):
        limits = PoolLimits()

        assert limits.min_idle == 2
        assert limits.max_size == 20
        assert limits.connection_timeout_seconds == 10.0
        assert limits.idle_timeout_seconds == 600.0
        assert limits.max_lifetime_seconds == 1800
        assert limits.liveness_query == "SELECT 1"

    def test_from_settings(self, sqlite_settings):
        limits = PoolLimits.from_settings(sqlite_settings)

        assert limits.min_idle == 1
        assert limits.max_size == 5
        assert limits.liveness_query == sqlite_settings.liveness_query


class TestPoolHandleOpen:
    """Tests for PoolHandle.open."""

    def test_open_warms_up_min_idle_connections(self, url, probe):
        limits = PoolLimits(min_idle=2, max_size=5)

        handle = PoolHandle.open(url, limits, database="db_bra", probe=probe)
        try:
            assert handle.engine.pool.checkedin() == 2
            probe.pool_opened.assert_called_once_with(
                database="db_bra", min_idle=2, max_size=5
            )
        finally:
            handle.close()

    def test_engine_uses_strict_pool_size(self, handle):
        pool = handle.engine.pool

        assert pool.size() == 5
        assert pool._max_overflow == 0

    def test_database_defaults_to_url_database(self, url, pool_limits):
        handle = PoolHandle.open(url, pool_limits, probe=MagicMock())
        try:
            assert handle.database == url.database
        finally:
            handle.close()

    def test_unreachable_database_raises_connection_error(self, tmp_path, pool_limits, probe):
        url = URL.create("sqlite", database=str(tmp_path / "missing" / "db_bra.db"))

        with pytest.raises(DatabaseConnectionError) as exc_info:
            PoolHandle.open(url, pool_limits, database="db_bra", probe=probe)

        assert exc_info.value.database == "db_bra"
        probe.pool_open_failed.assert_called_once()
        probe.pool_opened.assert_not_called()

    def test_handle_satisfies_pool_protocol(self, handle):
        assert isinstance(handle, DatabasePool)


class TestPoolHandleUsage:
    """Tests for connections, validation and closing."""

    def test_connection_executes_queries(self, handle, probe):
        with handle.connection() as conn:
            assert conn.execute(text("SELECT 1")).scalar() == 1

        probe.connection_acquired.assert_called_with("db_bra")
        probe.connection_released.assert_called_with("db_bra")

    def test_validate_succeeds_on_live_database(self, handle):
        assert handle.validate() is True

    def test_validate_reports_failing_liveness_query(self, url, probe):
        limits = PoolLimits(min_idle=1, max_size=2, liveness_query="SELECT * FROM nowhere")
        handle = PoolHandle.open(url, limits, database="db_bra", probe=probe)
        try:
            assert handle.validate() is False
            probe.validation_failed.assert_called_once()
        finally:
            handle.close()

    def test_close_is_idempotent(self, handle, probe):
        handle.close()
        handle.close()

        assert handle.closed
        probe.pool_closed.assert_called_once_with("db_bra")

    def test_closed_pool_refuses_connections(self, handle):
        handle.close()

        with pytest.raises(PoolClosedError):
            handle.engine
        with pytest.raises(PoolClosedError):
            with handle.connection():
                pass

    def test_validate_on_closed_pool_is_false(self, handle):
        handle.close()

        assert handle.validate() is False

    def test_repr_shows_state(self, handle):
        assert repr(handle) == "<PoolHandle(database=db_bra, open)>"
        handle.close()
        assert repr(handle) == "<PoolHandle(database=db_bra, closed)>"


class TestIdleEviction:
    """Tests for discarding connections idle past the idle timeout."""

    def test_idle_connection_is_replaced_on_checkout(self, url, probe):
        limits = PoolLimits(min_idle=1, max_size=2, idle_timeout_seconds=1e-9)
        handle = PoolHandle.open(url, limits, database="db_bra", probe=probe)
        try:
            with handle.connection() as conn:
                assert conn.execute(text("SELECT 1")).scalar() == 1

            probe.idle_connection_evicted.assert_called()
        finally:
            handle.close()

    def test_recently_used_connection_is_kept(self, handle, probe):
        with handle.connection() as conn:
            conn.execute(text("SELECT 1"))

        probe.idle_connection_evicted.assert_not_called()
