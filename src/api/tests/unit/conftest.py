"""Unit test fixtures with in-memory doubles and SQLite databases."""

import contextlib
import threading
from unittest.mock import MagicMock

import pytest
import structlog
from sqlalchemy import create_engine

from infrastructure.database.pool import PoolLimits
from infrastructure.settings import DatabaseSettings


class FakePool:
    """In-memory DatabasePool double recording how it was used."""

    def __init__(self, database, valid=True, engine=None):
        self.database = database
        self.valid = valid
        self.engine = engine if engine is not None else MagicMock(name=f"{database}-engine")
        self.closed = False
        self.close_calls = 0

    @contextlib.contextmanager
    def connection(self):
        yield self.engine.connect()

    def validate(self):
        return self.valid

    def close(self):
        self.close_calls += 1
        self.closed = True


class RecordingOpener:
    """Pool opener handing out FakePools and remembering every one of them."""

    def __init__(self):
        self.opened = []
        self.valid = True
        self.error = None
        self._lock = threading.Lock()

    def __call__(self, url, limits, database):
        if self.error is not None:
            raise self.error
        pool = FakePool(database, valid=self.valid)
        with self._lock:
            self.opened.append(pool)
        return pool

    def by_database(self, database):
        return [pool for pool in self.opened if pool.database == database]


@pytest.fixture(autouse=True)
def clean_log_context():
    """Keep structlog context-local variables from leaking between tests."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def mock_db_settings():
    """Provide test database settings for a PostgreSQL server."""
    from pydantic import SecretStr

    return DatabaseSettings(
        host="testhost",
        port=5432,
        username="testuser",
        password=SecretStr("testpass"),
    )


@pytest.fixture
def sqlite_settings(tmp_path):
    """Database settings placing every database in a SQLite file under tmp_path."""
    return DatabaseSettings(
        drivername="sqlite",
        sqlite_directory=str(tmp_path),
        create_databases=False,
        pool_min_idle=1,
        pool_max_size=5,
    )


@pytest.fixture
def pool_limits():
    """Small pool limits for tests."""
    return PoolLimits(min_idle=1, max_size=5, connection_timeout_seconds=5)


@pytest.fixture
def make_pool():
    """Factory of FakePool doubles."""
    return FakePool


@pytest.fixture
def opener():
    return RecordingOpener()


@pytest.fixture
def sqlite_engine(tmp_path):
    """A SQLite engine on a throwaway file."""
    engine = create_engine(f"sqlite:///{tmp_path / 'scratch.db'}")
    yield engine
    engine.dispose()
