"""Connection pool handle for one physical database.

Each handle owns a SQLAlchemy engine whose QueuePool holds the live
connections to a single database. Handles are opened by the provisioner
(tenant databases) or at startup (management database) and closed exactly
once by whoever owns them.
"""

from __future__ import annotations

import contextlib
import math
import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator, Protocol, runtime_checkable

from sqlalchemy import create_engine, event, exc, text
from sqlalchemy.pool import QueuePool

from infrastructure.database.exceptions import DatabaseConnectionError, PoolClosedError
from infrastructure.observability.probes import DefaultPoolProbe, PoolProbe

if TYPE_CHECKING:
    from sqlalchemy.engine import URL, Connection, Engine

    from infrastructure.settings import DatabaseSettings

__all__ = [
    "DatabasePool",
    "PoolHandle",
    "PoolLimits",
]

_CHECKED_IN_AT = "checked_in_at"


@dataclass(frozen=True)
class PoolLimits:
    """Sizing and timeout limits of one connection pool.

    Attributes:
        min_idle: Connections opened eagerly when the pool starts
        max_size: Hard upper bound of open connections (no overflow)
        connection_timeout_seconds: Connect timeout and wait time for a free connection
        idle_timeout_seconds: A pooled connection idle longer than this is discarded at checkout
        max_lifetime_seconds: Connections older than this are recycled
        liveness_query: Lightweight statement used by validate()
    """

    min_idle: int = 2
    max_size: int = 20
    connection_timeout_seconds: float = 10.0
    idle_timeout_seconds: float = 600.0
    max_lifetime_seconds: int = 1800
    liveness_query: str = "SELECT 1"

    @classmethod
    def from_settings(cls, settings: DatabaseSettings) -> PoolLimits:
        """Build limits from the database settings section."""
        return cls(
            min_idle=settings.pool_min_idle,
            max_size=settings.pool_max_size,
            connection_timeout_seconds=settings.connection_timeout_seconds,
            idle_timeout_seconds=settings.idle_timeout_seconds,
            max_lifetime_seconds=settings.max_lifetime_seconds,
            liveness_query=settings.liveness_query,
        )


@runtime_checkable
class DatabasePool(Protocol):
    """Capabilities every pool installed in the tenant registry provides.

    Owners never inspect the concrete pool type; closing goes through close().
    """

    @property
    def database(self) -> str: ...

    @property
    def engine(self) -> Engine: ...

    @property
    def closed(self) -> bool: ...

    def connection(self) -> contextlib.AbstractContextManager[Connection]: ...

    def validate(self) -> bool: ...

    def close(self) -> None: ...


def _connect_args(url: URL, limits: PoolLimits) -> dict[str, Any]:
    """Driver-specific connect arguments carrying the connect timeout."""
    backend = url.get_backend_name()
    if backend == "sqlite":
        # Pooled SQLite connections are shared between worker threads
        return {"timeout": limits.connection_timeout_seconds, "check_same_thread": False}
    if backend in ("postgresql", "mysql", "mariadb"):
        return {"connect_timeout": max(1, math.ceil(limits.connection_timeout_seconds))}
    return {}


class PoolHandle:
    """Thread-safe connection pool for one database.

    Wraps a SQLAlchemy engine configured with a strict QueuePool
    (``pool_size=max_size``, no overflow), pre-ping on checkout, recycling
    after the max lifetime and eviction of connections idle for longer than
    the idle timeout.

    Attributes:
        _engine: The SQLAlchemy engine owning the pool
        _database: Physical database name (for logging and routing)
        _limits: Pool sizing and timeouts
        _probe: Observability probe for monitoring
    """

    def __init__(
        self,
        engine: Engine,
        database: str,
        limits: PoolLimits,
        probe: PoolProbe | None = None,
    ):
        """Wrap an already created engine. Use open() to create one from a URL.

        Args:
            engine: SQLAlchemy engine for the database
            database: Physical database name
            limits: Pool sizing and timeouts
            probe: Optional observability probe
        """
        self._engine = engine
        self._database = database
        self._limits = limits
        self._probe = probe or DefaultPoolProbe()
        self._closed = False
        self._close_lock = threading.Lock()

    @classmethod
    def open(
        cls,
        url: URL,
        limits: PoolLimits,
        database: str | None = None,
        probe: PoolProbe | None = None,
    ) -> PoolHandle:
        """Create the pool and establish its minimum idle connections.

        At least one connection is opened even when ``min_idle`` is 0, so an
        unreachable database fails here rather than on first use.

        Args:
            url: Target database URL, credentials included
            limits: Pool sizing and timeouts
            database: Name used in logs and errors (default: the URL database)
            probe: Optional observability probe

        Returns:
            An open PoolHandle

        Raises:
            DatabaseConnectionError: If the initial connections cannot be established
        """
        probe = probe or DefaultPoolProbe()
        database = database or url.database or ""

        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=limits.max_size,
            max_overflow=0,  # No overflow - strict pool limit
            pool_timeout=limits.connection_timeout_seconds,
            pool_recycle=limits.max_lifetime_seconds,
            pool_pre_ping=True,  # Verify connections before using
            connect_args=_connect_args(url, limits),
        )
        handle = cls(engine, database, limits, probe)
        handle._install_idle_eviction()

        try:
            handle._warm_up()
        except exc.SQLAlchemyError as e:
            engine.dispose()
            probe.pool_open_failed(database=database, error=e)
            raise DatabaseConnectionError(
                f"Failed to open connection pool for database '{database}': {e}",
                database=database,
            ) from e

        probe.pool_opened(
            database=database,
            min_idle=limits.min_idle,
            max_size=limits.max_size,
        )
        return handle

    @property
    def database(self) -> str:
        """Physical database name served by this pool."""
        return self._database

    @property
    def engine(self) -> Engine:
        """The SQLAlchemy engine backing this pool."""
        if self._closed:
            raise PoolClosedError(
                f"Connection pool for '{self._database}' is closed",
                database=self._database,
            )
        return self._engine

    @property
    def limits(self) -> PoolLimits:
        """Sizing and timeouts of this pool."""
        return self._limits

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    @contextlib.contextmanager
    def connection(self) -> Iterator[Connection]:
        """Acquire one connection and return it to the pool on exit.

        Raises:
            PoolClosedError: If the pool was closed
            DatabaseConnectionError: If no connection could be obtained within
                the connection timeout
        """
        engine = self.engine
        try:
            conn = engine.connect()
        except exc.SQLAlchemyError as e:
            raise DatabaseConnectionError(
                f"Cannot get connection for database '{self._database}': {e}",
                database=self._database,
            ) from e

        self._probe.connection_acquired(self._database)
        try:
            yield conn
        finally:
            conn.close()
            self._probe.connection_released(self._database)

    def validate(self) -> bool:
        """Run the liveness query on one pooled connection.

        Returns:
            True if the query succeeded, False otherwise
        """
        try:
            with self.connection() as conn:
                conn.execute(text(self._limits.liveness_query))
            return True
        except (DatabaseConnectionError, exc.SQLAlchemyError) as e:
            self._probe.validation_failed(database=self._database, error=e)
            return False

    def close(self) -> None:
        """Dispose every pooled connection. Calling it again is a no-op."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        self._engine.dispose()
        self._probe.pool_closed(self._database)

    def _warm_up(self) -> None:
        """Open min_idle connections concurrently held, then return them to the pool."""
        with contextlib.ExitStack() as stack:
            for _ in range(max(self._limits.min_idle, 1)):
                stack.enter_context(self._engine.connect())

    def _install_idle_eviction(self) -> None:
        """Discard pooled connections that sat idle longer than the idle timeout.

        Raising DisconnectionError from a checkout listener makes the pool drop
        the connection and transparently retry with a fresh one.
        """
        idle_timeout = self._limits.idle_timeout_seconds

        @event.listens_for(self._engine, "checkin")
        def _stamp_checkin(dbapi_connection: Any, connection_record: Any) -> None:
            connection_record.info[_CHECKED_IN_AT] = time.monotonic()

        @event.listens_for(self._engine, "checkout")
        def _evict_idle(
            dbapi_connection: Any,
            connection_record: Any,
            connection_proxy: Any,
        ) -> None:
            checked_in_at = connection_record.info.pop(_CHECKED_IN_AT, None)
            if checked_in_at is None:
                return
            idle_seconds = time.monotonic() - checked_in_at
            if idle_seconds > idle_timeout:
                self._probe.idle_connection_evicted(self._database, idle_seconds)
                raise exc.DisconnectionError(
                    f"Connection idle for {idle_seconds:.0f}s exceeds {idle_timeout:.0f}s"
                )

    def __repr__(self) -> str:
        """Return string representation."""
        state = "closed" if self._closed else "open"
        return f"<PoolHandle(database={self._database}, {state})>"
