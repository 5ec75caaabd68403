"""Domain probes for infrastructure observability.

Domain probes provide a high-level instrumentation API oriented around
domain semantics, keeping infrastructure code clean and testable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class PoolProbe(Protocol):
    """Domain probe for connection pool observability.

    This probe captures domain-significant events related to database
    connection pools without exposing logging implementation details.
    """

    def pool_opened(self, database: str, min_idle: int, max_size: int) -> None:
        """Record that a connection pool was opened."""
        ...

    def pool_open_failed(self, database: str, error: Exception) -> None:
        """Record that a pool could not establish its initial connections."""
        ...

    def connection_acquired(self, database: str) -> None:
        """Record that a connection was acquired from the pool."""
        ...

    def connection_released(self, database: str) -> None:
        """Record that a connection was returned to the pool."""
        ...

    def idle_connection_evicted(self, database: str, idle_seconds: float) -> None:
        """Record that a connection idle for too long was discarded."""
        ...

    def validation_failed(self, database: str, error: Exception) -> None:
        """Record that the liveness query failed."""
        ...

    def pool_closed(self, database: str) -> None:
        """Record that the connection pool was closed."""
        ...

    def database_created(self, database: str) -> None:
        """Record that a missing database was created."""
        ...

    def with_context(self, context: ObservationContext) -> PoolProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultPoolProbe:
    """Default implementation of PoolProbe using structlog.

    Supports observation context for including request-scoped metadata
    with all log events.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultPoolProbe:
        """Create a new probe with observation context bound."""
        return DefaultPoolProbe(logger=self._logger, context=context)

    def pool_opened(self, database: str, min_idle: int, max_size: int) -> None:
        """Record that a connection pool was opened."""
        self._logger.info(
            "connection_pool_opened",
            database=database,
            min_idle=min_idle,
            max_size=max_size,
            **self._get_context_kwargs(),
        )

    def pool_open_failed(self, database: str, error: Exception) -> None:
        """Record that a pool could not establish its initial connections."""
        self._logger.error(
            "connection_pool_open_failed",
            database=database,
            error=str(error),
            **self._get_context_kwargs(),
        )

    def connection_acquired(self, database: str) -> None:
        """Record that a connection was acquired from the pool."""
        self._logger.debug(
            "connection_acquired_from_pool",
            database=database,
            **self._get_context_kwargs(),
        )

    def connection_released(self, database: str) -> None:
        """Record that a connection was returned to the pool."""
        self._logger.debug(
            "connection_returned_to_pool",
            database=database,
            **self._get_context_kwargs(),
        )

    def idle_connection_evicted(self, database: str, idle_seconds: float) -> None:
        """Record that a connection idle for too long was discarded."""
        self._logger.debug(
            "idle_connection_evicted",
            database=database,
            idle_seconds=round(idle_seconds, 1),
            **self._get_context_kwargs(),
        )

    def validation_failed(self, database: str, error: Exception) -> None:
        """Record that the liveness query failed."""
        self._logger.warning(
            "connection_validation_failed",
            database=database,
            error=str(error),
            **self._get_context_kwargs(),
        )

    def pool_closed(self, database: str) -> None:
        """Record that the connection pool was closed."""
        self._logger.info(
            "connection_pool_closed",
            database=database,
            **self._get_context_kwargs(),
        )

    def database_created(self, database: str) -> None:
        """Record that a missing database was created."""
        self._logger.info(
            "database_created",
            database=database,
            **self._get_context_kwargs(),
        )
