"""Domain probes for schema migration orchestration."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Sequence

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class MigrationProbe(Protocol):
    """Domain probe for migration scope application."""

    def history_baselined(self, scope: str, database: str, history_table: str) -> None:
        """Record that an empty history table was created for a scope."""
        ...

    def migrations_applied(
        self,
        scope: str,
        database: str,
        applied: Sequence[str],
        heads: Sequence[str],
    ) -> None:
        """Record a successful apply of a scope."""
        ...

    def attempt_failed(self, scope: str, database: str, error: Exception) -> None:
        """Record that the first apply attempt failed and a repair follows."""
        ...

    def history_repaired(self, scope: str, database: str, removed: Sequence[str]) -> None:
        """Record that unknown revisions were removed from the history table."""
        ...

    def migration_failed(self, scope: str, database: str, error: Exception) -> None:
        """Record that the scope could not be applied after the retry."""
        ...

    def with_context(self, context: ObservationContext) -> MigrationProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultMigrationProbe:
    """Default implementation of MigrationProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultMigrationProbe:
        return DefaultMigrationProbe(logger=self._logger, context=context)

    def history_baselined(self, scope: str, database: str, history_table: str) -> None:
        self._logger.info(
            "migration_history_baselined",
            scope=scope,
            database=database,
            history_table=history_table,
            **self._get_context_kwargs(),
        )

    def migrations_applied(
        self,
        scope: str,
        database: str,
        applied: Sequence[str],
        heads: Sequence[str],
    ) -> None:
        self._logger.info(
            "migrations_applied",
            scope=scope,
            database=database,
            applied=list(applied),
            heads=list(heads),
            **self._get_context_kwargs(),
        )

    def attempt_failed(self, scope: str, database: str, error: Exception) -> None:
        self._logger.warning(
            "migration_attempt_failed",
            scope=scope,
            database=database,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def history_repaired(self, scope: str, database: str, removed: Sequence[str]) -> None:
        self._logger.info(
            "migration_history_repaired",
            scope=scope,
            database=database,
            removed=list(removed),
            **self._get_context_kwargs(),
        )

    def migration_failed(self, scope: str, database: str, error: Exception) -> None:
        self._logger.error(
            "migration_failed",
            scope=scope,
            database=database,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )
