"""Domain probe for the scheduled tenant revalidation worker."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class RevalidationProbe(Protocol):
    """Domain probe for the revalidation worker lifecycle."""

    def worker_started(self, interval_seconds: float) -> None: ...

    def waiting_for_revalidation(self) -> None: ...

    def worker_stopped(self) -> None: ...

    def revalidation_failed(self, error: Exception) -> None: ...

    def with_context(self, context: ObservationContext) -> RevalidationProbe: ...


class DefaultRevalidationProbe:
    """Default implementation of RevalidationProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultRevalidationProbe:
        return DefaultRevalidationProbe(logger=self._logger, context=context)

    def worker_started(self, interval_seconds: float) -> None:
        self._logger.info(
            "revalidation_worker_started",
            interval_seconds=interval_seconds,
            **self._get_context_kwargs(),
        )

    def waiting_for_revalidation(self) -> None:
        self._logger.info(
            "revalidation_worker_waiting_for_run", **self._get_context_kwargs()
        )

    def worker_stopped(self) -> None:
        self._logger.info("revalidation_worker_stopped", **self._get_context_kwargs())

    def revalidation_failed(self, error: Exception) -> None:
        self._logger.error(
            "scheduled_revalidation_failed",
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )
