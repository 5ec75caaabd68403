"""Background worker re-reading the tenant table on a fixed delay.

Operators may flip tenants on or off directly in the tenant table; the
worker makes the live pools catch up without a restart. It runs as a task
on the FastAPI event loop and hands the blocking reconciliation to a
worker thread.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from tenancy.infrastructure.observability import (
    DefaultRevalidationProbe,
    RevalidationProbe,
)


class RevalidationWorker:
    """Runs ``revalidate`` every ``interval_seconds`` after the previous run ended.

    A failing run is logged and the loop carries on with the next delay.
    """

    def __init__(
        self,
        revalidate: Callable[[], object],
        interval_seconds: float = 3600,
        probe: RevalidationProbe | None = None,
    ) -> None:
        """Initialize the worker.

        Args:
            revalidate: Blocking callable reconciling the live tenant set
            interval_seconds: Delay between the end of one run and the next
            probe: Observability probe for logging
        """
        self._revalidate = revalidate
        self._interval = interval_seconds
        self._probe = probe or DefaultRevalidationProbe()
        self._running = False
        self._task: asyncio.Task | None = None
        self._in_flight: asyncio.Future | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the revalidation loop. Starting a running worker is a no-op."""
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        self._probe.worker_started(self._interval)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish.

        A run already handed to its worker thread cannot be interrupted, so
        stop returns only once that run has ended.
        """
        self._running = False
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

        in_flight, self._in_flight = self._in_flight, None
        if in_flight is not None:
            if not in_flight.done():
                self._probe.waiting_for_revalidation()
            try:
                await in_flight
            except Exception as e:
                self._probe.revalidation_failed(e)
        self._probe.worker_stopped()

    async def _loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval)
            self._in_flight = asyncio.ensure_future(asyncio.to_thread(self._revalidate))
            try:
                # Cancelling the loop must not abandon the thread's result
                await asyncio.shield(self._in_flight)
            except Exception as e:
                # Keep the schedule alive; the next run may succeed
                self._probe.revalidation_failed(e)
            self._in_flight = None
