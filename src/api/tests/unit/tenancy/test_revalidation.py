"""Unit tests for the revalidation worker."""

import asyncio
import threading
from unittest.mock import MagicMock

import pytest

from tenancy.domain.tenant import Tenant
from tenancy.infrastructure.revalidation import RevalidationWorker


async def wait_for(predicate, timeout=2.0):
    """Poll ``predicate`` until it holds or the timeout expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


class CountingRevalidation:
    """Blocking revalidation callable counting its runs."""

    def __init__(self, failures=0):
        self.calls = 0
        self.failures = failures
        self.threads = set()
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.calls += 1
            self.threads.add(threading.current_thread().name)
            if self.calls <= self.failures:
                raise RuntimeError("management database unavailable")


class TestRevalidationWorker:
    """Tests for RevalidationWorker."""

    @pytest.mark.asyncio
    async def test_runs_repeatedly_on_interval(self):
        revalidate = CountingRevalidation()
        probe = MagicMock()
        worker = RevalidationWorker(revalidate, interval_seconds=0.01, probe=probe)

        await worker.start()
        try:
            await wait_for(lambda: revalidate.calls >= 2)
        finally:
            await worker.stop()

        probe.worker_started.assert_called_once_with(0.01)
        probe.worker_stopped.assert_called_once()
        assert not worker.running

    @pytest.mark.asyncio
    async def test_runs_off_the_event_loop_thread(self):
        revalidate = CountingRevalidation()
        worker = RevalidationWorker(revalidate, interval_seconds=0.01, probe=MagicMock())

        await worker.start()
        try:
            await wait_for(lambda: revalidate.calls >= 1)
        finally:
            await worker.stop()

        assert threading.current_thread().name not in revalidate.threads

    @pytest.mark.asyncio
    async def test_failed_run_does_not_stop_the_loop(self):
        revalidate = CountingRevalidation(failures=1)
        probe = MagicMock()
        worker = RevalidationWorker(revalidate, interval_seconds=0.01, probe=probe)

        await worker.start()
        try:
            await wait_for(lambda: revalidate.calls >= 3)
        finally:
            await worker.stop()

        probe.revalidation_failed.assert_called_once()
        assert isinstance(probe.revalidation_failed.call_args.args[0], RuntimeError)

    @pytest.mark.asyncio
    async def test_start_twice_starts_one_loop(self):
        probe = MagicMock()
        worker = RevalidationWorker(CountingRevalidation(), interval_seconds=60, probe=probe)

        await worker.start()
        await worker.start()
        await worker.stop()

        probe.worker_started.assert_called_once()

    @pytest.mark.asyncio
    async def test_stop_before_start_is_a_no_op(self):
        probe = MagicMock()
        worker = RevalidationWorker(CountingRevalidation(), probe=probe)

        await worker.stop()

        probe.worker_stopped.assert_not_called()

    @pytest.mark.asyncio
    async def test_first_run_waits_for_the_interval(self):
        revalidate = CountingRevalidation()
        worker = RevalidationWorker(revalidate, interval_seconds=60, probe=MagicMock())

        await worker.start()
        await asyncio.sleep(0.05)
        await worker.stop()

        assert revalidate.calls == 0


class BlockedRevalidation:
    """Revalidation that holds its worker thread until released."""

    def __init__(self, then=None):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.finished = False
        self._then = then

    def __call__(self):
        self.entered.set()
        self.release.wait(timeout=5)
        if self._then is not None:
            self._then()
        self.finished = True


class TestStopDuringRevalidation:
    """Tests for stopping the worker while a run is in its thread."""

    @pytest.mark.asyncio
    async def test_stop_waits_for_in_flight_run(self):
        revalidate = BlockedRevalidation()
        probe = MagicMock()
        worker = RevalidationWorker(revalidate, interval_seconds=0.01, probe=probe)

        await worker.start()
        try:
            await wait_for(revalidate.entered.is_set)
            stopping = asyncio.create_task(worker.stop())
            await asyncio.sleep(0.05)

            assert not stopping.done()
        finally:
            revalidate.release.set()

        await stopping

        assert revalidate.finished
        probe.waiting_for_revalidation.assert_called_once()
        probe.worker_stopped.assert_called_once()

    @pytest.mark.asyncio
    async def test_failure_of_in_flight_run_is_reported_on_stop(self):
        def fail():
            raise RuntimeError("management database unavailable")

        revalidate = BlockedRevalidation(then=fail)
        probe = MagicMock()
        worker = RevalidationWorker(revalidate, interval_seconds=0.01, probe=probe)

        await worker.start()
        await wait_for(revalidate.entered.is_set)
        stopping = asyncio.create_task(worker.stop())
        await asyncio.sleep(0.01)
        revalidate.release.set()
        await stopping

        probe.revalidation_failed.assert_called_once()
        probe.worker_stopped.assert_called_once()

    @pytest.mark.asyncio
    async def test_pool_opened_by_in_flight_run_is_closed_on_shutdown(
        self, registry, opener
    ):
        revalidate = BlockedRevalidation(
            then=lambda: registry.add_one(Tenant(code="BRA", name="Brazil"))
        )
        worker = RevalidationWorker(revalidate, interval_seconds=0.01, probe=MagicMock())

        await worker.start()
        await wait_for(revalidate.entered.is_set)
        stopping = asyncio.create_task(worker.stop())
        await asyncio.sleep(0.01)
        revalidate.release.set()
        await stopping
        registry.close_all()

        assert [pool.database for pool in opener.opened] == ["db_bra"]
        assert all(pool.closed for pool in opener.opened)
        assert registry.codes() == set()
