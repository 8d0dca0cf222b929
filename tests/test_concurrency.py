"""Tests for cancellation tokens and task tracking."""

from __future__ import annotations

import asyncio

import pytest

from researchviewer.core.concurrency import CancellationToken, TaskTracker


def test_cancel_is_idempotent_and_wakes_waiters() -> None:
    """It should release every waiter once, and stay cancelled."""

    async def scenario() -> None:
        token = CancellationToken()
        waiters = [asyncio.create_task(token.wait()) for _ in range(2)]
        await asyncio.sleep(0)
        token.cancel()
        token.cancel()
        await asyncio.wait_for(asyncio.gather(*waiters), timeout=1)
        await token.wait()
        assert token.cancelled

    asyncio.run(scenario())


def test_race_returns_result_when_not_cancelled() -> None:
    """It should return the awaited value."""

    async def scenario() -> int:
        async def work() -> int:
            await asyncio.sleep(0)
            return 7

        return await CancellationToken().race(work())

    assert asyncio.run(scenario()) == 7


def test_race_raises_when_token_fires_first() -> None:
    """It should abandon the awaitable when the token is cancelled."""

    async def scenario() -> None:
        token = CancellationToken()
        never = asyncio.get_running_loop().create_future()
        asyncio.get_running_loop().call_soon(token.cancel)
        with pytest.raises(asyncio.CancelledError):
            await token.race(never)
        assert never.cancelled()

    asyncio.run(scenario())


def test_task_tracker_waits_for_spawned_tasks() -> None:
    """It should keep tasks alive until done and wait for all of them, failed ones included."""

    async def scenario() -> None:
        tracker = TaskTracker()
        quick = tracker.spawn(asyncio.sleep(0), name="quick")

        async def boom() -> None:
            raise RuntimeError("stream failed")

        failed = tracker.spawn(boom(), name="failed")
        await tracker.wait_all()

        assert quick.done() and failed.done()
        assert isinstance(failed.exception(), RuntimeError)

    asyncio.run(scenario())


def test_race_cancelled_from_outside_cancels_the_awaitable() -> None:
    """It should not leave the raced work running when the awaiting task is cancelled."""

    async def scenario() -> None:
        token = CancellationToken()
        started = asyncio.Event()

        async def forever() -> None:
            started.set()
            await asyncio.Event().wait()

        outer = asyncio.create_task(token.race(forever()))
        await started.wait()
        outer.cancel()
        with pytest.raises(asyncio.CancelledError):
            await outer
        for _ in range(3):
            await asyncio.sleep(0)

        assert [t for t in asyncio.all_tasks() if t is not asyncio.current_task()] == []

    asyncio.run(scenario())
