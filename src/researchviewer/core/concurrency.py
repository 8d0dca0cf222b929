"""Cancellation and task bookkeeping for the single UI event loop."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Coroutine, TypeVar

T = TypeVar("T")


class CancellationToken:
    """One-shot cancellation signal.

    Cancelling is synchronous and idempotent; it wakes every pending :meth:`wait` and :meth:`race`.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""

        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    async def race(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first.

        Raises:
            asyncio.CancelledError: If the token was cancelled before ``awaitable`` finished.
        """

        if self._cancelled:
            raise asyncio.CancelledError()
        work = asyncio.ensure_future(awaitable)
        stopper = asyncio.ensure_future(self.wait())
        try:
            done, _ = await asyncio.wait({work, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopper.cancel()
            if not work.done():
                work.cancel()
                # the awaitable may hold a resource the caller is about to release
                await asyncio.wait({work})
        if work in done:
            return work.result()
        raise asyncio.CancelledError()


class TaskTracker:
    """Keeps references to fire-and-forget tasks so they are not garbage collected."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, T], *, name: str | None = None) -> asyncio.Task[T]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_all(self) -> None:
        """Wait for all tasks to complete."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
