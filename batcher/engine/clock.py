"""
Time sources for scheduling delays.

Jobs never call ``asyncio.sleep`` or read the loop time directly; they go
through a clock so tests can substitute :class:`ManualClock` and move time
forward explicitly instead of waiting on the wall clock.
"""

import asyncio
import heapq
import itertools
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Monotonic time source with an awaitable delay."""

    def now(self) -> float:
        """Current monotonic time in seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the caller for ``seconds``."""
        ...


class AsyncioClock:
    """Clock backed by the running event loop."""

    def now(self) -> float:
        return asyncio.get_running_loop().time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


class ManualClock:
    """
    Virtual clock that only moves when :meth:`advance` is awaited.

    Sleepers are woken in deadline order. After each wake-up the event loop
    is given a few turns so continuations scheduled by the woken tasks
    (dispatching the next operation, publishing signals) run before time
    moves on.
    """

    def __init__(self, start: float = 0.0, settle_rounds: int = 10):
        self._now = start
        self._settle_rounds = settle_rounds
        self._sleepers: list[tuple[float, int, asyncio.Future[None]]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    @property
    def pending_sleepers(self) -> int:
        return sum(1 for _, _, future in self._sleepers if not future.done())

    async def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self._now + seconds, next(self._sequence), future))
        await future

    async def advance(self, seconds: float) -> None:
        """Move time forward, waking every sleeper whose deadline is reached."""
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards")
        await self.settle()
        target = self._now + seconds
        while self._sleepers and self._sleepers[0][0] <= target:
            deadline, _, future = heapq.heappop(self._sleepers)
            self._now = deadline
            if not future.done():
                future.set_result(None)
            await self.settle()
        self._now = target
        await self.settle()

    async def settle(self) -> None:
        """Let ready tasks run without moving time."""
        for _ in range(self._settle_rounds):
            await asyncio.sleep(0)
