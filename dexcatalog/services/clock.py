"""
Clocks for delayed work.

All sleeps and delayed callbacks (retry backoff, batch pauses, search
debounce) go through a `Clock` so tests can swap in `VirtualClock` and move
time forward explicitly.
"""

import asyncio
import heapq
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock:
    """Wall-clock time on the running event loop."""

    def now(self) -> float:
        return asyncio.get_running_loop().time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


@dataclass(order=True)
class _Scheduled:
    deadline: float
    seq: int
    callback: Callable[[], None] | None = field(compare=False, default=None)
    waiter: asyncio.Future[None] | None = field(compare=False, default=None)
    cancelled: bool = field(compare=False, default=False)

    def cancel(self) -> None:
        self.cancelled = True


class VirtualClock(Clock):
    """
    Deterministic clock for tests.

    With `auto_advance=True` every sleep completes at once and moves virtual
    time forward by its duration. With `auto_advance=False` sleepers stay
    suspended until `advance()` passes their deadline.

    Every requested sleep duration is recorded in `sleeps`.
    """

    def __init__(self, auto_advance: bool = True) -> None:
        self.auto_advance = auto_advance
        self.sleeps: list[float] = []
        self._now = 0.0
        self._queue: list[_Scheduled] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if self.auto_advance:
            self._now += seconds
            self._fire_due()
            await asyncio.sleep(0)
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        heapq.heappush(
            self._queue, _Scheduled(self._now + seconds, next(self._seq), waiter=waiter)
        )
        await waiter

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        entry = _Scheduled(self._now + delay, next(self._seq), callback=callback)
        heapq.heappush(self._queue, entry)
        return entry

    async def advance(self, seconds: float) -> None:
        """
        Move virtual time forward, firing timers and waking sleepers in order.

        Yields to the event loop after each wake-up so woken tasks can run
        (and schedule further work) before later deadlines are processed.
        """
        target = self._now + seconds
        while self._queue and self._queue[0].deadline <= target:
            entry = heapq.heappop(self._queue)
            self._now = max(self._now, entry.deadline)
            self._run(entry)
            await _drain()
        self._now = target
        await _drain()

    def pending(self) -> int:
        """Number of scheduled timers and sleepers not yet fired."""
        return sum(1 for entry in self._queue if not entry.cancelled)

    def _fire_due(self) -> None:
        while self._queue and self._queue[0].deadline <= self._now:
            self._run(heapq.heappop(self._queue))

    @staticmethod
    def _run(entry: _Scheduled) -> None:
        if entry.cancelled:
            return
        if entry.waiter is not None:
            if not entry.waiter.done():
                entry.waiter.set_result(None)
        elif entry.callback is not None:
            entry.callback()


async def _drain(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)
