"""Scheduled callbacks with explicit cancellation.

The drill engine only needs ``now()`` and ``call_later(delay, callback)``
returning a handle with ``cancel()``. ``VirtualClock`` drives everything
synchronously for tests and offline replay; ``AsyncioTimers`` uses the
running event loop for the live server.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Timers(Protocol):
    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class VirtualTimer:
    """Handle for a callback scheduled on a VirtualClock."""

    __slots__ = ("when", "callback", "_cancelled")

    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class VirtualClock:
    """Manually advanced clock.

    Usage::

        clock = VirtualClock()
        clock.call_later(2.5, on_timeout)
        clock.advance(3.0)  # runs on_timeout at t=2.5
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: list[tuple[float, int, VirtualTimer]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> VirtualTimer:
        timer = VirtualTimer(self._now + max(delay, 0.0), callback)
        heapq.heappush(self._queue, (timer.when, next(self._seq), timer))
        return timer

    def advance(self, seconds: float) -> None:
        """Move time forward, firing due callbacks in order.

        Callbacks scheduled by a firing callback run in the same call if
        they fall due before the target time.
        """
        self.advance_to(self._now + seconds)

    def advance_to(self, target: float) -> None:
        while self._queue and self._queue[0][0] <= target:
            when, _, timer = heapq.heappop(self._queue)
            if timer.cancelled():
                continue
            self._now = max(self._now, when)
            timer.callback()
        self._now = max(self._now, target)

    @property
    def pending(self) -> int:
        """Number of scheduled, non-cancelled callbacks."""
        return sum(1 for _, _, t in self._queue if not t.cancelled())


class AsyncioTimers:
    """Timers backed by an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self.loop = loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(max(delay, 0.0), callback)
