"""
Deferred task scheduling for bot automation.

A client owns exactly one TaskSlot; scheduling into it always cancels the
previous task first.
"""

import asyncio
import heapq
import itertools
from typing import Callable, List, Optional, Tuple

from .errors import SyncError, NO_EVENT_LOOP


class AsyncioScheduler:
    """Schedules callbacks on an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise SyncError(
                    NO_EVENT_LOOP,
                    "Bot automation needs a running event loop or an explicit scheduler"
                ) from e
        return loop.call_later(delay_ms / 1000, callback)


class ManualHandle:
    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """
    Virtual-clock scheduler. Nothing runs until the clock is advanced, which
    makes bot timing deterministic in simulations and tests.
    """

    def __init__(self):
        self.now = 0.0
        self._queue: List[Tuple[float, int, ManualHandle]] = []
        self._counter = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(self.now + delay_ms, callback)
        heapq.heappush(self._queue, (handle.when, next(self._counter), handle))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def advance(self, delay_ms: float) -> int:
        """Move the clock forward, running every task that falls due. Returns how many ran."""
        target = self.now + delay_ms
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = when
            handle.callback()
            ran += 1
        self.now = target
        return ran

    def run_pending(self) -> int:
        """Run tasks until the queue is empty, including tasks scheduled by tasks."""
        ran = 0
        while self._queue:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = max(self.now, when)
            handle.callback()
            ran += 1
        return ran


class TaskSlot:
    """Single-slot cancellable deferred task."""

    def __init__(self, scheduler):
        self.scheduler = scheduler
        self._handle = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    def schedule(self, delay_ms: float, callback: Callable[[], None]):
        self.cancel()

        def run():
            self._handle = None
            callback()

        self._handle = self.scheduler.call_later(delay_ms, run)
        return self._handle

    def cancel(self):
        if self._handle is None:
            return
        self._handle.cancel()
        self._handle = None
