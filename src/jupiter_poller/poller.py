"""Fixed-interval tick scheduling with a single-flight guard.

Ticks are launched as tasks and never awaited by the loop that schedules
them, so a slow tick cannot delay the next deadline. The overlap policy
decides what happens to a tick whose deadline arrives while another one is
still running.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Set

LOG = logging.getLogger(__name__)

Tick = Callable[[], Awaitable[object]]


class OverlapPolicy(str, Enum):
    SKIP = "skip"
    QUEUE = "queue"


@dataclass
class PollStats:
    scheduled: int = 0
    completed: int = 0
    failed: int = 0
    skipped: int = 0


class PollDriver:
    def __init__(self, tick: Tick, overlap: OverlapPolicy = OverlapPolicy.SKIP) -> None:
        self.tick = tick
        self.overlap = OverlapPolicy(overlap)
        self.stats = PollStats()
        self._lock = asyncio.Lock()
        self._pending = 0
        self._running = False
        self._tasks: Set["asyncio.Task[None]"] = set()
        self._stop: Optional[asyncio.Event] = None

    @property
    def busy(self) -> bool:
        return self._running or self._pending > 0

    def stop(self) -> None:
        if self._stop is not None:
            self._stop.set()

    def _stop_event(self) -> asyncio.Event:
        if self._stop is None:
            self._stop = asyncio.Event()
        return self._stop

    def schedule(self) -> bool:
        """Launch one tick unless the overlap policy rejects it."""
        self.stats.scheduled += 1
        number = self.stats.scheduled
        if self.busy and (self.overlap is OverlapPolicy.SKIP or self._pending > 0):
            self.stats.skipped += 1
            LOG.warning("Tick %d skipped, previous tick still in flight", number)
            return False

        self._pending += 1
        task = asyncio.get_running_loop().create_task(self._run_tick(number))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _run_tick(self, number: int) -> None:
        async with self._lock:
            self._pending -= 1
            self._running = True
            try:
                await self.tick()
                self.stats.completed += 1
            except Exception:
                self.stats.failed += 1
                LOG.exception("Tick %d failed", number)
            finally:
                self._running = False

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def run_bounded(self, iterations: int, delay: float) -> PollStats:
        stop = self._stop_event()
        for _ in range(iterations):
            if stop.is_set():
                break
            self.schedule()
            await asyncio.sleep(delay)
        await self.drain()
        return self.stats

    async def run_forever(self, interval: float) -> PollStats:
        stop = self._stop_event()
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while not stop.is_set():
            self.schedule()
            deadline += interval
            try:
                await asyncio.wait_for(stop.wait(), timeout=max(0.0, deadline - loop.time()))
            except asyncio.TimeoutError:
                pass
        await self.drain()
        return self.stats
