"""
strategy/scheduler.py - Fixed-cadence cycle driver.

One Scheduler per process. It runs the first cycle immediately, then one
every interval_seconds, and fans events out to any number of observers
through the shared BroadcastEventSink. Extra cycles can be fired with
trigger(); the engine's guard drops them while another cycle is running.

Ticks are scheduled from a monotonic start time and do not wait for the
previous cycle, so a long execution overlaps later ticks, which the guard
then skips. Stopping never cancels a cycle that is already in flight:
stop() waits for it to reach a terminal state.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional, Set

from core.events import BroadcastEventSink, Observer
from core.logging import get_logger

logger = get_logger(__name__)

CycleFn = Callable[[], Awaitable[Any]]


class Scheduler:
    """
    Usage:
        scheduler = Scheduler(engine.run_cycle, 30, events)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(self, cycle: CycleFn, interval_seconds: float, events: BroadcastEventSink):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.cycle = cycle
        self.interval_seconds = interval_seconds
        self.events = events
        self.ticks = 0

        self._task: Optional[asyncio.Task] = None
        self._stopping = asyncio.Event()
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def subscribe(self, observer: Observer) -> None:
        self.events.subscribe(observer)

    def unsubscribe(self, observer: Observer) -> None:
        self.events.unsubscribe(observer)

    async def start(self) -> None:
        if self.running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._loop(), name="xarb-scheduler")
        logger.info(
            "Scheduler started",
            extra={"context": {"interval_seconds": self.interval_seconds}},
        )

    async def stop(self) -> None:
        """Stop ticking and wait for any in-flight cycle to finish."""
        self._stopping.set()
        if self._task is not None:
            await self._task
            self._task = None
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)
        logger.info("Scheduler stopped", extra={"context": {"ticks": self.ticks}})

    def trigger(self) -> asyncio.Task:
        """Fire one cycle now, outside the cadence."""
        return self._spawn()

    def _spawn(self) -> asyncio.Task:
        task = asyncio.create_task(self._run_once())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def _run_once(self) -> Any:
        self.ticks += 1
        try:
            return await self.cycle()
        except Exception as e:
            logger.error(
                f"Scheduled cycle raised: {e}",
                extra={"context": {"tick": self.ticks}},
                exc_info=True,
            )
            return None

    async def _loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while not self._stopping.is_set():
            # Not awaited; the next tick never waits for this cycle.
            self._spawn()
            next_tick += self.interval_seconds
            now = loop.time()
            while next_tick <= now:
                next_tick += self.interval_seconds
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=next_tick - now)
            except asyncio.TimeoutError:
                pass
