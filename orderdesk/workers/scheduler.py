from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Protocol, Sequence

logger = logging.getLogger(__name__)


class PeriodicTask(Protocol):
    name: str

    def run_once(self) -> Awaitable[Any]: ...


class PollingScheduler:
    """Runs a fixed set of tasks on a fixed interval until stopped.

    A failure in one task is logged and does not prevent the remaining tasks
    of the tick, or later ticks, from running. The stop signal is checked
    between ticks only, so a tick is never abandoned halfway. Each return from
    :meth:`run` leaves a fresh stop event behind, so the scheduler can be run
    again under a new event loop.
    """

    def __init__(
        self,
        tasks: Sequence[PeriodicTask],
        *,
        interval: float,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must not be negative")
        self._tasks = list(tasks)
        self._interval = interval
        self._stop = stop_event or asyncio.Event()
        self._running = False
        self._ticks = 0

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def running(self) -> bool:
        return self._running

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    async def tick(self) -> None:
        self._ticks += 1
        for task in self._tasks:
            try:
                await task.run_once()
            except Exception:
                logger.exception("Error in polling task %s", getattr(task, "name", task))

    async def run(self) -> None:
        if self._running:
            raise RuntimeError("scheduler is already running")
        self._running = True
        logger.info("Order polling service started.")
        try:
            while not self._stop.is_set():
                await self.tick()
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            logger.warning("Order polling service was cancelled.")
            raise
        finally:
            # an Event is bound to the loop that first waited on it
            self._stop = asyncio.Event()
            self._running = False
            logger.info("Order polling service is stopping gracefully.")
