from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel

log = logging.getLogger(__name__)


class TaskStatus(BaseModel):
    """Last outcome of a background job, reported by /healthz."""

    runs: int = 0
    last_run_at: float | None = None
    last_ok_at: float | None = None
    error: str | None = None


class PeriodicTask:
    """Fixed-interval background job owned by the app lifespan.

    ``run_once`` executes a single tick (tests drive it directly),
    ``trigger`` wakes the loop early, ``stop`` cancels it.
    """

    def __init__(
        self,
        name: str,
        job: Callable[[], Awaitable[Any]],
        interval: float,
        *,
        timeout: float | None = None,
        initial_delay: float = 0.0,
    ) -> None:
        self.name = name
        self._job = job
        self._interval = interval
        self._timeout = timeout
        self._initial_delay = initial_delay
        self._wakeup = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.status = TaskStatus()

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> bool:
        """Run the job once; log and record failures instead of raising."""
        self.status.runs += 1
        self.status.last_run_at = time.time()
        try:
            if self._timeout is not None:
                await asyncio.wait_for(self._job(), timeout=self._timeout)
            else:
                await self._job()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning("Background job %s failed: %s", self.name, e)
            self.status.error = str(e) or type(e).__name__
            return False
        self.status.last_ok_at = time.time()
        self.status.error = None
        log.debug("Background job %s done", self.name)
        return True

    def trigger(self) -> None:
        self._wakeup.set()

    async def _sleep(self, seconds: float) -> None:
        """Sleep up to *seconds*; ``trigger`` cuts it short."""
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _loop(self, initial_delay: float) -> None:
        if initial_delay:
            await self._sleep(initial_delay)
        while True:
            self._wakeup.clear()
            await self.run_once()
            await self._sleep(self._interval)

    def start(self, *, initial_delay: float | None = None) -> None:
        if not self.running:
            delay = self._initial_delay if initial_delay is None else initial_delay
            self._task = asyncio.create_task(self._loop(delay), name=self.name)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
