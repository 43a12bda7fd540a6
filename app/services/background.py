"""
Periodic asyncio workers.

A worker sleeps for its interval, then calls ``run_once``. A failing run is
logged and counted; the loop keeps going until ``stop`` cancels it.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class BackgroundWorker:
    """Base class for housekeeping loops started from the app lifespan."""

    def __init__(self, *, interval: float, name: str) -> None:
        self.interval = interval
        self.name = name
        self._task: asyncio.Task[None] | None = None
        self.last_run_at: datetime | None = None
        self.failures = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name=self.name)
        logger.info("%s started, running every %ss", self.name, self.interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("%s stopped", self.name)

    async def run_once(self) -> bool:
        """Run a single pass. Returns False when the pass raised."""
        try:
            await self._tick()
        except Exception:
            self.failures += 1
            logger.exception("%s run failed (%d so far)", self.name, self.failures)
            return False
        self.last_run_at = datetime.now(timezone.utc)
        return True

    async def _tick(self) -> None:
        raise NotImplementedError

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.run_once()
