from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class IntervalJob:
    """Runs an async callable every `interval_seconds` inside the app's event loop."""

    name: str
    func: Callable[[], Awaitable[object]]
    interval_seconds: float
    run_immediately: bool = True
    _task: Optional[asyncio.Task] = field(default=None, init=False, repr=False)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"job-{self.name}")
        logger.info("Scheduled job %s started (every %ss)", self.name, self.interval_seconds)

    async def stop(self) -> None:
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Scheduled job %s stopped", self.name)

    async def run_once(self) -> None:
        try:
            await self.func()
        except Exception:
            # A failed run must not kill the loop; the next tick retries
            logger.exception("Scheduled job failed: %s", self.name)

    async def _run(self) -> None:
        if not self.run_immediately:
            await asyncio.sleep(self.interval_seconds)
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval_seconds)
