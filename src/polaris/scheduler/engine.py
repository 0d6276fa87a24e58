# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""SweepScheduler: runs the failed-webhook sweep on a fixed interval.

Pure asyncio.  The scheduler is started as a background task in the API
lifespan when ``sweep_interval_seconds`` is positive.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from polaris.models.webhook import SweepResult
from polaris.retry.service import RetryService

logger = logging.getLogger("polaris.scheduler.engine")


class SweepScheduler:
    """Asyncio loop that calls :meth:`RetryService.sweep_failed` periodically."""

    def __init__(self, service: RetryService, *, interval: float) -> None:
        self._service = service
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self.last_result: SweepResult | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the sweep background loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Sweep scheduler started (interval=%ss)", self._interval)

    async def stop(self) -> None:
        """Gracefully stop the scheduler."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info("Sweep scheduler stopped")

    async def _loop(self) -> None:
        while self._running:
            try:
                await self.tick()
            except Exception:
                logger.exception("Sweep tick failed")
            await asyncio.sleep(self._interval)

    async def tick(self) -> SweepResult:
        """Run one sweep and remember its result."""
        self.last_result = await self._service.sweep_failed()
        if self.last_result.processed:
            logger.info(
                "Sweep retried %d webhook(s): %d succeeded, %d failed",
                self.last_result.processed,
                self.last_result.successes,
                self.last_result.failures,
            )
        return self.last_result
