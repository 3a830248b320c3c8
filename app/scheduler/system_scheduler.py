"""System scheduler for background system tasks.

Runs the rate-limit table sweep once per limiter window so entries of clients
that never come back do not accumulate.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class SystemScheduler:
    """Scheduler for system-level periodic tasks."""

    def __init__(
        self,
        rate_limiter: "RateLimiter",
        *,
        interval_seconds: float | None = None,
    ) -> None:
        """Initialize the system scheduler.

        Args:
            rate_limiter: Limiter whose expired entries are swept.
            interval_seconds: Sweep period; defaults to the limiter window.
        """
        self.rate_limiter = rate_limiter
        self.interval_seconds = float(interval_seconds or rate_limiter.window_seconds)
        self._running = False
        self._sweep_task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()

    async def start(self) -> None:
        """Start the sweep background task."""
        if self._running:
            logger.warning("SystemScheduler is already running")
            return

        self._running = True
        self._stop_event = asyncio.Event()
        self._sweep_task = asyncio.create_task(self._run_sweep_loop())

        logger.info(
            "SystemScheduler started, rate-limit sweep every %.0f seconds",
            self.interval_seconds,
        )

    async def stop(self) -> None:
        """Stop the system scheduler gracefully."""
        if not self._running:
            logger.warning("SystemScheduler is not running")
            return

        logger.info("Stopping SystemScheduler...")
        self._running = False
        self._stop_event.set()

        if self._sweep_task:
            try:
                await asyncio.wait_for(self._sweep_task, timeout=10.0)
            except asyncio.TimeoutError:
                logger.warning("SystemScheduler task did not stop gracefully, cancelling")
                self._sweep_task.cancel()
                try:
                    await self._sweep_task
                except asyncio.CancelledError:
                    pass
            finally:
                self._sweep_task = None

        logger.info("SystemScheduler stopped")

    async def _run_sweep_loop(self) -> None:
        """Sweep, then wait one interval or until stop is signaled."""
        while self._running:
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self.interval_seconds,
                )
                break
            except asyncio.TimeoutError:
                pass

            try:
                self.run_sweep()
            except Exception as e:
                logger.exception("Error in rate-limit sweep: %s", e)

    def run_sweep(self) -> int:
        """Execute one sweep of the rate-limit table."""
        removed = self.rate_limiter.sweep()
        if removed:
            logger.debug("Rate-limit sweep removed %d expired entries", removed)
        return removed

    @property
    def is_running(self) -> bool:
        return self._running
