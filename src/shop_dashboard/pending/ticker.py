"""
Periodic re-evaluation of the pending banner.

Dismissal and snooze expiry are time-based, so nothing in the store changes
when they lapse. The ticker re-runs the tracker's evaluation on a fixed
interval so an expired dismissal surfaces the banner without user input.
For file-backed stores each tick also polls for writes from other
processes before evaluating.
"""

import asyncio
import logging

from shop_dashboard.pending.tracker import PendingSaleTracker

logger = logging.getLogger(__name__)


class BannerTicker:
    """
    Background task driving ``PendingSaleTracker.evaluate``.

    Attributes:
        tracker: Tracker to re-evaluate
        interval_seconds: Seconds between ticks
        ticks: Number of completed ticks
    """

    def __init__(self, tracker: PendingSaleTracker, interval_seconds: float | None = None) -> None:
        self.tracker = tracker
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else tracker.settings.tick_interval_seconds
        )
        self.ticks = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def tick(self) -> None:
        """Poll the store for external writes (when supported) and re-evaluate."""
        poll = getattr(self.tracker.store, "poll", None)
        if callable(poll):
            poll()
        self.tracker.evaluate()
        self.ticks += 1

    async def _run(self) -> None:
        logger.info(f"Banner ticker started (interval={self.interval_seconds}s)")
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Banner tick failed: {e}")

    def start(self) -> None:
        """Start ticking on the running event loop; no-op if already running."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info(f"Banner ticker stopped after {self.ticks} tick(s)")

    async def __aenter__(self) -> "BannerTicker":
        self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.stop()
