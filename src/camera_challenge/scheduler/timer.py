"""
Periodic Task
=============

Fixed-period asyncio cadence with an explicit cancellation token.

Design Rules:
    - The callback is awaited inside the loop, so ticks never overlap
    - Deadlines missed while a tick was running are dropped, not queued
    - cancel() only sets the token; cancelling twice is a no-op
    - A tick already in progress completes; no new tick starts after cancel()
    - Callback errors are logged and do not stop the cadence
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional


logger = logging.getLogger(__name__)


TickCallback = Callable[[], Awaitable[None]]


class PeriodicTask:
    """
    Repeating timer driving a coroutine callback.

    Attributes:
        period: Seconds between ticks
        name: Task name (for logs and asyncio debugging)
        ticks: Number of callbacks run
        dropped_ticks: Deadlines skipped because a tick overran

    Example:
        timer = PeriodicTask(scheduler.tick, period=5.0)
        timer.start()

        # Later, from anywhere (including inside the callback)
        timer.cancel()
        await timer.wait_closed()
    """

    def __init__(
        self,
        callback: TickCallback,
        period: float,
        name: str = "capture_timer",
    ) -> None:
        if period <= 0:
            raise ValueError("period must be > 0")

        self.period = period
        self.name = name
        self._callback = callback
        self._stop_event: asyncio.Event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

        self.ticks: int = 0
        self.dropped_ticks: int = 0

    @property
    def cancelled(self) -> bool:
        return self._stop_event.is_set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the first tick one period from now."""
        if self._task is not None:
            raise RuntimeError(f"{self.name} already started")
        self._task = asyncio.create_task(self._run(), name=self.name)
        logger.debug(f"{self.name} started (period={self.period}s)")

    def cancel(self) -> None:
        """Stop scheduling ticks. Idempotent."""
        if self._stop_event.is_set():
            return
        self._stop_event.set()
        logger.debug(f"{self.name} cancelled after {self.ticks} ticks")

    async def wait_closed(self) -> None:
        """Wait for the loop to exit after cancel()."""
        # A tick awaiting its own loop would never return
        if self._task is None or self._task is asyncio.current_task():
            return
        await self._task

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time() + self.period

        while not self._stop_event.is_set():
            delay = next_at - loop.time()
            if delay > 0:
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                    # Cancellation token was set
                    break
                except asyncio.TimeoutError:
                    pass

            self.ticks += 1
            try:
                await self._callback()
            except Exception:
                logger.exception(f"{self.name} tick {self.ticks} failed")

            next_at += self.period
            now = loop.time()
            if now >= next_at:
                missed = int((now - next_at) // self.period) + 1
                self.dropped_ticks += missed
                next_at += missed * self.period
                logger.warning(f"{self.name} overran, dropped {missed} tick(s)")
