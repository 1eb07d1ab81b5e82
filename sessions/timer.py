"""Cooperative one-second ticker for an active fishing session.

Elapsed time is always re-derived from the persisted start time rather than
counted up, so a process that restarts or is suspended reports the same
value as one that kept running.
"""
from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Callable, Optional

from loguru import logger

from core.clock import Clock


def elapsed_seconds(start_time: datetime, now: datetime) -> int:
    """Whole seconds since ``start_time``; never negative."""
    return max(0, int((now - start_time).total_seconds()))


class SessionTimer:
    """Cancellable periodic task reporting elapsed seconds.

    Attributes:
        start_time: Persisted session start
        interval: Seconds between ticks
        on_tick: Optional callback receiving the elapsed seconds
    """

    def __init__(
        self,
        start_time: datetime,
        clock: Optional[Clock] = None,
        interval: float = 1.0,
        on_tick: Optional[Callable[[int], None]] = None,
    ):
        self.start_time = start_time
        self.clock = clock or Clock()
        self.interval = interval
        self.on_tick = on_tick
        self._task: Optional[asyncio.Task] = None
        self._elapsed = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def elapsed(self) -> int:
        """Elapsed seconds as of the most recent tick."""
        return self._elapsed

    def tick(self) -> int:
        """Recompute elapsed time from the clock and notify the listener."""
        self._elapsed = elapsed_seconds(self.start_time, self.clock.now())
        if self.on_tick is not None:
            try:
                self.on_tick(self._elapsed)
            except Exception as e:
                logger.warning(f"[timer] tick listener failed: {e}")
        return self._elapsed

    def start(self) -> None:
        if self.running:
            return
        self.tick()
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()

    def cancel(self) -> None:
        """Stop ticking. Safe to call repeatedly."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def aclose(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
