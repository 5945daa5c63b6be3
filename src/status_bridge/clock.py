"""Periodic wall-clock publisher."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Callable

log = logging.getLogger(__name__)


def clock_value(now: datetime) -> str:
    """24-hour ``HH:MM``."""
    return now.strftime("%H:%M")


class ClockTicker:
    """Runs ``callback`` once on start, then on every ``interval_sec`` boundary."""

    def __init__(self, callback: Callable[[], None], interval_sec: float = 60.0) -> None:
        self.callback = callback
        self.interval_sec = max(1.0, float(interval_sec))
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
        self._task = None

    def _tick(self) -> None:
        try:
            self.callback()
        except Exception:
            log.exception("Clock callback failed")

    async def _run(self) -> None:
        self._tick()
        while True:
            await asyncio.sleep(self.interval_sec - (time.time() % self.interval_sec))
            self._tick()
