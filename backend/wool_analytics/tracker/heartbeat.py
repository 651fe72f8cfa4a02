"""
Time-on-page heartbeat.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Optional

import structlog

logger = structlog.get_logger()


class Heartbeat:
    """
    Calls ``on_beat(seconds_on_page)`` every ``interval`` seconds.

    ``start`` always restarts from zero elapsed time.
    """

    def __init__(self, interval: float, on_beat: Callable[[int], None]) -> None:
        self.interval = interval
        self._on_beat = on_beat
        self._task: Optional[asyncio.Task[None]] = None
        self.elapsed = 0.0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        self.stop()
        self.elapsed = 0.0
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("heartbeat_not_started", reason="no_event_loop")
            return
        self._task = loop.create_task(self._run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def beat(self) -> None:
        """Advance one interval and report it."""
        self.elapsed += self.interval
        self._on_beat(round(self.elapsed))

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.beat()
