# src/focusmate/timer/ticker.py

from __future__ import annotations

"""
Tick source for the timer engine.

Ticks run as an asyncio task on the caller's event loop, so the tick handler
and the engine's API calls are serialized by the loop and never interleave.
"""

import asyncio
import logging

from ..core.ports import TickCallback

logger = logging.getLogger(__name__)

TICK_INTERVAL_SECONDS = 1.0


class AsyncioTicker:
    def __init__(self, interval_seconds: float = TICK_INTERVAL_SECONDS) -> None:
        self._interval = max(0.001, float(interval_seconds))
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, callback: TickCallback) -> None:
        """Start ticking. Must be called from inside a running event loop."""
        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(callback), name="focusmate-ticker")
        logger.debug("Ticker started (interval=%.3fs)", self._interval)

    def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        logger.debug("Ticker stopped")

    async def _run(self, callback: TickCallback) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                callback()
            except Exception:
                logger.exception("Tick callback failed")
