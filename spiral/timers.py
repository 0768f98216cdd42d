"""Cancellable repeating and one-shot timers on the running asyncio loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Union

logger = logging.getLogger(__name__)

Period = Union[float, Callable[[], float]]


class TimerGroup:
    """Owns every timer of one scope so they can be cancelled together.

    Usage::

        timers = TimerGroup("spiral")
        timers.every("depth", 60, tick)
        timers.later(0.3, clear_flag)
        ...
        timers.cancel_all()

    ``time_scale`` multiplies every period and delay (tests and demos run
    the same schedule faster).
    """

    def __init__(self, name: str = "timers", time_scale: float = 1.0):
        self.name = name
        self._scale = max(0.0, float(time_scale))
        self._tasks: dict[str, asyncio.Task] = {}
        self._handles: set[asyncio.TimerHandle] = set()
        self._closed = False

    @property
    def active(self) -> int:
        """Number of live repeating timers plus pending one-shots."""
        running = sum(1 for task in self._tasks.values() if not task.done())
        return running + len(self._handles)

    @property
    def closed(self) -> bool:
        return self._closed

    def has_timer(self, name: str) -> bool:
        task = self._tasks.get(name)
        return task is not None and not task.done()

    def every(self, name: str, period: Period, callback: Callable[[], None]) -> asyncio.Task:
        """Run ``callback`` repeatedly. ``period`` is re-read before each wait."""
        if self._closed:
            raise RuntimeError(f"Timer group {self.name!r} is closed")
        self.cancel(name)
        task = asyncio.get_running_loop().create_task(
            self._repeat(name, period, callback),
            name=f"{self.name}:{name}",
        )
        self._tasks[name] = task
        logger.debug("Timer %s:%s started", self.name, name)
        return task

    def later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle | None:
        """Run ``callback`` once after ``delay`` seconds.

        Returns None, and drops the callback, when the group is closed or
        no event loop is running.
        """
        if self._closed:
            logger.debug("Timer group %s closed; dropping deferred callback", self.name)
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop for timer group %s; dropping deferred callback", self.name)
            return None
        handle: asyncio.TimerHandle | None = None

        def _fire() -> None:
            self._handles.discard(handle)
            self._invoke("later", callback)

        handle = loop.call_later(max(0.0, delay) * self._scale, _fire)
        self._handles.add(handle)
        return handle

    def cancel(self, name: str) -> None:
        task = self._tasks.pop(name, None)
        if task is not None and not task.done():
            task.cancel()

    def cancel_handle(self, handle: asyncio.TimerHandle | None) -> None:
        if handle is None:
            return
        handle.cancel()
        self._handles.discard(handle)

    def cancel_all(self) -> None:
        for name in list(self._tasks):
            self.cancel(name)
        for handle in list(self._handles):
            handle.cancel()
        self._handles.clear()
        self._closed = True
        logger.debug("Timer group %s cancelled", self.name)

    async def _repeat(self, name: str, period: Period, callback: Callable[[], None]) -> None:
        while True:
            seconds = period() if callable(period) else period
            await asyncio.sleep(max(0.0, seconds) * self._scale)
            self._invoke(name, callback)

    def _invoke(self, name: str, callback: Callable[[], None]) -> None:
        # A missed tick is cosmetic; keep the timer alive.
        try:
            callback()
        except Exception as exc:
            logger.error("Timer %s:%s failed: %s", self.name, name, exc, exc_info=True)
