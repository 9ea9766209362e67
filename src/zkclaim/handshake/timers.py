"""Interval timers owned by the broker for liveness polling."""
from __future__ import annotations

import asyncio
from typing import Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def every(self, seconds: float, callback: Callable[[], None]) -> TimerHandle: ...


class _RepeatingTimer:
    def __init__(self, loop: asyncio.AbstractEventLoop, seconds: float,
                 callback: Callable[[], None]):
        self._loop = loop
        self._seconds = seconds
        self._callback = callback
        self._cancelled = False
        self._handle: asyncio.TimerHandle | None = loop.call_later(seconds, self._fire)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _fire(self) -> None:
        if self._cancelled:
            return
        # Re-arm before the callback so a callback that cancels wins.
        self._handle = self._loop.call_later(self._seconds, self._fire)
        self._callback()

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class AsyncioScheduler:
    """Clock-driven repeating timer on the running event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def every(self, seconds: float, callback: Callable[[], None]) -> _RepeatingTimer:
        loop = self._loop or asyncio.get_running_loop()
        return _RepeatingTimer(loop, seconds, callback)
