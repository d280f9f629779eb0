"""Timer backend used by the scheduler and the dispatch gate."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class TimerBackend(Protocol):
    """Schedules a plain callback on the control thread after a delay."""

    def call_later(self, delay_s: float, callback: Callable[[], Any]) -> TimerHandle: ...


class AsyncioTimerBackend:
    """Default backend: ``loop.call_later`` on the running event loop.

    Callbacks never run synchronously inside ``call_later`` and never
    concurrently with each other.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def call_later(self, delay_s: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay_s, callback)
