"""Timer abstraction driving swipe animations."""

import asyncio
from abc import ABC, abstractmethod
from typing import Callable, Optional


class TimerHandle(ABC):
    @abstractmethod
    def cancel(self) -> None:
        """Cancel the timer; no-op once it has fired."""


class Scheduler(ABC):
    """Schedules callbacks after a delay in milliseconds."""

    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay_ms."""


class _AsyncioTimerHandle(TimerHandle):
    def __init__(self, handle: asyncio.TimerHandle):
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return _AsyncioTimerHandle(loop.call_later(delay_ms / 1000, callback))
