"""Timer scheduling used for heartbeats."""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional


class TimerHandle(ABC):
    """Handle to a repeating timer."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop the timer. A cancelled timer never fires again."""

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        """True once cancel() has been called."""


class Scheduler(ABC):
    """Schedules repeating callbacks and provides the clock they run against."""

    @abstractmethod
    def schedule_repeating(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        """
        Run callback every interval seconds until the handle is cancelled.

        Args:
            interval: Period in seconds
            callback: Function called with no arguments

        Returns:
            Handle used to cancel the timer
        """

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds from a monotonic clock."""


class AsyncioTimer(TimerHandle):
    """Repeating timer built on loop.call_later."""

    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float, callback: Callable[[], None]):
        self.loop = loop
        self.interval = interval
        self.callback = callback
        self._cancelled = False
        self._handle: Optional[asyncio.TimerHandle] = None
        self._arm()

    def _arm(self):
        self._handle = self.loop.call_later(self.interval, self._fire)

    def _fire(self):
        # Teardown may have raced with an already queued callback
        if self._cancelled:
            return
        self._arm()
        self.callback()

    def cancel(self) -> None:
        self._cancelled = True
        if self._handle:
            self._handle.cancel()
            self._handle = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler(Scheduler):
    """Scheduler running timers on an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        """
        Initialize scheduler.

        Args:
            loop: Event loop to use (the running loop if None)
        """
        self.loop = loop

    def schedule_repeating(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        loop = self.loop or asyncio.get_running_loop()
        return AsyncioTimer(loop, interval, callback)

    def now(self) -> float:
        return time.monotonic()
