"""
Fixed-delay request throttle.

Sources are drained one at a time, so politeness towards the upstream
servers is a plain blocking wait before each request rather than a
shared token bucket.

Responsibility: Enforce the per-source inter-request delay
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

SleepFunc = Callable[[float], Awaitable[None]]


class RequestThrottle:
    """
    Blocks so that consecutive requests are at least `delay_seconds` apart.

    The first request is also delayed, matching the source etiquette of
    waiting before every call.

    Example:
        throttle = RequestThrottle(delay_seconds=2.0)
        await throttle.wait()  # Sleeps before the request
    """

    def __init__(self, delay_seconds: float, sleep: Optional[SleepFunc] = None):
        """
        Initialize throttle.

        Args:
            delay_seconds: Minimum spacing between requests
            sleep: Awaitable sleep function (injectable for tests)
        """
        if delay_seconds < 0:
            raise ValueError("Delay must not be negative")

        self.delay_seconds = delay_seconds
        self._sleep = sleep or asyncio.sleep
        self._last_request: Optional[float] = None
        self.waits = 0
        self.lock = asyncio.Lock()

    async def wait(self) -> float:
        """
        Wait until the next request is allowed.

        Returns:
            Seconds actually slept
        """
        async with self.lock:
            if self.delay_seconds == 0:
                self._last_request = time.monotonic()
                return 0.0

            if self._last_request is None:
                delay = self.delay_seconds
            else:
                elapsed = time.monotonic() - self._last_request
                delay = max(0.0, self.delay_seconds - elapsed)

            if delay > 0:
                self.waits += 1
                await self._sleep(delay)

            self._last_request = time.monotonic()
            return delay

    def reset(self) -> None:
        """Forget the previous request time."""
        self._last_request = None
        self.waits = 0
