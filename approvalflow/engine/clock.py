"""
Timer source used by the host.

Durable timers (approval windows, retry backoff) are always created through
a Clock so the host can be driven by virtual time in tests.
"""

import asyncio
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Abstract timer source."""

    @abstractmethod
    def now(self) -> float:
        """Current time in seconds."""
        pass

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        """
        Suspend the calling task for ``seconds``.

        Non-positive values return after yielding to the loop once.
        """
        pass


class SystemClock(Clock):
    """Wall-clock timers backed by asyncio.sleep."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))
