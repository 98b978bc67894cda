"""
Minimum-interval gate for outbound registry requests.
"""

import asyncio
import logging
import time
from typing import Optional

from crate_seek.core.exceptions import TaskCancelled


logger = logging.getLogger(__name__)


class RateGate:
    """
    Serializes callers so that consecutive requests start at least
    ``interval`` seconds apart.

    Callers queue on the gate rather than being rejected. The gate is held for
    the duration of the request it admits. A caller that leaves the gate with
    TaskCancelled never sent its request, so it does not use up the interval.
    """

    def __init__(self, interval: float, clock=time.monotonic):
        self.interval = interval
        self._clock = clock
        self._lock: Optional[asyncio.Lock] = None
        self._last_request: Optional[float] = None
        self._previous_request: Optional[float] = None

    @property
    def lock(self) -> asyncio.Lock:
        # Created lazily so the gate can be built outside a running loop
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def __aenter__(self) -> "RateGate":
        await self.lock.acquire()
        try:
            if self._last_request is not None:
                wait = self.interval - (self._clock() - self._last_request)
                if wait > 0:
                    logger.debug(f"Rate gate waiting {wait:.2f}s")
                    await asyncio.sleep(wait)
        except BaseException:
            self.lock.release()
            raise
        self._previous_request = self._last_request
        self._last_request = self._clock()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None and issubclass(exc_type, TaskCancelled):
            self._last_request = self._previous_request
        self.lock.release()
