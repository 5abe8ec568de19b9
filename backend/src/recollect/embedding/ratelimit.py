"""Minimum-interval rate limiter shared by all embedding callers."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from recollect.constants.embedding import DEFAULT_RPM_LIMIT

logger = logging.getLogger(__name__)


class RateLimiter:
    """Spaces calls at least 60 / rpm seconds apart.

    One instance holds a single "last call" timestamp behind a lock, so every
    coroutine sharing it is throttled together regardless of which user it
    serves. Waiting callers queue on the lock in arrival order. There is no
    backoff and no retry; a caller simply sleeps until its slot comes up.
    """

    def __init__(
        self,
        requests_per_minute: int = DEFAULT_RPM_LIMIT,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the limiter.

        Args:
            requests_per_minute: Allowed call rate. Non-positive values use
                the provider default.
            clock: Monotonic time source in seconds.
            sleep: Coroutine used to wait, replaceable in tests.
        """
        if requests_per_minute <= 0:
            requests_per_minute = DEFAULT_RPM_LIMIT
        self.requests_per_minute = requests_per_minute
        self.min_interval = 60.0 / requests_per_minute
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_call: float | None = None

    async def acquire(self) -> float:
        """Wait for the next free slot and claim it.

        Returns:
            Seconds spent waiting.
        """
        async with self._lock:
            waited = 0.0
            if self._last_call is not None:
                elapsed = self._clock() - self._last_call
                if elapsed < self.min_interval:
                    waited = self.min_interval - elapsed
                    logger.debug(f"Embedding rate limit: waiting {waited:.2f}s")
                    await self._sleep(waited)
            self._last_call = self._clock()
            return waited
