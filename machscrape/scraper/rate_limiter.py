"""
Request pacing between detail page fetches.

Example:
    >>> limiter = RateLimiter(min_interval=0.2)
    >>> await limiter.wait()  # returns immediately on first call
    >>> await limiter.wait()  # waits until 0.2s have passed since the last call
"""

from __future__ import annotations

import asyncio
import time

from machscrape.utils import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Enforces a fixed minimum interval between successive requests.

    Waiting is an asyncio sleep, so other tasks keep running while a
    run is paced.

    Attributes:
        min_interval: Minimum seconds between two wait() returns.
        last_request_time: Monotonic timestamp of the last wait() return.
    """

    def __init__(self, min_interval: float = 0.2):
        if min_interval < 0:
            raise ValueError("min_interval must be non-negative")
        self.min_interval = min_interval
        self.last_request_time: float | None = None
        logger.debug(f"RateLimiter initialized: {min_interval}s interval")

    async def wait(self) -> float:
        """
        Wait before making the next request.

        Returns:
            The actual delay in seconds.
        """
        actual_delay = 0.0

        if self.last_request_time is not None:
            elapsed = time.monotonic() - self.last_request_time
            if elapsed < self.min_interval:
                actual_delay = self.min_interval - elapsed
                logger.debug(f"Rate limiting: waiting {actual_delay:.2f}s")
                await asyncio.sleep(actual_delay)

        self.last_request_time = time.monotonic()
        return actual_delay
