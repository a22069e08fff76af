"""
Header-driven pacing between request batches.

GitHub reports the remaining budget on every response. The tracker remembers
the most recent numbers and, between batches, either waits the fixed batch
delay or, when the budget is nearly spent, waits for the reset.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Mapping, Optional

logger = logging.getLogger(__name__)


class RateLimitTracker(object):
    def __init__(
        self,
        reserve: int = 50,
        max_wait: float = 120.0,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.reserve = reserve
        self.max_wait = max_wait
        self._clock = clock
        self._sleep = sleep
        self.remaining: Optional[int] = None
        self.reset_at: Optional[int] = None

    def observe(self, headers: Mapping[str, str]) -> None:
        remaining = headers.get("X-RateLimit-Remaining")
        reset = headers.get("X-RateLimit-Reset")
        try:
            rem_i = int(remaining) if remaining is not None else None
            reset_i = int(reset) if reset is not None else None
        except ValueError:
            return
        if rem_i is not None:
            self.remaining = rem_i
        if reset_i is not None:
            self.reset_at = reset_i

    @property
    def exhausted(self) -> bool:
        return self.remaining is not None and self.remaining <= self.reserve

    def wait_time(self, base_delay: float) -> float:
        if not self.exhausted or self.reset_at is None:
            return base_delay
        until_reset = self.reset_at - self._clock() + 1
        return max(base_delay, min(until_reset, self.max_wait))

    async def pause(self, base_delay: float) -> None:
        """
        Sleep before the next batch of requests.
        """
        delay = self.wait_time(base_delay)
        if delay > base_delay:
            logger.warning(
                f"Rate limit nearly exhausted ({self.remaining} left), "
                f"waiting {delay:.0f}s"
            )
        if delay > 0:
            await self._sleep(delay)
