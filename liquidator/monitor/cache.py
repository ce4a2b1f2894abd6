"""
Refresh Cache Module
====================

Interval-gated asynchronous value holders used to schedule the tiered
refreshes of the liquidator.

Components:
- RetryPolicy: Bounded full-jitter exponential backoff for a failed refresh
- TimedRefresh: Holds the last good value of one data source and knows when
  it is due for a refresh
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """
    Retry schedule for a failing refresh.

    Delay before retry n (0-based) is uniform(0, min(max_delay, base_delay * 2**n)).
    With max_attempts=1 the first failure escalates immediately.
    """
    max_attempts: int = 1
    base_delay: float = 0.5
    max_delay: float = 10.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep, repr=False)
    uniform: Callable[[float, float], float] = field(default=random.uniform, repr=False)

    def backoff(self, attempt: int) -> float:
        """Delay in seconds before the retry that follows failed attempt `attempt`."""
        return self.uniform(0, min(self.max_delay, self.base_delay * (2 ** attempt)))


class TimedRefresh(Generic[T]):
    """
    Holds the current value of one data source and refreshes it on an interval.

    The refresh function receives the previous value (None on the first call)
    so it can refresh incrementally, e.g. re-fetch only already-known addresses.

    There is no internal queueing: callers check `needs_update` before calling
    `update()`. While a refresh is in flight `needs_update` is False.
    """

    def __init__(
        self,
        interval: float,
        refresh_fn: Callable[[Optional[T]], Awaitable[T]],
        starting_value: Optional[T] = None,
        name: str = "",
        clock: Callable[[], float] = time.monotonic,
        retry: Optional[RetryPolicy] = None,
    ):
        """
        Initialize the refresher.

        Args:
            interval: Seconds between refreshes
            refresh_fn: Coroutine function mapping previous value to new value
            starting_value: Initial value (no refresh timestamp is recorded)
            name: Name used in log messages
            clock: Monotonic time source in seconds
            retry: Optional retry policy for failed refreshes
        """
        self.interval = interval
        self.name = name or "refresh"
        self._refresh_fn = refresh_fn
        self._clock = clock
        self._retry = retry or RetryPolicy()

        self._current_value: Optional[T] = starting_value
        self._last_update: Optional[float] = None
        self._is_updating = False

    @property
    def current_value(self) -> Optional[T]:
        return self._current_value

    @property
    def last_update(self) -> Optional[float]:
        """Clock time at which the last successful refresh started."""
        return self._last_update

    @property
    def is_updating(self) -> bool:
        return self._is_updating

    @property
    def needs_update(self) -> bool:
        """True if idle and never refreshed or at least `interval` seconds old."""
        if self._is_updating:
            return False
        if self._last_update is None:
            return True
        return self._clock() - self._last_update >= self.interval

    async def update(self) -> T:
        """
        Run the refresh function and store its result.

        The busy flag is held for the whole refresh, retries included, and is
        released on every exit path. On failure the current value and the
        refresh timestamp are left untouched and the error propagates.

        Returns:
            The new current value

        Raises:
            RuntimeError: If a refresh is already in flight
        """
        if self._is_updating:
            raise RuntimeError(f"{self.name}: refresh already in flight")

        self._is_updating = True
        try:
            started = self._clock()
            value = await self._refresh_with_retry()
            self._current_value = value
            self._last_update = started
            return value
        finally:
            self._is_updating = False

    async def _refresh_with_retry(self) -> T:
        attempts = max(1, self._retry.max_attempts)
        for attempt in range(attempts - 1):
            try:
                return await self._refresh_fn(self._current_value)
            except Exception as e:
                delay = self._retry.backoff(attempt)
                logger.warning(
                    f"{self.name}: refresh failed (attempt {attempt + 1}/{attempts}): {e}, "
                    f"retrying in {delay:.2f}s"
                )
                await self._retry.sleep(delay)

        # Last attempt escalates
        return await self._refresh_fn(self._current_value)

    def reseed(self, value: T):
        """
        Replace the current value wholesale.

        The refresh timestamp and busy flag are not touched, so the refresh
        cadence of this cache is unaffected.
        """
        self._current_value = value
        logger.debug(f"{self.name}: reseeded")
