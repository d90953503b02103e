"""
Outbound request throttling for model provider calls.

The limiter enforces two independent rules before each call:

- at most ``requests_per_minute`` calls may start within any rolling window
- consecutive calls are spaced at least ``min_interval`` seconds apart

Callers that would break either rule are suspended with a non-blocking
sleep, never rejected. All state changes happen under an ``asyncio.Lock`` so
concurrent requests on the same event loop are serialized through the
limiter one at a time.
"""
import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Deque, Dict, Optional

from studygen.config import settings

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class RateLimitState:
    """Mutable limiter state. Only ``RateLimiter`` touches it."""

    request_times: Deque[float] = field(default_factory=deque)
    last_request_time: Optional[float] = None
    total_waits: int = 0
    total_wait_seconds: float = 0.0

    @property
    def request_count(self) -> int:
        """Requests started within the current window."""
        return len(self.request_times)


class RateLimiter:
    """
    Cooperative limiter for calls to a single provider API key.

    Create one instance per process and share it between every component
    that calls the provider.
    """

    def __init__(
        self,
        requests_per_minute: Optional[int] = None,
        min_interval: Optional[float] = None,
        window_seconds: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """
        Initialize the limiter.

        Args:
            requests_per_minute: Ceiling on calls per window (default from settings)
            min_interval: Minimum seconds between consecutive calls
            window_seconds: Length of the rolling window (default 60)
            clock: Monotonic time source, injectable for tests
            sleep: Async sleep function, injectable for tests
        """
        self.requests_per_minute = (
            requests_per_minute
            if requests_per_minute is not None
            else settings.requests_per_minute
        )
        self.min_interval = (
            min_interval
            if min_interval is not None
            else settings.min_request_interval_seconds
        )
        self.window_seconds = (
            window_seconds
            if window_seconds is not None
            else settings.rate_limit_window_seconds
        )
        if self.requests_per_minute < 1:
            raise ValueError("requests_per_minute must be at least 1")
        if self.min_interval < 0 or self.window_seconds <= 0:
            raise ValueError("min_interval must be >= 0 and window_seconds > 0")

        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        self._lock = asyncio.Lock()
        self._state = RateLimitState()

    async def acquire(self) -> None:
        """Suspend the caller until one more request may be issued."""
        async with self._lock:
            self._evict_expired(self._clock())

            # Timers may fire early, so re-check after every wait
            while self._state.request_count >= self.requests_per_minute:
                wait = self._state.request_times[0] + self.window_seconds - self._clock()
                logger.info(
                    f"Request ceiling of {self.requests_per_minute}/window reached, "
                    f"waiting {wait:.2f}s",
                    extra={"delay_seconds": wait},
                )
                await self._wait(wait)
                self._evict_expired(self._clock())

            if self._state.last_request_time is not None:
                elapsed = self._clock() - self._state.last_request_time
                if elapsed < self.min_interval:
                    wait = self.min_interval - elapsed
                    logger.debug(f"Spacing requests, waiting {wait:.2f}s")
                    await self._wait(wait)

            now = self._clock()
            self._state.request_times.append(now)
            self._state.last_request_time = now

    def _evict_expired(self, now: float) -> None:
        times = self._state.request_times
        while times and times[0] + self.window_seconds <= now:
            times.popleft()

    async def _wait(self, seconds: float) -> None:
        self._state.total_waits += 1
        self._state.total_wait_seconds += seconds
        await self._sleep(seconds)

    def get_stats(self) -> Dict[str, float]:
        """Return limiter statistics (for monitoring/debugging)."""
        return {
            "requests_in_window": self._state.request_count,
            "requests_per_minute": self.requests_per_minute,
            "total_waits": self._state.total_waits,
            "total_wait_seconds": round(self._state.total_wait_seconds, 3),
        }
