# =============================================================================
# Scraper Rate Limiter
# =============================================================================
"""
Sliding window rate limiter for outbound page fetches.

Tracks request timestamps per target domain (or one global key) to avoid
getting blocked by job sites. State is in memory and process local: several
running instances each enforce their own limit.

The check-then-record step is not atomic across interleaved tasks, so two
tasks racing on the last free slot can both be admitted.
"""

import asyncio
import functools
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from jobscraper.services.scraper.urls import get_domain


# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


GLOBAL_KEY = "global"

T = TypeVar("T")


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class RateLimitConfig:
    """
    Rate limiter configuration.

    Attributes:
        requests_per_minute: Requests admitted per window and key.
        window_ms: Width of the sliding window in milliseconds.
        per_domain: Track each domain separately instead of one global key.
    """

    requests_per_minute: int = 10
    window_ms: int = 60_000
    per_domain: bool = True

    def __post_init__(self) -> None:
        if self.requests_per_minute < 1:
            raise ValueError("requests_per_minute must be at least 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be at least 1")


# -----------------------------------------------------------------------------
# Rate Limiter Implementation
# -----------------------------------------------------------------------------
class RateLimiter:
    """
    In-memory sliding window rate limiter.

    Attributes:
        config: Active RateLimitConfig.

    Example:
        limiter = RateLimiter(RateLimitConfig(requests_per_minute=3, window_ms=500))
        waited_ms = await limiter.wait_for_rate_limit(url)
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Callable[[], float] = _monotonic_ms,
    ) -> None:
        """
        Initialize the rate limiter.

        Args:
            config: Limits to enforce; defaults to 10 requests per 60 seconds per domain.
            clock: Millisecond clock, injectable for tests.
        """
        self.config = config or RateLimitConfig()
        self._clock = clock
        self._windows: dict[str, list[float]] = {}

        logger.info(
            f"Rate limiter configured: {self.config.requests_per_minute} requests "
            f"per {self.config.window_ms}ms "
            f"({'per domain' if self.config.per_domain else 'global'})"
        )

    def _key(self, url: str) -> str:
        """Window key for a URL: its domain, or the global key."""
        if not self.config.per_domain:
            return GLOBAL_KEY
        return get_domain(url) or GLOBAL_KEY

    def _prune(self, key: str, now: float) -> list[float]:
        """Drop timestamps outside the window and return what is left."""
        window = [ts for ts in self._windows.get(key, []) if now - ts < self.config.window_ms]
        self._windows[key] = window
        return window

    def is_rate_limited(self, url: str) -> bool:
        """
        Check the limit for a URL and record the request when admitted.

        Args:
            url: Target URL.

        Returns:
            True if the limit is reached (nothing recorded), False if the
            request was admitted and recorded.
        """
        key = self._key(url)
        now = self._clock()
        window = self._prune(key, now)

        if len(window) >= self.config.requests_per_minute:
            return True

        window.append(now)
        return False

    def get_time_until_reset(self, url: str) -> float:
        """
        Milliseconds until the oldest request leaves the window.

        Args:
            url: Target URL.

        Returns:
            0 when under the limit or without history, otherwise the time
            until a slot frees up (never negative).
        """
        window = self._windows.get(self._key(url), [])
        if not window or len(window) < self.config.requests_per_minute:
            return 0
        oldest = min(window)
        return max(0.0, oldest + self.config.window_ms - self._clock())

    async def wait_for_rate_limit(self, url: str) -> float:
        """
        Sleep until a slot should be free when the URL is rate limited.

        Performs a single check; callers woken together re-evaluate
        admission independently on their next call.

        Args:
            url: Target URL.

        Returns:
            Milliseconds waited (0 when admitted immediately).
        """
        if not self.is_rate_limited(url):
            return 0.0

        wait_ms = self.get_time_until_reset(url)
        if wait_ms > 0:
            logger.warning(f"Rate limited for {url}. Waiting {wait_ms:.0f}ms before retrying...")
            await asyncio.sleep(wait_ms / 1000)
        return wait_ms

    def get_stats(self) -> dict[str, object]:
        """
        Snapshot of tracked keys and their in-window request counts.

        Returns:
            Dictionary with configuration and per-key counts.
        """
        now = self._clock()
        return {
            "requests_per_minute": self.config.requests_per_minute,
            "window_ms": self.config.window_ms,
            "per_domain": self.config.per_domain,
            "keys": {
                key: len([ts for ts in window if now - ts < self.config.window_ms])
                for key, window in self._windows.items()
            },
        }

    def reset(self) -> None:
        """Clear all rate limit history."""
        self._windows.clear()
        logger.warning("Rate limiter reset - all request history cleared")


# -----------------------------------------------------------------------------
# Decorator
# -----------------------------------------------------------------------------
def with_rate_limit(
    limiter: RateLimiter,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Wrap an async function whose first argument is a URL with rate limiting.

    Example:
        @with_rate_limit(limiter)
        async def download(url: str) -> str:
            ...
    """

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(fn)
        async def wrapper(url: str, *args, **kwargs) -> T:
            await limiter.wait_for_rate_limit(url)
            return await fn(url, *args, **kwargs)

        return wrapper

    return decorator
