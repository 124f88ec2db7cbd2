# =============================================================================
# Scraper Monitoring
# =============================================================================
"""
In-process telemetry for scraper performance.

ScraperMonitor keeps counters for scrape durations and errors per
extractor, cache hits and misses, rate limit waits and requested domains.
Counters are process local and only cleared by reset(). Recording never
raises: telemetry problems are logged and ignored.

A TelemetrySink is an optional persistent collaborator (see scrape_log.py)
that receives one ScrapeEvent per scrape.
"""

import functools
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Protocol, TypeVar, runtime_checkable

from jobscraper.services.scraper.urls import get_domain


# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


T = TypeVar("T")

TOP_DOMAINS_LIMIT = 5


# -----------------------------------------------------------------------------
# Data Classes
# -----------------------------------------------------------------------------
@dataclass
class ExtractorMetrics:
    """Timing and error counters for one extractor."""

    count: int = 0
    total_duration_ms: float = 0.0
    min_duration_ms: Optional[float] = None
    max_duration_ms: float = 0.0
    error_count: int = 0

    @property
    def average_duration_ms(self) -> float:
        return self.total_duration_ms / self.count if self.count else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "totalDurationMs": round(self.total_duration_ms, 2),
            "minDurationMs": round(self.min_duration_ms or 0.0, 2),
            "maxDurationMs": round(self.max_duration_ms, 2),
            "averageDurationMs": round(self.average_duration_ms, 2),
            "errorCount": self.error_count,
        }


@dataclass
class ScrapeEvent:
    """
    One scrape attempt, as handed to a TelemetrySink.

    Attributes:
        extractor_name: Extractor that handled the request.
        url: Requested URL.
        duration_ms: Wall-clock duration.
        status_code: HTTP status when a fetch happened.
        error: Error message for failures.
        cache_hit: Result served from cache.
        rate_limited: Request waited for a rate limit slot.
        rate_limit_wait_ms: How long it waited.
        metadata: Extra data.
    """

    extractor_name: str
    url: str
    duration_ms: int
    status_code: Optional[int] = None
    error: Optional[str] = None
    cache_hit: bool = False
    rate_limited: bool = False
    rate_limit_wait_ms: Optional[int] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class TelemetrySink(Protocol):
    """
    Persistent destination for scrape events.

    Implementations must not raise; failures are their own to log.
    """

    async def log_scrape(self, event: ScrapeEvent) -> None:
        ...


# -----------------------------------------------------------------------------
# Monitor
# -----------------------------------------------------------------------------
class ScraperMonitor:
    """
    Process-wide scraper metrics.

    Example:
        monitor = ScraperMonitor()
        monitor.record_scrape("linkedin", 812.5, True, url)
        monitor.record_cache_access(hit=False)
        report = monitor.get_report()
    """

    def __init__(self) -> None:
        self._extractors: dict[str, ExtractorMetrics] = {}
        self._cache = {"hits": 0, "misses": 0, "errors": 0}
        self._rate_limit = {"times_limited": 0, "total_wait_ms": 0.0}
        self._domains: Counter[str] = Counter()

    # -------------------------------------------------------------------------
    # Mutators
    # -------------------------------------------------------------------------
    def record_scrape(
        self,
        extractor_name: str,
        duration_ms: float,
        successful: bool,
        url: str,
    ) -> None:
        """
        Record one scrape and its duration.

        Args:
            extractor_name: Extractor that handled the request.
            duration_ms: Wall-clock duration.
            successful: False when the scrape raised.
            url: Requested URL (its domain is counted).
        """
        try:
            metrics = self._extractors.setdefault(extractor_name, ExtractorMetrics())
            metrics.count += 1
            metrics.total_duration_ms += duration_ms
            metrics.min_duration_ms = (
                duration_ms
                if metrics.min_duration_ms is None
                else min(metrics.min_duration_ms, duration_ms)
            )
            metrics.max_duration_ms = max(metrics.max_duration_ms, duration_ms)
            if not successful:
                metrics.error_count += 1

            domain = get_domain(url)
            if domain:
                self._domains[domain] += 1
        except Exception as e:
            logger.warning(f"Failed to record scrape metrics: {e}")

    def record_cache_access(self, hit: bool, error: bool = False) -> None:
        """Record a cache hit or miss, optionally flagged as an error."""
        try:
            self._cache["hits" if hit else "misses"] += 1
            if error:
                self._cache["errors"] += 1
        except Exception as e:
            logger.warning(f"Failed to record cache metrics: {e}")

    def record_cache_error(self) -> None:
        """Record a cache failure that was not a lookup, such as a failed write."""
        self._cache["errors"] += 1

    def record_rate_limit(self, wait_ms: float) -> None:
        """Record a rate limit wait."""
        try:
            self._rate_limit["times_limited"] += 1
            self._rate_limit["total_wait_ms"] += wait_ms
        except Exception as e:
            logger.warning(f"Failed to record rate limit metrics: {e}")

    def reset(self) -> None:
        """Clear all counters."""
        self._extractors.clear()
        self._cache = {"hits": 0, "misses": 0, "errors": 0}
        self._rate_limit = {"times_limited": 0, "total_wait_ms": 0.0}
        self._domains.clear()

    # -------------------------------------------------------------------------
    # Readers
    # -------------------------------------------------------------------------
    def get_extractor_metrics(self, extractor_name: str) -> Optional[ExtractorMetrics]:
        return self._extractors.get(extractor_name)

    def get_cache_hit_rate(self) -> float:
        """Cache hit rate as a percentage (0 when there were no lookups)."""
        total = self._cache["hits"] + self._cache["misses"]
        return (self._cache["hits"] / total) * 100 if total else 0.0

    def get_average_scrape_time(self, extractor_name: Optional[str] = None) -> float:
        """
        Average scrape duration in milliseconds.

        Args:
            extractor_name: Restrict to one extractor; all when omitted.
        """
        if extractor_name is not None:
            metrics = self._extractors.get(extractor_name)
            return metrics.average_duration_ms if metrics else 0.0

        total_time = sum(m.total_duration_ms for m in self._extractors.values())
        total_count = sum(m.count for m in self._extractors.values())
        return total_time / total_count if total_count else 0.0

    def get_rate_limit_stats(self) -> dict[str, float]:
        """Number of rate limit waits and the average wait."""
        limited = self._rate_limit["times_limited"]
        return {
            "timesLimited": limited,
            "totalWaitMs": round(self._rate_limit["total_wait_ms"], 2),
            "averageWaitMs": round(self._rate_limit["total_wait_ms"] / limited, 2) if limited else 0.0,
        }

    def get_top_domains(self, limit: int = TOP_DOMAINS_LIMIT) -> list[dict[str, Any]]:
        """Most requested domains, highest count first."""
        return [
            {"domain": domain, "count": count}
            for domain, count in self._domains.most_common(limit)
        ]

    def get_report(self) -> dict[str, Any]:
        """
        Snapshot of every counter plus derived rates.

        Returns:
            Dictionary with extractors, cache, rateLimit, topDomains and
            timestamp keys.
        """
        return {
            "extractors": {name: m.to_dict() for name, m in self._extractors.items()},
            "cache": {
                **self._cache,
                "hitRate": round(self.get_cache_hit_rate(), 2),
            },
            "rateLimit": self.get_rate_limit_stats(),
            "averageDurationMs": round(self.get_average_scrape_time(), 2),
            "topDomains": self.get_top_domains(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


# -----------------------------------------------------------------------------
# Decorator
# -----------------------------------------------------------------------------
def with_monitoring(
    monitor: ScraperMonitor,
    extractor_name: str,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Time an async function whose first argument is a URL.

    Example:
        @with_monitoring(monitor, "custom")
        async def scrape(url: str) -> ScrapedRecord:
            ...
    """

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(fn)
        async def wrapper(url: str, *args, **kwargs) -> T:
            started = time.perf_counter()
            successful = True
            try:
                return await fn(url, *args, **kwargs)
            except Exception:
                successful = False
                raise
            finally:
                duration_ms = (time.perf_counter() - started) * 1000
                monitor.record_scrape(extractor_name, duration_ms, successful, url)

        return wrapper

    return decorator
