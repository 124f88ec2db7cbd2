# =============================================================================
# Scrape Log Sink
# =============================================================================
"""
Persistent telemetry sink writing one scraper_logs row per scrape.

Also provides aggregate statistics per extractor over a trailing window
and purging of old rows. Like the cache store, the sink degrades to a
no-op when the database is unavailable and never raises into the scrape
path.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from sqlalchemy import case, delete, func, select

from jobscraper.database.manager import DatabaseManager
from jobscraper.database.models import ScraperLogRow
from jobscraper.services.scraper.monitoring import ScrapeEvent


# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


DEFAULT_STATS_DAYS = 30
DEFAULT_LOG_RETENTION_DAYS = 90


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ExtractorStats:
    """
    Aggregated scrape log figures for one extractor.

    Attributes:
        scraper_name: Extractor name.
        total_count: Logged scrapes in the window.
        avg_duration_ms: Mean duration.
        error_count: Scrapes that failed.
        error_rate: error_count / total_count.
        cache_hit_count: Scrapes served from cache.
        cache_hit_rate: cache_hit_count / total_count.
        rate_limited_count: Scrapes that waited for the rate limiter.
    """

    scraper_name: str
    total_count: int
    avg_duration_ms: float
    error_count: int
    error_rate: float
    cache_hit_count: int
    cache_hit_rate: float
    rate_limited_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "scraperName": self.scraper_name,
            "totalCount": self.total_count,
            "avgDurationMs": round(self.avg_duration_ms, 2),
            "errorCount": self.error_count,
            "errorRate": round(self.error_rate, 4),
            "cacheHitCount": self.cache_hit_count,
            "cacheHitRate": round(self.cache_hit_rate, 4),
            "rateLimitedCount": self.rate_limited_count,
        }


class ScrapeLogSink:
    """
    TelemetrySink backed by the scraper_logs table.

    Example:
        sink = ScrapeLogSink(db_manager)
        await sink.log_scrape(ScrapeEvent("linkedin", url, duration_ms=420))
        stats = await sink.get_stats(days=7)
    """

    def __init__(
        self,
        db: Optional[DatabaseManager],
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the sink.

        Args:
            db: Connected DatabaseManager, or None to disable logging.
            clock: UTC clock, injectable for tests.
        """
        self._db = db
        self._clock = clock

    def is_ready(self) -> bool:
        """True when the backing database is connected."""
        return self._db is not None and self._db.is_connected

    async def log_scrape(self, event: ScrapeEvent) -> None:
        """
        Persist one scrape event.

        Args:
            event: The scrape to record.
        """
        if not self.is_ready():
            return

        try:
            async with self._db.session() as session:
                session.add(
                    ScraperLogRow(
                        scraper_name=event.extractor_name,
                        url=event.url,
                        duration_ms=event.duration_ms,
                        status_code=event.status_code,
                        error=event.error,
                        cache_hit=event.cache_hit,
                        rate_limited=event.rate_limited,
                        rate_limit_wait_ms=event.rate_limit_wait_ms,
                        log_metadata=event.metadata,
                        created_at=self._clock(),
                    )
                )
        except Exception as e:
            logger.warning(f"Failed to write scrape log for {event.url}: {e}")

    async def get_stats(
        self,
        days: int = DEFAULT_STATS_DAYS,
        scraper_name: Optional[str] = None,
    ) -> list[ExtractorStats]:
        """
        Aggregate logged scrapes per extractor.

        Args:
            days: Trailing window in days.
            scraper_name: Restrict to one extractor.

        Returns:
            One ExtractorStats per extractor, busiest first. Empty when not
            ready or on error.
        """
        if not self.is_ready():
            return []

        since = self._clock() - timedelta(days=days)
        total = func.count(ScraperLogRow.id)
        query = (
            select(
                ScraperLogRow.scraper_name,
                total.label("total_count"),
                func.avg(ScraperLogRow.duration_ms).label("avg_duration"),
                func.sum(case((ScraperLogRow.error.is_not(None), 1), else_=0)).label("error_count"),
                func.sum(case((ScraperLogRow.cache_hit.is_(True), 1), else_=0)).label("cache_hit_count"),
                func.sum(case((ScraperLogRow.rate_limited.is_(True), 1), else_=0)).label("rate_limited_count"),
            )
            .where(ScraperLogRow.created_at >= since)
            .group_by(ScraperLogRow.scraper_name)
            .order_by(total.desc())
        )
        if scraper_name:
            query = query.where(ScraperLogRow.scraper_name == scraper_name)

        try:
            async with self._db.session() as session:
                rows = (await session.execute(query)).all()
        except Exception as e:
            logger.warning(f"Failed to load scrape stats: {e}")
            return []

        stats = []
        for row in rows:
            count = int(row.total_count or 0)
            errors = int(row.error_count or 0)
            hits = int(row.cache_hit_count or 0)
            stats.append(
                ExtractorStats(
                    scraper_name=row.scraper_name,
                    total_count=count,
                    avg_duration_ms=float(row.avg_duration or 0),
                    error_count=errors,
                    error_rate=errors / count if count else 0.0,
                    cache_hit_count=hits,
                    cache_hit_rate=hits / count if count else 0.0,
                    rate_limited_count=int(row.rate_limited_count or 0),
                )
            )
        return stats

    async def purge_old_logs(self, days_to_keep: int = DEFAULT_LOG_RETENTION_DAYS) -> int:
        """
        Delete log rows older than the retention window.

        Args:
            days_to_keep: Rows newer than this many days are kept.

        Returns:
            Number of rows deleted.
        """
        if not self.is_ready():
            return 0

        cutoff = self._clock() - timedelta(days=days_to_keep)
        try:
            async with self._db.session() as session:
                result = await session.execute(
                    delete(ScraperLogRow).where(ScraperLogRow.created_at < cutoff)
                )
                deleted = result.rowcount or 0
            logger.info(f"Purged {deleted} scrape log rows older than {days_to_keep} days")
            return deleted
        except Exception as e:
            logger.error(f"Error purging scrape logs: {e}", exc_info=True)
            return 0
