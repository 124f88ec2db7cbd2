# =============================================================================
# Scraper Cache Store
# =============================================================================
"""
Persistent TTL cache for scrape results, keyed by URL.

Rows live in the scraper_cache table and are shared by every process that
points at the same database. Expiry is soft: a stale row is still returned
with is_expired=True and is only deleted by purge_expired().

The store degrades gracefully. When no database is configured every
operation is a no-op, and get/set/exists/purge_expired log query failures
and return None/False/0 so scraping continues as if no cache existed.
read/write are the raising forms for callers that report failures.

Usage:
    cache = ScraperCacheStore(db_manager)

    entry = await cache.get(url)
    if entry and not entry.is_expired:
        return entry.record

    await cache.set(url, record.to_dict(), "linkedin", ttl_hours=24)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from sqlalchemy import delete, select

from jobscraper.database.manager import DatabaseManager
from jobscraper.database.models import ScraperCacheRow
from jobscraper.services.scraper.types import ScrapedRecord


# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """SQLite returns naive datetimes; values are always written in UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# -----------------------------------------------------------------------------
# Data Classes
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class CacheOptions:
    """
    Cache behaviour.

    Attributes:
        ttl_hours: Default time to live for new entries.
        update_hit_count: Increment hit_count on fresh reads.
    """

    ttl_hours: float = 24
    update_hit_count: bool = True


@dataclass
class CacheEntry:
    """
    A cached scrape result as read from the store.

    Attributes:
        id: Row identifier.
        url: Cache key.
        content: Serialized ScrapedRecord.
        extractor_name: Extractor that produced the content.
        status_code: HTTP status of the original fetch.
        headers: Stored response headers.
        etag: ETag header, if any.
        last_modified: Last-Modified header, if any.
        created_at: First insert time.
        updated_at: Last overwrite time.
        expires_at: Time the entry goes stale.
        hit_count: Reads since the last write.
        is_expired: expires_at < now at read time.
    """

    id: str
    url: str
    content: dict[str, Any]
    extractor_name: str
    status_code: Optional[int]
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    hit_count: int
    is_expired: bool
    headers: dict[str, Any] = field(default_factory=dict)
    etag: Optional[str] = None
    last_modified: Optional[str] = None

    @property
    def record(self) -> ScrapedRecord:
        """Deserialize the cached content."""
        return ScrapedRecord.from_dict(self.content)

    @classmethod
    def from_row(cls, row: ScraperCacheRow, now: datetime) -> "CacheEntry":
        expires_at = _as_utc(row.expires_at)
        return cls(
            id=str(row.id),
            url=row.url,
            content=dict(row.content or {}),
            extractor_name=row.scraper_name,
            status_code=row.status_code,
            headers=dict(row.headers or {}),
            etag=row.etag,
            last_modified=row.last_modified,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
            expires_at=expires_at,
            hit_count=row.hit_count,
            is_expired=expires_at < now,
        )


# -----------------------------------------------------------------------------
# Cache Store
# -----------------------------------------------------------------------------
class ScraperCacheStore:
    """
    Database-backed scrape result cache.

    Attributes:
        options: Default CacheOptions.
    """

    def __init__(
        self,
        db: Optional[DatabaseManager],
        options: Optional[CacheOptions] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize the cache store.

        Args:
            db: Connected DatabaseManager, or None to disable caching.
            options: Default TTL and hit counting behaviour.
            clock: UTC clock, injectable for tests.
        """
        self._db = db
        self.options = options or CacheOptions()
        self._clock = clock

    def is_ready(self) -> bool:
        """
        Check whether the backing database is configured and connected.

        Returns:
            True if cache operations will hit the database.
        """
        return self._db is not None and self._db.is_connected

    async def read(
        self,
        url: str,
        update_hit_count: Optional[bool] = None,
    ) -> Optional[CacheEntry]:
        """
        Read the cache entry for a URL, raising on database errors.

        Fresh entries have their hit counter incremented (when enabled);
        the returned entry reflects the new count. Stale entries are
        returned untouched with is_expired=True.

        Args:
            url: Cache key.
            update_hit_count: Override CacheOptions.update_hit_count.

        Returns:
            CacheEntry, or None on miss or when not ready.
        """
        if not self.is_ready():
            logger.debug("Cache not ready, skipping cache lookup")
            return None

        if update_hit_count is None:
            update_hit_count = self.options.update_hit_count

        now = self._clock()
        async with self._db.session() as session:
            row = await session.scalar(
                select(ScraperCacheRow).where(ScraperCacheRow.url == url)
            )
            if row is None:
                return None

            entry = CacheEntry.from_row(row, now)
            if update_hit_count and not entry.is_expired:
                row.hit_count += 1
                entry.hit_count = row.hit_count
            return entry

    async def get(
        self,
        url: str,
        update_hit_count: Optional[bool] = None,
    ) -> Optional[CacheEntry]:
        """
        Same as read() but logs database errors and returns None.
        """
        try:
            return await self.read(url, update_hit_count)
        except Exception as e:
            logger.warning(f"Error getting cache entry for {url}: {e}")
            return None

    async def write(
        self,
        url: str,
        content: dict[str, Any],
        extractor_name: str,
        ttl_hours: Optional[float] = None,
        status_code: Optional[int] = 200,
        headers: Optional[dict[str, str]] = None,
    ) -> Optional[str]:
        """
        Insert or overwrite the cache entry for a URL, raising on database
        errors.

        Overwrites recompute expires_at and reset hit_count to 0.

        Args:
            url: Cache key.
            content: Serialized ScrapedRecord.
            extractor_name: Extractor that produced the content.
            ttl_hours: Time to live; defaults to CacheOptions.ttl_hours.
            status_code: HTTP status of the fetch.
            headers: Response headers; etag and last-modified are also
                stored in their own columns.

        Returns:
            Row id as a string, or None when not ready.
        """
        if not self.is_ready():
            logger.debug("Cache not ready, skipping cache storage")
            return None

        ttl = self.options.ttl_hours if ttl_hours is None else ttl_hours
        headers = {k.lower(): v for k, v in (headers or {}).items()}
        now = self._clock()
        expires_at = now + timedelta(hours=ttl)

        async with self._db.session() as session:
            row = await session.scalar(
                select(ScraperCacheRow).where(ScraperCacheRow.url == url)
            )
            if row is None:
                row = ScraperCacheRow(url=url, created_at=now)
                session.add(row)

            row.content = content
            row.scraper_name = extractor_name
            row.status_code = status_code
            row.headers = headers
            row.etag = headers.get("etag")
            row.last_modified = headers.get("last-modified")
            row.updated_at = now
            row.expires_at = expires_at
            row.hit_count = 0

            await session.flush()
            row_id = str(row.id)

        logger.debug(f"Cached {url} for {ttl}h (extractor: {extractor_name})")
        return row_id

    async def set(
        self,
        url: str,
        content: dict[str, Any],
        extractor_name: str,
        ttl_hours: Optional[float] = None,
        status_code: Optional[int] = 200,
        headers: Optional[dict[str, str]] = None,
    ) -> Optional[str]:
        """
        Same as write() but logs database errors and returns None.
        """
        try:
            return await self.write(
                url,
                content,
                extractor_name,
                ttl_hours=ttl_hours,
                status_code=status_code,
                headers=headers,
            )
        except Exception as e:
            logger.warning(f"Error setting cache entry for {url}: {e}")
            return None

    async def exists(self, url: str) -> bool:
        """
        Check for a fresh entry without touching its hit counter.

        Returns:
            True if a non-expired entry exists.
        """
        entry = await self.get(url, update_hit_count=False)
        return entry is not None and not entry.is_expired

    async def purge_expired(self) -> int:
        """
        Delete every entry whose expires_at is in the past.

        Returns:
            Number of rows deleted (0 when not ready or on error).
        """
        if not self.is_ready():
            return 0

        try:
            async with self._db.session() as session:
                result = await session.execute(
                    delete(ScraperCacheRow).where(ScraperCacheRow.expires_at < self._clock())
                )
                deleted = result.rowcount or 0
            logger.info(f"Purged {deleted} expired cache entries")
            return deleted

        except Exception as e:
            logger.error(f"Error purging expired cache entries: {e}", exc_info=True)
            return 0
