# =============================================================================
# Scraper Cache Store Tests
# =============================================================================
"""
Tests for the database-backed scrape result cache, using a temporary
SQLite database.
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from conftest import FakeClock
from jobscraper.database import DatabaseManager, ScraperCacheRow
from jobscraper.services.scraper.cache import CacheOptions, ScraperCacheStore
from jobscraper.services.scraper.types import ScrapedRecord


URL = "https://jobs.lever.co/acme/123"


def _content(title: str = "Platform Engineer") -> dict:
    return ScrapedRecord(
        title=title,
        company="Acme",
        description="Build and run the platform.",
        source_url=URL,
        extractor_name="lever",
        keywords=["Kubernetes"],
    ).to_dict()


async def _row_count(db: DatabaseManager) -> int:
    async with db.session() as session:
        return await session.scalar(select(func.count(ScraperCacheRow.id)))


# -----------------------------------------------------------------------------
# Tests
# -----------------------------------------------------------------------------
class TestCacheRoundTrip:
    """Tests for set/get behaviour."""

    @pytest.mark.asyncio
    async def test_set_then_get(self, cache: ScraperCacheStore, clock: FakeClock) -> None:
        row_id = await cache.set(URL, _content(), "lever", ttl_hours=24, headers={"ETag": '"abc"'})

        entry = await cache.get(URL)

        assert row_id is not None
        assert entry is not None
        assert entry.id == row_id
        assert entry.content == _content()
        assert entry.record.title == "Platform Engineer"
        assert entry.extractor_name == "lever"
        assert entry.hit_count == 1
        assert entry.is_expired is False
        assert entry.expires_at == clock.now + timedelta(hours=24)
        assert entry.etag == '"abc"'
        assert entry.headers == {"etag": '"abc"'}

    @pytest.mark.asyncio
    async def test_hit_count_increments_per_read(self, cache: ScraperCacheStore) -> None:
        await cache.set(URL, _content(), "lever")

        await cache.get(URL)
        await cache.get(URL)
        entry = await cache.get(URL)

        assert entry.hit_count == 3

    @pytest.mark.asyncio
    async def test_hit_count_not_updated_when_disabled(
        self, db_manager: DatabaseManager, clock: FakeClock
    ) -> None:
        cache = ScraperCacheStore(db_manager, CacheOptions(update_hit_count=False), clock=clock)
        await cache.set(URL, _content(), "lever")

        await cache.get(URL)
        entry = await cache.get(URL)

        assert entry.hit_count == 0

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, cache: ScraperCacheStore) -> None:
        assert await cache.get("https://example.com/unknown") is None

    @pytest.mark.asyncio
    async def test_expired_entry(self, cache: ScraperCacheStore, clock: FakeClock) -> None:
        await cache.set(URL, _content(), "lever", ttl_hours=1)

        clock.advance(hours=1, seconds=1)
        entry = await cache.get(URL)

        assert entry is not None
        assert entry.is_expired is True
        assert entry.hit_count == 0

    @pytest.mark.asyncio
    async def test_default_ttl_from_options(
        self, db_manager: DatabaseManager, clock: FakeClock
    ) -> None:
        cache = ScraperCacheStore(db_manager, CacheOptions(ttl_hours=6), clock=clock)
        await cache.set(URL, _content(), "lever")

        entry = await cache.get(URL)

        assert entry.expires_at == clock.now + timedelta(hours=6)


class TestCacheOverwrite:
    """Tests for the upsert semantics of set()."""

    @pytest.mark.asyncio
    async def test_overwrite_keeps_one_row(
        self, cache: ScraperCacheStore, db_manager: DatabaseManager, clock: FakeClock
    ) -> None:
        await cache.set(URL, _content("First"), "lever", ttl_hours=24)
        await cache.get(URL)

        clock.advance(hours=2)
        await cache.set(URL, _content("Second"), "generic", ttl_hours=12)

        assert await _row_count(db_manager) == 1

        entry = await cache.get(URL, update_hit_count=False)
        assert entry.hit_count == 0
        assert entry.content["title"] == "Second"
        assert entry.extractor_name == "generic"
        assert entry.expires_at == clock.now + timedelta(hours=12)


class TestCacheHelpers:
    """Tests for exists() and purge_expired()."""

    @pytest.mark.asyncio
    async def test_exists_does_not_touch_hit_count(self, cache: ScraperCacheStore) -> None:
        await cache.set(URL, _content(), "lever")

        assert await cache.exists(URL) is True
        assert await cache.exists("https://example.com/other") is False

        entry = await cache.get(URL, update_hit_count=False)
        assert entry.hit_count == 0

    @pytest.mark.asyncio
    async def test_exists_false_when_expired(
        self, cache: ScraperCacheStore, clock: FakeClock
    ) -> None:
        await cache.set(URL, _content(), "lever", ttl_hours=1)
        clock.advance(hours=2)

        assert await cache.exists(URL) is False

    @pytest.mark.asyncio
    async def test_purge_expired(
        self, cache: ScraperCacheStore, db_manager: DatabaseManager, clock: FakeClock
    ) -> None:
        await cache.set(URL, _content(), "lever", ttl_hours=1)
        await cache.set("https://example.com/fresh", _content(), "generic", ttl_hours=48)

        clock.advance(hours=3)
        deleted = await cache.purge_expired()

        assert deleted == 1
        assert await _row_count(db_manager) == 1
        assert await cache.get(URL) is None


class TestCacheNotReady:
    """The cache degrades to a no-op without a database."""

    @pytest.mark.asyncio
    async def test_operations_are_noops(self) -> None:
        cache = ScraperCacheStore(None)

        assert cache.is_ready() is False
        assert await cache.set(URL, _content(), "lever") is None
        assert await cache.get(URL) is None
        assert await cache.exists(URL) is False
        assert await cache.purge_expired() == 0

    @pytest.mark.asyncio
    async def test_disconnected_database(self, db_manager: DatabaseManager) -> None:
        cache = ScraperCacheStore(db_manager)
        await db_manager.disconnect()

        assert cache.is_ready() is False
        assert await cache.get(URL) is None


class TestCacheErrors:
    """read/write raise database errors; get/set swallow them."""

    class _BrokenDatabase:
        is_connected = True

        def session(self):
            raise RuntimeError("connection reset")

    @pytest.mark.asyncio
    async def test_read_and_write_raise(self) -> None:
        cache = ScraperCacheStore(self._BrokenDatabase())

        with pytest.raises(RuntimeError):
            await cache.read(URL)
        with pytest.raises(RuntimeError):
            await cache.write(URL, _content(), "lever")

    @pytest.mark.asyncio
    async def test_get_and_set_swallow(self) -> None:
        cache = ScraperCacheStore(self._BrokenDatabase())

        assert cache.is_ready() is True
        assert await cache.get(URL) is None
        assert await cache.set(URL, _content(), "lever") is None
        assert await cache.exists(URL) is False
