# =============================================================================
# Scrape Pipeline and Service Tests
# =============================================================================
"""
End-to-end scraping tests: cache, rate limiting, extraction, generic
fallback and validation, with HTTP served from a PageServer.
"""

from datetime import timedelta

import pytest

from conftest import (
    EMPTY_HTML,
    GENERIC_HTML,
    GENERIC_URL,
    LINKEDIN_JSON_LD_HTML,
    LINKEDIN_URL,
    FakeClock,
    PageServer,
)
from jobscraper.services.scraper.cache import ScraperCacheStore
from jobscraper.services.scraper.errors import (
    EXTRACTION_FAILED,
    FETCH_FAILED,
    INVALID_URL,
    UNSUPPORTED_PLATFORM,
    CombinedScrapeError,
    ExtractionError,
    FetchError,
    InvalidURLError,
    UnsupportedPlatformError,
)
from jobscraper.services.scraper.extractors import BaseExtractor, LinkedInExtractor
from jobscraper.services.scraper.fetch import HttpFetcher
from jobscraper.services.scraper.html import ParsedDocument
from jobscraper.services.scraper.monitoring import ScraperMonitor
from jobscraper.services.scraper.pipeline import ScrapePipeline
from jobscraper.services.scraper.rate_limiter import RateLimitConfig, RateLimiter
from jobscraper.services.scraper.registry import ExtractorRegistry
from jobscraper.services.scraper.scrape_log import ScrapeLogSink
from jobscraper.services.scraper.service import JobScraperService, platform_name
from jobscraper.services.scraper.types import ScrapedRecord, ScrapeOptions


class BrokenExtractor(BaseExtractor):
    """Extractor whose selectors always crash."""

    url_patterns = (r"broken\.example\.com",)

    @property
    def name(self) -> str:
        return "broken"

    def extract(self, document: ParsedDocument, url: str) -> ScrapedRecord:
        raise RuntimeError("selector crashed")



class UnavailableDatabase:
    """Looks connected but every session fails."""

    is_connected = True

    def session(self):
        raise RuntimeError("database went away")


# -----------------------------------------------------------------------------
# Pipeline
# -----------------------------------------------------------------------------
class TestScrapePipeline:
    """Tests for the per-extractor scrape loop."""

    @pytest.mark.asyncio
    async def test_scrape_normalizes_and_stamps(self, pipeline: ScrapePipeline) -> None:
        record = await pipeline.scrape(LinkedInExtractor(), LINKEDIN_URL)

        assert record.title == "Senior Python Engineer"
        assert record.company == "Acme Corp"
        assert record.description.startswith("We are hiring a Senior Python Engineer")
        assert "\n" not in record.description
        assert record.source_url == LINKEDIN_URL
        assert record.extractor_name == "linkedin"
        assert record.keywords == ["Python", "FastAPI", "PostgreSQL", "AWS"]

    @pytest.mark.asyncio
    async def test_cache_hit_skips_fetch(
        self,
        pipeline: ScrapePipeline,
        page_server: PageServer,
        cache: ScraperCacheStore,
        clock: FakeClock,
        monitor: ScraperMonitor,
    ) -> None:
        """A 24h entry is written on the first scrape and served on the second."""
        first = await pipeline.run(LinkedInExtractor(), LINKEDIN_URL)

        entry = await cache.get(LINKEDIN_URL, update_hit_count=False)
        assert entry.expires_at == clock.now + timedelta(hours=24)
        assert entry.status_code == 200
        assert entry.etag == '"v1"'

        second = await pipeline.run(LinkedInExtractor(), LINKEDIN_URL)

        assert first.cache_hit is False
        assert second.cache_hit is True
        assert second.record.to_dict() == first.record.to_dict()
        assert page_server.count(LINKEDIN_URL) == 1
        assert monitor.get_report()["cache"]["hits"] == 1
        assert monitor.get_report()["cache"]["misses"] == 1

    @pytest.mark.asyncio
    async def test_expired_entry_refetches(
        self,
        pipeline: ScrapePipeline,
        page_server: PageServer,
        clock: FakeClock,
    ) -> None:
        await pipeline.scrape(LinkedInExtractor(), LINKEDIN_URL)
        clock.advance(hours=25)

        result = await pipeline.run(LinkedInExtractor(), LINKEDIN_URL)

        assert result.cache_hit is False
        assert page_server.count(LINKEDIN_URL) == 2

    @pytest.mark.asyncio
    async def test_bypass_cache_skips_read_and_write(
        self,
        pipeline: ScrapePipeline,
        page_server: PageServer,
        cache: ScraperCacheStore,
    ) -> None:
        options = ScrapeOptions(bypass_cache=True)

        await pipeline.scrape(LinkedInExtractor(), LINKEDIN_URL, options)

        assert await cache.exists(LINKEDIN_URL) is False

        await pipeline.scrape(LinkedInExtractor(), LINKEDIN_URL)
        await pipeline.scrape(LinkedInExtractor(), LINKEDIN_URL, options)

        assert page_server.count(LINKEDIN_URL) == 3

    @pytest.mark.asyncio
    async def test_json_ld_backfills_missing_company(
        self, pipeline: ScrapePipeline, page_server: PageServer
    ) -> None:
        url = "https://www.linkedin.com/jobs/view/999"
        page_server.add(url, LINKEDIN_JSON_LD_HTML)

        record = await pipeline.scrape(LinkedInExtractor(), url)

        assert record.company == "Globex"
        assert record.title == "Data Engineer"
        assert record.description.startswith("Build batch and streaming pipelines on Kubernetes")
        assert record.extractor_name == "linkedin"
        assert record.keywords == ["Kubernetes"]

    @pytest.mark.asyncio
    async def test_incomplete_record_never_cached(
        self,
        pipeline: ScrapePipeline,
        page_server: PageServer,
        cache: ScraperCacheStore,
    ) -> None:
        url = "https://www.linkedin.com/jobs/view/404"
        page_server.add(url, EMPTY_HTML)

        with pytest.raises(ExtractionError) as exc_info:
            await pipeline.scrape(LinkedInExtractor(), url)

        error = exc_info.value
        assert error.code == EXTRACTION_FAILED
        assert error.missing_fields == ["job title"]
        assert error.url == url
        assert error.is_valid_html is True
        assert "Nothing to see here." in error.html_preview
        assert await cache.exists(url) is False

    @pytest.mark.asyncio
    async def test_invalid_url(self, pipeline: ScrapePipeline) -> None:
        with pytest.raises(InvalidURLError):
            await pipeline.scrape(LinkedInExtractor(), "linkedin.com/jobs/view/1")

    @pytest.mark.asyncio
    async def test_works_without_cache(
        self, fetcher: HttpFetcher, page_server: PageServer
    ) -> None:
        pipeline = ScrapePipeline(fetcher, RateLimiter(), ScraperCacheStore(None))

        await pipeline.scrape(LinkedInExtractor(), LINKEDIN_URL)
        await pipeline.scrape(LinkedInExtractor(), LINKEDIN_URL)

        assert page_server.count(LINKEDIN_URL) == 2

    @pytest.mark.asyncio
    async def test_rate_limit_wait_recorded(
        self, fetcher: HttpFetcher, monitor: ScraperMonitor
    ) -> None:
        limiter = RateLimiter(RateLimitConfig(requests_per_minute=1, window_ms=500))
        pipeline = ScrapePipeline(fetcher, limiter, None, monitor)

        await pipeline.scrape(LinkedInExtractor(), LINKEDIN_URL)
        result = await pipeline.run(LinkedInExtractor(), LINKEDIN_URL)

        assert result.rate_limit_wait_ms > 0
        assert monitor.get_rate_limit_stats()["timesLimited"] == 1

    @pytest.mark.asyncio
    async def test_tracking_parameters_share_cache_entry(
        self, pipeline: ScrapePipeline, page_server: PageServer
    ) -> None:
        tracked = f"{LINKEDIN_URL}?utm_source=newsletter&utm_medium=email"
        page_server.add(tracked, page_server.pages[LINKEDIN_URL][1])

        await pipeline.scrape(LinkedInExtractor(), LINKEDIN_URL)
        result = await pipeline.run(LinkedInExtractor(), tracked)

        assert result.cache_hit is True
        assert page_server.count(tracked) == 0


class TestCacheFailures:
    """Cache errors are counted and never fail a scrape."""

    @pytest.mark.asyncio
    async def test_failed_lookup_and_write_are_swallowed(
        self, fetcher: HttpFetcher, monitor: ScraperMonitor
    ) -> None:
        pipeline = ScrapePipeline(
            fetcher, RateLimiter(), ScraperCacheStore(UnavailableDatabase()), monitor
        )

        record = await pipeline.scrape(LinkedInExtractor(), LINKEDIN_URL)

        assert record.title == "Senior Python Engineer"
        cache_stats = monitor.get_report()["cache"]
        assert cache_stats["hits"] == 0
        assert cache_stats["misses"] == 1
        assert cache_stats["errors"] == 2

    @pytest.mark.asyncio
    async def test_failed_write_only(
        self,
        fetcher: HttpFetcher,
        monitor: ScraperMonitor,
        cache: ScraperCacheStore,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async def failing_write(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(cache, "write", failing_write)
        pipeline = ScrapePipeline(fetcher, RateLimiter(), cache, monitor)

        record = await pipeline.scrape(LinkedInExtractor(), LINKEDIN_URL)

        assert record.company == "Acme Corp"
        assert await cache.exists(LINKEDIN_URL) is False
        assert monitor.get_report()["cache"] == {
            "hits": 0,
            "misses": 1,
            "errors": 1,
            "hitRate": 0.0,
        }


# -----------------------------------------------------------------------------
# Service
# -----------------------------------------------------------------------------
class TestJobScraperService:
    """Tests for validation, policy and generic retry in the service."""

    @pytest.mark.asyncio
    async def test_scrape_job(self, service: JobScraperService) -> None:
        record = await service.scrape_job(f"  {LINKEDIN_URL}  ")

        assert record.extractor_name == "linkedin"
        assert record.source_url == LINKEDIN_URL

    @pytest.mark.asyncio
    async def test_second_scrape_served_from_cache(
        self, service: JobScraperService, page_server: PageServer
    ) -> None:
        first = await service.scrape_job(LINKEDIN_URL)
        second = await service.scrape_job(LINKEDIN_URL)

        assert second.to_dict() == first.to_dict()
        assert page_server.count(LINKEDIN_URL) == 1

    @pytest.mark.asyncio
    async def test_unmatched_url_uses_generic(self, service: JobScraperService) -> None:
        record = await service.scrape_job(GENERIC_URL)

        assert record.extractor_name == "generic"
        assert record.company == "Initech"
        assert record.location == "Austin, TX"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["", "   ", "not a url", "ftp://example.com/job"])
    async def test_invalid_url(
        self, service: JobScraperService, page_server: PageServer, url: str
    ) -> None:
        with pytest.raises(InvalidURLError) as exc_info:
            await service.scrape_job(url)

        assert exc_info.value.code == INVALID_URL
        assert page_server.requests == []

    @pytest.mark.asyncio
    async def test_blocked_platform(
        self, service: JobScraperService, page_server: PageServer
    ) -> None:
        with pytest.raises(UnsupportedPlatformError) as exc_info:
            await service.scrape_job("https://www.indeed.com/viewjob?jk=abc123")

        error = exc_info.value
        assert error.message == "Indeed URLs are not supported"
        assert error.to_dict()["type"] == UNSUPPORTED_PLATFORM
        assert error.suggestion
        assert page_server.requests == []

    @pytest.mark.asyncio
    async def test_generic_retry_after_site_failure(
        self,
        pipeline: ScrapePipeline,
        page_server: PageServer,
        cache: ScraperCacheStore,
        clock: FakeClock,
        monitor: ScraperMonitor,
    ) -> None:
        url = "https://broken.example.com/jobs/7"
        page_server.add(url, GENERIC_HTML)
        registry = ExtractorRegistry().register(BrokenExtractor()).freeze()
        service = JobScraperService(registry, pipeline, monitor)

        record = await service.scrape_job(url)

        assert record.extractor_name == "generic"
        assert record.title == "Backend Developer"
        assert monitor.get_extractor_metrics("broken").error_count == 1
        assert monitor.get_extractor_metrics("generic").error_count == 0

        entry = await cache.get(url, update_hit_count=False)
        assert entry.extractor_name == "generic"
        assert entry.expires_at == clock.now + timedelta(hours=12)

    @pytest.mark.asyncio
    async def test_combined_error_when_generic_also_fails(
        self,
        service: JobScraperService,
        page_server: PageServer,
        cache: ScraperCacheStore,
    ) -> None:
        url = "https://www.linkedin.com/jobs/view/404"
        page_server.add(url, EMPTY_HTML)

        with pytest.raises(CombinedScrapeError) as exc_info:
            await service.scrape_job(url)

        error = exc_info.value
        assert error.message == "Failed to scrape job details"
        assert error.code == EXTRACTION_FAILED
        assert "Generic scraper also failed" in error.technical_details
        assert page_server.count(url) == 2
        assert await cache.exists(url) is False

    @pytest.mark.asyncio
    async def test_generic_failure_is_not_retried(
        self, service: JobScraperService, page_server: PageServer
    ) -> None:
        url = "https://unknown.example.org/jobs/1"

        with pytest.raises(FetchError) as exc_info:
            await service.scrape_job(url)

        assert exc_info.value.code == FETCH_FAILED
        assert exc_info.value.status_code == 404
        assert page_server.count(url) == 2

    @pytest.mark.asyncio
    async def test_scrape_events_logged(
        self, service: JobScraperService, scrape_log: ScrapeLogSink
    ) -> None:
        await service.scrape_job(LINKEDIN_URL)
        await service.scrape_job(LINKEDIN_URL)

        stats = await scrape_log.get_stats()

        assert len(stats) == 1
        assert stats[0].scraper_name == "linkedin"
        assert stats[0].total_count == 2
        assert stats[0].cache_hit_count == 1
        assert stats[0].error_count == 0

    @pytest.mark.asyncio
    async def test_sink_failure_does_not_break_scrape(self, pipeline: ScrapePipeline) -> None:
        class ExplodingSink:
            async def log_scrape(self, event) -> None:
                raise RuntimeError("sink down")

        service = JobScraperService(
            ExtractorRegistry().register(LinkedInExtractor()),
            pipeline,
            sink=ExplodingSink(),
        )

        record = await service.scrape_job(LINKEDIN_URL)

        assert record.title == "Senior Python Engineer"

    @pytest.mark.asyncio
    async def test_scrape_multiple(self, service: JobScraperService) -> None:
        urls = [LINKEDIN_URL, "bad url", GENERIC_URL]

        results = await service.scrape_multiple(urls)

        assert [r.url for r in results] == urls
        assert [r.ok for r in results] == [True, False, True]
        assert results[1].error["code"] == INVALID_URL
        assert results[2].record.extractor_name == "generic"

    @pytest.mark.asyncio
    async def test_supported_sites(self, service: JobScraperService) -> None:
        assert service.get_supported_sites()[0] == "linkedin"
        assert "generic" not in service.get_supported_sites()

    def test_platform_name(self) -> None:
        assert platform_name("indeed.com") == "Indeed"
        assert platform_name("www.glassdoor.co.uk") == "Glassdoor"
