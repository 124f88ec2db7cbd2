# =============================================================================
# Job Scraper Service
# =============================================================================
"""
Entry point for scraping job postings.

JobScraperService validates the URL, rejects blocked platforms, picks an
extractor from the registry and runs it through the shared ScrapePipeline.
When a site-specific extractor fails, the generic extractor is tried once
before giving up. Every attempt is timed and reported to the monitor and,
when configured, to a persistent telemetry sink.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from jobscraper.config.settings import Settings
from jobscraper.database.manager import DatabaseManager
from jobscraper.services.scraper.cache import CacheOptions, ScraperCacheStore
from jobscraper.services.scraper.errors import (
    CombinedScrapeError,
    InvalidURLError,
    ScraperError,
    UnsupportedPlatformError,
)
from jobscraper.services.scraper.extractors import BaseExtractor
from jobscraper.services.scraper.fetch import FetchConfig, HttpFetcher
from jobscraper.services.scraper.monitoring import (
    ScrapeEvent,
    ScraperMonitor,
    TelemetrySink,
)
from jobscraper.services.scraper.pipeline import ScrapePipeline, ScrapeResult
from jobscraper.services.scraper.rate_limiter import RateLimitConfig, RateLimiter
from jobscraper.services.scraper.registry import ExtractorRegistry, build_default_registry
from jobscraper.services.scraper.scrape_log import ScrapeLogSink
from jobscraper.services.scraper.types import ScrapedRecord, ScrapeOptions
from jobscraper.services.scraper.urls import get_domain, is_url_for_domain, is_valid_url


# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


DEFAULT_BLOCKED_DOMAINS = ("indeed.com",)
BATCH_SIZE = 5
BATCH_DELAY_SECONDS = 1.0


@dataclass
class BatchScrapeResult:
    """
    Result for one URL of a scrape_multiple() call.

    Attributes:
        url: Requested URL.
        record: Scraped record, or None on failure.
        error: Serialized ScraperError (or a generic error dict) on failure.
    """

    url: str
    record: Optional[ScrapedRecord] = None
    error: Optional[dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


def platform_name(domain: str) -> str:
    """Display name for a blocked domain, e.g. "indeed.com" -> "Indeed"."""
    label = domain.lower().removeprefix("www.").split(".")[0]
    return label.capitalize() if label else domain


class JobScraperService:
    """
    Service for scraping job postings.

    Attributes:
        registry: Extractor lookup.
        pipeline: Shared cache/fetch/extract loop.
        monitor: In-process telemetry.
        sink: Optional persistent telemetry sink.
        blocked_domains: Domains rejected before any fetch.

    Example:
        service = build_scraper_service(get_settings(), db_manager)
        record = await service.scrape_job("https://boards.greenhouse.io/acme/jobs/1")
    """

    def __init__(
        self,
        registry: ExtractorRegistry,
        pipeline: ScrapePipeline,
        monitor: Optional[ScraperMonitor] = None,
        sink: Optional[TelemetrySink] = None,
        blocked_domains: Iterable[str] = DEFAULT_BLOCKED_DOMAINS,
        batch_delay_seconds: float = BATCH_DELAY_SECONDS,
    ) -> None:
        self.registry = registry
        self.pipeline = pipeline
        self.monitor = monitor or pipeline.monitor
        self.sink = sink
        self.blocked_domains = [d.strip().lower() for d in blocked_domains if d.strip()]
        self.batch_delay_seconds = batch_delay_seconds

    @property
    def cache(self) -> Optional[ScraperCacheStore]:
        """Cache store used by the pipeline."""
        return self.pipeline.cache

    async def close(self) -> None:
        """Release the pipeline's HTTP client."""
        await self.pipeline.fetcher.close()

    async def __aenter__(self) -> "JobScraperService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Public Methods
    # -------------------------------------------------------------------------
    async def scrape_job(self, url: str, bypass_cache: bool = False) -> ScrapedRecord:
        """
        Scrape a single job posting.

        Args:
            url: Job posting URL.
            bypass_cache: Skip the cache lookup and the cache write.

        Returns:
            Validated ScrapedRecord.

        Raises:
            InvalidURLError: URL is empty or malformed.
            UnsupportedPlatformError: URL is on a blocked domain.
            ScraperError: Fetch or extraction failed (CombinedScrapeError
                when the generic retry failed as well).
        """
        url = self._validate_url(url)
        options = ScrapeOptions(bypass_cache=bypass_cache)

        extractor = self.registry.resolve(url)
        logger.info(f"Scraping {url} with extractor: {extractor.name}")

        try:
            return await self._attempt(extractor, url, options)
        except Exception as primary:
            if extractor.is_generic:
                raise

            fallback = self.registry.fallback
            logger.warning(
                f"{extractor.name} failed for {url}: {primary}. "
                f"Retrying with {fallback.name} extractor"
            )
            try:
                return await self._attempt(fallback, url, options)
            except Exception as secondary:
                logger.error(f"Generic extractor also failed for {url}: {secondary}")
                raise CombinedScrapeError(primary, secondary) from secondary

    async def scrape_multiple(
        self,
        urls: list[str],
        bypass_cache: bool = False,
    ) -> list[BatchScrapeResult]:
        """
        Scrape several job postings.

        URLs are processed in batches of five with a short pause between
        batches. A failing URL does not abort the others.

        Args:
            urls: Job posting URLs.
            bypass_cache: Applied to every URL.

        Returns:
            One BatchScrapeResult per URL, in input order.
        """
        results: list[BatchScrapeResult] = []

        for i in range(0, len(urls), BATCH_SIZE):
            batch = urls[i : i + BATCH_SIZE]
            batch_results = await asyncio.gather(
                *[self.scrape_job(url, bypass_cache) for url in batch],
                return_exceptions=True,
            )

            for url, result in zip(batch, batch_results):
                if isinstance(result, ScraperError):
                    results.append(BatchScrapeResult(url=url, error=result.to_dict()))
                elif isinstance(result, Exception):
                    logger.error(f"Failed to scrape {url}: {result}")
                    results.append(BatchScrapeResult(url=url, error={"error": str(result)}))
                else:
                    results.append(BatchScrapeResult(url=url, record=result))

            if i + BATCH_SIZE < len(urls):
                await asyncio.sleep(self.batch_delay_seconds)

        return results

    def get_supported_sites(self) -> list[str]:
        """
        Get the site-specific extractors in priority order.

        Returns:
            Extractor names, excluding the generic fallback.
        """
        return self.registry.names()

    # -------------------------------------------------------------------------
    # Private Methods
    # -------------------------------------------------------------------------
    def _validate_url(self, url: Optional[str]) -> str:
        """
        Validate the URL and apply the blocked platform policy.

        Raises:
            InvalidURLError: URL is empty or malformed.
            UnsupportedPlatformError: URL is on a blocked domain.
        """
        url = (url or "").strip()
        if not url:
            raise InvalidURLError(url, "URL is required")
        if not is_valid_url(url):
            raise InvalidURLError(url)

        for domain in self.blocked_domains:
            if is_url_for_domain(url, domain):
                logger.warning(f"Rejected blocked platform URL: {url}")
                raise UnsupportedPlatformError(url, platform_name(domain))

        return url

    async def _attempt(
        self,
        extractor: BaseExtractor,
        url: str,
        options: ScrapeOptions,
    ) -> ScrapedRecord:
        """Run one extractor through the pipeline and report telemetry."""
        started = time.perf_counter()
        try:
            result = await self.pipeline.run(extractor, url, options)
        except Exception as e:
            await self._report(extractor, url, started, error=e)
            raise

        await self._report(extractor, url, started, result=result)
        return result.record

    async def _report(
        self,
        extractor: BaseExtractor,
        url: str,
        started: float,
        result: Optional[ScrapeResult] = None,
        error: Optional[Exception] = None,
    ) -> None:
        duration_ms = (time.perf_counter() - started) * 1000
        self.monitor.record_scrape(extractor.name, duration_ms, error is None, url)

        if self.sink is None:
            return

        event = ScrapeEvent(
            extractor_name=extractor.name,
            url=url,
            duration_ms=int(duration_ms),
            status_code=result.status_code if result else getattr(error, "status_code", None),
            error=str(error) if error is not None else None,
            cache_hit=bool(result and result.cache_hit),
            rate_limited=bool(result and result.rate_limit_wait_ms > 0),
            rate_limit_wait_ms=int(result.rate_limit_wait_ms) if result else None,
            metadata={"domain": get_domain(url)},
        )
        try:
            await self.sink.log_scrape(event)
        except Exception as e:
            logger.warning(f"Telemetry sink failed for {url}: {e}")


# -----------------------------------------------------------------------------
# Factory
# -----------------------------------------------------------------------------
def build_scraper_service(
    settings: Settings,
    db: Optional[DatabaseManager] = None,
    monitor: Optional[ScraperMonitor] = None,
    registry: Optional[ExtractorRegistry] = None,
    fetcher: Optional[HttpFetcher] = None,
) -> JobScraperService:
    """
    Wire a JobScraperService from application settings.

    Args:
        settings: Application settings.
        db: Connected database for the cache and scrape log; None disables both.
        monitor: Shared monitor; a new one is created when omitted.
        registry: Extractor registry; the default registry when omitted.
        fetcher: Transport; built from settings when omitted.

    Returns:
        Configured JobScraperService.
    """
    monitor = monitor or ScraperMonitor()
    fetcher = fetcher or HttpFetcher(
        config=FetchConfig(
            retries=settings.scraper_fetch_retries,
            retry_delay_ms=settings.scraper_retry_delay_ms,
            timeout=settings.scraper_timeout_seconds,
        ),
        user_agent=settings.scraper_user_agent,
    )
    limiter = RateLimiter(
        RateLimitConfig(
            requests_per_minute=settings.rate_limit_requests_per_minute,
            window_ms=settings.rate_limit_window_ms,
            per_domain=settings.rate_limit_per_domain,
        )
    )
    cache = ScraperCacheStore(
        db if settings.cache_enabled else None,
        CacheOptions(
            ttl_hours=settings.cache_default_ttl_hours,
            update_hit_count=settings.cache_update_hit_count,
        ),
    )
    registry = registry or build_default_registry()
    sink = ScrapeLogSink(db) if settings.scrape_log_enabled and db is not None else None

    return JobScraperService(
        registry=registry,
        pipeline=ScrapePipeline(fetcher, limiter, cache, monitor, registry.fallback),
        monitor=monitor,
        sink=sink,
        blocked_domains=settings.blocked_domains_list,
    )
