# =============================================================================
# Scrape Pipeline
# =============================================================================
"""
The per-extractor scrape loop shared by every extractor.

Steps for one URL:
1. Serve a fresh cache entry when allowed (no network access). Entries
   are keyed by the URL without tracking parameters.
2. Otherwise wait for a rate limit slot and fetch the page.
3. Parse once; JSON-LD is captured before script tags are stripped.
4. Run the extractor's selectors.
5. Backfill empty title/company/description from the generic extractor.
6. Normalize whitespace and validate required fields.
7. Stamp extractor name and source URL, then write the cache entry.

Cache failures never fail a scrape; they are logged and counted as cache
errors by the monitor.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from jobscraper.services.scraper.cache import ScraperCacheStore
from jobscraper.services.scraper.errors import ExtractionError, InvalidURLError
from jobscraper.services.scraper.extractors import (
    BaseExtractor,
    GenericExtractor,
    detect_skill_keywords,
)
from jobscraper.services.scraper.fetch import HttpFetcher
from jobscraper.services.scraper.html import parse_html
from jobscraper.services.scraper.monitoring import ScraperMonitor
from jobscraper.services.scraper.rate_limiter import RateLimiter
from jobscraper.services.scraper.types import REQUIRED_FIELDS, ScrapedRecord, ScrapeOptions
from jobscraper.services.scraper.urls import is_valid_url, normalize_url


# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


_VALIDATION_HEADERS = ("etag", "last-modified")


@dataclass
class ScrapeResult:
    """
    Outcome of one pipeline run.

    Attributes:
        record: The validated, normalized record.
        cache_hit: Served from cache without fetching.
        status_code: HTTP status of the fetch (or of the cached fetch).
        rate_limit_wait_ms: Time spent waiting for the rate limiter.
    """

    record: ScrapedRecord
    cache_hit: bool = False
    status_code: Optional[int] = None
    rate_limit_wait_ms: float = 0.0


class ScrapePipeline:
    """
    Runs the cache, fetch, extract, validate and store steps for an extractor.

    Attributes:
        fetcher: Transport used for page downloads.
        rate_limiter: Limits outbound requests per domain.
        cache: Result cache (may be unconfigured).
        monitor: In-process telemetry.
        generic: Extractor used to backfill missing required fields.
    """

    def __init__(
        self,
        fetcher: HttpFetcher,
        rate_limiter: RateLimiter,
        cache: Optional[ScraperCacheStore] = None,
        monitor: Optional[ScraperMonitor] = None,
        generic: Optional[BaseExtractor] = None,
    ) -> None:
        self.fetcher = fetcher
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.monitor = monitor or ScraperMonitor()
        self.generic = generic or GenericExtractor()

    async def scrape(
        self,
        extractor: BaseExtractor,
        url: str,
        options: Optional[ScrapeOptions] = None,
    ) -> ScrapedRecord:
        """
        Scrape a URL with the given extractor.

        Args:
            extractor: Extractor selected for the URL.
            url: Job posting URL.
            options: Per-request options.

        Returns:
            Validated, normalized record.

        Raises:
            InvalidURLError: If the URL is malformed.
            FetchError: If the page could not be fetched.
            ExtractionError: If required fields are still missing.
        """
        return (await self.run(extractor, url, options)).record

    async def run(
        self,
        extractor: BaseExtractor,
        url: str,
        options: Optional[ScrapeOptions] = None,
    ) -> ScrapeResult:
        """
        Same as scrape() but also reports cache, status and wait details.
        """
        options = options or ScrapeOptions()
        if not is_valid_url(url):
            raise InvalidURLError(url)

        use_cache = (
            not options.bypass_cache
            and self.cache is not None
            and self.cache.is_ready()
        )

        cache_key = normalize_url(url)
        lookup_failed = False

        # ---------------------------------------------------------------------
        # Cache lookup
        # ---------------------------------------------------------------------
        if use_cache:
            try:
                entry = await self.cache.read(cache_key)
            except Exception as e:
                logger.warning(f"{extractor.name}: Cache lookup failed for {url}: {e}")
                entry = None
                lookup_failed = True
            if entry is not None and not entry.is_expired:
                self.monitor.record_cache_access(hit=True)
                logger.info(
                    f"{extractor.name}: Using cached data for {url} "
                    f"(hit count: {entry.hit_count})"
                )
                return ScrapeResult(
                    record=entry.record,
                    cache_hit=True,
                    status_code=entry.status_code,
                )

        self.monitor.record_cache_access(hit=False, error=lookup_failed)
        logger.info(f"{extractor.name}: Cache miss or bypass for {url}, fetching fresh data")

        # ---------------------------------------------------------------------
        # Rate-limited fetch
        # ---------------------------------------------------------------------
        waited_ms = await self.rate_limiter.wait_for_rate_limit(url)
        if waited_ms > 0:
            self.monitor.record_rate_limit(waited_ms)

        response = await self.fetcher.fetch(url)
        html = response.text

        # ---------------------------------------------------------------------
        # Extraction
        # ---------------------------------------------------------------------
        document = parse_html(html)
        record = extractor.extract(document, url)

        if not record.is_complete() and not extractor.is_generic:
            logger.warning(
                f"{extractor.name}: Missing {', '.join(record.missing_required_fields())}, "
                "using generic extraction"
            )
            record = self._backfill(record, self.generic.extract(document, url))

        record = record.normalized()
        if not record.keywords:
            record.keywords = detect_skill_keywords(record.description)

        missing = record.missing_required_fields()
        if missing:
            raise ExtractionError(url, html, missing, document.is_valid_html)

        record.extractor_name = extractor.name
        record.source_url = url

        # ---------------------------------------------------------------------
        # Cache write
        # ---------------------------------------------------------------------
        if not options.bypass_cache and self.cache is not None:
            headers = {
                name: response.headers[name]
                for name in _VALIDATION_HEADERS
                if name in response.headers
            }
            try:
                cache_id = await self.cache.write(
                    cache_key,
                    record.to_dict(),
                    extractor.name,
                    ttl_hours=extractor.cache_ttl_hours,
                    status_code=response.status_code,
                    headers=headers,
                )
            except Exception as e:
                logger.warning(f"{extractor.name}: Cache write failed for {url}: {e}")
                self.monitor.record_cache_error()
            else:
                if cache_id:
                    logger.info(f"{extractor.name}: Stored data in cache for {url}")

        return ScrapeResult(
            record=record,
            status_code=response.status_code,
            rate_limit_wait_ms=waited_ms,
        )

    @staticmethod
    def _backfill(record: ScrapedRecord, fallback: ScrapedRecord) -> ScrapedRecord:
        """Fill empty required fields from the generic pass; other fields are kept."""
        for name, _label in REQUIRED_FIELDS:
            if not getattr(record, name):
                setattr(record, name, getattr(fallback, name))
        return record
