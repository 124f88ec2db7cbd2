# =============================================================================
# Job Scraper Service Package
# =============================================================================
"""
Job scraper engine for extracting structured job postings from web pages.

Site-specific extractors:
- LinkedIn Jobs
- Indeed (registered, but blocked by default policy)
- Greenhouse (ATS)
- Lever (ATS)
- Workday (ATS)
- Glassdoor
- Busey Bank careers

Anything else is handled by the generic extractor (JSON-LD first, then
common selectors). Results are cached by URL, fetches are rate limited per
domain, and every scrape is reported to the monitor.

Usage:
    from jobscraper.services.scraper import build_scraper_service

    service = build_scraper_service(get_settings(), db_manager)
    record = await service.scrape_job("https://jobs.lever.co/acme/123")
"""

from jobscraper.services.scraper.cache import CacheEntry, CacheOptions, ScraperCacheStore
from jobscraper.services.scraper.errors import (
    CombinedScrapeError,
    ExtractionError,
    FetchError,
    InvalidURLError,
    ScraperError,
    UnsupportedPlatformError,
)
from jobscraper.services.scraper.extractors import BaseExtractor, GenericExtractor
from jobscraper.services.scraper.fetch import FetchConfig, HttpFetcher
from jobscraper.services.scraper.monitoring import ScrapeEvent, ScraperMonitor, TelemetrySink
from jobscraper.services.scraper.pipeline import ScrapePipeline, ScrapeResult
from jobscraper.services.scraper.rate_limiter import RateLimitConfig, RateLimiter
from jobscraper.services.scraper.registry import ExtractorRegistry, build_default_registry
from jobscraper.services.scraper.scrape_log import ExtractorStats, ScrapeLogSink
from jobscraper.services.scraper.service import (
    BatchScrapeResult,
    JobScraperService,
    build_scraper_service,
)
from jobscraper.services.scraper.types import ScrapedRecord, ScrapeOptions

__all__ = [
    "BaseExtractor",
    "BatchScrapeResult",
    "CacheEntry",
    "CacheOptions",
    "CombinedScrapeError",
    "ExtractionError",
    "ExtractorRegistry",
    "ExtractorStats",
    "FetchConfig",
    "FetchError",
    "GenericExtractor",
    "HttpFetcher",
    "InvalidURLError",
    "JobScraperService",
    "RateLimitConfig",
    "RateLimiter",
    "ScrapeEvent",
    "ScrapeLogSink",
    "ScrapeOptions",
    "ScrapePipeline",
    "ScrapeResult",
    "ScrapedRecord",
    "ScraperCacheStore",
    "ScraperError",
    "ScraperMonitor",
    "TelemetrySink",
    "UnsupportedPlatformError",
    "build_default_registry",
    "build_scraper_service",
]
