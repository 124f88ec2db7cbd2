# =============================================================================
# Scraper Routes
# =============================================================================
"""
Endpoints for scraping job postings and inspecting scraper state.

Scraper errors propagate to the application's ScraperError handler, which
maps them to 400/422/500 responses.
"""

import logging
from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from jobscraper.models.scrape import (
    ErrorResponse,
    ExtractorsResponse,
    PurgeResponse,
    ScrapedJobResponse,
    ScrapeRequest,
    ScraperStatsResponse,
)
from jobscraper.services.scraper import JobScraperService, ScrapeLogSink
from jobscraper.services.scraper.scrape_log import (
    DEFAULT_LOG_RETENTION_DAYS,
    DEFAULT_STATS_DAYS,
)


# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Router Setup
# -----------------------------------------------------------------------------
router = APIRouter(tags=["Scraper"])


# -----------------------------------------------------------------------------
# Dependencies
# -----------------------------------------------------------------------------
def get_scraper(request: Request) -> JobScraperService:
    """
    Dependency returning the scraper built at startup.

    Raises:
        HTTPException: If the application has not initialized the scraper.
    """
    scraper = getattr(request.app.state, "scraper", None)
    if scraper is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Scraper service not initialized"
        )
    return scraper


def get_scrape_log(request: Request) -> Optional[ScrapeLogSink]:
    """Dependency returning the scrape log sink, or None when disabled."""
    return getattr(request.app.state, "scrape_log", None)


ScraperDep = Annotated[JobScraperService, Depends(get_scraper)]
ScrapeLogDep = Annotated[Optional[ScrapeLogSink], Depends(get_scrape_log)]


# -----------------------------------------------------------------------------
# Endpoints
# -----------------------------------------------------------------------------
@router.post(
    "/scrape",
    response_model=ScrapedJobResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid URL"},
        422: {"model": ErrorResponse, "description": "Unsupported platform"},
        500: {"model": ErrorResponse, "description": "Fetch or extraction failed"},
    },
    summary="Scrape Job Posting",
    description="Extract title, company, description and details from a job posting URL."
)
async def scrape_job(request: ScrapeRequest, scraper: ScraperDep) -> ScrapedJobResponse:
    """
    Scrape a job posting.

    Args:
        request: URL and cache options.
        scraper: The scraper service.

    Returns:
        ScrapedJobResponse with the extracted job.
    """
    record = await scraper.scrape_job(request.url or "", bypass_cache=request.bypass_cache)
    return ScrapedJobResponse.model_validate(record.to_dict())


@router.get(
    "/scraper/extractors",
    response_model=ExtractorsResponse,
    summary="List Extractors",
    description="Site-specific extractors in the order URLs are matched."
)
async def list_extractors(scraper: ScraperDep) -> ExtractorsResponse:
    return ExtractorsResponse(
        extractors=scraper.get_supported_sites(),
        fallback=scraper.registry.fallback.name,
        blocked_domains=scraper.blocked_domains,
    )


@router.get(
    "/scraper/stats",
    response_model=ScraperStatsResponse,
    summary="Scraper Statistics",
    description="In-process telemetry plus per-extractor aggregates from the scrape log."
)
async def scraper_stats(
    scraper: ScraperDep,
    scrape_log: ScrapeLogDep,
    days: int = Query(DEFAULT_STATS_DAYS, ge=1, le=365, description="Aggregation window in days"),
    scraper_name: Optional[str] = Query(None, description="Restrict to one extractor"),
) -> ScraperStatsResponse:
    """
    Get scraper statistics.

    Persisted aggregates are empty when the scrape log is disabled.
    """
    persisted = []
    if scrape_log is not None:
        persisted = [s.to_dict() for s in await scrape_log.get_stats(days, scraper_name)]

    return ScraperStatsResponse(
        monitor=scraper.monitor.get_report() if scraper.monitor else {},
        persisted=persisted,
        days=days,
    )


@router.post(
    "/scraper/cache/purge",
    response_model=PurgeResponse,
    summary="Purge Expired Cache Entries",
    description="Delete cached scrape results whose TTL has elapsed."
)
async def purge_cache(scraper: ScraperDep) -> PurgeResponse:
    deleted = await scraper.cache.purge_expired() if scraper.cache else 0
    logger.info(f"Cache purge removed {deleted} entries")
    return PurgeResponse(deleted=deleted, timestamp=datetime.now(timezone.utc))


@router.post(
    "/scraper/logs/purge",
    response_model=PurgeResponse,
    summary="Purge Old Scrape Logs",
    description="Delete scrape log rows older than the retention window."
)
async def purge_logs(
    scrape_log: ScrapeLogDep,
    days_to_keep: int = Query(
        DEFAULT_LOG_RETENTION_DAYS,
        ge=1,
        description="Keep rows newer than this many days"
    ),
) -> PurgeResponse:
    deleted = await scrape_log.purge_old_logs(days_to_keep) if scrape_log else 0
    return PurgeResponse(deleted=deleted, timestamp=datetime.now(timezone.utc))
