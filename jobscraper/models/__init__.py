# =============================================================================
# Models Package
# =============================================================================
"""
Pydantic models and API schemas for the job scraper engine.

Note: SQLAlchemy ORM models are in jobscraper/database/models.py

Usage:
    from jobscraper.models import ScrapeRequest, ScrapedJobResponse
"""

from jobscraper.models.scrape import (
    ErrorResponse,
    ExtractorsResponse,
    PurgeResponse,
    ScrapedJobResponse,
    ScrapeRequest,
    ScraperStatsResponse,
)

__all__ = [
    "ErrorResponse",
    "ExtractorsResponse",
    "PurgeResponse",
    "ScrapedJobResponse",
    "ScrapeRequest",
    "ScraperStatsResponse",
]
