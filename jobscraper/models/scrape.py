# =============================================================================
# Scrape Pydantic Models
# =============================================================================
"""
Pydantic models for scraper API requests and responses.

JSON keys are camelCase (jobType, sourceUrl, bypassCache, ...) to match the
serialized ScrapedRecord that is also stored in the cache. Python code uses
snake_case attribute names.

Usage:
    from jobscraper.models.scrape import ScrapeRequest, ScrapedJobResponse

    request = ScrapeRequest.model_validate({"url": url, "bypassCache": True})
    response = ScrapedJobResponse.model_validate(record.to_dict())
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------
class ScrapeRequest(CamelModel):
    """
    Request body for POST /api/scrape.

    Attributes:
        url: Job posting URL. Validated by the scraper so that a missing
            URL is reported as INVALID_URL rather than a schema error.
        bypass_cache: Skip the cache lookup and write.
    """

    url: Optional[str] = Field(
        default=None,
        description="Job posting URL"
    )
    bypass_cache: bool = Field(
        default=False,
        description="Fetch fresh data and do not store it in the cache"
    )


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------
class ScrapedJobResponse(CamelModel):
    """
    Scraped job posting.

    Title, company and description are always non-empty.
    """

    title: str = Field(description="Position title")
    company: str = Field(description="Hiring company")
    description: str = Field(description="Job description text")
    location: Optional[str] = Field(default=None, description="Job location")
    salary: Optional[str] = Field(default=None, description="Salary as shown by the site")
    job_type: Optional[str] = Field(default=None, description="Employment type")
    date_posted: Optional[str] = Field(default=None, description="Posting date")
    industry: Optional[str] = Field(default=None, description="Employer industry")
    source_url: str = Field(description="URL the job was scraped from")
    extractor_name: str = Field(description="Extractor that produced the record")
    keywords: list[str] = Field(default_factory=list, description="Detected skill keywords")
    skills: list[str] = Field(default_factory=list, description="Listed skills")
    requirements: list[str] = Field(default_factory=list, description="Requirement bullets")
    benefits: list[str] = Field(default_factory=list, description="Benefit bullets")
    raw_metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Extractor-specific extras"
    )


class ErrorResponse(BaseModel):
    """
    Error response for failed scrapes.

    Attributes:
        error: User-facing message.
        code: Machine-readable error code.
        suggestion: What the user can try next.
        details: Technical details.
        type: Error type (same value as code for typed errors).
    """

    error: str = Field(description="User-facing error message")
    code: Optional[str] = Field(default=None, description="Error code")
    suggestion: Optional[str] = Field(default=None, description="Suggested next step")
    details: Optional[str] = Field(default=None, description="Technical details")
    type: Optional[str] = Field(default=None, description="Error type")


class ExtractorsResponse(BaseModel):
    """Site-specific extractors in resolution order."""

    extractors: list[str] = Field(description="Extractor names in priority order")
    fallback: str = Field(description="Extractor used when no site matches")
    blocked_domains: list[str] = Field(description="Domains rejected before fetching")


class ScraperStatsResponse(BaseModel):
    """
    Scraper statistics.

    Attributes:
        monitor: In-process telemetry report since startup.
        persisted: Per-extractor aggregates from the scrape log.
        days: Window used for the persisted aggregates.
    """

    monitor: dict[str, Any] = Field(description="In-process telemetry report")
    persisted: list[dict[str, Any]] = Field(description="Per-extractor scrape log aggregates")
    days: int = Field(description="Aggregation window in days")


class PurgeResponse(BaseModel):
    """Result of a purge operation."""

    deleted: int = Field(description="Number of rows deleted")
    timestamp: datetime = Field(description="Time of the purge")
