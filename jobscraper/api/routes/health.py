# =============================================================================
# Health Check Routes
# =============================================================================
"""
Health check endpoints for monitoring and container orchestration.
"""

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from jobscraper import __version__
from jobscraper.config import get_settings


# -----------------------------------------------------------------------------
# Router Setup
# -----------------------------------------------------------------------------
router = APIRouter(prefix="/health", tags=["Health"])


# -----------------------------------------------------------------------------
# Response Models
# -----------------------------------------------------------------------------
class HealthStatus(BaseModel):
    """
    Health check response model.

    Attributes:
        status: Current health status (healthy, degraded, unhealthy).
        timestamp: Time of the health check.
        version: Application version.
        environment: Current environment (development, staging, production).
    """

    status: Literal["healthy", "degraded", "unhealthy"] = Field(
        description="Current health status"
    )
    timestamp: datetime = Field(
        description="Time of the health check"
    )
    version: str = Field(
        description="Application version"
    )
    environment: str = Field(
        description="Current environment"
    )


class DetailedHealthStatus(HealthStatus):
    """
    Detailed health check with component status.

    Attributes:
        components: Status of individual system components.
    """

    components: dict[str, dict] = Field(
        description="Status of individual components"
    )


# -----------------------------------------------------------------------------
# Endpoints
# -----------------------------------------------------------------------------
@router.get(
    "",
    response_model=HealthStatus,
    summary="Basic Health Check",
    description="Returns basic health status for container orchestration."
)
async def health_check() -> HealthStatus:
    """
    Perform a basic health check.

    Returns:
        HealthStatus: Basic health status information.
    """
    settings = get_settings()

    return HealthStatus(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        environment=settings.app_env
    )


@router.get(
    "/detailed",
    response_model=DetailedHealthStatus,
    summary="Detailed Health Check",
    description="Returns health status including database, cache and extractor checks."
)
async def detailed_health_check(request: Request) -> DetailedHealthStatus:
    """
    Perform a detailed health check with component status.

    The service is degraded when a database is configured but the cache
    is not usable; scraping still works without it.

    Returns:
        DetailedHealthStatus: Detailed health status with component info.
    """
    settings = get_settings()
    db = getattr(request.app.state, "db", None)
    scraper = getattr(request.app.state, "scraper", None)

    if db is not None:
        db_status = "healthy" if await db.health_check() else "unhealthy"
    elif settings.database_url:
        db_status = "unavailable"
    else:
        db_status = "not_configured"

    cache_ready = bool(scraper and scraper.cache and scraper.cache.is_ready())
    components = {
        "api": {
            "status": "healthy"
        },
        "database": {
            "status": db_status
        },
        "cache": {
            "status": "ready" if cache_ready else "disabled",
            "enabled": settings.database_is_configured
        },
        "scraper": {
            "status": "ready" if scraper else "not_initialized",
            "extractors": scraper.get_supported_sites() if scraper else []
        }
    }

    overall_status = "healthy"
    if scraper is None:
        overall_status = "unhealthy"
    elif settings.database_is_configured and not cache_ready:
        overall_status = "degraded"

    return DetailedHealthStatus(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        environment=settings.app_env,
        components=components
    )
