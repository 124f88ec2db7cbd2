# =============================================================================
# FastAPI Application Entry Point
# =============================================================================
"""
Main FastAPI application for the job scraper engine.

This module creates and configures the FastAPI application instance,
including the scraper dependency graph, middleware, routes, and exception
handlers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobscraper import __version__
from jobscraper.api.routes import health, scrape
from jobscraper.config import get_settings
from jobscraper.database import DatabaseManager, create_database_manager
from jobscraper.services.scraper import (
    InvalidURLError,
    ScraperError,
    ScraperMonitor,
    UnsupportedPlatformError,
    build_scraper_service,
)


# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Lifespan Management
# -----------------------------------------------------------------------------
async def init_database() -> Optional[DatabaseManager]:
    """
    Connect the cache database when one is configured.

    Returns:
        Connected DatabaseManager, or None when no database is configured or
        the connection failed (the scraper then runs without a cache).
    """
    settings = get_settings()
    if not settings.database_url:
        logger.warning("DATABASE_URL not set. Scraper cache and scrape log disabled.")
        return None

    db = create_database_manager(
        settings.database_url,
        pool_size=settings.database_pool_size,
        echo=settings.database_echo,
    )
    try:
        await db.connect()
        await db.create_tables()
    except Exception as e:
        logger.warning(f"Database unavailable, continuing without cache: {e}")
        await db.disconnect()
        return None

    return db


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Manage application lifespan events.

    Builds the scraper dependency graph on startup (database, cache store,
    rate limiter, monitor, fetcher, registry, service) and stores it on
    app.state; releases the HTTP client and database on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode")
    logger.info(f"Debug mode: {settings.debug}")

    db = await init_database()
    monitor = ScraperMonitor()
    service = build_scraper_service(settings, db, monitor=monitor)

    app.state.db = db
    app.state.monitor = monitor
    app.state.scraper = service
    app.state.scrape_log = service.sink
    logger.info(
        f"Scraper initialized with extractors: {', '.join(service.get_supported_sites())}"
    )

    yield

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------
    logger.info("Shutting down application...")

    await service.close()
    logger.info("Scraper HTTP client closed")

    if db is not None:
        await db.disconnect()
        logger.info("Database connection closed")


# -----------------------------------------------------------------------------
# Application Factory
# -----------------------------------------------------------------------------
SCRAPE_PATH = "/api/scrape"


def scraper_error_status(exc: ScraperError) -> int:
    """HTTP status for a scraper error."""
    if isinstance(exc, InvalidURLError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, UnsupportedPlatformError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Job Scraper API",
        description=(
            "Extracts structured job postings (title, company, description and "
            "more) from job board and career page URLs."
        ),
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan
    )

    # -------------------------------------------------------------------------
    # Middleware Configuration
    # -------------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:8000",
            "http://127.0.0.1:8000",
        ],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(ScraperError)
    async def scraper_exception_handler(
        request: Request,
        exc: ScraperError
    ) -> JSONResponse:
        """
        Map scraper errors to 400 (invalid URL), 422 (unsupported platform)
        or 500 (fetch and extraction failures).
        """
        status_code = scraper_error_status(exc)
        if status_code >= 500:
            logger.error(f"Scrape failed: {exc}")
        else:
            logger.info(f"Rejected scrape request: {exc}")

        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError
    ) -> JSONResponse:
        """
        Report malformed scrape request bodies as INVALID_URL (400).

        Other routes keep FastAPI's default 422 validation response.
        """
        if request.url.path != SCRAPE_PATH:
            return await request_validation_exception_handler(request, exc)

        body = exc.body if isinstance(exc.body, dict) else {}
        error = InvalidURLError(str(body.get("url", "")), "Invalid request body")
        logger.info(f"Rejected malformed scrape request: {exc.errors()}")

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error.to_dict()
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        """
        Global exception handler for unhandled exceptions.

        Args:
            request: The incoming request.
            exc: The unhandled exception.

        Returns:
            JSON response with error details.
        """
        logger.error(f"Unhandled exception: {exc}", exc_info=True)

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None
            }
        )

    # -------------------------------------------------------------------------
    # Route Registration
    # -------------------------------------------------------------------------
    app.include_router(health.router)
    app.include_router(scrape.router, prefix="/api")

    @app.get("/", tags=["Root"])
    async def root() -> dict:
        """
        Root endpoint providing API information.

        Returns:
            Dictionary with API information and links.
        """
        return {
            "name": "Job Scraper API",
            "version": __version__,
            "status": "running",
            "docs": "/docs" if settings.debug else "disabled",
            "health": "/health"
        }

    return app


# -----------------------------------------------------------------------------
# Application Instance
# -----------------------------------------------------------------------------
app = create_app()
