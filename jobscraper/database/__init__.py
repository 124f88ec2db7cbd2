# =============================================================================
# Database Package
# =============================================================================
"""
Database module for the job scraper engine.

Provides the async DatabaseManager used by the cache store and the scrape
log sink, plus the ORM models for both tables.

Usage:

    from jobscraper.database import DatabaseManager, DatabaseConfig

    config = DatabaseConfig(url="sqlite+aiosqlite:///scraper.db")
    async with DatabaseManager(config) as db:
        await db.create_tables()
        async with db.session() as session:
            result = await session.execute(query)
"""

from jobscraper.database.manager import (
    DatabaseConfig,
    DatabaseManager,
    create_database_manager,
)
from jobscraper.database.models import (
    Base,
    ScraperCacheRow,
    ScraperLogRow,
)


__all__ = [
    "DatabaseConfig",
    "DatabaseManager",
    "create_database_manager",
    "Base",
    "ScraperCacheRow",
    "ScraperLogRow",
]
