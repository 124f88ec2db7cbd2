# =============================================================================
# API Routes Package
# =============================================================================
"""
Route modules registered by the application factory.
"""

from jobscraper.api.routes import health, scrape

__all__ = ["health", "scrape"]
