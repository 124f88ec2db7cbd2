# =============================================================================
# Config Package
# =============================================================================
"""
Application configuration and settings.
"""

from jobscraper.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
