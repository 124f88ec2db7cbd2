# =============================================================================
# Job Scraper Engine - Package
# =============================================================================
"""
Job Scraper Engine

Turns third-party job posting pages into normalized job records using
site-aware extractors, a retrying fetch transport, a TTL response cache and
a per-domain rate limiter.
"""

__version__ = "0.1.0"
