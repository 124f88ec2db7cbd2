# =============================================================================
# API Package
# =============================================================================
"""
FastAPI application and routes for the job scraper engine.
"""
