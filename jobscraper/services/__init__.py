# =============================================================================
# Services Package
# =============================================================================
"""
Business logic services.
"""
