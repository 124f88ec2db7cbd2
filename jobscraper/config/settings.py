# =============================================================================
# Application Settings
# =============================================================================
"""
Pydantic Settings configuration for the job scraper engine.

Loads configuration from environment variables with validation and type safety.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    The .env file is automatically loaded if present.

    Attributes:
        app_name: Name of the application.
        app_env: Current environment (development, staging, production).
        debug: Enable debug mode for verbose logging.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        api_host: Host address for the API server.
        api_port: Port number for the API server.
        database_url: SQLAlchemy URL of the cache database (empty disables caching).
        database_pool_size: Connection pool size for the cache database.
        database_echo: Log every SQL statement.
        cache_enabled: Master switch for the scraper response cache.
        cache_default_ttl_hours: TTL used when an extractor does not override it.
        cache_update_hit_count: Increment the hit counter on cache reads.
        scraper_user_agent: User-Agent header sent with every fetch.
        scraper_timeout_seconds: Per-request HTTP timeout.
        scraper_fetch_retries: Maximum fetch attempts per URL.
        scraper_retry_delay_ms: Base delay for linear retry backoff.
        scraper_blocked_domains: Comma-separated domains rejected before fetching.
        rate_limit_requests_per_minute: Admitted requests per window and key.
        rate_limit_window_ms: Width of the sliding rate limit window.
        rate_limit_per_domain: Track windows per domain instead of globally.
        scrape_log_enabled: Persist one log row per scrape for stats.
    """

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------
    app_name: str = Field(
        default="jobscraper",
        description="Name of the application"
    )
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )

    # -------------------------------------------------------------------------
    # API Settings
    # -------------------------------------------------------------------------
    api_host: str = Field(
        default="0.0.0.0",
        description="Host address for the API server"
    )
    api_port: int = Field(
        default=8000,
        description="Port number for the API server"
    )

    # -------------------------------------------------------------------------
    # Database / Cache Settings
    # -------------------------------------------------------------------------
    database_url: str = Field(
        default="",
        description="SQLAlchemy async URL for the cache database"
    )
    database_pool_size: int = Field(
        default=5,
        description="Connection pool size"
    )
    database_echo: bool = Field(
        default=False,
        description="Log SQL statements"
    )
    cache_enabled: bool = Field(
        default=True,
        description="Enable the scraper response cache"
    )
    cache_default_ttl_hours: int = Field(
        default=24,
        description="Default cache TTL in hours"
    )
    cache_update_hit_count: bool = Field(
        default=True,
        description="Increment hit counters on cache reads"
    )

    # -------------------------------------------------------------------------
    # Scraper Transport Settings
    # -------------------------------------------------------------------------
    scraper_user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
        ),
        description="User-Agent header for outbound requests"
    )
    scraper_timeout_seconds: float = Field(
        default=30.0,
        description="HTTP request timeout in seconds"
    )
    scraper_fetch_retries: int = Field(
        default=3,
        description="Maximum fetch attempts per URL"
    )
    scraper_retry_delay_ms: int = Field(
        default=1000,
        description="Base delay in milliseconds for linear retry backoff"
    )
    scraper_blocked_domains: str = Field(
        default="indeed.com",
        description="Comma-separated list of domains rejected before fetching"
    )

    # -------------------------------------------------------------------------
    # Rate Limit Settings
    # -------------------------------------------------------------------------
    rate_limit_requests_per_minute: int = Field(
        default=10,
        description="Requests admitted per window and key"
    )
    rate_limit_window_ms: int = Field(
        default=60_000,
        description="Sliding window width in milliseconds"
    )
    rate_limit_per_domain: bool = Field(
        default=True,
        description="Track rate limits per domain instead of globally"
    )

    # -------------------------------------------------------------------------
    # Telemetry Settings
    # -------------------------------------------------------------------------
    scrape_log_enabled: bool = Field(
        default=True,
        description="Persist a log row per scrape when a database is configured"
    )

    # -------------------------------------------------------------------------
    # Model Configuration
    # -------------------------------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------
    @property
    def blocked_domains_list(self) -> list[str]:
        """
        Parse blocked domains string into a list.

        Returns:
            List of lower-cased blocked domains.
        """
        return [
            domain.strip().lower()
            for domain in self.scraper_blocked_domains.split(",")
            if domain.strip()
        ]

    @property
    def database_is_configured(self) -> bool:
        """
        Check if a cache database is configured.

        Returns:
            True if caching is enabled and a database URL is set.
        """
        return bool(self.cache_enabled and self.database_url)

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator(
        "scraper_fetch_retries",
        "rate_limit_requests_per_minute",
        "rate_limit_window_ms",
        "cache_default_ttl_hours",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """
        Validate that counters and durations are positive.

        Args:
            v: The configured value.

        Returns:
            The validated value.

        Raises:
            ValueError: If the value is not positive.
        """
        if v < 1:
            raise ValueError("value must be at least 1")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings instance with loaded configuration.
    """
    return Settings()
