# =============================================================================
# Database ORM Models
# =============================================================================
"""
SQLAlchemy ORM models for the job scraper engine.

Two tables back the engine:
- scraper_cache: one row per job posting URL holding the last successful
  extraction result, its expiry and validation headers.
- scraper_logs: one row per scrape attempt, used for aggregate statistics.

Column types are chosen to work on both PostgreSQL (asyncpg) and SQLite
(aiosqlite); JSON columns upgrade to JSONB on PostgreSQL.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


JsonType = JSON().with_variant(JSONB(), "postgresql")


# -----------------------------------------------------------------------------
# Base Model
# -----------------------------------------------------------------------------
class Base(DeclarativeBase):
    """
    Base class for all ORM models.
    """

    pass


# -----------------------------------------------------------------------------
# Scraper Cache Model
# -----------------------------------------------------------------------------
class ScraperCacheRow(Base):
    """
    ORM model for the scraper_cache table.

    Attributes:
        id: Unique identifier (UUID).
        url: Job posting URL (unique key).
        content: Serialized ScrapedRecord (camelCase keys).
        scraper_name: Name of the extractor that produced the content.
        status_code: HTTP status of the fetch that produced the content.
        headers: Response headers worth keeping alongside the content.
        etag: ETag validation header, if the site sent one.
        last_modified: Last-Modified validation header, if the site sent one.
        created_at: When the row was first inserted.
        updated_at: When the row was last overwritten.
        expires_at: Write time plus TTL; reads after this are stale.
        hit_count: Number of reads since the last write.
    """

    __tablename__ = "scraper_cache"
    __table_args__ = (
        Index("idx_scraper_cache_expires_at", "expires_at"),
        Index("idx_scraper_cache_scraper_name", "scraper_name"),
    )

    # Primary key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Cache key
    url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        unique=True,
    )

    # Payload
    content: Mapped[dict[str, Any]] = mapped_column(
        JsonType,
        nullable=False,
    )
    scraper_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    status_code: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    headers: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JsonType,
        nullable=True,
    )
    etag: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    last_modified: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    # Usage
    hit_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return (
            f"<ScraperCacheRow(url={self.url!r}, scraper={self.scraper_name}, "
            f"hits={self.hit_count})>"
        )


# -----------------------------------------------------------------------------
# Scraper Log Model
# -----------------------------------------------------------------------------
class ScraperLogRow(Base):
    """
    ORM model for the scraper_logs table.

    Each row records one scrape attempt for later aggregation.

    Attributes:
        id: Unique identifier (UUID).
        scraper_name: Extractor that handled the request.
        url: Requested URL.
        duration_ms: Wall-clock duration of the scrape.
        status_code: HTTP status, when a fetch happened.
        error: Error message for failed scrapes.
        cache_hit: Whether the result was served from cache.
        rate_limited: Whether the request had to wait for a rate limit slot.
        rate_limit_wait_ms: How long it waited.
        log_metadata: Free-form extra data.
        created_at: When the attempt was recorded.
    """

    __tablename__ = "scraper_logs"
    __table_args__ = (
        Index("idx_scraper_logs_scraper_name", "scraper_name"),
        Index("idx_scraper_logs_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    scraper_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    duration_ms: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    status_code: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    error: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    cache_hit: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    rate_limited: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    rate_limit_wait_ms: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    # 'metadata' is reserved on declarative classes
    log_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JsonType,
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<ScraperLogRow(scraper={self.scraper_name}, url={self.url!r}, "
            f"duration_ms={self.duration_ms}, error={self.error is not None})>"
        )
