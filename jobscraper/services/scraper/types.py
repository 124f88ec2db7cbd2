# =============================================================================
# Scraper Data Types
# =============================================================================
"""
Data structures shared by the extractors, the pipeline and the cache.

ScrapedRecord is the normalized extraction result. It serializes to JSON
with camelCase keys, which is also the shape stored in the cache.
"""

import re
from dataclasses import dataclass, field, fields
from typing import Any, Optional


_WHITESPACE_RE = re.compile(r"\s+")

REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("title", "job title"),
    ("company", "company name"),
    ("description", "job description"),
)

# snake_case attribute -> camelCase JSON key, where they differ
_CAMEL_KEYS = {
    "job_type": "jobType",
    "date_posted": "datePosted",
    "source_url": "sourceUrl",
    "extractor_name": "extractorName",
    "raw_metadata": "rawMetadata",
}
_SNAKE_KEYS = {camel: snake for snake, camel in _CAMEL_KEYS.items()}

_TEXT_FIELDS = (
    "title",
    "company",
    "description",
    "location",
    "salary",
    "job_type",
    "date_posted",
    "industry",
)
_LIST_FIELDS = ("keywords", "skills", "requirements", "benefits")


def clean_text(text: Optional[str]) -> str:
    """
    Collapse whitespace runs to single spaces and trim.

    Args:
        text: Raw text, may be None.

    Returns:
        Cleaned text, empty string for None.
    """
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


# -----------------------------------------------------------------------------
# Scraped Record
# -----------------------------------------------------------------------------
@dataclass
class ScrapedRecord:
    """
    Normalized job posting extracted from a web page.

    Attributes:
        title: Position title (required after validation).
        company: Hiring company (required after validation).
        description: Job description text (required after validation).
        location: Job location.
        salary: Salary text as shown by the site.
        job_type: Employment type (full-time, contract, ...).
        date_posted: Posting date as shown by the site.
        industry: Industry of the employer.
        source_url: URL the record was extracted from.
        extractor_name: Name of the extractor that produced the record.
        keywords: Skill keywords detected in the description.
        skills: Skills listed by the posting.
        requirements: Requirement bullet points.
        benefits: Benefit bullet points.
        raw_metadata: Open map for extractor-specific extras.
    """

    title: str = ""
    company: str = ""
    description: str = ""
    location: Optional[str] = None
    salary: Optional[str] = None
    job_type: Optional[str] = None
    date_posted: Optional[str] = None
    industry: Optional[str] = None
    source_url: str = ""
    extractor_name: str = ""
    keywords: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    requirements: list[str] = field(default_factory=list)
    benefits: list[str] = field(default_factory=list)
    raw_metadata: dict[str, Any] = field(default_factory=dict)

    def missing_required_fields(self) -> list[str]:
        """
        List human-readable names of empty required fields.

        Returns:
            Names such as "job title" for each empty required field.
        """
        return [label for name, label in REQUIRED_FIELDS if not getattr(self, name)]

    def is_complete(self) -> bool:
        """True when title, company and description are all non-empty."""
        return not self.missing_required_fields()

    def normalized(self) -> "ScrapedRecord":
        """
        Return a copy with whitespace collapsed in every text field.

        Empty optional fields become None, list entries are cleaned and
        blank entries dropped.
        """
        values: dict[str, Any] = {}
        for name in _TEXT_FIELDS:
            cleaned = clean_text(getattr(self, name))
            if name in ("title", "company", "description"):
                values[name] = cleaned
            else:
                values[name] = cleaned or None
        for name in _LIST_FIELDS:
            values[name] = [
                item for item in (clean_text(v) for v in getattr(self, name)) if item
            ]
        return ScrapedRecord(
            source_url=self.source_url,
            extractor_name=self.extractor_name,
            raw_metadata=dict(self.raw_metadata),
            **values,
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to a JSON-compatible dict with camelCase keys.

        Returns:
            Dictionary suitable for API responses and cache storage.
        """
        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, list):
                value = list(value)
            elif isinstance(value, dict):
                value = dict(value)
            data[_CAMEL_KEYS.get(f.name, f.name)] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScrapedRecord":
        """
        Build a record from its camelCase dict form.

        Unknown keys are ignored so older cache rows still load.

        Args:
            data: Serialized record.

        Returns:
            ScrapedRecord instance.
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _SNAKE_KEYS.get(key, key)
            if name in known and value is not None:
                kwargs[name] = value
        return cls(**kwargs)


# -----------------------------------------------------------------------------
# Scrape Options
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ScrapeOptions:
    """
    Per-request scrape options.

    Attributes:
        bypass_cache: Skip both the cache lookup and the cache write.
    """

    bypass_cache: bool = False
