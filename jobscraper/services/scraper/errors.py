# =============================================================================
# Scraper Errors
# =============================================================================
"""
Exception hierarchy for the scraper engine.

Every user-visible failure carries a machine-readable code, a short
message, optional technical details and a suggestion the caller can show
to the user. The API layer maps each subclass to an HTTP status.
"""

import re
from typing import Any, Optional


# -----------------------------------------------------------------------------
# Error Codes
# -----------------------------------------------------------------------------
INVALID_URL = "INVALID_URL"
UNSUPPORTED_PLATFORM = "UNSUPPORTED_PLATFORM"
FETCH_FAILED = "FETCH_FAILED"
EXTRACTION_FAILED = "EXTRACTION_FAILED"

DEFAULT_SUGGESTION = (
    "Please ensure the URL is accessible and points to a public job posting "
    "page. If the issue persists, try entering the job details manually."
)

HTML_PREVIEW_LENGTH = 1000

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE)


# -----------------------------------------------------------------------------
# Base Exception
# -----------------------------------------------------------------------------
class ScraperError(Exception):
    """
    Base exception for scraper errors.

    Attributes:
        code: Machine-readable error code.
        message: Human-readable summary.
        technical_details: Extra diagnostics for logs and debugging.
        suggestion: What the user can try next.
        error_type: Optional category surfaced as "type" in API responses.
    """

    code: str = "SCRAPER_ERROR"

    def __init__(
        self,
        message: str,
        technical_details: Optional[str] = None,
        suggestion: Optional[str] = None,
        error_type: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.technical_details = technical_details
        self.suggestion = suggestion or DEFAULT_SUGGESTION
        self.error_type = error_type

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the error to an API response body.

        Returns:
            Dictionary with error, details, suggestion and type keys.
        """
        body: dict[str, Any] = {
            "error": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
        }
        if self.technical_details:
            body["details"] = self.technical_details
        if self.error_type:
            body["type"] = self.error_type
        return body

    def __str__(self) -> str:
        return self.message


# -----------------------------------------------------------------------------
# Specific Exceptions
# -----------------------------------------------------------------------------
class InvalidURLError(ScraperError):
    """URL is missing or malformed."""

    code = INVALID_URL

    def __init__(self, url: str, message: str = "Invalid URL format") -> None:
        super().__init__(
            message,
            technical_details=f"URL: {url}",
            suggestion="Please provide a valid job posting URL",
            error_type=INVALID_URL,
        )
        self.url = url


class UnsupportedPlatformError(ScraperError):
    """URL belongs to a site that is rejected by policy before fetching."""

    code = UNSUPPORTED_PLATFORM

    def __init__(self, url: str, platform: str) -> None:
        super().__init__(
            f"{platform} URLs are not supported",
            technical_details=(
                f"Due to {platform}'s security measures, job details cannot be "
                f"fetched automatically from {url}"
            ),
            suggestion=(
                "Please try one of these alternatives:\n\n"
                "1. Use the LinkedIn job posting URL\n"
                "2. Use the company's direct careers page URL\n"
                "3. Enter the job details manually"
            ),
            error_type=UNSUPPORTED_PLATFORM,
        )
        self.url = url
        self.platform = platform


class FetchError(ScraperError):
    """Transport gave up after exhausting its retries."""

    code = FETCH_FAILED

    def __init__(
        self,
        message: str,
        technical_details: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            technical_details=technical_details,
            suggestion=(
                "The site may be blocking automated requests. "
                "Try accessing the page directly in your browser."
            ),
            error_type=FETCH_FAILED,
        )
        self.status_code = status_code


class ExtractionError(ScraperError):
    """Required fields were still empty after specific and generic extraction."""

    code = EXTRACTION_FAILED

    def __init__(
        self,
        url: str,
        html: str,
        missing_fields: list[str],
        is_valid_html: bool,
    ) -> None:
        self.url = url
        self.missing_fields = list(missing_fields)
        self.is_valid_html = is_valid_html
        self.html_preview = build_html_preview(html)
        super().__init__(
            "Could not extract the following required fields: "
            f"{', '.join(self.missing_fields)}",
            technical_details=(
                f"URL: {url}\n"
                f"Page contains valid HTML: {str(is_valid_html).lower()}\n"
                f"Content preview:\n{self.html_preview}"
            ),
            suggestion=(
                "The page may require JavaScript or authentication, or its "
                "content structure is non-standard. Try a direct link to the "
                "job posting, make sure the URL is publicly accessible, or "
                "enter the job details manually."
            ),
            error_type=EXTRACTION_FAILED,
        )


class CombinedScrapeError(ScraperError):
    """A site-specific extractor failed and the generic retry failed too."""

    def __init__(self, primary: Exception, fallback: Exception) -> None:
        super().__init__(
            "Failed to scrape job details",
            technical_details=(
                f"{primary}\n\nGeneric scraper also failed: {fallback}"
            ),
        )
        self.primary = primary
        self.fallback = fallback
        self.code = getattr(fallback, "code", self.code)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def build_html_preview(html: str, limit: int = HTML_PREVIEW_LENGTH) -> str:
    """
    Strip script and style blocks and truncate HTML for diagnostics.

    Args:
        html: Raw HTML payload.
        limit: Maximum preview length before the ellipsis.

    Returns:
        Truncated, script-free HTML followed by "...".
    """
    cleaned = _STYLE_RE.sub("", _SCRIPT_RE.sub("", html or ""))
    return cleaned[:limit] + "..."
