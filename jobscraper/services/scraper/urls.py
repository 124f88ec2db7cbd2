# =============================================================================
# URL Utilities
# =============================================================================
"""
URL validation and normalization helpers used across the scraper engine.
"""

from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse


TRACKING_PARAMS = frozenset({
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "fbclid",
    "gclid",
    "msclkid",
    "ref",
    "source",
    "campaign",
})


def is_valid_url(url: Optional[str]) -> bool:
    """
    Check whether a string is an absolute http(s) URL with a host.

    Args:
        url: Candidate URL.

    Returns:
        True if the URL is well formed.
    """
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)


def get_domain(url: str) -> str:
    """
    Extract the lower-cased hostname of a URL.

    Returns:
        Hostname, or an empty string when the URL cannot be parsed.
    """
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def normalize_url(url: str) -> str:
    """
    Remove tracking query parameters and non-route fragments.

    Fragments containing "/" are kept since single page apps route on them.

    Args:
        url: URL to normalize.

    Returns:
        Normalized URL, or the input unchanged if it cannot be parsed.
    """
    if not is_valid_url(url):
        return url

    parsed = urlparse(url)
    query = [
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key not in TRACKING_PARAMS
    ]
    fragment = parsed.fragment if "/" in parsed.fragment else ""
    return urlunparse(parsed._replace(query=urlencode(query), fragment=fragment))


def is_url_for_domain(url: str, domain: str) -> bool:
    """
    Check whether a URL is on a domain or one of its subdomains.

    Args:
        url: URL to check.
        domain: Domain such as "indeed.com".

    Returns:
        True for exact host matches and subdomains.
    """
    host = get_domain(url)
    domain = domain.lower().strip()
    if not host or not domain:
        return False
    return host == domain or host.endswith(f".{domain}")
