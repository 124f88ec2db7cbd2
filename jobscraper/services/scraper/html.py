# =============================================================================
# HTML Document Parsing
# =============================================================================
"""
HTML parsing and selector helpers shared by all extractors.

A page is parsed once into a ParsedDocument. JSON-LD payloads are captured
first, then script, style and hidden nodes are removed so selector based
text extraction only sees visible content.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from bs4 import BeautifulSoup, Tag

from jobscraper.services.scraper.jsonld import collect_json_ld
from jobscraper.services.scraper.types import clean_text


# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


BODY_TEXT_LIMIT = 5000

_STRIP_SELECTORS = (
    "script",
    "style",
    "noscript",
    '[style*="display: none"]',
    '[style*="display:none"]',
    "[hidden]",
)


# -----------------------------------------------------------------------------
# Parsed Document
# -----------------------------------------------------------------------------
@dataclass
class ParsedDocument:
    """
    A page parsed once and shared by every extraction pass.

    Attributes:
        soup: Cleaned DOM (scripts, styles and hidden nodes removed).
        html: Raw HTML as fetched.
        json_ld: JSON-LD payloads captured before cleaning.
        is_valid_html: Whether the payload looks like an HTML document.
    """

    soup: BeautifulSoup
    html: str
    json_ld: list[Any] = field(default_factory=list)
    is_valid_html: bool = False


def is_valid_html(html: str) -> bool:
    """Check for a doctype or <html> tag."""
    lowered = (html or "").lower()
    return "<!doctype html" in lowered or "<html" in lowered


def clean_dom(soup: BeautifulSoup) -> BeautifulSoup:
    """
    Remove script, style and hidden elements in place.

    Args:
        soup: Document to clean.

    Returns:
        The same document.
    """
    for selector in _STRIP_SELECTORS:
        for element in soup.select(selector):
            if not element.decomposed:
                element.decompose()
    return soup


def parse_html(html: str) -> ParsedDocument:
    """
    Parse HTML, capture JSON-LD and strip non-content nodes.

    Args:
        html: Raw page HTML.

    Returns:
        ParsedDocument ready for extraction.
    """
    soup = BeautifulSoup(html or "", "lxml")
    json_ld = collect_json_ld(soup)
    clean_dom(soup)
    logger.debug(f"Parsed document ({len(html or '')} bytes, {len(json_ld)} JSON-LD blocks)")
    return ParsedDocument(
        soup=soup,
        html=html or "",
        json_ld=json_ld,
        is_valid_html=is_valid_html(html),
    )


# -----------------------------------------------------------------------------
# Selector Helpers
# -----------------------------------------------------------------------------
def element_text(element: Optional[Tag]) -> str:
    """
    Visible text of an element, or the content attribute of a meta tag.

    Returns:
        Whitespace-collapsed text, empty string when there is none.
    """
    if element is None:
        return ""
    if element.name == "meta":
        content = element.get("content")
        return clean_text(content if isinstance(content, str) else None)
    return clean_text(element.get_text(" "))


def select_text(soup: BeautifulSoup, selector: str) -> str:
    """Text of the first element matching a CSS selector."""
    return element_text(soup.select_one(selector))


def first_text(
    soup: BeautifulSoup,
    selectors: Iterable[str],
    min_length: int = 0,
) -> str:
    """
    Try selectors in order and return the first non-empty text.

    Args:
        soup: Document to search.
        selectors: CSS selectors in priority order.
        min_length: Text must be longer than this to be accepted.

    Returns:
        First acceptable text, or an empty string.
    """
    for selector in selectors:
        text = select_text(soup, selector)
        if text and len(text) > min_length:
            return text
    return ""


def select_attr(soup: BeautifulSoup, selector: str, attr: str) -> str:
    """Attribute value of the first element matching a selector."""
    element = soup.select_one(selector)
    if element is None:
        return ""
    value = element.get(attr)
    if isinstance(value, list):
        value = " ".join(value)
    return clean_text(value)


def body_text(soup: BeautifulSoup, limit: int = BODY_TEXT_LIMIT) -> str:
    """
    Whole-body text as a last-resort description.

    Args:
        soup: Cleaned document.
        limit: Maximum number of characters.

    Returns:
        Whitespace-collapsed body text truncated to limit.
    """
    root = soup.body or soup
    return clean_text(root.get_text(" "))[:limit]


def list_items(container: Optional[Tag]) -> list[str]:
    """Cleaned text of every <li> under a container."""
    if container is None:
        return []
    return [text for text in (element_text(li) for li in container.find_all("li")) if text]
