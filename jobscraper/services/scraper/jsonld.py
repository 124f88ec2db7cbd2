# =============================================================================
# JSON-LD Structured Data
# =============================================================================
"""
Discovery and normalization of schema.org JobPosting JSON-LD blocks.

Payloads are collected from the raw document before script tags are
stripped, so both the site-specific and the generic extraction passes can
read them.
"""

import json
import logging
from typing import Any, Optional

from bs4 import BeautifulSoup


# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


_JOB_HINT_KEYS = ("title", "jobTitle", "hiringOrganization", "description")


def collect_json_ld(soup: BeautifulSoup) -> list[Any]:
    """
    Parse every application/ld+json script in the document.

    Invalid JSON blocks are skipped.

    Args:
        soup: Unstripped document.

    Returns:
        Decoded payloads in document order.
    """
    payloads: list[Any] = []
    for script in soup.find_all("script", type="application/ld+json"):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            payloads.append(json.loads(raw))
        except (json.JSONDecodeError, TypeError) as e:
            logger.debug(f"Skipping invalid JSON-LD block: {e}")
    return payloads


def _flatten(data: Any) -> list[dict[str, Any]]:
    """Flatten top-level lists, @graph containers and item lists."""
    if isinstance(data, list):
        items: list[dict[str, Any]] = []
        for entry in data:
            items.extend(_flatten(entry))
        return items
    if not isinstance(data, dict):
        return []
    if "@graph" in data and isinstance(data["@graph"], list):
        return [item for item in data["@graph"] if isinstance(item, dict)]
    if isinstance(data.get("itemListElement"), list):
        return [
            element["item"]
            for element in data["itemListElement"]
            if isinstance(element, dict) and isinstance(element.get("item"), dict)
        ]
    return [data]


def _is_job_posting(item: dict[str, Any]) -> bool:
    item_type = item.get("@type", "")
    if isinstance(item_type, list):
        return any("JobPosting" in str(t) for t in item_type)
    return "JobPosting" in str(item_type)


def find_job_posting(payloads: list[Any]) -> Optional[dict[str, Any]]:
    """
    Pick the JSON-LD object that describes the job posting.

    Objects typed JobPosting win. Otherwise the first object carrying a
    title, jobTitle, hiringOrganization or description is used.

    Args:
        payloads: Decoded JSON-LD payloads.

    Returns:
        The matching object, or None.
    """
    items = [item for payload in payloads for item in _flatten(payload)]
    for item in items:
        if _is_job_posting(item):
            return item
    for item in items:
        if any(item.get(key) for key in _JOB_HINT_KEYS):
            return item
    return None


def _text(value: Any) -> Optional[str]:
    """Convert a scalar JSON-LD value to plain text, stripping markup."""
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value)
    if "<" in text and ">" in text:
        text = BeautifulSoup(text, "lxml").get_text(" ")
    text = " ".join(text.split())
    return text or None


def _organization_name(org: Any) -> Optional[str]:
    if isinstance(org, str):
        return _text(org)
    if isinstance(org, dict):
        return _text(org.get("name") or org.get("legalName"))
    if isinstance(org, list) and org:
        return _organization_name(org[0])
    return None


def _location(loc: Any) -> Optional[str]:
    if isinstance(loc, list):
        parts = [p for p in (_location(item) for item in loc) if p]
        return "; ".join(parts) or None
    if isinstance(loc, str):
        return _text(loc)
    if not isinstance(loc, dict):
        return None

    address = loc.get("address")
    if isinstance(address, str):
        return _text(address)
    if isinstance(address, dict):
        country = address.get("addressCountry")
        if isinstance(country, dict):
            country = country.get("name")
        parts = [
            address.get("addressLocality"),
            address.get("addressRegion"),
            country,
        ]
        joined = ", ".join(str(p) for p in parts if p)
        if joined:
            return joined
    return _text(loc.get("name"))


def _salary(salary: Any) -> Optional[str]:
    """Render baseSalary as text such as "USD 100000-150000 per YEAR"."""
    if isinstance(salary, (str, int, float)):
        return _text(salary)
    if not isinstance(salary, dict):
        return None

    currency = salary.get("currency") or ""
    value = salary.get("value")
    unit = ""
    if isinstance(value, dict):
        unit = value.get("unitText") or ""
        low = value.get("minValue")
        high = value.get("maxValue")
        single = value.get("value")
        if low is not None and high is not None:
            amount = f"{low}-{high}"
        elif single is not None:
            amount = str(single)
        else:
            amount = str(low or high or "")
    elif value is not None:
        amount = str(value)
    else:
        return None

    if not amount:
        return None
    text = f"{currency} {amount}".strip()
    if unit:
        text = f"{text} per {unit}"
    return text


def _employment_type(value: Any) -> Optional[str]:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value if v) or None
    return _text(value)


def normalize_job_posting(item: dict[str, Any]) -> dict[str, Optional[str]]:
    """
    Map a JobPosting object to record field names.

    Args:
        item: JSON-LD object returned by find_job_posting().

    Returns:
        Dict with title, company, description, location, salary,
        job_type, date_posted and industry (values may be None).
    """
    company = (
        _organization_name(item.get("hiringOrganization"))
        or _organization_name(item.get("organization"))
        or _organization_name(item.get("publisher"))
    )
    return {
        "title": _text(item.get("jobTitle") or item.get("title")),
        "company": company,
        "description": _text(item.get("description")),
        "location": _location(item.get("jobLocation")),
        "salary": _salary(item.get("baseSalary")),
        "job_type": _employment_type(item.get("employmentType")),
        "date_posted": _text(item.get("datePosted")),
        "industry": _text(item.get("industry")),
    }
