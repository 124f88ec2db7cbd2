# =============================================================================
# Job Posting Extractors
# =============================================================================
"""
Site-specific extractors for turning a parsed job page into a ScrapedRecord.

Each extractor is optimized for one job board's HTML structure and exposes
two operations: can_handle(url) and extract(document, url). Fetching,
caching, validation and the generic fallback pass are handled by the
shared ScrapePipeline, so extractors only deal with selectors.

Note: Job board HTML structures change frequently. Extractors should
degrade gracefully and leave fields empty when selectors fail to match;
the pipeline backfills required fields from the generic extractor.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Iterable, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from jobscraper.services.scraper.html import (
    ParsedDocument,
    body_text,
    element_text,
    first_text,
    list_items,
    select_attr,
)
from jobscraper.services.scraper.jsonld import find_job_posting, normalize_job_posting
from jobscraper.services.scraper.types import ScrapedRecord, clean_text
from jobscraper.services.scraper.urls import get_domain, is_valid_url


# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------
DEFAULT_CACHE_TTL_HOURS = 24
GENERIC_CACHE_TTL_HOURS = 12
MIN_DESCRIPTION_LENGTH = 50

# Skill keywords detected in descriptions. Short or common-word names are
# matched case-sensitively.
SKILL_KEYWORDS: tuple[str, ...] = (
    # Programming Languages
    "Python", "JavaScript", "TypeScript", "Java", "C++", "C#", "Go", "Rust",
    "Ruby", "Swift", "Kotlin", "Scala", "PHP", "Perl", "SQL",
    # Frameworks
    "React", "Angular", "Vue", "Node.js", "Django", "Flask", "FastAPI",
    "Spring", "Rails", ".NET", "Express", "Next.js",
    # Databases
    "PostgreSQL", "MySQL", "MongoDB", "Redis", "Elasticsearch", "SQL Server",
    "Oracle", "Cassandra", "DynamoDB",
    # Cloud/DevOps
    "AWS", "Azure", "GCP", "Google Cloud", "Docker", "Kubernetes", "Terraform",
    "Ansible", "Jenkins", "CI/CD", "GitHub Actions",
    # AI/ML
    "Machine Learning", "Deep Learning", "TensorFlow", "PyTorch", "NLP",
    "Computer Vision", "LLM",
    # Other
    "GraphQL", "REST", "Agile", "Scrum", "Git", "Linux",
)
_CASE_SENSITIVE_KEYWORDS = frozenset({
    "Go", "Rust", "Swift", "Spring", "Express", "Oracle", "REST", "Git", "Rails",
})


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    flags = 0 if keyword in _CASE_SENSITIVE_KEYWORDS else re.IGNORECASE
    return re.compile(rf"(?<![\w.]){re.escape(keyword)}(?![\w+#])", flags)


_KEYWORD_PATTERNS = tuple((kw, _keyword_pattern(kw)) for kw in SKILL_KEYWORDS)


def detect_skill_keywords(text: Optional[str]) -> list[str]:
    """
    Detect well-known technology keywords in free text.

    Args:
        text: Description or requirement text.

    Returns:
        Canonical keyword names in SKILL_KEYWORDS order, without duplicates.
    """
    if not text:
        return []
    return [keyword for keyword, pattern in _KEYWORD_PATTERNS if pattern.search(text)]


def _dedupe(items: Iterable[str]) -> list[str]:
    """Drop empty and repeated entries, keeping first-seen order."""
    seen: set[str] = set()
    result = []
    for item in items:
        cleaned = clean_text(item)
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


def company_from_domain(url: str) -> str:
    """
    Derive a company name from the second-level domain.

    Example:
        "https://careers.acme.com/job/1" -> "Acme"
    """
    parts = get_domain(url).split(".")
    if len(parts) < 2 or not parts[-2]:
        return ""
    name = parts[-2]
    return name[0].upper() + name[1:]


# -----------------------------------------------------------------------------
# Base Extractor Abstract Class
# -----------------------------------------------------------------------------
class BaseExtractor(ABC):
    """
    Abstract base class for job posting extractors.

    Subclasses declare URL patterns and implement extract(). Patterns are
    regular expressions searched case-insensitively against the full URL.

    Attributes:
        url_patterns: Regex sources matched against candidate URLs.
        cache_ttl_hours: How long results from this extractor stay fresh.
    """

    url_patterns: tuple[str, ...] = ()
    cache_ttl_hours: int = DEFAULT_CACHE_TTL_HOURS

    def __init__(self) -> None:
        self._compiled = tuple(re.compile(p, re.IGNORECASE) for p in self.url_patterns)

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of the job board this extractor handles."""
        pass

    @property
    def is_generic(self) -> bool:
        """True for the catch-all fallback extractor."""
        return False

    def can_handle(self, url: str) -> bool:
        """
        Check if this extractor should be used for a URL.

        Args:
            url: The job posting URL.

        Returns:
            True if the URL is well formed and matches one of the patterns.
        """
        if not is_valid_url(url):
            return False
        return any(pattern.search(url) for pattern in self._compiled)

    @abstractmethod
    def extract(self, document: ParsedDocument, url: str) -> ScrapedRecord:
        """
        Populate a candidate record from a parsed page.

        Args:
            document: Parsed and cleaned page.
            url: The original URL for context.

        Returns:
            Candidate record; required fields may still be empty.
        """
        pass

    def _record(self, url: str, **values) -> ScrapedRecord:
        record = ScrapedRecord(source_url=url, extractor_name=self.name, **values)
        logger.debug(
            f"{self.name} extracted '{record.title}' at '{record.company}' "
            f"(description: {len(record.description)} chars)"
        )
        return record

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


# -----------------------------------------------------------------------------
# LinkedIn Extractor
# -----------------------------------------------------------------------------
class LinkedInExtractor(BaseExtractor):
    """
    Extractor for LinkedIn job postings.

    Handles job URLs like:
    - https://www.linkedin.com/jobs/view/123456
    - https://linkedin.com/jobs/view/123456
    """

    url_patterns = (r"linkedin\.com/jobs", r"linkedin\.com/job")

    @property
    def name(self) -> str:
        return "linkedin"

    def extract(self, document: ParsedDocument, url: str) -> ScrapedRecord:
        soup = document.soup

        title = first_text(soup, [
            ".top-card-layout__title",
            "h1.topcard__title",
            "h1",
            ".job-details-jobs-unified-top-card__job-title",
        ])
        company = first_text(soup, [
            ".top-card-layout__company-name",
            "a.topcard__org-name-link",
            ".job-details-jobs-unified-top-card__company-name",
            ".company-name",
        ])
        location = first_text(soup, [
            "span.topcard__flavor--bullet",
            ".job-details-jobs-unified-top-card__primary-description-container",
        ])
        description = first_text(soup, [
            ".description__text",
            "div.show-more-less-html__markup",
            ".job-details-jobs-unified-top-card__description-text",
            ".job-description",
        ])
        salary = first_text(soup, ["div.salary-compensation-type__salary"])

        criteria: dict[str, str] = {}
        for item in soup.select("li.description__job-criteria-item"):
            key = element_text(item.select_one(".description__job-criteria-subheader"))
            value = element_text(item.select_one(".description__job-criteria-text"))
            if key and value:
                criteria[key.lower()] = value

        return self._record(
            url,
            title=title,
            company=company,
            description=description,
            location=location or None,
            salary=salary or None,
            job_type=criteria.get("employment type"),
            industry=criteria.get("industries"),
        )


# -----------------------------------------------------------------------------
# Indeed Extractor
# -----------------------------------------------------------------------------
class IndeedExtractor(BaseExtractor):
    """
    Extractor for Indeed job postings.

    Handles job URLs like:
    - https://www.indeed.com/viewjob?jk=abc123
    - https://uk.indeed.co.uk/viewjob?jk=abc123
    """

    url_patterns = (r"indeed\.com", r"indeed\.co\.[a-z]{2}", r"indeed\.[a-z]{2}")
    cache_ttl_hours = 18

    _REQUIREMENT_HINTS = ("year", "experience", "degree", "qualification", "proficiency")
    _SKILL_TOKEN_RE = re.compile(r"^[A-Za-z0-9+#.\-_]+$")

    @property
    def name(self) -> str:
        return "indeed"

    def extract(self, document: ParsedDocument, url: str) -> ScrapedRecord:
        soup = document.soup

        title = first_text(soup, [
            ".jobsearch-JobInfoHeader-title",
            "h1.jobTitle",
            'h1[data-testid="jobDetailTitle"]',
            "h1[data-testid='jobTitle']",
            "h1.icl-u-xs-mb--xs",
        ])
        company = first_text(soup, [
            ".jobsearch-InlineCompanyRating-companyName",
            'div[data-company-name="true"]',
            "[data-testid='inlineHeader-companyName']",
            ".icl-u-lg-mr--sm",
        ])
        location = first_text(soup, [
            ".jobsearch-JobInfoHeader-subtitle .jobsearch-JobInfoHeader-locationText",
            '[data-testid="jobsearch-JobInfoHeader-companyLocationText"]',
            'div[data-testid="jobLocationText"]',
            "[data-testid='inlineHeader-companyLocation']",
        ])
        salary = first_text(soup, [
            'span[data-testid="jobsearch-JobMetadataHeader-salary"]',
            "[data-testid='attribute_snippet_compensation']",
            "#salaryInfoAndJobType span",
        ])
        description = first_text(soup, [
            "#jobDescriptionText",
            ".jobsearch-jobDescriptionText",
        ])

        metadata_items = [element_text(el) for el in soup.select(".jobsearch-JobMetadataHeader-item")]
        job_type = next(
            (text for text in metadata_items if "job" in text.lower() or "time" in text.lower()),
            "",
        )
        if not salary:
            salary = next((text for text in metadata_items if "$" in text), "")

        date_posted = first_text(soup, ['span[data-testid="jobsearch-JobMetadataFooter-datePosted"]'])
        date_posted = date_posted.replace("Posted", "").strip()

        requirements, skills = self._requirements_and_skills(soup)

        benefits: list[str] = []
        for section in soup.select(".jobsearch-JobDescriptionSection-sectionItem"):
            heading = element_text(section.select_one(".jobsearch-JobDescriptionSection-sectionItemKey"))
            if "benefit" in heading.lower():
                benefits.extend(list_items(section))

        return self._record(
            url,
            title=title,
            company=company,
            description=description,
            location=location or None,
            salary=salary or None,
            job_type=job_type or None,
            date_posted=date_posted or None,
            requirements=requirements,
            skills=skills,
            benefits=_dedupe(benefits),
        )

    def _requirements_and_skills(self, soup: BeautifulSoup) -> tuple[list[str], list[str]]:
        """Collect requirement bullets and technology-like tokens within them."""
        requirements: list[str] = []
        skills: list[str] = []
        for li in soup.select("ul li, ol li"):
            text = element_text(li)
            lowered = text.lower()
            if not any(hint in lowered for hint in self._REQUIREMENT_HINTS):
                continue
            requirements.append(text)
            for part in re.split(r"[,.]", text):
                token = part.strip()
                token_lower = token.lower()
                if (
                    len(token) > 2
                    and "year" not in token_lower
                    and "experience" not in token_lower
                    and self._SKILL_TOKEN_RE.match(token)
                ):
                    skills.append(token)
        return _dedupe(requirements), _dedupe(skills)


# -----------------------------------------------------------------------------
# Greenhouse ATS Extractor
# -----------------------------------------------------------------------------
class GreenhouseExtractor(BaseExtractor):
    """
    Extractor for Greenhouse ATS job postings.

    Handles job URLs like:
    - https://boards.greenhouse.io/company/jobs/123456
    - https://company.greenhouse.io/jobs/123456
    """

    url_patterns = (r"greenhouse\.io", r"boards\.greenhouse\.io")

    @property
    def name(self) -> str:
        return "greenhouse"

    def extract(self, document: ParsedDocument, url: str) -> ScrapedRecord:
        soup = document.soup

        title = first_text(soup, [".app-title", "h1.job-title", "h1"])
        company = first_text(soup, [
            ".company-name",
            ".employer-info h2",
            'meta[property="og:site_name"]',
        ]) or self._company_from_url(url)
        location = first_text(soup, [".location", "div.location-name"])
        description = first_text(soup, ["#content", ".job-description", "#job_description"])

        return self._record(
            url,
            title=title,
            company=company,
            description=description,
            location=location or None,
        )

    def _company_from_url(self, url: str) -> str:
        """Board slug or subdomain, e.g. boards.greenhouse.io/acme-co -> Acme Co."""
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
        if host.startswith("boards.") or host.startswith("job-boards."):
            parts = [p for p in parsed.path.split("/") if p]
            slug = parts[0] if parts else ""
        elif host.endswith(".greenhouse.io"):
            slug = host.split(".")[0]
        else:
            slug = ""
        return slug.replace("-", " ").title()


# -----------------------------------------------------------------------------
# Lever ATS Extractor
# -----------------------------------------------------------------------------
class LeverExtractor(BaseExtractor):
    """
    Extractor for Lever ATS job postings.

    Handles job URLs like:
    - https://jobs.lever.co/company/abc123
    """

    url_patterns = (r"lever\.co",)

    @property
    def name(self) -> str:
        return "lever"

    def extract(self, document: ParsedDocument, url: str) -> ScrapedRecord:
        soup = document.soup

        title = first_text(soup, [
            ".posting-headline h2",
            "h2[data-qa='posting-name']",
            "h2",
        ])

        company = select_attr(soup, ".main-header-logo img", "alt")
        if not company:
            # Format: jobs.lever.co/company/abc123
            parts = [p for p in urlparse(url).path.split("/") if p]
            if parts:
                company = parts[0].replace("-", " ").title()

        location = first_text(soup, [
            ".posting-categories .location",
            ".posting-categories .sort-by-location",
            ".location",
        ])
        job_type = first_text(soup, [
            ".posting-categories .commitment",
            ".posting-categories .sort-by-commit",
        ])

        description_parts = [element_text(section) for section in soup.select(".section")]
        description = "\n\n".join(part for part in description_parts if part)

        return self._record(
            url,
            title=title,
            company=company,
            description=description,
            location=location or None,
            job_type=job_type or None,
        )


# -----------------------------------------------------------------------------
# Workday Extractor
# -----------------------------------------------------------------------------
class WorkdayExtractor(BaseExtractor):
    """
    Extractor for Workday career sites.

    Handles job URLs like:
    - https://acme.wd5.myworkdayjobs.com/en-US/careers/job/...
    """

    url_patterns = (r"workday\.com", r"myworkdayjobs\.com")

    @property
    def name(self) -> str:
        return "workday"

    def extract(self, document: ParsedDocument, url: str) -> ScrapedRecord:
        soup = document.soup

        title = first_text(soup, [
            '[data-automation-id="jobPostingHeader"]',
            "h1",
            '[class*="job-title"]',
        ])
        company = first_text(soup, [
            '[data-automation-id="jobPostingCompany"]',
            '[class*="company-name"]',
            'meta[property="og:site_name"]',
        ])
        location = first_text(soup, ['[data-automation-id="locations"] dd', '[data-automation-id="locations"]'])
        job_type = first_text(soup, ['[data-automation-id="time"] dd', '[data-automation-id="time"]'])
        date_posted = first_text(soup, ['[data-automation-id="postedOn"] dd', '[data-automation-id="postedOn"]'])
        description = first_text(soup, [
            '[data-automation-id="jobPostingDescription"]',
            ".job-description",
            "main",
        ])

        return self._record(
            url,
            title=title,
            company=company,
            description=description,
            location=location or None,
            job_type=job_type or None,
            date_posted=date_posted or None,
        )


# -----------------------------------------------------------------------------
# Glassdoor Extractor
# -----------------------------------------------------------------------------
class GlassdoorExtractor(BaseExtractor):
    """
    Extractor for Glassdoor job postings.

    Handles job URLs like:
    - https://www.glassdoor.com/job-listing/...
    - https://www.glassdoor.co.uk/job-listing/...
    """

    url_patterns = (r"glassdoor\.com", r"glassdoor\.[a-z]{2,3}")

    _REQUIREMENT_HINTS = ("Qualification", "Requirement", "experience required", "skills required")
    _SKILL_HINTS = ("skill", "proficient in", "experience with")
    _BENEFIT_HINTS = ("Benefit", "Perks", "Compensation")

    @property
    def name(self) -> str:
        return "glassdoor"

    def extract(self, document: ParsedDocument, url: str) -> ScrapedRecord:
        soup = document.soup

        title = first_text(soup, [".job-title", '[data-test="job-title"]', "h1.title", "h2.title"])
        company = first_text(soup, [
            '[data-test="employer-name"]',
            ".EmployerProfile__name",
            ".empInfo",
            ".company",
        ])
        location = first_text(soup, ['[data-test="location"]', ".location", ".subtle.ib"])
        salary = first_text(soup, ['[data-test="detailSalary"]', ".salary"])
        job_type = first_text(soup, ['[data-test="job-type"]'])
        description = first_text(soup, [".jobDescriptionContent", '[data-test="description"]', ".desc"])
        date_posted = first_text(soup, ['[data-test="posted-date"]', ".minor"])
        industry = first_text(soup, ['[data-test="job-industry"]'])

        requirements, skills = self._requirements_and_skills(soup)

        benefits: list[str] = []
        for div in soup.find_all("div"):
            header = " ".join(element_text(h) for h in div.find_all(["h2", "h3", "h4"]))
            if any(hint in header for hint in self._BENEFIT_HINTS):
                benefits.extend(list_items(div))

        return self._record(
            url,
            title=title,
            company=company,
            description=description,
            location=location or None,
            salary=salary or None,
            job_type=job_type or None,
            date_posted=date_posted or None,
            industry=industry or None,
            requirements=requirements,
            skills=skills,
            benefits=_dedupe(benefits),
        )

    def _requirements_and_skills(self, soup: BeautifulSoup) -> tuple[list[str], list[str]]:
        """Read requirement lists that follow qualification headings, plus skill sentences."""
        requirements: list[str] = []
        skills: list[str] = []

        for paragraph in soup.find_all("p"):
            text = element_text(paragraph)

            if any(hint in text for hint in self._REQUIREMENT_HINTS):
                following = paragraph.find_next_sibling()
                if following is not None and following.name in ("ul", "ol"):
                    for item in list_items(following):
                        requirements.append(item)
                        if "experience with" in item or "knowledge of" in item:
                            skills.extend(
                                part for part in (p.strip() for p in re.split(r"[,;]", item))
                                if len(part) > 2 and "year" not in part and "experience" not in part
                            )
                else:
                    requirements.append(text)

            if any(hint in text for hint in self._SKILL_HINTS):
                skill_text = re.sub(r"^.*?:", "", text).strip()
                skills.extend(
                    part for part in (p.strip() for p in re.split(r"[,;.]", skill_text))
                    if len(part) > 2 and "etc" not in part
                )

        return _dedupe(requirements), _dedupe(skills)


# -----------------------------------------------------------------------------
# Busey Bank Extractor
# -----------------------------------------------------------------------------
class BuseyExtractor(BaseExtractor):
    """
    Extractor for Busey Bank career pages.

    Titles are encoded in the last path segment, e.g.
    .../careers/SeniorCreditAnalyst_R1234 -> "Senior Credit Analyst".
    """

    url_patterns = (r"busey\.com", r"busey\.bank")

    COMPANY_NAME = "Busey Bank"

    @property
    def name(self) -> str:
        return "busey"

    def extract(self, document: ParsedDocument, url: str) -> ScrapedRecord:
        soup = document.soup

        title = self._title_from_url(url) or first_text(soup, [
            "h1",
            ".job-title",
            ".position-title",
            "#job-title",
            ".job-header h1",
            ".job-details h1",
            "title",
        ])
        description = first_text(
            soup,
            [
                "#job-description",
                ".job-description",
                ".job-details-description",
                ".position-description",
                ".description-container",
                "main",
                "article",
                'div[class*="description"]',
                'div[class*="details"]',
                'div[class*="content"]',
            ],
            min_length=MIN_DESCRIPTION_LENGTH,
        ) or body_text(soup)

        return self._record(
            url,
            title=title,
            company=self.COMPANY_NAME,
            description=description,
        )

    @staticmethod
    def _title_from_url(url: str) -> str:
        segments = [s for s in urlparse(url).path.split("/") if s]
        if not segments or "_" not in segments[-1]:
            return ""
        slug = segments[-1].split("_")[0]
        slug = re.sub(r"([A-Z])", r" \1", slug).replace("-", " ")
        return clean_text(slug)


# -----------------------------------------------------------------------------
# Generic Extractor (Fallback)
# -----------------------------------------------------------------------------
class GenericExtractor(BaseExtractor):
    """
    Generic fallback extractor for unknown job boards.

    Reads JSON-LD JobPosting data first, then a prioritized list of common
    selectors, then whole-body text for the description.
    """

    url_patterns = (r".*",)
    cache_ttl_hours = GENERIC_CACHE_TTL_HOURS

    TITLE_SELECTORS = (
        'h1[class*="title" i]',
        'h1[class*="job" i]',
        'h1[class*="position" i]',
        'div[class*="job-title" i]',
        ".posting-header h1",
        '[data-testid*="title" i]',
        '[data-testid*="job" i]',
        '[data-qa*="title" i]',
        '[data-qa*="job" i]',
        'meta[property="og:title"]',
        'meta[name="title"]',
        ".job-header h1",
        ".job-details h1",
        "#job-title",
        ".position-title",
        "h1",
        "h2",
        "title",
    )
    COMPANY_SELECTORS = (
        '[class*="company-name" i]',
        '[class*="employer" i]',
        '[class*="organization" i]',
        '[data-testid*="company" i]',
        '[data-qa*="company" i]',
        'meta[property="og:site_name"]',
        ".company-info",
        ".employer-info",
        ".company-header",
        "#company-name",
        ".organization-name",
    )
    DESCRIPTION_SELECTORS = (
        '[class*="job-description" i]',
        '[class*="description" i]',
        '[data-testid*="description" i]',
        '[data-qa*="description" i]',
        'meta[name="description"]',
        'meta[property="og:description"]',
        "#job-description",
        ".job-details-description",
        ".position-description",
        ".description-container",
        "main",
        "article",
        'div[class*="details" i]',
        'div[class*="content" i]',
    )
    LOCATION_SELECTORS = (
        "[itemprop='jobLocation']",
        '[class*="location" i]',
        '[data-testid*="location" i]',
    )

    @property
    def name(self) -> str:
        return "generic"

    @property
    def is_generic(self) -> bool:
        return True

    def can_handle(self, url: str) -> bool:
        """Generic extractor accepts every URL as the fallback."""
        return True

    def extract(self, document: ParsedDocument, url: str) -> ScrapedRecord:
        soup = document.soup

        posting = find_job_posting(document.json_ld)
        structured = normalize_job_posting(posting) if posting else {}
        if structured:
            logger.debug(f"Using JSON-LD job posting data for {url}")

        title = structured.get("title") or first_text(soup, self.TITLE_SELECTORS)
        company = (
            structured.get("company")
            or first_text(soup, self.COMPANY_SELECTORS)
            or company_from_domain(url)
        )
        description = (
            structured.get("description")
            or first_text(soup, self.DESCRIPTION_SELECTORS, min_length=MIN_DESCRIPTION_LENGTH)
            or body_text(soup)
        )
        location = structured.get("location") or first_text(soup, self.LOCATION_SELECTORS)

        return self._record(
            url,
            title=title,
            company=company,
            description=description,
            location=location or None,
            salary=structured.get("salary"),
            job_type=structured.get("job_type"),
            date_posted=structured.get("date_posted"),
            industry=structured.get("industry"),
            raw_metadata={"jsonLd": True} if posting else {},
        )


# -----------------------------------------------------------------------------
# Default Extractor Set
# -----------------------------------------------------------------------------
def get_site_extractors() -> list[BaseExtractor]:
    """
    Get the site-specific extractors in priority order.

    Returns:
        Extractor instances, most specific first. The generic fallback is
        not included.
    """
    return [
        LinkedInExtractor(),
        IndeedExtractor(),
        GreenhouseExtractor(),
        LeverExtractor(),
        WorkdayExtractor(),
        GlassdoorExtractor(),
        BuseyExtractor(),
    ]
