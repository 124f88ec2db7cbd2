# =============================================================================
# Shared Test Fixtures
# =============================================================================
"""
Fixtures shared by the scraper test suite.

HTTP traffic is served by a PageServer behind httpx.MockTransport, the
cache and scrape log use a temporary SQLite file, and clocks are fakes
that tests advance by hand.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import httpx
import pytest
import pytest_asyncio

from jobscraper.database import DatabaseManager, create_database_manager
from jobscraper.services.scraper.cache import ScraperCacheStore
from jobscraper.services.scraper.fetch import FetchConfig, HttpFetcher
from jobscraper.services.scraper.monitoring import ScraperMonitor
from jobscraper.services.scraper.pipeline import ScrapePipeline
from jobscraper.services.scraper.rate_limiter import RateLimiter
from jobscraper.services.scraper.registry import build_default_registry
from jobscraper.services.scraper.scrape_log import ScrapeLogSink
from jobscraper.services.scraper.service import JobScraperService


# -----------------------------------------------------------------------------
# Sample Pages
# -----------------------------------------------------------------------------
LINKEDIN_URL = "https://www.linkedin.com/jobs/view/3812345678"

LINKEDIN_HTML = """<!DOCTYPE html>
<html>
<head><title>Senior Python Engineer | Acme Corp | LinkedIn</title></head>
<body>
  <h1 class="top-card-layout__title">Senior   Python Engineer</h1>
  <a class="topcard__org-name-link">Acme Corp</a>
  <span class="topcard__flavor--bullet">Remote, United States</span>
  <div class="description__text">
    We are hiring a Senior Python Engineer to build our data platform with
    FastAPI, PostgreSQL and AWS. You will own services end to end.
  </div>
  <ul class="description__job-criteria-list">
    <li class="description__job-criteria-item">
      <h3 class="description__job-criteria-subheader">Employment type</h3>
      <span class="description__job-criteria-text">Full-time</span>
    </li>
    <li class="description__job-criteria-item">
      <h3 class="description__job-criteria-subheader">Industries</h3>
      <span class="description__job-criteria-text">Software Development</span>
    </li>
  </ul>
</body>
</html>
"""

LINKEDIN_JSON_LD_HTML = """<!DOCTYPE html>
<html>
<head>
  <script type="application/ld+json">
  {
    "@context": "https://schema.org",
    "@type": "JobPosting",
    "title": "Data Engineer",
    "hiringOrganization": {"@type": "Organization", "name": "Globex"},
    "description": "<p>Build batch and streaming pipelines.</p>"
  }
  </script>
</head>
<body>
  <h1 class="top-card-layout__title">Data Engineer</h1>
  <div class="description__text">
    Build batch and streaming pipelines on Kubernetes for our analytics team.
  </div>
</body>
</html>
"""

GENERIC_URL = "https://careers.initech.com/jobs/backend-developer"

GENERIC_HTML = """<!DOCTYPE html>
<html>
<head>
  <title>Careers at Initech</title>
  <meta property="og:site_name" content="Initech">
</head>
<body>
  <h1 class="job-title">Backend Developer</h1>
  <span class="location">Austin, TX</span>
  <div class="job-description">
    Initech is looking for a Backend Developer comfortable with Python,
    Docker and Linux to maintain our reporting services.
  </div>
</body>
</html>
"""

EMPTY_HTML = "<html><body><p>Nothing to see here.</p></body></html>"


# -----------------------------------------------------------------------------
# Fakes
# -----------------------------------------------------------------------------
class FakeClock:
    """UTC datetime clock advanced manually."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeMsClock:
    """Millisecond clock for the rate limiter, advanced manually."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class PageServer:
    """
    Serves canned pages to an httpx.MockTransport.

    Unknown URLs return 404. Every request is recorded.
    """

    def __init__(self) -> None:
        self.pages: dict[str, tuple[int, str, dict[str, str]]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        url: str,
        html: str,
        status_code: int = 200,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.pages[url] = (status_code, html, headers or {})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status_code, html, headers = self.pages.get(str(request.url), (404, "Not Found", {}))
        return httpx.Response(status_code, text=html, headers=headers)

    def count(self, url: str) -> int:
        return sum(1 for r in self.requests if str(r.url) == url)


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ms_clock() -> FakeMsClock:
    return FakeMsClock()


@pytest.fixture
def temp_db() -> str:
    """
    Create a temporary database file for testing.

    Yields:
        Path to temporary database file.
    """
    with tempfile.NamedTemporaryFile(delete=False, suffix=".db") as f:
        db_path = f.name

    yield db_path

    try:
        os.unlink(db_path)
    except OSError:
        pass


@pytest_asyncio.fixture
async def db_manager(temp_db: str) -> AsyncGenerator[DatabaseManager, None]:
    """Connected SQLite DatabaseManager with the scraper tables created."""
    db = create_database_manager(f"sqlite+aiosqlite:///{temp_db}")
    await db.connect()
    await db.create_tables()

    yield db

    await db.disconnect()


@pytest.fixture
def page_server() -> PageServer:
    server = PageServer()
    server.add(LINKEDIN_URL, LINKEDIN_HTML, headers={"ETag": '"v1"'})
    server.add(GENERIC_URL, GENERIC_HTML)
    return server


@pytest_asyncio.fixture
async def fetcher(page_server: PageServer) -> AsyncGenerator[HttpFetcher, None]:
    """HttpFetcher backed by the page server, without retry delays."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(page_server.handler))

    yield HttpFetcher(http_client=client, config=FetchConfig(retries=2, retry_delay_ms=0))

    await client.aclose()


@pytest.fixture
def monitor() -> ScraperMonitor:
    return ScraperMonitor()


@pytest.fixture
def cache(db_manager: DatabaseManager, clock: FakeClock) -> ScraperCacheStore:
    return ScraperCacheStore(db_manager, clock=clock)


@pytest.fixture
def pipeline(
    fetcher: HttpFetcher,
    cache: ScraperCacheStore,
    monitor: ScraperMonitor,
) -> ScrapePipeline:
    return ScrapePipeline(fetcher, RateLimiter(), cache, monitor)


@pytest.fixture
def scrape_log(db_manager: DatabaseManager, clock: FakeClock) -> ScrapeLogSink:
    return ScrapeLogSink(db_manager, clock=clock)


@pytest.fixture
def service(
    pipeline: ScrapePipeline,
    monitor: ScraperMonitor,
    scrape_log: ScrapeLogSink,
) -> JobScraperService:
    return JobScraperService(
        registry=build_default_registry(),
        pipeline=pipeline,
        monitor=monitor,
        sink=scrape_log,
        batch_delay_seconds=0,
    )
