# =============================================================================
# Fetch Transport
# =============================================================================
"""
HTTP transport for job posting pages.

Sends GET requests with browser-like headers through a shared httpx
AsyncClient and retries network failures and non-2xx responses with
linear backoff. Once retries are exhausted a FetchError is raised.

Usage:
    async with HttpFetcher() as fetcher:
        response = await fetcher.fetch("https://boards.greenhouse.io/acme/jobs/1")
        html = response.text
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

import httpx

from jobscraper.services.scraper.errors import FetchError


# -----------------------------------------------------------------------------
# Logging Configuration
# -----------------------------------------------------------------------------
logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": DEFAULT_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Referer": "https://www.google.com/",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class FetchConfig:
    """
    Retry and request configuration for the transport.

    Attributes:
        retries: Total attempts before giving up.
        retry_delay_ms: Base delay; the wait after attempt n is retry_delay_ms * n.
        timeout: Per-request timeout in seconds.
        headers: Extra headers merged over the defaults.
    """

    retries: int = 3
    retry_delay_ms: int = 1000
    timeout: float = 30.0
    headers: dict[str, str] = field(default_factory=dict)


# -----------------------------------------------------------------------------
# Transport
# -----------------------------------------------------------------------------
class HttpFetcher:
    """
    Fetches pages with retry and linear backoff.

    Attributes:
        http_client: Async HTTP client used for requests.
        config: Default FetchConfig applied when fetch() gets none.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        config: Optional[FetchConfig] = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            http_client: Optional pre-configured httpx client.
            config: Default retry configuration.
            user_agent: User-Agent header for requests.
        """
        self.config = config or FetchConfig()
        self._owned_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(
            timeout=self.config.timeout,
            follow_redirects=True,
        )
        self._headers = {**DEFAULT_HEADERS, "User-Agent": user_agent}

    async def close(self) -> None:
        """Close the HTTP client if owned by this fetcher."""
        if self._owned_client and self.http_client:
            await self.http_client.aclose()
            logger.debug("HTTP client closed")

    async def __aenter__(self) -> "HttpFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def fetch(
        self,
        url: str,
        config: Optional[FetchConfig] = None,
    ) -> httpx.Response:
        """
        GET a URL, retrying on network errors and non-2xx statuses.

        Args:
            url: Page URL.
            config: Optional per-call configuration.

        Returns:
            The first successful response.

        Raises:
            FetchError: After all attempts failed.
        """
        config = config or self.config
        retries = max(1, config.retries)
        headers = {**self._headers, **config.headers}
        last_error = "Unknown error"
        last_status: Optional[int] = None

        for attempt in range(1, retries + 1):
            try:
                response = await self.http_client.get(
                    url,
                    headers=headers,
                    timeout=config.timeout,
                    follow_redirects=True,
                )
                if response.is_success:
                    return response

                last_status = response.status_code
                last_error = f"Failed to fetch page (Status: {response.status_code})"

            except httpx.TimeoutException as e:
                last_error = f"Request timed out: {e}"
            except httpx.RequestError as e:
                last_error = f"Request failed: {e}"

            if attempt < retries:
                delay_ms = config.retry_delay_ms * attempt
                logger.warning(
                    f"Fetch attempt {attempt}/{retries} for {url} failed "
                    f"({last_error}), retrying in {delay_ms}ms"
                )
                await asyncio.sleep(delay_ms / 1000)

        logger.error(f"Giving up on {url} after {retries} attempts: {last_error}")
        raise FetchError(
            f"Failed to fetch the job posting after {retries} attempts",
            technical_details=last_error,
            status_code=last_status,
        )
