# =============================================================================
# HTTP Fetcher Tests
# =============================================================================
"""
Tests for the retrying page fetcher, using httpx.MockTransport.
"""

import httpx
import pytest

from jobscraper.services.scraper.errors import FETCH_FAILED, FetchError
from jobscraper.services.scraper.fetch import DEFAULT_USER_AGENT, FetchConfig, HttpFetcher


URL = "https://careers.example.com/jobs/1"


def _fetcher(handler, retries: int = 3, **kwargs) -> HttpFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpFetcher(
        http_client=client,
        config=FetchConfig(retries=retries, retry_delay_ms=0),
        **kwargs,
    )


class TestHttpFetcher:
    """Tests for HttpFetcher.fetch()."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, text="<html>ok</html>")

        fetcher = _fetcher(handler)
        response = await fetcher.fetch(URL)

        assert response.status_code == 200
        assert response.text == "<html>ok</html>"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_sends_browser_headers(self) -> None:
        seen: dict[str, str] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.headers)
            return httpx.Response(200, text="ok")

        await _fetcher(handler).fetch(URL)

        assert seen["user-agent"] == DEFAULT_USER_AGENT
        assert seen["accept-language"] == "en-US,en;q=0.5"
        assert seen["referer"] == "https://www.google.com/"

    @pytest.mark.asyncio
    async def test_custom_user_agent_and_extra_headers(self) -> None:
        seen: dict[str, str] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.headers)
            return httpx.Response(200, text="ok")

        fetcher = _fetcher(handler, user_agent="jobscraper-test/1.0")
        await fetcher.fetch(URL, FetchConfig(retries=1, headers={"X-Trace": "abc"}))

        assert seen["user-agent"] == "jobscraper-test/1.0"
        assert seen["x-trace"] == "abc"

    @pytest.mark.asyncio
    async def test_retries_until_success(self) -> None:
        statuses = iter([503, 502, 200])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(next(statuses), text="body")

        response = await _fetcher(handler).fetch(URL)

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(403, text="blocked")

        with pytest.raises(FetchError) as exc_info:
            await _fetcher(handler, retries=3).fetch(URL)

        assert calls == 3
        assert exc_info.value.code == FETCH_FAILED
        assert exc_info.value.status_code == 403
        assert "Status: 403" in exc_info.value.technical_details
        assert "after 3 attempts" in exc_info.value.message
        assert exc_info.value.suggestion

    @pytest.mark.asyncio
    async def test_network_errors_are_retried(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise httpx.ConnectError("connection refused", request=request)
            if calls == 2:
                raise httpx.ReadTimeout("timed out", request=request)
            return httpx.Response(200, text="ok")

        response = await _fetcher(handler).fetch(URL)

        assert response.status_code == 200
        assert calls == 3

    @pytest.mark.asyncio
    async def test_network_error_reported(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchError) as exc_info:
            await _fetcher(handler, retries=2).fetch(URL)

        assert exc_info.value.status_code is None
        assert "connection refused" in exc_info.value.technical_details

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        fetcher = HttpFetcher(http_client=client)

        await fetcher.close()

        assert client.is_closed is False
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self) -> None:
        async with HttpFetcher() as fetcher:
            client = fetcher.http_client

        assert client.is_closed is True
