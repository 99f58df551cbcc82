"""
Unit tests for the page fetcher.
Tests success, failure collapsing and retry behaviour using httpx.MockTransport.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from watcher.exceptions import FetchError
from watcher.fetcher import PageFetcher


def make_fetcher(settings, handler):
    return PageFetcher(settings, transport=httpx.MockTransport(handler))


class TestPageFetcher:
    """Test cases for PageFetcher."""

    @pytest.mark.asyncio
    async def test_fetch_success(self, watcher_settings):
        """Body and content type are returned."""
        def handler(request):
            return httpx.Response(
                200,
                content=b"<html>ok</html>",
                headers={"Content-Type": "text/html; charset=utf-8"}
            )

        page = await make_fetcher(watcher_settings, handler).fetch("https://example.com/page")

        assert page.content == b"<html>ok</html>"
        assert page.content_type == "text/html; charset=utf-8"
        assert page.status_code == 200
        assert page.url == "https://example.com/page"

    @pytest.mark.asyncio
    async def test_requests_bypass_caches(self, watcher_settings):
        """Requests carry no cookies and ask caches not to answer."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=b"ok", headers={"Set-Cookie": "session=abc"})

        fetcher = make_fetcher(watcher_settings, handler)
        await fetcher.fetch("https://example.com/a")
        await fetcher.fetch("https://example.com/a")

        assert len(seen) == 2
        assert all(r.headers["Cache-Control"] == "no-cache" for r in seen)
        assert "cookie" not in seen[1].headers
        assert seen[0].headers["User-Agent"] == watcher_settings.user_agent

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, watcher_settings):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        with pytest.raises(FetchError) as exc_info:
            await make_fetcher(watcher_settings, handler).fetch("https://example.com/missing")

        assert exc_info.value.status_code == 404
        assert exc_info.value.url == "https://example.com/missing"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_server_error_is_retried_then_succeeds(self, watcher_settings):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, content=b"back")

        with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            page = await make_fetcher(watcher_settings, handler).fetch("https://example.com/flaky")

        assert page.content == b"back"
        assert len(calls) == 3
        assert mock_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_timeout_collapses_to_fetch_error(self, watcher_settings):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        with patch("asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(FetchError) as exc_info:
                await make_fetcher(watcher_settings, handler).fetch("https://example.com/slow")

        assert exc_info.value.reason == "timeout"
        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_transport_error_collapses_to_fetch_error(self, watcher_settings):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("name resolution failed", request=request)

        with patch("asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(FetchError):
                await make_fetcher(watcher_settings, handler).fetch("https://unknown.invalid/")

        assert len(calls) == watcher_settings.retry_attempts + 1
