"""
HTTP fetcher for tracked resources.

Every retrieval uses its own short-lived httpx client, so no cookies,
connections or cached responses are shared between resources or cycles.
All failures collapse into a single FetchError.
"""

import asyncio
from typing import Dict, Optional

import httpx
import structlog
from asyncio_throttle import Throttler

from watcher.exceptions import FetchError
from watcher.models import FetchedPage
from utilities.config import WatcherConfig, config as default_config
from utilities.logger import RefreshLogger

logger = structlog.get_logger(__name__)


class PageFetcher:
    """
    Async fetcher with retry logic, rate limiting and failure isolation.
    """

    def __init__(
        self,
        settings: Optional[WatcherConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        throttler: Optional[Throttler] = None
    ):
        """
        Initialize the fetcher.

        Args:
            settings: Watcher configuration (defaults to the global config)
            transport: Optional httpx transport, used by tests
            throttler: Optional shared rate limiter
        """
        self.settings = settings or default_config
        self.transport = transport
        self.throttler = throttler or Throttler(rate_limit=self.settings.rate_limit_per_second)
        self.refresh_logger = RefreshLogger("page_fetcher")

    def _client_options(self) -> Dict:
        options = {
            "timeout": self.settings.request_timeout,
            "headers": self.settings.get_headers(),
            "follow_redirects": True,
        }
        if self.transport is not None:
            options["transport"] = self.transport
        return options

    async def fetch(self, url: str) -> FetchedPage:
        """
        Retrieve a resource.

        Args:
            url: URL to fetch

        Returns:
            FetchedPage with body and content type

        Raises:
            FetchError: on timeout, DNS or transport failure, or non-2xx status
        """
        url = str(url)
        last_error: Optional[FetchError] = None

        for attempt in range(self.settings.retry_attempts + 1):
            try:
                async with self.throttler:
                    return await self._fetch_once(url)
            except FetchError as e:
                last_error = e
                if not self._is_retryable(e) or attempt >= self.settings.retry_attempts:
                    break

                delay = self.settings.retry_delay * (2 ** attempt)  # Exponential backoff
                self.refresh_logger.log_retry(url, attempt + 1, self.settings.retry_attempts, delay)
                await asyncio.sleep(delay)

        raise last_error

    async def _fetch_once(self, url: str) -> FetchedPage:
        try:
            async with httpx.AsyncClient(**self._client_options()) as client:
                response = await client.get(url)
                response.raise_for_status()
                return FetchedPage(
                    url=url,
                    content=response.content,
                    content_type=response.headers.get("Content-Type"),
                    status_code=response.status_code
                )
        except httpx.HTTPStatusError as e:
            raise FetchError(
                url, f"HTTP {e.response.status_code}", status_code=e.response.status_code
            ) from e
        except httpx.TimeoutException as e:
            raise FetchError(url, "timeout") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e

    def _is_retryable(self, error: FetchError) -> bool:
        """Client errors other than 408/429 will not succeed on retry."""
        if error.status_code is None:
            return True
        return error.status_code >= 500 or error.status_code in (408, 429)
