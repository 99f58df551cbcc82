"""
Pytest configuration and shared fixtures.
"""

import asyncio
from typing import Dict, List, Optional, Union
from unittest.mock import MagicMock

import pytest

from scheduler.alerting import AttentionSignal, ChangeNotifier
from scheduler.change_detector import ChangeDetector
from scheduler.events import EventBus
from scheduler.refresh_cycle import RefreshOrchestrator
from scheduler.tracker import ResourceTracker
from utilities.config import WatcherConfig
from watcher.exceptions import FetchError
from watcher.models import FetchedPage, ResourceRecord
from watcher.normalizer import ContentNormalizer
from watcher.storage import ResourceStore


class FakeFetcher:
    """In-memory fetcher: serves configured bodies, fails everything else."""

    def __init__(self):
        self.pages: Dict[str, Union[bytes, Exception]] = {}
        self.content_types: Dict[str, Optional[str]] = {}
        self.calls: List[str] = []
        self.gate: Optional[asyncio.Event] = None
        self.delay = 0.0
        self.active = 0
        self.max_active = 0

    def serve(self, url: str, content: bytes, content_type: Optional[str] = "text/html; charset=utf-8") -> None:
        self.pages[url] = content
        self.content_types[url] = content_type

    def fail(self, url: str, reason: str = "connection refused") -> None:
        self.pages[url] = FetchError(url, reason)

    async def fetch(self, url: str) -> FetchedPage:
        url = str(url)
        self.calls.append(url)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)

            value = self.pages.get(url)
            if value is None:
                raise FetchError(url, "HTTP 404", status_code=404)
            if isinstance(value, Exception):
                raise value
            return FetchedPage(url=url, content=value, content_type=self.content_types.get(url))
        finally:
            self.active -= 1


@pytest.fixture
def watcher_settings(tmp_path):
    """Watcher configuration writing into a temporary directory."""
    return WatcherConfig(
        state_file=str(tmp_path / "state" / "resources.json"),
        refresh_interval_minutes=10,
        request_timeout=5,
        retry_attempts=2,
        retry_delay=0.01,
        rate_limit_per_second=50,
        max_concurrent_fetches=5
    )


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()


@pytest.fixture
def mock_store():
    """Persistence collaborator that records calls."""
    store = MagicMock(spec=ResourceStore)
    store.load.return_value = []
    return store


@pytest.fixture
def mock_notifier():
    return MagicMock(spec=ChangeNotifier)


@pytest.fixture
def mock_attention():
    return MagicMock(spec=AttentionSignal)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def tracker(mock_store, event_bus):
    return ResourceTracker(mock_store, event_bus)


@pytest.fixture
def orchestrator(fake_fetcher, mock_store, mock_notifier, mock_attention, event_bus):
    """Orchestrator with a fake fetcher, real normalizer and detector, mocked side effects."""
    return RefreshOrchestrator(
        fetcher=fake_fetcher,
        normalizer=ContentNormalizer(),
        detector=ChangeDetector(),
        store=mock_store,
        notifier=mock_notifier,
        attention=mock_attention,
        events=event_bus,
        max_concurrent_fetches=5
    )


@pytest.fixture
def sample_record():
    return ResourceRecord(url="https://example.com/status")


@pytest.fixture
def sample_html_page():
    """A page with visible content plus volatile metadata."""
    return b"""<!DOCTYPE html>
    <html>
        <head>
            <meta name="generator" content="SiteBuilder 4.2">
            <meta name="date" content="2026-10-18T09:00:00Z">
            <title>Status</title>
            <script>window.renderedAt = 1760778000;</script>
            <style>body { color: black; }</style>
        </head>
        <body class="build-8812">
            <!-- rendered by node-3 -->
            <h1 id="top">Service Status</h1>
            <p>All systems   operational.</p>
            <a href="/incidents" data-track="x1">Incidents</a>
        </body>
    </html>
    """
