"""
Monitor service: wires the watcher components together.

This module provides:
- Construction of fetcher, normalizer, detector, orchestrator and scheduler
- The user-triggered operations (add, remove, acknowledge, force refresh)
- Runtime changes to the refresh interval
- Status reporting
"""

from typing import Any, Dict, List, Optional

import structlog

from scheduler.alerting import AlertConfig, AttentionSignal, ChangeNotifier
from scheduler.change_detector import ChangeDetector
from scheduler.events import EventBus
from scheduler.models import CycleResult, SchedulerConfig
from scheduler.refresh_cycle import RefreshOrchestrator
from scheduler.refresh_scheduler import RefreshScheduler
from scheduler.tracker import ResourceTracker
from watcher.fetcher import PageFetcher
from watcher.models import ResourceRecord
from watcher.normalizer import ContentNormalizer
from watcher.storage import ResourceStore
from utilities.config import WatcherConfig, config as default_config

logger = structlog.get_logger(__name__)


class MonitorService:
    """Main service for tracking resources and refreshing them on a timer."""

    def __init__(
        self,
        settings: Optional[WatcherConfig] = None,
        store: Optional[ResourceStore] = None,
        fetcher: Optional[PageFetcher] = None,
        notifier: Optional[ChangeNotifier] = None,
        attention: Optional[AttentionSignal] = None,
        scheduler_config: Optional[SchedulerConfig] = None
    ):
        """
        Initialize the monitor service.

        Every collaborator can be injected; anything omitted is built from
        the settings.

        Args:
            settings: Watcher configuration (defaults to the global config)
            store: Persistence collaborator
            fetcher: Page fetcher
            notifier: Change notification collaborator
            attention: Attention signal collaborator
            scheduler_config: Scheduler configuration
        """
        self.settings = settings or default_config
        self.scheduler_config = scheduler_config or SchedulerConfig(
            refresh_interval_minutes=self.settings.refresh_interval_minutes,
            timezone=self.settings.timezone,
            max_concurrent_fetches=self.settings.max_concurrent_fetches
        )
        self.logger = logger.bind(component="monitor_service")

        self.events = EventBus()
        self.store = store or ResourceStore(self.settings.get_state_file_path())
        self.tracker = ResourceTracker(self.store, self.events)
        self.notifier = notifier or ChangeNotifier(AlertConfig())
        self.attention = attention or AttentionSignal()

        self.orchestrator = RefreshOrchestrator(
            fetcher=fetcher or PageFetcher(self.settings),
            normalizer=ContentNormalizer(),
            detector=ChangeDetector(),
            store=self.store,
            notifier=self.notifier,
            attention=self.attention,
            events=self.events,
            max_concurrent_fetches=self.scheduler_config.max_concurrent_fetches
        )
        self.refresh_scheduler = RefreshScheduler(
            orchestrator=self.orchestrator,
            tracker=self.tracker,
            config=self.scheduler_config
        )

    async def start(self) -> None:
        """Load the tracked resources and start refreshing them."""
        self.logger.info("Starting monitor service")
        self.tracker.load()
        self.refresh_scheduler.start()

        self.logger.info(
            "Monitor service started",
            resources=len(self.tracker.records),
            interval_minutes=self.refresh_scheduler.interval_minutes
        )

    async def stop(self) -> None:
        """Stop the timer, let an in-flight cycle finish, flush notifications."""
        self.logger.info("Stopping monitor service")
        self.refresh_scheduler.stop()
        await self.refresh_scheduler.wait_for_cycle()
        await self.notifier.drain()
        self.logger.info("Monitor service stopped")

    async def run_once(self) -> CycleResult:
        """Load the tracked resources and run a single cycle without the timer."""
        self.tracker.load()
        return await self.orchestrator.run_cycle(self.tracker.records)

    def list_resources(self) -> List[ResourceRecord]:
        return list(self.tracker.records)

    def get_resource(self, resource_id: str) -> ResourceRecord:
        return self.tracker.get(resource_id)

    def add_resource(self, url: str) -> ResourceRecord:
        """
        Track a new resource and refresh so its baseline is established.

        Raises:
            ResourceValidationError: invalid or duplicate URL
        """
        record = self.tracker.add(url)
        if self.refresh_scheduler.running:
            self.refresh_scheduler.request_refresh()
        return record

    def remove_resource(self, resource_id: str) -> ResourceRecord:
        return self.tracker.remove(resource_id)

    def acknowledge(self, resource_id: str) -> bool:
        return self.tracker.acknowledge(resource_id)

    def force_refresh(self) -> bool:
        """
        Request an immediate cycle.

        Returns:
            False if a cycle was already in flight
        """
        return self.refresh_scheduler.request_refresh()

    def set_refresh_interval(self, minutes: int) -> None:
        self.refresh_scheduler.set_interval(minutes)

    def status(self) -> Dict[str, Any]:
        """Get current service status."""
        records = self.tracker.records
        status = self.refresh_scheduler.status()
        status.update({
            'resource_count': len(records),
            'unacknowledged_changes': sum(1 for r in records if r.has_unacknowledged_change),
        })
        return status
