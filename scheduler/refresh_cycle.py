"""
Refresh cycle orchestration.

One cycle fetches, normalizes and checks every tracked resource. Resources
are processed concurrently and independently: a failure for one never stops
the others. Persistence and the attention signal happen at most once per
cycle, after all resources have been processed.
"""

import asyncio
import uuid
from datetime import datetime
from typing import List, Optional, Sequence

import structlog

from scheduler.alerting import AttentionSignal, ChangeNotifier
from scheduler.change_detector import ChangeDetector
from scheduler.events import EventBus
from scheduler.models import CheckOutcome, CycleResult, ResourceEventType
from watcher.exceptions import FetchError, PersistenceError
from watcher.fetcher import PageFetcher
from watcher.models import ResourceRecord, utcnow
from watcher.normalizer import ContentNormalizer
from watcher.storage import ResourceStore
from utilities.logger import RefreshLogger

logger = structlog.get_logger(__name__)


class RefreshOrchestrator:
    """Runs refresh cycles over the tracked resources."""

    def __init__(
        self,
        fetcher: PageFetcher,
        normalizer: ContentNormalizer,
        detector: ChangeDetector,
        store: ResourceStore,
        notifier: ChangeNotifier,
        attention: AttentionSignal,
        events: Optional[EventBus] = None,
        max_concurrent_fetches: int = 5
    ):
        """
        Initialize the orchestrator.

        Args:
            fetcher: Retrieves resources
            normalizer: Canonicalizes fetched content
            detector: Compares content with stored snapshots
            store: Persistence collaborator, saved once per cycle with changes
            notifier: Receives one notification per changed resource
            attention: Signalled once per cycle with changes
            events: Event bus for observers
            max_concurrent_fetches: Upper bound on simultaneous fetches
        """
        self.fetcher = fetcher
        self.normalizer = normalizer
        self.detector = detector
        self.store = store
        self.notifier = notifier
        self.attention = attention
        self.events = events or EventBus()
        self.max_concurrent_fetches = max_concurrent_fetches

        self.refresh_in_progress = False
        self.last_refresh_at: Optional[datetime] = None
        self.last_result: Optional[CycleResult] = None

        self.refresh_logger = RefreshLogger("refresh_cycle")
        self.logger = logger.bind(component="refresh_orchestrator")

    async def run_cycle(self, records: Sequence[ResourceRecord]) -> CycleResult:
        """
        Check every record once.

        The records present when the cycle starts are checked; if anything
        changed, ``records`` as it stands at the end of the cycle is saved.

        Args:
            records: The tracked records

        Returns:
            CycleResult with one outcome per checked record
        """
        result = CycleResult(cycle_id=str(uuid.uuid4()))
        batch: List[ResourceRecord] = list(records)

        self.refresh_in_progress = True
        self.refresh_logger.clear_context().bind_context(cycle_id=result.cycle_id)
        self.events.emit(ResourceEventType.REFRESH_STARTED)

        try:
            if batch:
                self.refresh_logger.log_cycle_start(len(batch))
                semaphore = asyncio.Semaphore(self.max_concurrent_fetches)
                outcomes = await asyncio.gather(
                    *(self._check_resource(record, semaphore, result) for record in batch),
                    return_exceptions=True
                )

                for record, outcome in zip(batch, outcomes):
                    if isinstance(outcome, BaseException):
                        error_msg = f"Unexpected error checking {record.url}: {outcome}"
                        result.errors.append(error_msg)
                        self.refresh_logger.log_error(error_msg, url=str(record.url))
                        outcome = CheckOutcome.FETCH_FAILED
                    result.outcomes[record.id] = outcome

                if result.any_change:
                    self._persist(records)
                    self.attention.request_attention()
        finally:
            result.completed_at = utcnow()
            self.last_refresh_at = result.completed_at
            self.last_result = result
            self.refresh_in_progress = False
            self.events.emit(ResourceEventType.REFRESH_COMPLETED)

        self.refresh_logger.log_cycle_complete(
            resource_count=result.resources_checked,
            changed=result.count(CheckOutcome.CHANGED),
            failed=result.count(CheckOutcome.FETCH_FAILED),
            duration_seconds=result.duration_seconds
        )
        return result

    async def _check_resource(
        self,
        record: ResourceRecord,
        semaphore: asyncio.Semaphore,
        result: CycleResult
    ) -> CheckOutcome:
        url = str(record.url)

        async with semaphore:
            try:
                page = await self.fetcher.fetch(url)
            except FetchError as e:
                result.errors.append(str(e))
                self.refresh_logger.log_fetch_failed(url, e.reason)
                return CheckOutcome.FETCH_FAILED

        normalized = self.normalizer.normalize(page.content, page.content_type)
        outcome = self.detector.detect(record, normalized)
        self.refresh_logger.log_resource_checked(url, outcome.value)

        if outcome == CheckOutcome.CHANGED:
            self.notifier.notify_change(record)
            self.events.emit(ResourceEventType.CHANGED, record.id)

        return outcome

    def _persist(self, records: Sequence[ResourceRecord]) -> None:
        try:
            self.store.save(records)
        except PersistenceError as e:
            self.logger.warning("Unable to save tracked resources after refresh", error=str(e))
