"""
Change detection for tracked resources.

Compares freshly normalized content byte for byte with the stored snapshot.
The first successful fetch of a resource only establishes the baseline and
is never reported as a change.
"""

from datetime import datetime
from typing import Callable, Optional

import structlog

from scheduler.models import CheckOutcome
from watcher.models import ResourceRecord, utcnow

logger = structlog.get_logger(__name__)


class ChangeDetector:
    """Engine for detecting changes in a resource's content."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize change detector.

        Args:
            clock: Returns the current time; defaults to UTC now
        """
        self.clock = clock or utcnow
        self.logger = logger.bind(component="change_detector")

    def detect(self, record: ResourceRecord, normalized: bytes) -> CheckOutcome:
        """
        Compare normalized content against the record's snapshot and update it.

        Args:
            record: Resource record to update in place
            normalized: Normalized content of the latest fetch

        Returns:
            CheckOutcome for this resource
        """
        if record.snapshot is None:
            record.snapshot = normalized
            self.logger.debug("Baseline established", record_id=record.id, url=str(record.url))
            return CheckOutcome.BASELINE

        if record.snapshot == normalized:
            return CheckOutcome.UNCHANGED

        record.snapshot = normalized
        record.has_unacknowledged_change = True
        record.last_change_at = self.clock()

        self.logger.info(
            "Change detected",
            record_id=record.id,
            url=str(record.url),
            snapshot_bytes=len(normalized)
        )
        return CheckOutcome.CHANGED
