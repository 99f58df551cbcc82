"""
The tracked resource collection.

Owns the in-memory list of resource records, the user-facing mutations on
it (add, remove, acknowledge) and their persistence. Observers are told
about every mutation through the event bus.
"""

from typing import List, Optional

import structlog
from pydantic import ValidationError

from scheduler.events import EventBus
from scheduler.models import ResourceEventType
from watcher.exceptions import (
    DuplicateResourceError, PersistenceError, ResourceNotFoundError, ResourceValidationError
)
from watcher.models import ResourceRecord
from watcher.storage import ResourceStore

logger = structlog.get_logger(__name__)


class ResourceTracker:
    """Collection of tracked resources backed by a ResourceStore."""

    def __init__(self, store: ResourceStore, events: Optional[EventBus] = None):
        """
        Initialize the tracker.

        Args:
            store: Persistence collaborator
            events: Event bus for mutation notifications
        """
        self.store = store
        self.events = events or EventBus()
        self._records: List[ResourceRecord] = []
        self.logger = logger.bind(component="resource_tracker")

    @property
    def records(self) -> List[ResourceRecord]:
        """The live record list. Mutate it only through the tracker."""
        return self._records

    def load(self) -> int:
        """Replace the in-memory list with the persisted one."""
        self._records = self.store.load()
        self.logger.info("Tracked resources loaded", count=len(self._records))
        return len(self._records)

    def save(self) -> bool:
        """
        Persist all records.

        Returns:
            False if saving failed; the failure is logged, never raised
        """
        try:
            self.store.save(self._records)
            return True
        except PersistenceError as e:
            self.logger.warning("Unable to save tracked resources", error=str(e))
            return False

    def get(self, resource_id: str) -> ResourceRecord:
        for record in self._records:
            if record.id == resource_id:
                return record
        raise ResourceNotFoundError(resource_id)

    def find_by_url(self, url) -> Optional[ResourceRecord]:
        for record in self._records:
            if str(record.url) == str(url):
                return record
        return None

    def validate(self, url: str) -> ResourceRecord:
        """
        Build a record for a URL without adding it.

        Raises:
            ResourceValidationError: if the URL is invalid or already tracked
        """
        try:
            record = ResourceRecord(url=url)
        except ValidationError as e:
            raise ResourceValidationError(f"Invalid URL: {url}") from e

        if self.find_by_url(record.url) is not None:
            raise DuplicateResourceError(str(record.url))
        return record

    def add(self, url: str) -> ResourceRecord:
        """Add a resource; its snapshot stays empty until the first fetch."""
        record = self.validate(url)
        self._records.append(record)
        self.save()

        self.logger.info("Resource added", record_id=record.id, url=str(record.url))
        self.events.emit(ResourceEventType.ADDED, record.id)
        return record

    def remove(self, resource_id: str) -> ResourceRecord:
        record = self.get(resource_id)
        self._records.remove(record)
        self.save()

        self.logger.info("Resource removed", record_id=record.id, url=str(record.url))
        self.events.emit(ResourceEventType.REMOVED, record.id)
        return record

    def acknowledge(self, resource_id: str) -> bool:
        """
        Clear a resource's change flag.

        Returns:
            True if there was an unacknowledged change; otherwise nothing is saved
        """
        record = self.get(resource_id)
        if not record.acknowledge():
            return False

        self.save()
        self.events.emit(ResourceEventType.ACKNOWLEDGED, record.id)
        return True
