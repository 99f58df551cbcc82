"""
Pydantic models for tracked resources and fetched pages.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, HttpUrl


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class ResourceRecord(BaseModel):
    """
    A tracked web resource and its latest normalized snapshot.

    ``id`` and ``url`` never change after creation. ``snapshot``,
    ``last_change_at`` and ``has_unacknowledged_change`` are only written by
    the change detector and by acknowledgement.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique resource identifier")
    url: HttpUrl = Field(..., description="Fetch target")
    snapshot: Optional[bytes] = Field(default=None, description="Latest normalized content")
    last_change_at: Optional[datetime] = Field(default=None, description="When a change was last detected")
    has_unacknowledged_change: bool = Field(default=False)
    added_at: datetime = Field(default_factory=utcnow)

    @property
    def host(self) -> str:
        """Host part of the URL, used in notification titles."""
        return self.url.host or "Server"

    @property
    def has_baseline(self) -> bool:
        """Whether a first successful fetch has seeded the snapshot."""
        return self.snapshot is not None

    def acknowledge(self) -> bool:
        """
        Clear the unacknowledged change flag.

        Returns:
            True if the flag was set and has been cleared
        """
        if not self.has_unacknowledged_change:
            return False
        self.has_unacknowledged_change = False
        return True


class FetchedPage(BaseModel):
    """Raw result of a single successful retrieval."""
    url: str
    content: bytes
    content_type: Optional[str] = None
    status_code: int = 200
    fetched_at: datetime = Field(default_factory=utcnow)
