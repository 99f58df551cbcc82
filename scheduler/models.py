"""
Models for refresh scheduling and change detection.

This module defines Pydantic models for:
- Per-resource check outcomes
- Refresh cycle results
- Scheduler state and configuration
- Resource events for observers
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from watcher.models import utcnow


class CheckOutcome(str, Enum):
    """Result of checking one resource within a cycle."""
    UNCHANGED = "unchanged"
    BASELINE = "baseline"
    CHANGED = "changed"
    FETCH_FAILED = "fetch_failed"


class SchedulerState(str, Enum):
    """States of the refresh scheduler."""
    IDLE = "idle"
    CYCLE_IN_FLIGHT = "cycle_in_flight"
    WAITING = "waiting"


class ResourceEventType(str, Enum):
    """Kinds of events emitted after the tracked collection changes."""
    ADDED = "added"
    REMOVED = "removed"
    ACKNOWLEDGED = "acknowledged"
    CHANGED = "changed"
    REFRESH_STARTED = "refresh_started"
    REFRESH_COMPLETED = "refresh_completed"


class ResourceEvent(BaseModel):
    """Notification delivered to event bus subscribers."""
    event_type: ResourceEventType
    record_id: Optional[str] = None
    occurred_at: datetime = Field(default_factory=utcnow)


class CycleResult(BaseModel):
    """Result of one refresh cycle over all tracked resources."""
    cycle_id: str = Field(..., description="Unique cycle identifier")
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = Field(default=None)
    outcomes: Dict[str, CheckOutcome] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)

    @property
    def any_change(self) -> bool:
        return any(outcome == CheckOutcome.CHANGED for outcome in self.outcomes.values())

    @property
    def resources_checked(self) -> int:
        return len(self.outcomes)

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def count(self, outcome: CheckOutcome) -> int:
        """Number of resources with the given outcome."""
        return sum(1 for value in self.outcomes.values() if value == outcome)

    def changed_ids(self) -> List[str]:
        return [rid for rid, outcome in self.outcomes.items() if outcome == CheckOutcome.CHANGED]


class SchedulerConfig(BaseModel):
    """Configuration for the refresh scheduler."""
    refresh_interval_minutes: int = Field(default=10, ge=1, le=10080, description="Minutes between cycles")
    timezone: str = Field(default="UTC", description="Timezone for scheduling")
    max_concurrent_fetches: int = Field(default=5, ge=1, le=50, description="Max resources fetched concurrently")
