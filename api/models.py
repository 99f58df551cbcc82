"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from watcher.models import ResourceRecord


class ResourceResponse(BaseModel):
    """Tracked resource as returned by the API. Snapshots are not exposed."""
    id: str = Field(..., description="Unique resource identifier")
    url: str = Field(..., description="Fetch target")
    host: str = Field(..., description="Host of the URL")
    has_baseline: bool = Field(..., description="Whether a first fetch has succeeded")
    has_unacknowledged_change: bool = Field(..., description="Changed since last acknowledged")
    last_change_at: Optional[datetime] = Field(None, description="When a change was last detected")
    added_at: datetime = Field(..., description="When the resource was added")

    @classmethod
    def from_record(cls, record: ResourceRecord) -> "ResourceResponse":
        return cls(
            id=record.id,
            url=str(record.url),
            host=record.host,
            has_baseline=record.has_baseline,
            has_unacknowledged_change=record.has_unacknowledged_change,
            last_change_at=record.last_change_at,
            added_at=record.added_at
        )


class ResourceListResponse(BaseModel):
    """Response model for the resource list."""
    resources: List[ResourceResponse] = Field(..., description="Tracked resources")
    total: int = Field(..., description="Number of tracked resources")


class ResourceCreateRequest(BaseModel):
    """Request body for adding a resource."""
    url: str = Field(..., description="URL to track")


class AcknowledgeResponse(BaseModel):
    """Result of acknowledging a resource's changes."""
    resource: ResourceResponse
    acknowledged: bool = Field(..., description="False if there was nothing to acknowledge")


class RefreshResponse(BaseModel):
    """Result of a manual refresh request."""
    started: bool = Field(..., description="False if a refresh was already in progress")
    state: str = Field(..., description="Scheduler state after the request")


class IntervalRequest(BaseModel):
    """Request body for changing the refresh interval."""
    minutes: int = Field(..., ge=1, le=10080, description="Minutes between refreshes")


class StatusResponse(BaseModel):
    """Scheduler and collection status."""
    state: str
    running: bool
    interval_minutes: int
    next_refresh_at: Optional[str] = None
    last_refresh_at: Optional[str] = None
    refresh_in_progress: bool
    last_request_at: Optional[str] = None
    coalesced_requests: int
    cycles_completed: int
    resource_count: int
    unacknowledged_changes: int


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    scheduler_state: str = Field(..., description="Refresh scheduler state")
