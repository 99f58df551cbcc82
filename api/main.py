"""
FastAPI main application for the PageWatch control API.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.config import config as api_config
from api.models import (
    AcknowledgeResponse, ErrorResponse, HealthResponse, IntervalRequest,
    RefreshResponse, ResourceCreateRequest, ResourceListResponse,
    ResourceResponse, StatusResponse
)
from scheduler.scheduler_service import MonitorService
from watcher.exceptions import (
    DuplicateResourceError, ResourceNotFoundError, ResourceValidationError
)
from watcher.models import utcnow

logger = structlog.get_logger(__name__)

# Global monitor service
monitor_service: MonitorService = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global monitor_service
    logger.info("Starting PageWatch API")

    monitor_service = MonitorService()
    if api_config.start_monitor:
        await monitor_service.start()
    else:
        monitor_service.tracker.load()

    yield

    logger.info("Shutting down PageWatch API")
    await monitor_service.stop()


app = FastAPI(
    title=api_config.api_title,
    description="Track web pages and get notified when their visible content changes.",
    version=api_config.api_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=api_config.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_monitor_service() -> MonitorService:
    """Dependency returning the running monitor service."""
    if monitor_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Monitor service not available"
        )
    return monitor_service


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message, status_code=status_code).model_dump()
    )


# Exception handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(exc.detail), status_code=exc.status_code).model_dump(),
        headers=exc.headers
    )


@app.exception_handler(DuplicateResourceError)
async def duplicate_resource_handler(request: Request, exc: DuplicateResourceError):
    return _error(status.HTTP_409_CONFLICT, str(exc))


@app.exception_handler(ResourceValidationError)
async def resource_validation_handler(request: Request, exc: ResourceValidationError):
    return _error(422, str(exc))


@app.exception_handler(ResourceNotFoundError)
async def resource_not_found_handler(request: Request, exc: ResourceNotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, str(exc))


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    scheduler_state = "unavailable"
    if monitor_service is not None:
        scheduler_state = monitor_service.refresh_scheduler.state.value

    return HealthResponse(
        status="healthy" if monitor_service is not None else "degraded",
        timestamp=utcnow(),
        version=api_config.api_version,
        scheduler_state=scheduler_state
    )


@app.get("/resources", response_model=ResourceListResponse, tags=["Resources"])
async def list_resources(service: MonitorService = Depends(get_monitor_service)):
    """List all tracked resources."""
    resources = [ResourceResponse.from_record(r) for r in service.list_resources()]
    return ResourceListResponse(resources=resources, total=len(resources))


@app.post(
    "/resources",
    response_model=ResourceResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Resources"]
)
async def add_resource(
    request: ResourceCreateRequest,
    service: MonitorService = Depends(get_monitor_service)
):
    """
    Track a new resource.

    - **409** if the URL is already tracked
    - **422** if the URL is invalid
    """
    record = service.add_resource(request.url)
    return ResourceResponse.from_record(record)


@app.get("/resources/{resource_id}", response_model=ResourceResponse, tags=["Resources"])
async def get_resource(resource_id: str, service: MonitorService = Depends(get_monitor_service)):
    """Get a single tracked resource."""
    return ResourceResponse.from_record(service.get_resource(resource_id))


@app.delete("/resources/{resource_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Resources"])
async def remove_resource(resource_id: str, service: MonitorService = Depends(get_monitor_service)):
    """Stop tracking a resource."""
    service.remove_resource(resource_id)


@app.post(
    "/resources/{resource_id}/acknowledge",
    response_model=AcknowledgeResponse,
    tags=["Resources"]
)
async def acknowledge_resource(resource_id: str, service: MonitorService = Depends(get_monitor_service)):
    """Clear a resource's change flag."""
    acknowledged = service.acknowledge(resource_id)
    return AcknowledgeResponse(
        resource=ResourceResponse.from_record(service.get_resource(resource_id)),
        acknowledged=acknowledged
    )


@app.post(
    "/refresh",
    response_model=RefreshResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["Refresh"]
)
async def force_refresh(service: MonitorService = Depends(get_monitor_service)):
    """Refresh all resources now. Ignored while a refresh is in progress."""
    started = service.force_refresh()
    return RefreshResponse(started=started, state=service.refresh_scheduler.state.value)


@app.get("/status", response_model=StatusResponse, tags=["Refresh"])
async def get_status(service: MonitorService = Depends(get_monitor_service)):
    """Scheduler and collection status."""
    return StatusResponse(**service.status())


@app.put("/settings/interval", response_model=StatusResponse, tags=["Refresh"])
async def set_interval(request: IntervalRequest, service: MonitorService = Depends(get_monitor_service)):
    """Change the refresh interval; applies to the next scheduled refresh."""
    service.set_refresh_interval(request.minutes)
    return StatusResponse(**service.status())
