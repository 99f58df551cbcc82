"""
Refresh scheduling.

The scheduler is an explicit state machine over three states:

    idle ──start/refresh──▶ cycle_in_flight ──cycle done──▶ waiting
                                  ▲                           │
                                  └──timer fires / refresh────┘

The pending wait is a single APScheduler date job. Each armed job carries a
token; cancelling the wait or re-arming it invalidates older tokens, so a
stale timer can never start a second cycle.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import structlog
from apscheduler.events import EVENT_JOB_ERROR, JobExecutionEvent
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from scheduler.models import CycleResult, SchedulerConfig, SchedulerState
from scheduler.refresh_cycle import RefreshOrchestrator
from scheduler.tracker import ResourceTracker
from watcher.models import utcnow

logger = structlog.get_logger(__name__)

REFRESH_JOB_ID = "refresh_cycle"


class RefreshScheduler:
    """Owns the refresh timer and guarantees at most one cycle in flight."""

    def __init__(
        self,
        orchestrator: RefreshOrchestrator,
        tracker: ResourceTracker,
        config: Optional[SchedulerConfig] = None,
        scheduler: Optional[AsyncIOScheduler] = None
    ):
        """
        Initialize the refresh scheduler.

        Args:
            orchestrator: Runs the cycles
            tracker: Provides the records to check
            config: Scheduler configuration
            scheduler: APScheduler instance, created from config if omitted
        """
        self.orchestrator = orchestrator
        self.tracker = tracker
        self.config = config or SchedulerConfig()
        self.scheduler = scheduler or AsyncIOScheduler(timezone=self.config.timezone)
        self.logger = logger.bind(component="refresh_scheduler")

        self.state = SchedulerState.IDLE
        self.delay = timedelta(minutes=self.config.refresh_interval_minutes)
        self.next_refresh_at: Optional[datetime] = None
        self.last_request_at: Optional[datetime] = None
        self.coalesced_requests = 0
        self.cycles_completed = 0

        self._running = False
        self._arm_token = 0
        self._cycle_task: Optional[asyncio.Task] = None

        self.scheduler.add_listener(self._job_error_listener, EVENT_JOB_ERROR)

    @property
    def interval_minutes(self) -> int:
        return int(self.delay.total_seconds() // 60)

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start the timer machinery and run the first cycle immediately."""
        if self._running:
            return

        if not self.scheduler.running:
            self.scheduler.start()
        self._running = True

        self.logger.info("Refresh scheduler started", interval_minutes=self.interval_minutes)
        self.request_refresh()

    def stop(self) -> None:
        """Cancel the pending wait and shut the timer down. An in-flight cycle finishes."""
        if not self._running:
            return

        self._running = False
        self._cancel_pending()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        if self.state is not SchedulerState.CYCLE_IN_FLIGHT:
            self.state = SchedulerState.IDLE

        self.logger.info("Refresh scheduler stopped")

    def request_refresh(self) -> bool:
        """
        Start a cycle now, discarding any pending wait.

        Returns:
            False if a cycle is already in flight; the request is recorded
            but no second cycle is started
        """
        self.last_request_at = utcnow()

        if self.state is SchedulerState.CYCLE_IN_FLIGHT:
            self.coalesced_requests += 1
            self.logger.info(
                "Refresh already in progress, request ignored",
                coalesced_requests=self.coalesced_requests
            )
            return False

        self._cancel_pending()
        self._begin_cycle()
        return True

    async def refresh_now(self) -> Optional[CycleResult]:
        """
        Run a cycle immediately and wait for it.

        Returns:
            The cycle result, or None if a cycle was already in flight
        """
        if not self.request_refresh():
            return None
        return await self._cycle_task

    async def wait_for_cycle(self) -> Optional[CycleResult]:
        """Wait for the current or most recent cycle to finish."""
        if self._cycle_task is None:
            return None
        return await self._cycle_task

    def set_interval(self, minutes: int) -> None:
        """
        Change the refresh interval.

        A pending wait is re-armed at the new delay from now; an in-flight
        cycle is unaffected and the next wait uses the new delay.
        """
        if minutes < 1:
            raise ValueError("refresh interval must be at least 1 minute")

        self.delay = timedelta(minutes=minutes)
        self.logger.info("Refresh interval changed", interval_minutes=minutes, state=self.state.value)

        if self.state is SchedulerState.WAITING:
            self._cancel_pending()
            self._arm()

    def status(self) -> Dict[str, Any]:
        """Get current scheduler status."""
        return {
            'state': self.state.value,
            'running': self._running,
            'interval_minutes': self.interval_minutes,
            'next_refresh_at': self.next_refresh_at.isoformat() if self.next_refresh_at else None,
            'last_refresh_at': (
                self.orchestrator.last_refresh_at.isoformat()
                if self.orchestrator.last_refresh_at else None
            ),
            'refresh_in_progress': self.orchestrator.refresh_in_progress,
            'last_request_at': self.last_request_at.isoformat() if self.last_request_at else None,
            'coalesced_requests': self.coalesced_requests,
            'cycles_completed': self.cycles_completed,
        }

    def _begin_cycle(self) -> None:
        self.state = SchedulerState.CYCLE_IN_FLIGHT
        self._cycle_task = asyncio.get_running_loop().create_task(self._execute_cycle())

    async def _execute_cycle(self) -> Optional[CycleResult]:
        try:
            return await self.orchestrator.run_cycle(self.tracker.records)
        except Exception as e:
            self.logger.error("Refresh cycle failed", error=str(e), exc_info=True)
            return None
        finally:
            self.cycles_completed += 1
            if self._running:
                self._arm()
            else:
                self.state = SchedulerState.IDLE

    def _arm(self) -> None:
        """Arm the single pending timer and enter the waiting state."""
        self._arm_token += 1
        run_at = utcnow() + self.delay

        self.scheduler.add_job(
            func=self._on_timer,
            trigger=DateTrigger(run_date=run_at),
            args=[self._arm_token],
            id=REFRESH_JOB_ID,
            name='Refresh Tracked Resources',
            max_instances=1,
            misfire_grace_time=None,
            replace_existing=True
        )
        self.next_refresh_at = run_at
        self.state = SchedulerState.WAITING

        self.logger.debug("Next refresh armed", next_refresh_at=run_at.isoformat())

    def _cancel_pending(self) -> None:
        self._arm_token += 1
        self.next_refresh_at = None
        try:
            self.scheduler.remove_job(REFRESH_JOB_ID)
        except JobLookupError:
            pass

    async def _on_timer(self, token: int) -> None:
        if token != self._arm_token or self.state is not SchedulerState.WAITING:
            self.logger.debug("Stale refresh timer ignored", token=token)
            return

        self.next_refresh_at = None
        self._begin_cycle()
        await self._cycle_task

    def _job_error_listener(self, event: JobExecutionEvent) -> None:
        self.logger.error(
            "Job execution failed",
            job_id=event.job_id,
            error=str(event.exception)
        )
