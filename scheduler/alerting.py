"""
Alerting for detected changes.

This module provides:
- Per-resource change notifications, logged and fanned out to pluggable sinks
- A once-per-cycle attention signal
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Set

import structlog
from pydantic import BaseModel, Field

from watcher.models import ResourceRecord, utcnow

logger = structlog.get_logger(__name__)


class AlertConfig(BaseModel):
    """Configuration for alerting."""
    enabled: bool = Field(default=True)
    log_enabled: bool = Field(default=True)


class ChangeAlert(BaseModel):
    """A change notification for one resource."""
    record_id: str
    url: str
    title: str
    detected_at: datetime = Field(default_factory=utcnow)


AlertSink = Callable[[ChangeAlert], Awaitable[None]]


class ChangeNotifier:
    """
    Delivers change notifications without blocking the refresh cycle.

    ``notify_change`` returns immediately; sinks run as background tasks and
    their failures are logged.
    """

    def __init__(self, alert_config: Optional[AlertConfig] = None, sinks: Optional[List[AlertSink]] = None):
        """
        Initialize the notifier.

        Args:
            alert_config: Alert configuration
            sinks: Async callables receiving each ChangeAlert
        """
        self.config = alert_config or AlertConfig()
        self.sinks: List[AlertSink] = list(sinks or [])
        self.logger = logger.bind(component="change_notifier")
        self.sent_alerts: List[ChangeAlert] = []
        self._pending: Set[asyncio.Task] = set()

    def add_sink(self, sink: AlertSink) -> None:
        self.sinks.append(sink)

    def notify_change(self, record: ResourceRecord) -> Optional[ChangeAlert]:
        """
        Notify that a resource has changed.

        Args:
            record: The changed resource

        Returns:
            The alert that was dispatched, or None when alerting is disabled
        """
        if not self.config.enabled:
            self.logger.debug("Alerting is disabled")
            return None

        try:
            alert = ChangeAlert(
                record_id=record.id,
                url=str(record.url),
                title=f"{record.host} has changed!",
                detected_at=record.last_change_at or utcnow()
            )

            if self.config.log_enabled:
                self.logger.warning(
                    "Change detection alert",
                    title=alert.title,
                    url=alert.url,
                    record_id=alert.record_id
                )

            self.sent_alerts.append(alert)
            self._dispatch(alert)
            return alert

        except Exception as e:
            self.logger.error(
                "Failed to send change alert",
                record_id=record.id,
                error=str(e)
            )
            return None

    def _dispatch(self, alert: ChangeAlert) -> None:
        if not self.sinks:
            return

        loop = asyncio.get_running_loop()
        for sink in self.sinks:
            task = loop.create_task(self._deliver(sink, alert))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _deliver(self, sink: AlertSink, alert: ChangeAlert) -> None:
        try:
            await sink(alert)
        except Exception as e:
            self.logger.warning(
                "Alert sink failed",
                sink=getattr(sink, "__name__", repr(sink)),
                record_id=alert.record_id,
                error=str(e)
            )

    async def drain(self) -> None:
        """Wait for all in-flight sink deliveries."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


class AttentionSignal:
    """Requests user attention at most once per cycle with changes."""

    def __init__(self, callback: Optional[Callable[[], None]] = None):
        self.callback = callback
        self.requests = 0
        self.last_requested_at: Optional[datetime] = None
        self.logger = logger.bind(component="attention_signal")

    def request_attention(self) -> None:
        self.requests += 1
        self.last_requested_at = utcnow()
        self.logger.warning("Attention requested: tracked resources have changed")

        if self.callback is None:
            return
        try:
            self.callback()
        except Exception as e:
            self.logger.warning("Attention callback failed", error=str(e))
