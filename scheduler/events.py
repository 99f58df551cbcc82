"""
Observer support for the tracked resource collection.
"""

from typing import Callable, List, Optional

import structlog

from scheduler.models import ResourceEvent, ResourceEventType

logger = structlog.get_logger(__name__)

Listener = Callable[[ResourceEvent], None]


class EventBus:
    """Synchronous publish/subscribe hub for resource events."""

    def __init__(self):
        self._listeners: List[Listener] = []
        self.logger = logger.bind(component="event_bus")

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event_type: ResourceEventType, record_id: Optional[str] = None) -> ResourceEvent:
        """Deliver an event to every listener. Listener errors are logged, not raised."""
        event = ResourceEvent(event_type=event_type, record_id=record_id)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                self.logger.warning(
                    "Event listener failed",
                    event_type=event_type.value,
                    error=str(e)
                )
        return event
