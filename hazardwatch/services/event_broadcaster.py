"""In-process fan-out of alert lifecycle events.

Consumers (the SSE stream, UI adapters) subscribe with a bounded queue.
Publishing never blocks: a subscriber whose queue is full misses the
event and a warning is logged.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from hazardwatch.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_QUEUE_SIZE = 100

EMERGENCY_CREATED = "emergency.created"
EMERGENCY_ESCALATED = "emergency.escalated"
EMERGENCY_ACKNOWLEDGED = "emergency.acknowledged"
EMERGENCY_DISMISSED = "emergency.dismissed"
NOTIFICATION_VISUAL = "notification.visual"
NOTIFICATION_SOUND = "notification.sound"


@dataclass(frozen=True)
class LifecycleEvent:
    """A published event."""

    event_type: str
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.event_type,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


class EventBroadcaster:
    """Publish/subscribe hub for lifecycle events."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue[LifecycleEvent]] = set()

    def subscribe(self) -> asyncio.Queue[LifecycleEvent]:
        queue: asyncio.Queue[LifecycleEvent] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        logger.debug("Event subscriber added", subscribers=len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue[LifecycleEvent]) -> None:
        self._subscribers.discard(queue)
        logger.debug("Event subscriber removed", subscribers=len(self._subscribers))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event_type: str, data: dict[str, Any]) -> LifecycleEvent:
        """Deliver an event to every current subscriber.

        Returns:
            The published event.
        """
        event = LifecycleEvent(event_type=event_type, data=data)
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(
                    "Event subscriber queue full, dropping event",
                    event_type=event_type,
                )
        return event
