"""Acknowledgment and dismissal of emergencies.

Both operator actions end an emergency's escalation path by cancelling
its timer. Acknowledgment is the audited outcome: it plays the
acknowledgment cue, appends an acknowledgment sub-record through the
persistence sink and records a history snapshot. Dismissal marks a
false alarm and only removes the emergency from the active set.

Acknowledging needs an ACTIVE emergency. Dismissing works on any
tracked emergency, ACTIVE or ACKNOWLEDGED, and ends its tracking.
Actions on unknown ids are no-ops.
"""

from datetime import UTC, datetime

from hazardwatch.core.alerting.enums import HistoryTransition, SoundCue
from hazardwatch.core.alerting.models import Acknowledgment, Emergency
from hazardwatch.logging_config import get_logger
from hazardwatch.services.active_emergencies import ActiveEmergencies
from hazardwatch.services.background import BackgroundTaskGroup
from hazardwatch.services.dispatcher import NotificationDispatcher
from hazardwatch.services.escalation_scheduler import EscalationScheduler
from hazardwatch.services.event_broadcaster import (
    EMERGENCY_ACKNOWLEDGED,
    EMERGENCY_DISMISSED,
    EventBroadcaster,
)
from hazardwatch.services.history_store import HistoryStore
from hazardwatch.services.persistence import PersistenceError, PersistenceSink

logger = get_logger(__name__)

DEFAULT_ACKNOWLEDGED_BY = "Manager"


class AcknowledgmentHandler:
    """Terminates an emergency's active lifecycle on operator action."""

    def __init__(
        self,
        active: ActiveEmergencies,
        scheduler: EscalationScheduler,
        dispatcher: NotificationDispatcher,
        sink: PersistenceSink,
        history: HistoryStore,
        tasks: BackgroundTaskGroup,
        broadcaster: EventBroadcaster | None = None,
    ) -> None:
        self._active = active
        self._scheduler = scheduler
        self._dispatcher = dispatcher
        self._sink = sink
        self._history = history
        self._tasks = tasks
        self._broadcaster = broadcaster

    def acknowledge(
        self,
        emergency_id: str,
        acknowledged_by: str = DEFAULT_ACKNOWLEDGED_BY,
        now: datetime | None = None,
    ) -> Emergency | None:
        """Acknowledge an ACTIVE emergency.

        Args:
            emergency_id: Id of the emergency.
            acknowledged_by: Operator identity recorded in the audit trail.
            now: Acknowledgment time; defaults to the current UTC time.

        Returns:
            The acknowledged Emergency, or None if no ACTIVE emergency has
            that id.
        """
        current = self._active.get(emergency_id)
        if current is None or not current.is_active:
            logger.info(
                "Acknowledge ignored, no active emergency",
                emergency_id=emergency_id,
            )
            return None

        timer_cancelled = self._scheduler.cancel(emergency_id)
        now = now or datetime.now(UTC)
        acknowledged = current.mark_acknowledged(now, acknowledged_by)
        self._active.put(acknowledged)

        self._dispatcher.play_cue(SoundCue.ACKNOWLEDGMENT)
        self._tasks.spawn(
            self._persist(
                Acknowledgment(
                    emergency_id=emergency_id,
                    acknowledged_at=now,
                    acknowledged_by=acknowledged_by,
                )
            ),
            name=f"persist-ack:{emergency_id}",
        )
        self._history.record(acknowledged, HistoryTransition.ACKNOWLEDGED, now)

        if self._broadcaster is not None:
            self._broadcaster.publish(EMERGENCY_ACKNOWLEDGED, acknowledged.to_record())

        logger.info(
            "Emergency acknowledged",
            emergency_id=emergency_id,
            acknowledged_by=acknowledged_by,
            escalated=acknowledged.escalated,
            timer_cancelled=timer_cancelled,
        )
        return acknowledged

    def dismiss(
        self,
        emergency_id: str,
        now: datetime | None = None,
    ) -> Emergency | None:
        """Dismiss a tracked emergency, ACTIVE or ACKNOWLEDGED.

        Returns:
            The dismissed Emergency, or None if no emergency with that id
            is tracked.
        """
        current = self._active.get(emergency_id)
        if current is None:
            logger.info(
                "Dismiss ignored, unknown emergency",
                emergency_id=emergency_id,
            )
            return None

        timer_cancelled = self._scheduler.cancel(emergency_id)
        self._active.remove(emergency_id)
        self._dispatcher.forget(emergency_id)
        self._scheduler.forget(emergency_id)
        dismissed = current.mark_dismissed(now or datetime.now(UTC))

        if self._broadcaster is not None:
            self._broadcaster.publish(EMERGENCY_DISMISSED, dismissed.to_record())

        logger.info(
            "Emergency dismissed",
            emergency_id=emergency_id,
            previous_status=current.status.value,
            timer_cancelled=timer_cancelled,
        )
        return dismissed

    async def _persist(self, acknowledgment: Acknowledgment) -> bool:
        try:
            await self._sink.save_acknowledgment(acknowledgment)
        except PersistenceError as e:
            logger.warning(
                "Failed to persist acknowledgment, continuing in memory",
                emergency_id=acknowledgment.emergency_id,
                error=str(e),
            )
            return False
        except Exception:
            logger.exception(
                "Unexpected error persisting acknowledgment, continuing in memory",
                emergency_id=acknowledgment.emergency_id,
            )
            return False
        return True
