"""Alert lifecycle models.

Pure data models with no database dependencies. Every model is frozen:
state transitions return new values, so snapshots handed to timers,
history and persistence never change underneath their holders.
"""

import time
from datetime import datetime
from typing import Any, Self

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field

from hazardwatch.core.alerting.constants import (
    DEFAULT_ESCALATION_DELAY_SECONDS,
    EMERGENCY_TYPE,
    ESCALATED_MARKER,
    MAX_ESCALATION_DELAY_SECONDS,
)
from hazardwatch.core.alerting.enums import (
    Channel,
    EmergencySeverity,
    EmergencyStatus,
    HistoryTransition,
)


class Emergency(BaseModel):
    """One hazard alert through its lifecycle."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    segment: str
    cause: str
    type: str = EMERGENCY_TYPE
    severity: EmergencySeverity = EmergencySeverity.CRITICAL
    status: EmergencyStatus = EmergencyStatus.ACTIVE
    escalated: bool = False
    created_at: AwareDatetime
    created_monotonic: float = Field(
        description="time.monotonic() at creation, for alert age and timer math.",
    )
    acknowledged_at: AwareDatetime | None = None
    acknowledged_by: str | None = None
    escalated_at: AwareDatetime | None = None
    dismissed_at: AwareDatetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == EmergencyStatus.ACTIVE

    @property
    def display_segment(self) -> str:
        """Segment text for notification payloads.

        Escalated emergencies carry the escalation marker; the stored
        ``segment`` field is never rewritten.
        """
        if self.escalated:
            return f"{self.segment}{ESCALATED_MARKER}"
        return self.segment

    def age_seconds(self, now_monotonic: float | None = None) -> float:
        """Seconds since creation, on the monotonic clock."""
        if now_monotonic is None:
            now_monotonic = time.monotonic()
        return now_monotonic - self.created_monotonic

    def mark_escalated(self, now: datetime) -> Self:
        return self.model_copy(
            update={
                "escalated": True,
                "severity": EmergencySeverity.CRITICAL_ESCALATED,
                "escalated_at": now,
            }
        )

    def mark_acknowledged(self, now: datetime, acknowledged_by: str) -> Self:
        return self.model_copy(
            update={
                "status": EmergencyStatus.ACKNOWLEDGED,
                "acknowledged_at": now,
                "acknowledged_by": acknowledged_by,
            }
        )

    def mark_dismissed(self, now: datetime) -> Self:
        return self.model_copy(
            update={"status": EmergencyStatus.DISMISSED, "dismissed_at": now}
        )

    def to_record(self) -> dict[str, Any]:
        """Serialize to the JSON-friendly shape used by sinks and the API."""
        return self.model_dump(mode="json", exclude={"created_monotonic"})


class Contact(BaseModel):
    """Person recorded alongside persisted emergencies. Never dispatched to."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=100)
    address: str = Field(min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=32)


class NotificationSettings(BaseModel):
    """Immutable snapshot of operator notification settings.

    Readers take a snapshot at the moment of use; an operator edit
    produces a new snapshot with a higher version.
    """

    model_config = ConfigDict(frozen=True)

    version: int = Field(default=1, ge=1)
    visual_popup: bool = True
    audible_cue: bool = True
    push_notification: bool = True
    # Recorded with persisted emergencies; no dispatch path reads them.
    email_alerts: bool = False
    sms_alerts: bool = False
    escalation_enabled: bool = True
    escalation_delay_seconds: float = Field(
        default=DEFAULT_ESCALATION_DELAY_SECONDS,
        gt=0,
        le=MAX_ESCALATION_DELAY_SECONDS,
        description=(
            "Seconds before an unacknowledged emergency escalates "
            f"(0-{MAX_ESCALATION_DELAY_SECONDS:.0f}, exclusive of 0)."
        ),
    )
    contacts: tuple[Contact, ...] = ()

    def channel_enabled(self, channel: Channel) -> bool:
        return bool(getattr(self, channel.value))

    def notification_channels(self) -> dict[str, bool]:
        """Channel flag map persisted with every emergency record."""
        return {
            "browser": self.visual_popup,
            "sound": self.audible_cue,
            "push": self.push_notification,
            "email": self.email_alerts,
            "sms": self.sms_alerts,
        }


class NotificationAction(BaseModel):
    """Action button offered on a visual or push notification."""

    model_config = ConfigDict(frozen=True)

    action: str
    title: str


class NotificationPayload(BaseModel):
    """Channel payload derived from an emergency.

    ``tag`` equals the emergency id so a persistent-notification channel
    replaces an earlier notification for the same alert instead of
    stacking a new one.
    """

    model_config = ConfigDict(frozen=True)

    emergency_id: str
    title: str
    body: str
    icon: str
    badge: str
    tag: str
    severity: EmergencySeverity
    require_interaction: bool = True
    actions: tuple[NotificationAction, ...] = ()


class Acknowledgment(BaseModel):
    """Acknowledgment sub-record appended under an emergency."""

    model_config = ConfigDict(frozen=True)

    emergency_id: str
    acknowledged_at: AwareDatetime
    acknowledged_by: str
    status: EmergencyStatus = EmergencyStatus.ACKNOWLEDGED


class HistoryEntry(BaseModel):
    """Snapshot of an emergency at a lifecycle transition."""

    model_config = ConfigDict(frozen=True)

    emergency: Emergency
    transition: HistoryTransition
    recorded_at: AwareDatetime


class ChannelResult(BaseModel):
    """Outcome of one channel send."""

    model_config = ConfigDict(frozen=True)

    channel: Channel
    delivered: bool
    error: str | None = None


class DispatchOutcome(BaseModel):
    """What a dispatch call scheduled, and what it skipped."""

    model_config = ConfigDict(frozen=True)

    emergency_id: str
    severity: EmergencySeverity
    scheduled: tuple[Channel, ...] = ()
    skipped: tuple[Channel, ...] = ()
    settings_version: int
