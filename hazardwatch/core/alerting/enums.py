"""Alert lifecycle enums."""

from enum import StrEnum


class EmergencySeverity(StrEnum):
    """Severity of an emergency. There is no tier above CRITICAL_ESCALATED."""

    CRITICAL = "CRITICAL"
    CRITICAL_ESCALATED = "CRITICAL_ESCALATED"


class EmergencyStatus(StrEnum):
    """Lifecycle status. Only ACTIVE emergencies can escalate."""

    ACTIVE = "ACTIVE"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    DISMISSED = "DISMISSED"


class Channel(StrEnum):
    """Notification media the dispatcher can drive."""

    VISUAL_POPUP = "visual_popup"
    AUDIBLE_CUE = "audible_cue"
    PUSH_NOTIFICATION = "push_notification"


class SoundCue(StrEnum):
    """Audible cues. Hazard and acknowledgment must sound different."""

    HAZARD = "hazard"
    WARNING = "warning"
    ACKNOWLEDGMENT = "acknowledgment"


class PermissionState(StrEnum):
    """Permission state of a permission-gated channel."""

    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


class TimerState(StrEnum):
    """State of an escalation timer."""

    ARMED = "armed"
    FIRED = "fired"
    CANCELLED = "cancelled"


class HistoryTransition(StrEnum):
    """Lifecycle transition captured by a history entry."""

    CREATED = "created"
    ESCALATED = "escalated"
    ACKNOWLEDGED = "acknowledged"
