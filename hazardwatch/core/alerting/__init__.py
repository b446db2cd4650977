"""Hazard alert lifecycle domain.

An emergency moves ACTIVE -> ACKNOWLEDGED or ACTIVE -> DISMISSED, and may
escalate exactly once while ACTIVE (CRITICAL -> CRITICAL_ESCALATED).
The services package drives these transitions; this package only holds
the immutable values they pass around.
"""

from hazardwatch.core.alerting.enums import (
    Channel,
    EmergencySeverity,
    EmergencyStatus,
    HistoryTransition,
    PermissionState,
    SoundCue,
    TimerState,
)
from hazardwatch.core.alerting.models import (
    Acknowledgment,
    ChannelResult,
    Contact,
    DispatchOutcome,
    Emergency,
    HistoryEntry,
    NotificationAction,
    NotificationPayload,
    NotificationSettings,
)

__all__ = [
    "Acknowledgment",
    "Channel",
    "ChannelResult",
    "Contact",
    "DispatchOutcome",
    "Emergency",
    "EmergencySeverity",
    "EmergencyStatus",
    "HistoryEntry",
    "HistoryTransition",
    "NotificationAction",
    "NotificationPayload",
    "NotificationSettings",
    "PermissionState",
    "SoundCue",
    "TimerState",
]
