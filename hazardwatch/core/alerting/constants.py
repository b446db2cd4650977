"""Alert lifecycle constants."""

from typing import Final

from hazardwatch.core.alerting.enums import SoundCue

EMERGENCY_TYPE: Final[str] = "FIRE_EMERGENCY"

HISTORY_LIMIT: Final[int] = 50

ESCALATED_MARKER: Final[str] = " - ESCALATED"

# Operator-editable escalation delay: strictly positive, at most 30 minutes.
MAX_ESCALATION_DELAY_SECONDS: Final[float] = 1800.0
DEFAULT_ESCALATION_DELAY_SECONDS: Final[float] = 300.0

UNKNOWN_CAUSE: Final[str] = "Unknown cause"
UNKNOWN_SEGMENT: Final[str] = "Unknown segment"

NOTIFICATION_ICON: Final[str] = "/fire-emergency-icon.png"
NOTIFICATION_BADGE: Final[str] = "/fire-badge.png"

SOUND_FILES: Final[dict[SoundCue, str]] = {
    SoundCue.HAZARD: "/sounds/emergency-siren.mp3",
    SoundCue.WARNING: "/sounds/warning-beep.mp3",
    SoundCue.ACKNOWLEDGMENT: "/sounds/acknowledgment.mp3",
}
