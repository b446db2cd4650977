"""Fake channels and builders shared by the test modules."""

from datetime import UTC, datetime

from hazardwatch.core.alerting.enums import PermissionState, SoundCue
from hazardwatch.core.alerting.models import (
    Emergency,
    NotificationPayload,
    NotificationSettings,
)
from hazardwatch.schemas.feed import RawAlertEvent
from hazardwatch.services.alert_engine import AlertEngine
from hazardwatch.services.event_broadcaster import EventBroadcaster
from hazardwatch.services.history_store import HistoryStore
from hazardwatch.services.notification_channels import (
    AudibleChannel,
    ChannelSet,
    PushChannel,
    VisualChannel,
)
from hazardwatch.services.notification_settings import SettingsRegistry
from hazardwatch.services.persistence import MemorySink, PersistenceSink

# Short enough for real-timer tests, long enough to act before it fires
TEST_ESCALATION_DELAY = 0.2


class RecordingVisualChannel(VisualChannel):
    """Visual channel that records every payload shown."""

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.shown: list[NotificationPayload] = []
        self.fail_with = fail_with

    async def show(self, payload: NotificationPayload) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.shown.append(payload)


class RecordingAudibleChannel(AudibleChannel):
    """Audible channel that records every cue played."""

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.played: list[SoundCue] = []
        self.fail_with = fail_with

    async def play(self, cue: SoundCue) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.played.append(cue)


class FakePushChannel(PushChannel):
    """Push channel with a scripted permission answer."""

    def __init__(
        self,
        permission: PermissionState = PermissionState.GRANTED,
        request_result: PermissionState | None = None,
        fail_with: Exception | None = None,
    ) -> None:
        self.permission = permission
        self.request_result = request_result or permission
        self.sent: list[NotificationPayload] = []
        self.fail_with = fail_with

    async def query_permission(self) -> PermissionState:
        return self.permission

    async def request_permission(self) -> PermissionState:
        self.permission = self.request_result
        return self.permission

    async def send(self, payload: NotificationPayload) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(payload)


class FailingSink(PersistenceSink):
    """Sink whose every write raises ``error``."""

    def __init__(self, error: Exception) -> None:
        self.error = error
        self.attempts = 0

    async def save_emergency(self, emergency, notification_channels, contacts) -> None:
        self.attempts += 1
        raise self.error

    async def save_acknowledgment(self, acknowledgment) -> None:
        self.attempts += 1
        raise self.error


def make_raw(
    raw_id: str = "1",
    raw_type: str = "EMERGENCY",
    segment: str | None = "Kitchen",
    cause: str | None = "Gas Leak",
    **extra,
) -> RawAlertEvent:
    """Create a raw feed record."""
    return RawAlertEvent.model_validate(
        {"id": raw_id, "type": raw_type, "segment": segment, "cause": cause, **extra}
    )


def make_emergency(
    emergency_id: str = "1",
    segment: str = "Kitchen",
    cause: str = "Gas Leak",
) -> Emergency:
    """Create an ACTIVE, CRITICAL emergency."""
    return Emergency(
        id=emergency_id,
        segment=segment,
        cause=cause,
        created_at=datetime.now(UTC),
        created_monotonic=0.0,
    )


def make_channels(
    push_permission: PermissionState = PermissionState.GRANTED,
    visual_error: Exception | None = None,
    audible_error: Exception | None = None,
    push_error: Exception | None = None,
) -> ChannelSet:
    return ChannelSet(
        visual=RecordingVisualChannel(fail_with=visual_error),
        audible=RecordingAudibleChannel(fail_with=audible_error),
        push=FakePushChannel(permission=push_permission, fail_with=push_error),
    )


def build_engine(
    channels: ChannelSet | None = None,
    sink: PersistenceSink | None = None,
    notification_settings: NotificationSettings | None = None,
    history_limit: int = 50,
) -> AlertEngine:
    """Create an engine wired to fake channels and an in-memory sink."""
    return AlertEngine(
        channels=channels or make_channels(),
        sink=sink if sink is not None else MemorySink(),
        settings_registry=SettingsRegistry(
            notification_settings
            or NotificationSettings(escalation_delay_seconds=TEST_ESCALATION_DELAY)
        ),
        history=HistoryStore(history_limit),
        broadcaster=EventBroadcaster(),
        emergency_types=["EMERGENCY", "ARDUINO_EMERGENCY"],
        hazard_keywords=["Fire", "Flame", "Gas", "Smoke"],
    )
