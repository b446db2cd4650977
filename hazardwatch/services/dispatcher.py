"""Notification dispatcher.

Fans a new or escalated emergency out to every enabled channel, writes
it to the persistence sink and records the transition in history.

Channel sends and the persistence write are fire-and-forget: each runs
as a background task whose failure is caught and logged at this
boundary and never reaches siblings or the caller.

Dispatch is idempotent per (emergency id, channel, severity): replaying
a dispatch at the same severity skips channels already notified, while
an escalation (new severity) notifies every enabled channel again.
"""

from hazardwatch.core.alerting.constants import NOTIFICATION_BADGE, NOTIFICATION_ICON
from hazardwatch.core.alerting.enums import (
    Channel,
    EmergencySeverity,
    HistoryTransition,
    PermissionState,
    SoundCue,
)
from hazardwatch.core.alerting.models import (
    ChannelResult,
    DispatchOutcome,
    Emergency,
    NotificationAction,
    NotificationPayload,
    NotificationSettings,
)
from hazardwatch.logging_config import get_logger
from hazardwatch.services.background import BackgroundTaskGroup
from hazardwatch.services.event_broadcaster import (
    EMERGENCY_CREATED,
    EMERGENCY_ESCALATED,
    EventBroadcaster,
)
from hazardwatch.services.history_store import HistoryStore
from hazardwatch.services.notification_channels import ChannelError, ChannelSet
from hazardwatch.services.notification_settings import SettingsRegistry
from hazardwatch.services.persistence import PersistenceError, PersistenceSink

logger = get_logger(__name__)

NOTIFICATION_ACTIONS: tuple[NotificationAction, ...] = (
    NotificationAction(action="acknowledge", title="Acknowledge"),
    NotificationAction(action="dispatch", title="Dispatch Emergency Services"),
)

TRANSITION_EVENTS: dict[HistoryTransition, str] = {
    HistoryTransition.CREATED: EMERGENCY_CREATED,
    HistoryTransition.ESCALATED: EMERGENCY_ESCALATED,
}


def build_payload(emergency: Emergency) -> NotificationPayload:
    """Build the channel payload for an emergency.

    Uses ``display_segment``, so escalated emergencies carry the
    escalation marker in the text while ``segment`` stays untouched.
    """
    segment = emergency.display_segment

    if emergency.escalated:
        title = "\U0001f6a8 ESCALATED FIRE EMERGENCY \U0001f6a8"
        body = (
            f"Fire detected in {segment}!\n"
            f"No acknowledgment received. Immediate action required.\n"
            f"Cause: {emergency.cause}"
        )
    else:
        title = "\U0001f525 FIRE EMERGENCY ALERT \U0001f525"
        body = (
            f"Fire detected in {segment}!\n"
            f"Immediate action required.\n"
            f"Cause: {emergency.cause}"
        )

    return NotificationPayload(
        emergency_id=emergency.id,
        title=title,
        body=body,
        icon=NOTIFICATION_ICON,
        badge=NOTIFICATION_BADGE,
        tag=emergency.id,
        severity=emergency.severity,
        actions=NOTIFICATION_ACTIONS,
    )


class NotificationDispatcher:
    """Drives channels, persistence and history for lifecycle transitions."""

    def __init__(
        self,
        channels: ChannelSet,
        settings_registry: SettingsRegistry,
        sink: PersistenceSink,
        history: HistoryStore,
        tasks: BackgroundTaskGroup,
        broadcaster: EventBroadcaster | None = None,
    ) -> None:
        self._channels = channels
        self._settings = settings_registry
        self._sink = sink
        self._history = history
        self._tasks = tasks
        self._broadcaster = broadcaster
        # emergency id -> severity -> channels already notified
        self._dispatched: dict[str, dict[EmergencySeverity, set[Channel]]] = {}

    async def dispatch(
        self,
        emergency: Emergency,
        transition: HistoryTransition = HistoryTransition.CREATED,
    ) -> DispatchOutcome:
        """Notify enabled channels, persist, and record history.

        Settings are read once, here; a settings edit made while the
        background sends are running does not affect them.

        Args:
            emergency: Emergency value to dispatch.
            transition: Lifecycle transition being dispatched.

        Returns:
            DispatchOutcome listing scheduled and skipped channels.
        """
        snapshot = self._settings.snapshot()
        payload = build_payload(emergency)
        notified = self._dispatched.setdefault(emergency.id, {}).setdefault(
            emergency.severity, set()
        )

        scheduled: list[Channel] = []
        skipped: list[Channel] = []
        for channel in Channel:
            if channel in notified:
                logger.debug(
                    "Channel already notified at this severity, skipping",
                    channel=channel.value,
                    severity=emergency.severity.value,
                )
                skipped.append(channel)
                continue

            if not await self._channel_available(channel, snapshot):
                skipped.append(channel)
                continue

            notified.add(channel)
            scheduled.append(channel)
            self._tasks.spawn(
                self._send(channel, payload),
                name=f"notify:{channel.value}:{emergency.id}",
            )

        self._tasks.spawn(
            self._persist(emergency, snapshot),
            name=f"persist:{emergency.id}",
        )
        self._history.record(emergency, transition)

        if self._broadcaster is not None and transition in TRANSITION_EVENTS:
            self._broadcaster.publish(
                TRANSITION_EVENTS[transition],
                emergency.to_record(),
            )

        logger.info(
            "Emergency dispatched",
            emergency_id=emergency.id,
            severity=emergency.severity.value,
            transition=transition.value,
            channels=[c.value for c in scheduled],
            settings_version=snapshot.version,
        )

        return DispatchOutcome(
            emergency_id=emergency.id,
            severity=emergency.severity,
            scheduled=tuple(scheduled),
            skipped=tuple(skipped),
            settings_version=snapshot.version,
        )

    def play_cue(self, cue: SoundCue) -> bool:
        """Play an audible cue in the background if the channel is enabled.

        Returns:
            True if playback was scheduled.
        """
        snapshot = self._settings.snapshot()
        if not snapshot.audible_cue or self._channels.audible is None:
            return False

        self._tasks.spawn(self._play(cue), name=f"cue:{cue.value}")
        return True

    async def drain(self) -> None:
        """Wait for in-flight channel sends and persistence writes."""
        await self._tasks.drain()

    def forget(self, emergency_id: str) -> None:
        """Drop dispatch bookkeeping for an emergency that has ended."""
        self._dispatched.pop(emergency_id, None)

    def notified_channels(
        self,
        emergency_id: str,
        severity: EmergencySeverity,
    ) -> frozenset[Channel]:
        return frozenset(self._dispatched.get(emergency_id, {}).get(severity, ()))

    async def _channel_available(
        self,
        channel: Channel,
        snapshot: NotificationSettings,
    ) -> bool:
        if not snapshot.channel_enabled(channel):
            return False

        if channel == Channel.VISUAL_POPUP:
            return self._channels.visual is not None

        if channel == Channel.AUDIBLE_CUE:
            return self._channels.audible is not None

        push = self._channels.push
        if push is None:
            return False

        try:
            permission = await push.query_permission()
        except Exception:
            logger.exception("Push permission query failed, treating as denied")
            return False

        if permission != PermissionState.GRANTED:
            logger.debug(
                "Push permission not granted, channel disabled",
                permission=permission.value,
            )
            return False
        return True

    async def _send(
        self,
        channel: Channel,
        payload: NotificationPayload,
    ) -> ChannelResult:
        try:
            if channel == Channel.VISUAL_POPUP:
                await self._channels.visual.show(payload)
            elif channel == Channel.AUDIBLE_CUE:
                await self._channels.audible.play(SoundCue.HAZARD)
            else:
                await self._channels.push.send(payload)
        except ChannelError as e:
            logger.warning(
                "Notification channel failed",
                channel=channel.value,
                emergency_id=payload.emergency_id,
                error=str(e),
            )
            return ChannelResult(channel=channel, delivered=False, error=str(e))
        except Exception as e:
            logger.exception(
                "Unexpected error in notification channel",
                channel=channel.value,
                emergency_id=payload.emergency_id,
            )
            return ChannelResult(channel=channel, delivered=False, error=repr(e))

        logger.debug(
            "Notification delivered",
            channel=channel.value,
            emergency_id=payload.emergency_id,
        )
        return ChannelResult(channel=channel, delivered=True)

    async def _play(self, cue: SoundCue) -> ChannelResult:
        try:
            await self._channels.audible.play(cue)
        except ChannelError as e:
            logger.warning("Audible cue failed", cue=cue.value, error=str(e))
            return ChannelResult(
                channel=Channel.AUDIBLE_CUE, delivered=False, error=str(e)
            )
        except Exception as e:
            logger.exception("Unexpected error playing audible cue", cue=cue.value)
            return ChannelResult(
                channel=Channel.AUDIBLE_CUE, delivered=False, error=repr(e)
            )
        return ChannelResult(channel=Channel.AUDIBLE_CUE, delivered=True)

    async def _persist(
        self,
        emergency: Emergency,
        snapshot: NotificationSettings,
    ) -> bool:
        try:
            await self._sink.save_emergency(
                emergency,
                snapshot.notification_channels(),
                snapshot.contacts,
            )
        except PersistenceError as e:
            logger.warning(
                "Failed to persist emergency, continuing in memory",
                emergency_id=emergency.id,
                error=str(e),
            )
            return False
        except Exception:
            logger.exception(
                "Unexpected error persisting emergency, continuing in memory",
                emergency_id=emergency.id,
            )
            return False
        return True
