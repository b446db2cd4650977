"""Notification channel interfaces and built-in channels.

The engine drives three independent media: a visual popup, an audible
cue and a permission-gated push notification. Each is an abstract
interface here; the built-ins publish to the in-process broadcaster
(visual, audible) or POST to a webhook (push).

Channels signal failure by raising. ``ChannelError`` marks an expected
delivery failure (device unavailable, endpoint refused); the dispatcher
catches every exception at its boundary either way.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from hazardwatch.core.alerting.constants import SOUND_FILES
from hazardwatch.core.alerting.enums import PermissionState, SoundCue
from hazardwatch.core.alerting.models import NotificationPayload
from hazardwatch.logging_config import get_logger
from hazardwatch.services.event_broadcaster import (
    NOTIFICATION_SOUND,
    NOTIFICATION_VISUAL,
    EventBroadcaster,
)

logger = get_logger(__name__)


class ChannelError(Exception):
    """A notification channel failed to deliver."""


class VisualChannel(ABC):
    """Visual, persistent notification (popup or overlay)."""

    @abstractmethod
    async def show(self, payload: NotificationPayload) -> None:
        """Display ``payload``, replacing any notification with the same tag."""


class AudibleChannel(ABC):
    """Audible cue playback."""

    @abstractmethod
    async def play(self, cue: SoundCue) -> None:
        """Play ``cue``."""


class PushChannel(ABC):
    """Permission-gated push notification.

    Callers must check ``query_permission`` before sending; anything
    other than GRANTED means the channel is treated as disabled.
    """

    @abstractmethod
    async def query_permission(self) -> PermissionState:
        """Return the current permission without prompting."""

    @abstractmethod
    async def request_permission(self) -> PermissionState:
        """Ask for permission and return the resulting state."""

    @abstractmethod
    async def send(self, payload: NotificationPayload) -> None:
        """Deliver ``payload``."""


@dataclass(frozen=True)
class ChannelSet:
    """The channels available to the dispatcher. Any may be absent."""

    visual: VisualChannel | None = None
    audible: AudibleChannel | None = None
    push: PushChannel | None = None


class BroadcastVisualChannel(VisualChannel):
    """Publishes popup payloads to lifecycle event subscribers."""

    def __init__(self, broadcaster: EventBroadcaster) -> None:
        self._broadcaster = broadcaster

    async def show(self, payload: NotificationPayload) -> None:
        self._broadcaster.publish(NOTIFICATION_VISUAL, payload.model_dump(mode="json"))


class BroadcastSoundChannel(AudibleChannel):
    """Publishes sound cues to lifecycle event subscribers."""

    def __init__(self, broadcaster: EventBroadcaster) -> None:
        self._broadcaster = broadcaster

    async def play(self, cue: SoundCue) -> None:
        sound_file = SOUND_FILES.get(cue)
        if sound_file is None:
            raise ChannelError(f"No sound file for cue {cue.value}")
        self._broadcaster.publish(
            NOTIFICATION_SOUND,
            {"cue": cue.value, "sound_file": sound_file},
        )


class WebhookPushChannel(PushChannel):
    """Push notifications delivered as JSON POSTs to a webhook.

    Permission is GRANTED after a successful request to the webhook URL and
    DENIED when no URL is configured or the permission request fails.
    """

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self._url = url
        self._timeout = timeout
        self._permission = (
            PermissionState.DEFAULT if url else PermissionState.DENIED
        )

    async def query_permission(self) -> PermissionState:
        return self._permission

    async def request_permission(self) -> PermissionState:
        if not self._url:
            self._permission = PermissionState.DENIED
            return self._permission

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.head(self._url)
        except httpx.HTTPError as e:
            logger.warning(
                "Push webhook permission request failed, permission denied",
                error=str(e),
            )
            self._permission = PermissionState.DENIED
            return self._permission

        if response.status_code >= 400:
            logger.warning(
                "Push webhook refused permission request, permission denied",
                status_code=response.status_code,
            )
            self._permission = PermissionState.DENIED
        else:
            self._permission = PermissionState.GRANTED

        return self._permission

    async def send(self, payload: NotificationPayload) -> None:
        if self._permission != PermissionState.GRANTED:
            raise ChannelError("Push permission not granted")

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    self._url,
                    json=payload.model_dump(mode="json"),
                )
        except httpx.HTTPError as e:
            raise ChannelError(f"Push webhook unreachable: {e}") from e

        if response.status_code >= 400:
            raise ChannelError(
                f"Push webhook error: {response.status_code} {response.text}"
            )
