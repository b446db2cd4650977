"""Notification settings registry.

Holds the current NotificationSettings snapshot. Operator edits merge
into a new snapshot which replaces the old one in a single step, so a
dispatch that already took a snapshot keeps seeing consistent values.
"""

import threading

from pydantic import ValidationError

from hazardwatch.config import Settings
from hazardwatch.core.alerting.enums import PermissionState
from hazardwatch.core.alerting.models import Contact, NotificationSettings
from hazardwatch.logging_config import get_logger
from hazardwatch.schemas.notification_settings import NotificationSettingsUpdate
from hazardwatch.services.notification_channels import PushChannel

logger = get_logger(__name__)


def parse_contact(value: str) -> Contact:
    """Parse a ``"Name <address>"`` string into a Contact.

    A bare address is used as its own name.
    """
    value = value.strip()
    if value.endswith(">") and "<" in value:
        name, _, address = value[:-1].partition("<")
        name = name.strip() or address.strip()
        return Contact(name=name, address=address.strip())
    return Contact(name=value, address=value)


def settings_from_config(config: Settings) -> NotificationSettings:
    """Build the initial snapshot from application configuration."""
    return NotificationSettings(
        escalation_enabled=config.escalation_enabled,
        escalation_delay_seconds=config.escalation_delay_seconds,
        push_notification=bool(config.push_webhook_url),
        contacts=tuple(parse_contact(c) for c in config.initial_contacts),
    )


class SettingsRegistry:
    """Single-writer, many-reader holder of notification settings."""

    def __init__(self, initial: NotificationSettings | None = None) -> None:
        self._current = initial or NotificationSettings()
        self._lock = threading.Lock()

    def snapshot(self) -> NotificationSettings:
        """Return the current immutable settings snapshot."""
        return self._current

    def update(self, updates: NotificationSettingsUpdate) -> NotificationSettings:
        """Merge a partial edit into a new snapshot.

        Only fields provided in ``updates`` change. The merged snapshot is
        validated before it replaces the current one.

        Args:
            updates: Partial settings edit.

        Returns:
            The new snapshot.

        Raises:
            ValueError: If the merged settings are invalid (for example an
                escalation delay <= 0). The current snapshot is unchanged.
        """
        update_data = updates.model_dump(exclude_unset=True, exclude_none=True)

        with self._lock:
            current = self._current
            merged = current.model_dump()
            merged.update(update_data)
            merged["version"] = current.version + 1

            try:
                new_settings = NotificationSettings.model_validate(merged)
            except ValidationError as e:
                raise ValueError(f"Invalid notification settings: {e}") from e

            self._current = new_settings

        logger.info(
            "Updated notification settings",
            version=new_settings.version,
            fields=sorted(update_data.keys()),
        )
        return new_settings

    async def request_channel_permission(
        self,
        push: PushChannel | None,
    ) -> PermissionState:
        """Ask the push channel for permission and record the answer.

        The ``push_notification`` flag is set to True only when permission
        is granted; denial or a missing channel turns it off.
        """
        if push is None:
            permission = PermissionState.DENIED
        else:
            permission = await push.request_permission()

        granted = permission == PermissionState.GRANTED
        if self._current.push_notification != granted:
            self.update(NotificationSettingsUpdate(push_notification=granted))

        logger.info(
            "Push notification permission resolved",
            permission=permission.value,
        )
        return permission
