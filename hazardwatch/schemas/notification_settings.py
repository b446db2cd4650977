"""Notification settings schemas."""

from pydantic import BaseModel, Field

from hazardwatch.core.alerting.constants import MAX_ESCALATION_DELAY_SECONDS
from hazardwatch.core.alerting.models import Contact


class NotificationSettingsResponse(BaseModel):
    """Response schema for the current settings snapshot."""

    model_config = {"from_attributes": True}

    version: int
    visual_popup: bool
    audible_cue: bool
    push_notification: bool
    email_alerts: bool
    sms_alerts: bool
    escalation_enabled: bool
    escalation_delay_seconds: float
    contacts: list[Contact]


class NotificationSettingsUpdate(BaseModel):
    """Request schema for a partial settings edit.

    All fields are optional; only provided fields are changed.
    """

    visual_popup: bool | None = None
    audible_cue: bool | None = None
    push_notification: bool | None = None
    email_alerts: bool | None = None
    sms_alerts: bool | None = None
    escalation_enabled: bool | None = None
    escalation_delay_seconds: float | None = Field(
        default=None,
        gt=0,
        le=MAX_ESCALATION_DELAY_SECONDS,
        description=(
            "Seconds before an unacknowledged emergency escalates "
            f"(must be > 0 and <= {MAX_ESCALATION_DELAY_SECONDS:.0f})."
        ),
    )
    contacts: list[Contact] | None = Field(default=None, max_length=10)


class PermissionResponse(BaseModel):
    """Result of asking the push channel for permission."""

    granted: bool
    permission: str
    push_notification: bool
