"""Notification settings endpoints.

Operator edits replace the settings snapshot as a whole; dispatches and
timers already in progress keep the values they read.
"""

from fastapi import APIRouter, HTTPException, status

from hazardwatch.core.alerting.enums import PermissionState
from hazardwatch.dependencies import AlertEngineDep
from hazardwatch.schemas.notification_settings import (
    NotificationSettingsResponse,
    NotificationSettingsUpdate,
    PermissionResponse,
)

router = APIRouter(prefix="/api/notification-settings", tags=["notification-settings"])


@router.get("", response_model=NotificationSettingsResponse)
async def get_notification_settings(
    engine: AlertEngineDep,
) -> NotificationSettingsResponse:
    """Get the current notification settings."""
    return NotificationSettingsResponse.model_validate(engine.notification_settings())


@router.patch("", response_model=NotificationSettingsResponse)
async def update_notification_settings(
    updates: NotificationSettingsUpdate,
    engine: AlertEngineDep,
) -> NotificationSettingsResponse:
    """Update notification settings.

    Only provided fields are changed. The escalation delay applies to
    emergencies created after the change.
    """
    try:
        new_settings = engine.update_settings(updates)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        ) from e

    return NotificationSettingsResponse.model_validate(new_settings)


@router.post("/push-permission", response_model=PermissionResponse)
async def request_push_permission(
    engine: AlertEngineDep,
) -> PermissionResponse:
    """Ask the push channel for permission.

    The push notification flag is switched on when permission is granted
    and off otherwise.
    """
    permission = await engine.request_channel_permission()

    return PermissionResponse(
        granted=permission == PermissionState.GRANTED,
        permission=permission.value,
        push_notification=engine.notification_settings().push_notification,
    )
