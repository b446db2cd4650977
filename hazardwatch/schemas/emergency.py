"""Emergency API schemas."""

from datetime import datetime

from pydantic import BaseModel

from hazardwatch.core.alerting.models import Emergency, HistoryEntry


class EmergencyResponse(BaseModel):
    """Response schema for a single emergency."""

    id: str
    segment: str
    cause: str
    type: str
    severity: str
    status: str
    escalated: bool
    escalation_armed: bool
    created_at: datetime
    acknowledged_at: datetime | None
    acknowledged_by: str | None
    escalated_at: datetime | None


class ActiveEmergenciesResponse(BaseModel):
    """Response schema for the active emergency list."""

    emergencies: list[EmergencyResponse]
    count: int


class HistoryEntryResponse(BaseModel):
    """Response schema for one history snapshot."""

    transition: str
    recorded_at: datetime
    emergency: EmergencyResponse


class HistoryResponse(BaseModel):
    """Response schema for the alert history, newest first."""

    entries: list[HistoryEntryResponse]
    count: int
    limit: int


class OperatorActionResponse(BaseModel):
    """Result of an acknowledge or dismiss action.

    ``changed`` is False when the id matched no active emergency; the
    action is then a no-op.
    """

    id: str
    changed: bool
    status: str | None = None
    acknowledged_at: datetime | None = None


def emergency_to_response(
    emergency: Emergency,
    escalation_armed: bool = False,
) -> EmergencyResponse:
    return EmergencyResponse(
        id=emergency.id,
        segment=emergency.segment,
        cause=emergency.cause,
        type=emergency.type,
        severity=emergency.severity.value,
        status=emergency.status.value,
        escalated=emergency.escalated,
        escalation_armed=escalation_armed,
        created_at=emergency.created_at,
        acknowledged_at=emergency.acknowledged_at,
        acknowledged_by=emergency.acknowledged_by,
        escalated_at=emergency.escalated_at,
    )


def history_entry_to_response(entry: HistoryEntry) -> HistoryEntryResponse:
    return HistoryEntryResponse(
        transition=entry.transition.value,
        recorded_at=entry.recorded_at,
        emergency=emergency_to_response(entry.emergency),
    )
