"""Persisted emergency records.

Both tables are append-only. Every dispatch (initial and escalation)
appends one ``emergency_records`` row carrying the emergency state plus
the notification channel flags and contacts in force at that moment.
Acknowledgments are appended as separate sub-records keyed by the
emergency id rather than overwriting a column, so the audit trail of
when an alert was acknowledged survives later changes.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from hazardwatch.models.base import Base, JSONType, RecordedAtMixin


class EmergencyRecord(Base, RecordedAtMixin):
    """One snapshot of an emergency written at dispatch time."""

    __tablename__ = "emergency_records"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Raw feed id; not unique, one row per dispatch
    emergency_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    emergency_type: Mapped[str] = mapped_column(String(64), nullable=False)

    segment: Mapped[str] = mapped_column(Text, nullable=False)

    cause: Mapped[str] = mapped_column(Text, nullable=False)

    severity: Mapped[str] = mapped_column(String(32), nullable=False)

    status: Mapped[str] = mapped_column(String(32), nullable=False)

    escalated: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    escalated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # {"browser": bool, "sound": bool, "push": bool, "email": bool, "sms": bool}
    notification_channels: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
    )

    # [{"name": ..., "address": ..., "phone": ...}]
    contacts: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )

    def __repr__(self) -> str:
        return (
            f"<EmergencyRecord(emergency_id={self.emergency_id}, "
            f"severity={self.severity}, status={self.status})>"
        )


class EmergencyAcknowledgment(Base, RecordedAtMixin):
    """Acknowledgment sub-record for an emergency."""

    __tablename__ = "emergency_acknowledgments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    emergency_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    acknowledged_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    acknowledged_by: Mapped[str] = mapped_column(String(100), nullable=False)

    status: Mapped[str] = mapped_column(String(32), nullable=False)

    def __repr__(self) -> str:
        return (
            f"<EmergencyAcknowledgment(emergency_id={self.emergency_id}, "
            f"by={self.acknowledged_by})>"
        )
