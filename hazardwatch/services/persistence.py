"""Persistence sinks for emergency records and acknowledgments.

The engine only ever appends; it never reads back. Sinks raise
``PersistenceError`` on failure and the callers log and move on: the
in-memory lifecycle state stays authoritative for the running session.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hazardwatch.core.alerting.models import Acknowledgment, Contact, Emergency
from hazardwatch.database import get_db_session
from hazardwatch.logging_config import get_logger
from hazardwatch.models.emergency_record import (
    EmergencyAcknowledgment,
    EmergencyRecord,
)

logger = get_logger(__name__)


class PersistenceError(Exception):
    """A persistence sink failed to store a record."""


class PersistenceSink(ABC):
    """Append-only store for emergencies and acknowledgments."""

    @abstractmethod
    async def save_emergency(
        self,
        emergency: Emergency,
        notification_channels: dict[str, bool],
        contacts: Sequence[Contact],
    ) -> None:
        """Append a snapshot of ``emergency`` with the settings in force."""

    @abstractmethod
    async def save_acknowledgment(self, acknowledgment: Acknowledgment) -> None:
        """Append an acknowledgment sub-record under its emergency."""


class MemorySink(PersistenceSink):
    """Keeps appended records in lists. Used when persistence is disabled."""

    def __init__(self) -> None:
        self.emergencies: list[dict[str, Any]] = []
        self.acknowledgments: dict[str, list[dict[str, Any]]] = {}

    async def save_emergency(
        self,
        emergency: Emergency,
        notification_channels: dict[str, bool],
        contacts: Sequence[Contact],
    ) -> None:
        record = emergency.to_record()
        record["notificationChannels"] = dict(notification_channels)
        record["contacts"] = [c.model_dump() for c in contacts]
        self.emergencies.append(record)

    async def save_acknowledgment(self, acknowledgment: Acknowledgment) -> None:
        self.acknowledgments.setdefault(acknowledgment.emergency_id, []).append(
            acknowledgment.model_dump(mode="json")
        )


class DatabaseSink(PersistenceSink):
    """Appends rows through SQLAlchemy, one short session per write."""

    def __init__(
        self,
        session_factory: Callable[
            [], AbstractAsyncContextManager[AsyncSession]
        ] = get_db_session,
    ) -> None:
        self._session_factory = session_factory

    async def save_emergency(
        self,
        emergency: Emergency,
        notification_channels: dict[str, bool],
        contacts: Sequence[Contact],
    ) -> None:
        row = EmergencyRecord(
            emergency_id=emergency.id,
            emergency_type=emergency.type,
            segment=emergency.segment,
            cause=emergency.cause,
            severity=emergency.severity.value,
            status=emergency.status.value,
            escalated=emergency.escalated,
            created_at=emergency.created_at,
            escalated_at=emergency.escalated_at,
            notification_channels=dict(notification_channels),
            contacts=[c.model_dump() for c in contacts],
        )
        try:
            async with self._session_factory() as db:
                db.add(row)
                await db.commit()
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Failed to store emergency record: {e}") from e

        logger.debug(
            "Emergency record stored",
            emergency_id=emergency.id,
            severity=emergency.severity.value,
        )

    async def save_acknowledgment(self, acknowledgment: Acknowledgment) -> None:
        row = EmergencyAcknowledgment(
            emergency_id=acknowledgment.emergency_id,
            acknowledged_at=acknowledgment.acknowledged_at,
            acknowledged_by=acknowledgment.acknowledged_by,
            status=acknowledgment.status.value,
        )
        try:
            async with self._session_factory() as db:
                db.add(row)
                await db.commit()
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Failed to store acknowledgment: {e}") from e

        logger.debug(
            "Acknowledgment record stored",
            emergency_id=acknowledgment.emergency_id,
        )
