# Database Models
from hazardwatch.models.base import Base, RecordedAtMixin
from hazardwatch.models.emergency_record import (
    EmergencyAcknowledgment,
    EmergencyRecord,
)

__all__ = [
    "Base",
    "EmergencyAcknowledgment",
    "EmergencyRecord",
    "RecordedAtMixin",
]
