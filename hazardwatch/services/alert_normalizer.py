"""Alert normalizer.

Turns raw sensor feed records into canonical Emergency values. The
classifier is deliberately permissive: a record of an emergency type
qualifies when its cause mentions a hazard keyword OR it names a
segment at all. Records that do not qualify are dropped silently.
"""

import time
from collections.abc import Sequence
from datetime import UTC, datetime

from hazardwatch.config import settings
from hazardwatch.core.alerting.constants import UNKNOWN_CAUSE, UNKNOWN_SEGMENT
from hazardwatch.core.alerting.models import Emergency
from hazardwatch.logging_config import get_logger
from hazardwatch.schemas.feed import RawAlertEvent

logger = get_logger(__name__)


def is_hazard_event(
    raw: RawAlertEvent,
    emergency_types: Sequence[str] | None = None,
    hazard_keywords: Sequence[str] | None = None,
) -> bool:
    """Return True if the record is an actionable hazard alert.

    Args:
        raw: Record from the sensor feed.
        emergency_types: Type tags that count as emergencies.
            Defaults to ``settings.emergency_types``.
        hazard_keywords: Substrings of ``cause`` that mark a hazard
            (case-sensitive). Defaults to ``settings.hazard_keywords``.
    """
    types = settings.emergency_types if emergency_types is None else emergency_types
    keywords = settings.hazard_keywords if hazard_keywords is None else hazard_keywords

    if raw.type not in types:
        return False

    cause = raw.cause or ""
    if any(keyword in cause for keyword in keywords):
        return True

    return bool(raw.segment)


def normalize_event(
    raw: RawAlertEvent,
    *,
    now: datetime | None = None,
    emergency_types: Sequence[str] | None = None,
    hazard_keywords: Sequence[str] | None = None,
) -> Emergency | None:
    """Convert a raw feed record into an ACTIVE, CRITICAL Emergency.

    Args:
        raw: Record from the sensor feed.
        now: Processing time; defaults to the current UTC time.
        emergency_types: See ``is_hazard_event``.
        hazard_keywords: See ``is_hazard_event``.

    Returns:
        The new Emergency, or None if the record is not a hazard alert.
    """
    if not is_hazard_event(raw, emergency_types, hazard_keywords):
        logger.debug(
            "Feed record is not a hazard alert, dropping",
            raw_id=raw.id,
            raw_type=raw.type,
        )
        return None

    return Emergency(
        id=raw.id,
        segment=raw.segment or UNKNOWN_SEGMENT,
        cause=raw.cause or UNKNOWN_CAUSE,
        created_at=now or datetime.now(UTC),
        created_monotonic=time.monotonic(),
    )
