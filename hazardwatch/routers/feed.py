"""Sensor feed ingestion endpoints.

The building sensor feed pushes raw alert records here. Records that are
not hazard alerts, and ids already processed, are accepted by the HTTP
layer but do not create an emergency.
"""

from fastapi import APIRouter, status

from hazardwatch.dependencies import AlertEngineDep
from hazardwatch.logging_config import get_logger
from hazardwatch.schemas.feed import (
    IngestBatchResponse,
    IngestResponse,
    RawAlertBatch,
    RawAlertEvent,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/feed", tags=["feed"])


@router.post(
    "/events",
    response_model=IngestResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def ingest_event(
    event: RawAlertEvent,
    engine: AlertEngineDep,
) -> IngestResponse:
    """Ingest one raw feed record."""
    already_seen = engine.deduplicator.has_seen(event.id)
    emergency = await engine.ingest(event)

    if emergency is not None:
        reason = "emergency_created"
    elif already_seen:
        reason = "duplicate"
    else:
        reason = "not_hazard"

    return IngestResponse(
        id=event.id,
        accepted=emergency is not None,
        reason=reason,
    )


@router.post(
    "/events/batch",
    response_model=IngestBatchResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def ingest_events(
    batch: RawAlertBatch,
    engine: AlertEngineDep,
) -> IngestBatchResponse:
    """Ingest a batch of raw feed records in order.

    Used for feed replays; ids already processed are skipped.
    """
    accepted = await engine.ingest_many(batch.events)

    logger.info(
        "Feed batch ingested",
        received=len(batch.events),
        accepted=len(accepted),
    )

    return IngestBatchResponse(
        received=len(batch.events),
        accepted=len(accepted),
        accepted_ids=[e.id for e in accepted],
    )
