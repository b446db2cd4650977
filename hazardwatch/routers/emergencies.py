"""Emergency endpoints: active list, history, operator actions, live stream."""

import asyncio
import json
from collections.abc import AsyncGenerator
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from hazardwatch.config import settings
from hazardwatch.dependencies import AlertEngineDep
from hazardwatch.logging_config import get_logger
from hazardwatch.schemas.emergency import (
    ActiveEmergenciesResponse,
    EmergencyResponse,
    HistoryResponse,
    OperatorActionResponse,
    emergency_to_response,
    history_entry_to_response,
)
from hazardwatch.services.event_broadcaster import EventBroadcaster

logger = get_logger(__name__)

router = APIRouter(prefix="/api/emergencies", tags=["emergencies"])


def format_sse_event(event_type: str, data: dict, event_id: str | None = None) -> str:
    """Format data as an SSE event."""
    lines = []
    if event_id:
        lines.append(f"id: {event_id}")
    lines.append(f"event: {event_type}")
    lines.append(f"data: {json.dumps(data)}")
    lines.append("")
    return "\n".join(lines) + "\n"


async def generate_event_stream(
    broadcaster: EventBroadcaster,
    request: Request,
    heartbeat_interval: float,
) -> AsyncGenerator[str, None]:
    """Yield lifecycle events as SSE, with a heartbeat when idle."""
    queue = broadcaster.subscribe()
    event_counter = 0

    logger.info("Emergency SSE stream started")

    try:
        while True:
            if await request.is_disconnected():
                logger.info("Emergency SSE client disconnected")
                break

            event_counter += 1
            try:
                event = await asyncio.wait_for(queue.get(), timeout=heartbeat_interval)
            except TimeoutError:
                yield format_sse_event(
                    event_type="heartbeat",
                    data={"timestamp": datetime.now(UTC).isoformat()},
                    event_id=str(event_counter),
                )
                continue

            yield format_sse_event(
                event_type=event.event_type,
                data=event.to_dict(),
                event_id=str(event_counter),
            )

    except asyncio.CancelledError:
        logger.info("Emergency SSE stream cancelled")
    finally:
        broadcaster.unsubscribe(queue)
        logger.info("Emergency SSE stream ended")


@router.get("/active", response_model=ActiveEmergenciesResponse)
async def list_active_emergencies(
    engine: AlertEngineDep,
) -> ActiveEmergenciesResponse:
    """List emergencies still on the board, ACTIVE and ACKNOWLEDGED.

    Dismissed emergencies are removed and never listed.
    """
    emergencies = engine.active_emergencies()
    return ActiveEmergenciesResponse(
        emergencies=[
            emergency_to_response(e, engine.is_escalation_armed(e.id))
            for e in emergencies
        ],
        count=len(emergencies),
    )


@router.get("/history", response_model=HistoryResponse)
async def get_history(engine: AlertEngineDep) -> HistoryResponse:
    """Get recorded lifecycle transitions, newest first."""
    entries = engine.history()
    return HistoryResponse(
        entries=[history_entry_to_response(entry) for entry in entries],
        count=len(entries),
        limit=engine.history_store.limit,
    )


@router.get(
    "/stream",
    responses={
        200: {
            "description": "SSE stream of emergency lifecycle events",
            "content": {"text/event-stream": {}},
        },
    },
)
async def stream_emergencies(
    request: Request,
    engine: AlertEngineDep,
) -> StreamingResponse:
    """Stream lifecycle events and channel notifications via Server-Sent Events."""
    return StreamingResponse(
        generate_event_stream(
            engine.broadcaster,
            request,
            settings.sse_heartbeat_seconds,
        ),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/{emergency_id}", response_model=EmergencyResponse)
async def get_emergency(
    emergency_id: str,
    engine: AlertEngineDep,
) -> EmergencyResponse:
    """Get a tracked emergency by id."""
    emergency = engine.get_emergency(emergency_id)
    if emergency is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Emergency not found",
        )
    return emergency_to_response(emergency, engine.is_escalation_armed(emergency_id))


@router.post("/{emergency_id}/acknowledge", response_model=OperatorActionResponse)
async def acknowledge_emergency(
    emergency_id: str,
    engine: AlertEngineDep,
) -> OperatorActionResponse:
    """Acknowledge an emergency, stopping its escalation.

    Works for ACTIVE and ACKNOWLEDGED emergencies. Unknown ids are a
    no-op (``changed`` is False).
    """
    acknowledged = await engine.acknowledge(emergency_id)
    if acknowledged is None:
        return OperatorActionResponse(id=emergency_id, changed=False)

    return OperatorActionResponse(
        id=emergency_id,
        changed=True,
        status=acknowledged.status.value,
        acknowledged_at=acknowledged.acknowledged_at,
    )


@router.post("/{emergency_id}/dismiss", response_model=OperatorActionResponse)
async def dismiss_emergency(
    emergency_id: str,
    engine: AlertEngineDep,
) -> OperatorActionResponse:
    """Dismiss an emergency as a false alarm.

    Works for ACTIVE and ACKNOWLEDGED emergencies. Unknown ids are a
    no-op (``changed`` is False).
    """
    dismissed = await engine.dismiss(emergency_id)
    if dismissed is None:
        return OperatorActionResponse(id=emergency_id, changed=False)

    return OperatorActionResponse(
        id=emergency_id,
        changed=True,
        status=dismissed.status.value,
    )
