"""Health check endpoints for container orchestration."""

from typing import Any

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse

from hazardwatch.config import settings
from hazardwatch.database import check_database_connection

router = APIRouter(tags=["Health"])


async def _database_status() -> str:
    if not settings.persistence_enabled:
        return "disabled"
    if await check_database_connection():
        return "connected"
    return "disconnected"


def _engine_status(request: Request) -> dict[str, Any]:
    engine = getattr(request.app.state, "alert_engine", None)
    if engine is None:
        return {"running": False}
    return {
        "running": engine.scheduler.running,
        "active_emergencies": len(engine.active),
        "armed_timers": engine.scheduler.armed_count,
    }


@router.get("/health", response_model=None)
async def health_check(request: Request) -> Response:
    """
    Health check endpoint with database and engine status.

    Returns:
        {"status": "healthy", ...} when all systems operational
        {"status": "degraded", ...} when the database is unavailable

    A disabled database (memory-only persistence) counts as healthy.
    """
    database = await _database_status()
    content = {
        "status": "healthy" if database != "disconnected" else "degraded",
        "database": database,
        "engine": _engine_status(request),
    }

    if database == "disconnected":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=content,
        )
    return JSONResponse(status_code=status.HTTP_200_OK, content=content)


@router.get("/health/live")
async def liveness_probe() -> dict[str, Any]:
    """
    Kubernetes liveness probe.

    Returns success if the application process is running.
    This should NOT check external dependencies like databases.
    """
    return {"status": "alive"}


@router.get("/health/ready", response_model=None)
async def readiness_probe(request: Request) -> Response:
    """
    Kubernetes readiness probe.

    Ready once the alert engine is running and, when persistence is
    enabled, the database is reachable.
    """
    database = await _database_status()
    engine = _engine_status(request)
    ready = engine["running"] and database != "disconnected"

    return JSONResponse(
        status_code=(
            status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE
        ),
        content={
            "status": "ready" if ready else "not_ready",
            "database": database,
            "engine": engine["running"],
        },
    )
