"""HazardWatch FastAPI Application."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hazardwatch.config import settings
from hazardwatch.database import close_database
from hazardwatch.logging_config import get_logger, setup_logging
from hazardwatch.routers import emergencies, feed, health, notification_settings
from hazardwatch.services.alert_engine import AlertEngine

setup_logging(
    log_format=settings.log_format,
    log_level=settings.log_level,
    service_name=settings.service_name,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    # Note: migrations are applied with `alembic upgrade head` before uvicorn starts
    engine = AlertEngine.from_config(settings)
    await engine.start()
    app.state.alert_engine = engine
    logger.info(
        "HazardWatch API started",
        persistence_enabled=settings.persistence_enabled,
        escalation_delay_seconds=settings.escalation_delay_seconds,
    )

    yield

    # Shutdown
    logger.info("Shutting down HazardWatch API...")
    await engine.shutdown()
    await close_database()
    logger.info("HazardWatch API shutdown complete")


app = FastAPI(
    title="HazardWatch API",
    description="Hazard alert escalation engine",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(feed.router)
app.include_router(emergencies.router)
app.include_router(notification_settings.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint."""
    return {
        "name": "HazardWatch API",
        "version": "0.1.0",
        "docs": "/docs",
    }
