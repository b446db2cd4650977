"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Request

from hazardwatch.services.alert_engine import AlertEngine


def get_alert_engine(request: Request) -> AlertEngine:
    """Return the engine created by the application lifespan."""
    return request.app.state.alert_engine


AlertEngineDep = Annotated[AlertEngine, Depends(get_alert_engine)]
