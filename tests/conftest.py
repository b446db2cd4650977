"""Pytest configuration and shared fixtures.

Tests never touch a real database: engines use MemorySink and the fake
channels from tests/fakes.py.
"""

import os
from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set testing mode BEFORE importing app to use NullPool
os.environ["TESTING"] = "true"
os.environ["PERSISTENCE_ENABLED"] = "false"

from hazardwatch.config import settings

# Override settings for testing
settings.testing = True
settings.persistence_enabled = False

from hazardwatch.main import app
from hazardwatch.services.alert_engine import AlertEngine
from tests.fakes import build_engine


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AlertEngine, None]:
    """A started engine; shut down after the test."""
    alert_engine = build_engine()
    await alert_engine.start()
    yield alert_engine
    await alert_engine.shutdown()


@pytest_asyncio.fixture
async def client(engine: AlertEngine) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client bound to the test engine.

    ASGITransport does not run the lifespan, so the engine is attached
    to app state here.
    """
    app.state.alert_engine = engine
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    del app.state.alert_engine
