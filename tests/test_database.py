"""Tests for the database module."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.pool import NullPool

from hazardwatch import database
from hazardwatch.config import settings
from hazardwatch.database import check_database_connection, close_database


def connecting_engine(conn: AsyncMock) -> MagicMock:
    connect = AsyncMock()
    connect.__aenter__ = AsyncMock(return_value=conn)
    connect.__aexit__ = AsyncMock(return_value=None)
    engine = MagicMock()
    engine.connect.return_value = connect
    return engine


class TestConnectivityCheck:
    """Tests for check_database_connection."""

    @pytest.mark.asyncio
    async def test_true_when_select_succeeds(self):
        conn = AsyncMock()

        with patch(
            "hazardwatch.database.get_engine",
            return_value=connecting_engine(conn),
        ):
            assert await check_database_connection() is True

        conn.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_false_when_connect_fails(self):
        engine = MagicMock()
        engine.connect.side_effect = OSError("Connection refused")

        with patch("hazardwatch.database.get_engine", return_value=engine):
            assert await check_database_connection() is False


class TestEngineOptions:
    """Tests for pool configuration."""

    def test_testing_uses_null_pool(self):
        with patch.object(settings, "testing", True):
            assert database._engine_options() == {"poolclass": NullPool}

    def test_pool_sizes_come_from_settings(self):
        with (
            patch.object(settings, "testing", False),
            patch.object(settings, "db_pool_size", 3),
            patch.object(settings, "db_max_overflow", 7),
        ):
            options = database._engine_options()

        assert options["pool_size"] == 3
        assert options["max_overflow"] == 7
        assert options["pool_pre_ping"] is True


class TestCloseDatabase:
    """Tests for close_database."""

    @pytest.mark.asyncio
    async def test_disposes_and_resets_engine(self):
        engine = MagicMock()
        engine.dispose = AsyncMock()

        with (
            patch.object(database, "_engine", engine),
            patch.object(database, "_sessions", MagicMock()),
        ):
            await close_database()

            assert database._engine is None
            assert database._sessions is None

        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_noop_without_engine(self):
        with patch.object(database, "_engine", None):
            await close_database()

            assert database._engine is None
