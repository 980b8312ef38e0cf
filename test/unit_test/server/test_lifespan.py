"""
Unit tests for FastAPI application lifespan management.

Tests verify that startup checks the database connection and that a failing
database does not prevent the application from starting.
"""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI

from kublade.server.main import lifespan

pytestmark = pytest.mark.asyncio


class TestLifespanStartup:
    """Test application startup lifespan events."""

    async def test_lifespan_startup_initializes_database(self):
        with patch("kublade.server.main.init_db", new_callable=AsyncMock) as mock_init_db:
            async with lifespan(FastAPI()):
                mock_init_db.assert_awaited_once()

    async def test_lifespan_survives_database_failure(self):
        with (
            patch("kublade.server.main.init_db", new_callable=AsyncMock, side_effect=ConnectionError("refused")),
            patch("kublade.server.main.logger") as mock_logger,
        ):
            async with lifespan(FastAPI()):
                pass

        mock_logger.error.assert_called_once()
        assert "Database initialization failed" in mock_logger.error.call_args[0][0]

    async def test_lifespan_logs_shutdown(self):
        with (
            patch("kublade.server.main.init_db", new_callable=AsyncMock),
            patch("kublade.server.main.logger") as mock_logger,
        ):
            async with lifespan(FastAPI()):
                pass

        assert "Shutting down Kublade API..." in [c.args[0] for c in mock_logger.info.call_args_list]


async def test_init_db_checks_connection():
    """The configured test database answers the startup check."""
    from kublade.core.database import init_db

    await init_db()
