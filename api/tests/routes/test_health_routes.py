"""Tests for health check routes."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from core.database import ConnectionCache
from core.logger import SERVICE_NAME


@pytest.mark.unit
class TestHealthEndpoint:
    """Tests for GET /health."""

    async def test_health_returns_healthy(self, client: AsyncClient, app: FastAPI):
        cache = MagicMock(spec=ConnectionCache)
        app.state.connection_cache = cache

        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": SERVICE_NAME}
        cache.get_connection.assert_not_called()

    async def test_response_carries_request_id(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.headers["x-request-id"]
        assert "x-request-duration-ms" in response.headers


@pytest.mark.unit
class TestReadyEndpoint:
    """Tests for GET /ready."""

    async def test_ready_when_database_reachable(self, client: AsyncClient):
        response = await client.get("/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready", "service": SERVICE_NAME}

    async def test_503_when_database_unreachable(
        self, client: AsyncClient, app: FastAPI
    ):
        cache = MagicMock(spec=ConnectionCache)
        cache.check_connection = AsyncMock(return_value=False)
        app.state.connection_cache = cache

        response = await client.get("/ready")

        assert response.status_code == 503
        assert response.json() == {"message": "Database unavailable"}
