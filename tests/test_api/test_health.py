"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

import pytest


class TestHealthEndpoints:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "clinic-desk"

    @pytest.mark.asyncio
    async def test_liveness(self, client):
        response = await client.get("/health/live")
        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    @pytest.mark.asyncio
    async def test_readiness_ready(self, client):
        with patch("clinic_desk.api.routes.health.ping_db", AsyncMock(return_value=True)):
            response = await client.get("/health/ready")
        assert response.json()["status"] == "ready"

    @pytest.mark.asyncio
    async def test_readiness_database_down(self, client):
        with patch("clinic_desk.api.routes.health.ping_db", AsyncMock(return_value=False)):
            response = await client.get("/health/ready")
        data = response.json()
        assert data["status"] == "not_ready"
        assert "Database unavailable" in data["errors"]

    @pytest.mark.asyncio
    async def test_process_time_header(self, client):
        response = await client.get("/health")
        assert "x-process-time" in response.headers
