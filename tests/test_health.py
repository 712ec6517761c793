"""
Health endpoint tests - fast feedback on API availability.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    """GET /api/health returns 200 and status ok."""
    response = await client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_health_needs_no_credentials(client: AsyncClient):
    response = await client.get("/api/health", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 200
