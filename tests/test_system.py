"""Smoke tests for system routes."""

import pytest


@pytest.mark.asyncio
async def test_root(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "Storefront API running"}


@pytest.mark.asyncio
async def test_health_reports_collaborators(client):
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["redis"] == "connected"
    assert data["database"] in {"connected", "disconnected"}
