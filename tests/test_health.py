"""Tests for GET /api/v1/health, the root endpoint and the JSON 404 envelope."""
import pytest
from httpx import AsyncClient

from app.services import ai_provider


@pytest.mark.asyncio
async def test_health_returns_200_without_token(client: AsyncClient):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["database"] == "ok"
    assert data["ai_provider"] == "not_configured"
    assert data["version"] == "1.0.0"


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    resp = await client.get("/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "ADPA API"
    assert data["endpoints"]["templates"] == "/api/v1/templates"


@pytest.mark.asyncio
async def test_responses_carry_security_headers(client: AsyncClient):
    resp = await client.get("/api/v1/health")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["X-Process-Time"].endswith("ms")


@pytest.mark.asyncio
async def test_unknown_route_returns_json_404(client: AsyncClient):
    resp = await client.get("/api/v1/does-not-exist")
    assert resp.status_code == 404
    data = resp.json()
    assert data["error"] == "Not Found"
    assert data["message"] == "Route /api/v1/does-not-exist not found"
    assert "health" in data["availableEndpoints"]


@pytest.mark.asyncio
async def test_unknown_route_404_for_post(client: AsyncClient):
    resp = await client.post("/nowhere", json={})
    assert resp.status_code == 404
    assert resp.json()["error"] == "Not Found"


@pytest.mark.asyncio
async def test_health_reports_provider_metrics(client: AsyncClient, monkeypatch):
    metrics = ai_provider.ProviderMetrics()
    metrics.record_success(0.5)
    metrics.record_failure("rate_limit", 1.5)
    monkeypatch.setitem(ai_provider._provider_metrics, "github-ai", metrics)

    resp = await client.get("/api/v1/health")

    reported = resp.json()["provider_metrics"]["github-ai"]
    assert reported["total_calls"] == 2
    assert reported["rate_limit_hits"] == 1
    assert reported["average_response_time"] == 1.0
