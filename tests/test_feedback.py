"""Tests for /api/v1/feedback."""
import pytest
from httpx import AsyncClient

from tests.conftest import AUTH_HEADERS, create_document

BASE = "/api/v1/feedback"


async def _submit(client: AsyncClient, document_id: int, rating: int, **extra) -> dict:
    body = {"document_id": document_id, "rating": rating, **extra}
    resp = await client.post(BASE, json=body, headers=AUTH_HEADERS)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_submit_feedback(client: AsyncClient):
    doc = await create_document(client)
    data = await _submit(client, doc["id"], 4, comment="Clear", feedback_type="quality")
    assert data["rating"] == 4
    assert data["feedback_type"] == "quality"


@pytest.mark.asyncio
async def test_rating_out_of_range_returns_422(client: AsyncClient):
    doc = await create_document(client)
    resp = await client.post(BASE, json={"document_id": doc["id"], "rating": 6}, headers=AUTH_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_feedback_for_missing_document_returns_404(client: AsyncClient):
    resp = await client.post(BASE, json={"document_id": 999999, "rating": 3}, headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_list_feedback_by_document(client: AsyncClient):
    first = await create_document(client, title="First")
    second = await create_document(client, title="Second")
    await _submit(client, first["id"], 5)
    await _submit(client, second["id"], 2)

    resp = await client.get(BASE, params={"document_id": first["id"]}, headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert [f["rating"] for f in resp.json()] == [5]


@pytest.mark.asyncio
async def test_feedback_stats(client: AsyncClient):
    doc = await create_document(client)
    await _submit(client, doc["id"], 5, feedback_type="accuracy")
    await _submit(client, doc["id"], 4, feedback_type="accuracy")
    await _submit(client, doc["id"], 3)

    resp = await client.get(f"{BASE}/stats", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 3
    assert data["average_rating"] == 4.0
    assert data["by_type"] == {"accuracy": 2, "general": 1}
    assert data["by_rating"] == {"3": 1, "4": 1, "5": 1}


@pytest.mark.asyncio
async def test_feedback_stats_when_empty(client: AsyncClient):
    resp = await client.get(f"{BASE}/stats", headers=AUTH_HEADERS)
    data = resp.json()
    assert data["total"] == 0
    assert data["average_rating"] is None
