"""Tests for /api/v1/reviewers."""
import pytest
from httpx import AsyncClient

from tests.conftest import AUTH_HEADERS, create_document, create_reviewer

BASE = "/api/v1/reviewers"


@pytest.mark.asyncio
async def test_create_reviewer(client: AsyncClient):
    data = await create_reviewer(client)
    assert data["email"] == "dana@example.com"
    assert data["max_concurrent_reviews"] == 3
    assert data["is_active"] is True


@pytest.mark.asyncio
async def test_duplicate_email_returns_409(client: AsyncClient):
    await create_reviewer(client)
    resp = await client.post(
        BASE, json={"name": "Other", "email": "dana@example.com"}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_invalid_email_returns_422(client: AsyncClient):
    resp = await client.post(BASE, json={"name": "X", "email": "not-an-email"}, headers=AUTH_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_filters_by_expertise_case_insensitively(client: AsyncClient):
    await create_reviewer(client)
    await create_reviewer(client, name="Eli", email="eli@example.com", expertise=["Finance"])

    resp = await client.get(BASE, params={"expertise": "risk"}, headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert [r["name"] for r in resp.json()] == ["Dana Reviewer"]


@pytest.mark.asyncio
async def test_list_filters_by_active(client: AsyncClient):
    await create_reviewer(client)
    await create_reviewer(client, name="Fay", email="fay@example.com", is_active=False)

    resp = await client.get(BASE, params={"is_active": "false"}, headers=AUTH_HEADERS)
    assert [r["name"] for r in resp.json()] == ["Fay"]


@pytest.mark.asyncio
async def test_update_reviewer(client: AsyncClient):
    reviewer = await create_reviewer(client)
    resp = await client.put(
        f"{BASE}/{reviewer['id']}",
        json={"max_concurrent_reviews": 5, "role": "Architect"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json()["max_concurrent_reviews"] == 5
    assert resp.json()["role"] == "Architect"


@pytest.mark.asyncio
async def test_workload_counts_open_reviews(client: AsyncClient):
    reviewer = await create_reviewer(client, max_concurrent_reviews=2)
    doc = await create_document(client)
    resp = await client.post(
        "/api/v1/reviews",
        json={"document_id": doc["id"], "reviewer_id": reviewer["id"]},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 201

    resp = await client.get(f"{BASE}/{reviewer['id']}/workload", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["open_reviews"] == 1
    assert data["completed_reviews"] == 0
    assert data["available_capacity"] == 1


@pytest.mark.asyncio
async def test_get_reviewer_not_found(client: AsyncClient):
    resp = await client.get(f"{BASE}/999999", headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_reviewer(client: AsyncClient):
    reviewer = await create_reviewer(client)
    resp = await client.delete(f"{BASE}/{reviewer['id']}", headers=AUTH_HEADERS)
    assert resp.status_code == 204
    resp = await client.get(f"{BASE}/{reviewer['id']}", headers=AUTH_HEADERS)
    assert resp.status_code == 404
