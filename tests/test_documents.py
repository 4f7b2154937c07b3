"""Tests for /api/v1/documents."""
import pytest
from httpx import AsyncClient

from tests.conftest import AUTH_HEADERS, create_document

BASE = "/api/v1/documents"


@pytest.mark.asyncio
async def test_create_document_defaults_to_draft(client: AsyncClient):
    data = await create_document(client, project_name="Apollo")
    assert data["status"] == "draft"
    assert data["format"] == "markdown"
    assert data["project_name"] == "Apollo"


@pytest.mark.asyncio
async def test_create_document_requires_title(client: AsyncClient):
    resp = await client.post(BASE, json={"content": "x"}, headers=AUTH_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_create_document_with_unknown_template_returns_400(client: AsyncClient):
    resp = await client.post(
        BASE, json={"title": "Doc", "template_id": 424242}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_list_documents_filters(client: AsyncClient):
    await create_document(client, category="risk-management", project_name="Apollo")
    await create_document(client, title="Charter", category="project-charter")

    resp = await client.get(BASE, params={"category": "risk-management"}, headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert [d["title"] for d in resp.json()] == ["Risk Register"]

    resp = await client.get(BASE, params={"status": "draft"}, headers=AUTH_HEADERS)
    assert len(resp.json()) == 2

    resp = await client.get(BASE, params={"status": "approved"}, headers=AUTH_HEADERS)
    assert resp.json() == []


@pytest.mark.asyncio
async def test_list_documents_rejects_unknown_status(client: AsyncClient):
    resp = await client.get(BASE, params={"status": "bogus"}, headers=AUTH_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_update_document(client: AsyncClient):
    doc = await create_document(client)
    resp = await client.put(
        f"{BASE}/{doc['id']}",
        json={"content": "# Risks\n\nUpdated", "status": "published"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["content"].endswith("Updated")
    assert data["status"] == "published"
    assert data["title"] == "Risk Register"


@pytest.mark.asyncio
async def test_delete_document(client: AsyncClient):
    doc = await create_document(client)

    resp = await client.delete(f"{BASE}/{doc['id']}", headers=AUTH_HEADERS)
    assert resp.status_code == 204

    resp = await client.get(f"{BASE}/{doc['id']}", headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_document_not_found(client: AsyncClient):
    resp = await client.get(f"{BASE}/999999", headers=AUTH_HEADERS)
    assert resp.status_code == 404
