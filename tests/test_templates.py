"""Tests for /api/v1/templates."""
import copy

import pytest
from httpx import AsyncClient

from tests.conftest import AUTH_HEADERS, TEMPLATE_PAYLOAD

BASE = "/api/v1/templates"


async def _create(client: AsyncClient, **overrides) -> dict:
    payload = copy.deepcopy(TEMPLATE_PAYLOAD)
    payload.update(overrides)
    resp = await client.post(BASE, json=payload, headers=AUTH_HEADERS)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_create_template(client: AsyncClient):
    data = await _create(client)
    assert data["name"] == "Project Charter"
    assert data["is_active"] is True
    assert data["template_data"]["variables"][0]["name"] == "project_name"
    assert "id" in data


@pytest.mark.asyncio
async def test_create_template_requires_name(client: AsyncClient):
    payload = copy.deepcopy(TEMPLATE_PAYLOAD)
    del payload["name"]
    resp = await client.post(BASE, json=payload, headers=AUTH_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_create_template_requires_content(client: AsyncClient):
    payload = copy.deepcopy(TEMPLATE_PAYLOAD)
    payload["template_data"]["content"] = ""
    resp = await client.post(BASE, json=payload, headers=AUTH_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_list_templates_filters_by_category_and_search(client: AsyncClient):
    await _create(client)
    await _create(client, name="Risk Plan", category="risk-management", description="risks")

    resp = await client.get(BASE, params={"category": "risk-management"}, headers=AUTH_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 1
    assert data["templates"][0]["name"] == "Risk Plan"

    resp = await client.get(BASE, params={"search": "charter"}, headers=AUTH_HEADERS)
    assert [t["name"] for t in resp.json()["templates"]] == ["Project Charter"]


@pytest.mark.asyncio
async def test_list_templates_paginates(client: AsyncClient):
    for i in range(3):
        await _create(client, name=f"Template {i}")

    resp = await client.get(BASE, params={"skip": 1, "limit": 1}, headers=AUTH_HEADERS)
    data = resp.json()
    assert data["total"] == 3
    assert data["skip"] == 1
    assert data["limit"] == 1
    assert len(data["templates"]) == 1


@pytest.mark.asyncio
async def test_get_template_not_found(client: AsyncClient):
    resp = await client.get(f"{BASE}/999999", headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_update_template_partial(client: AsyncClient):
    created = await _create(client)
    resp = await client.put(
        f"{BASE}/{created['id']}",
        json={"description": "Updated", "tags": ["charter"]},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["description"] == "Updated"
    assert data["tags"] == ["charter"]
    assert data["name"] == "Project Charter"


@pytest.mark.asyncio
async def test_soft_delete_hides_template_from_listing(client: AsyncClient):
    created = await _create(client)

    resp = await client.delete(f"{BASE}/{created['id']}", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False

    resp = await client.get(BASE, headers=AUTH_HEADERS)
    assert resp.json()["total"] == 0

    resp = await client.get(BASE, params={"is_active": "false"}, headers=AUTH_HEADERS)
    assert resp.json()["total"] == 1

    await _create(client, name="Kickoff Agenda")
    resp = await client.get(BASE, params={"include_inactive": "true"}, headers=AUTH_HEADERS)
    assert {t["name"] for t in resp.json()["templates"]} == {"Project Charter", "Kickoff Agenda"}

    # Still retrievable directly
    resp = await client.get(f"{BASE}/{created['id']}", headers=AUTH_HEADERS)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_permanent_delete(client: AsyncClient):
    created = await _create(client)

    resp = await client.delete(f"{BASE}/{created['id']}/permanent", headers=AUTH_HEADERS)
    assert resp.status_code == 204

    resp = await client.get(f"{BASE}/{created['id']}", headers=AUTH_HEADERS)
    assert resp.status_code == 404
