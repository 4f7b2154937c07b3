"""Tests for the /api/v1/reviews workflow."""
import pytest
from httpx import AsyncClient

from tests.conftest import AUTH_HEADERS, create_document, create_reviewer

BASE = "/api/v1/reviews"


async def _create_review(client: AsyncClient, document_id: int, reviewer_id=None) -> dict:
    body = {"document_id": document_id}
    if reviewer_id is not None:
        body["reviewer_id"] = reviewer_id
    resp = await client.post(BASE, json=body, headers=AUTH_HEADERS)
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_create_review_moves_document_in_review(client: AsyncClient):
    doc = await create_document(client)
    review = await _create_review(client, doc["id"])
    assert review["status"] == "pending"
    assert review["reviewer_id"] is None

    resp = await client.get(f"/api/v1/documents/{doc['id']}", headers=AUTH_HEADERS)
    assert resp.json()["status"] == "in_review"


@pytest.mark.asyncio
async def test_create_review_for_missing_document_returns_404(client: AsyncClient):
    resp = await client.post(BASE, json={"document_id": 999999}, headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_approving_review_approves_document(client: AsyncClient):
    doc = await create_document(client)
    review = await _create_review(client, doc["id"])

    resp = await client.put(
        f"{BASE}/{review['id']}/status",
        json={"status": "approved", "comments": "Looks good"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"
    assert resp.json()["comments"] == "Looks good"

    resp = await client.get(f"/api/v1/documents/{doc['id']}", headers=AUTH_HEADERS)
    assert resp.json()["status"] == "approved"


@pytest.mark.asyncio
async def test_rejecting_review_rejects_document(client: AsyncClient):
    doc = await create_document(client)
    review = await _create_review(client, doc["id"])

    await client.put(f"{BASE}/{review['id']}/status", json={"status": "rejected"}, headers=AUTH_HEADERS)

    resp = await client.get(f"/api/v1/documents/{doc['id']}", headers=AUTH_HEADERS)
    assert resp.json()["status"] == "rejected"


@pytest.mark.asyncio
async def test_changes_requested_leaves_document_in_review(client: AsyncClient):
    doc = await create_document(client)
    review = await _create_review(client, doc["id"])

    await client.put(
        f"{BASE}/{review['id']}/status", json={"status": "changes_requested"}, headers=AUTH_HEADERS
    )

    resp = await client.get(f"/api/v1/documents/{doc['id']}", headers=AUTH_HEADERS)
    assert resp.json()["status"] == "in_review"


@pytest.mark.asyncio
async def test_assign_respects_reviewer_capacity(client: AsyncClient):
    reviewer = await create_reviewer(client, max_concurrent_reviews=1)
    first = await create_document(client, title="First")
    second = await create_document(client, title="Second")

    await _create_review(client, first["id"], reviewer_id=reviewer["id"])
    review = await _create_review(client, second["id"])

    resp = await client.put(
        f"{BASE}/{review['id']}/assign", json={"reviewer_id": reviewer["id"]}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_create_review_with_reviewer_at_capacity_returns_409(client: AsyncClient):
    reviewer = await create_reviewer(client, max_concurrent_reviews=1)
    doc = await create_document(client)
    await _create_review(client, doc["id"], reviewer_id=reviewer["id"])

    resp = await client.post(
        BASE, json={"document_id": doc["id"], "reviewer_id": reviewer["id"]}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_completed_reviews_free_capacity(client: AsyncClient):
    reviewer = await create_reviewer(client, max_concurrent_reviews=1)
    doc = await create_document(client)
    first = await _create_review(client, doc["id"], reviewer_id=reviewer["id"])
    await client.put(f"{BASE}/{first['id']}/status", json={"status": "approved"}, headers=AUTH_HEADERS)

    second = await _create_review(client, doc["id"])
    resp = await client.put(
        f"{BASE}/{second['id']}/assign", json={"reviewer_id": reviewer["id"]}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 200
    assert resp.json()["reviewer_id"] == reviewer["id"]


@pytest.mark.asyncio
async def test_assign_inactive_reviewer_returns_400(client: AsyncClient):
    reviewer = await create_reviewer(client, is_active=False)
    doc = await create_document(client)
    review = await _create_review(client, doc["id"])

    resp = await client.put(
        f"{BASE}/{review['id']}/assign", json={"reviewer_id": reviewer["id"]}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_feedback_appends_comments_and_starts_review(client: AsyncClient):
    doc = await create_document(client)
    review = await _create_review(client, doc["id"])

    resp = await client.post(
        f"{BASE}/{review['id']}/feedback",
        json={"comments": "Add mitigation owners", "rating": 3},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "in_progress"
    assert data["rating"] == 3

    resp = await client.post(
        f"{BASE}/{review['id']}/feedback", json={"comments": "Second pass"}, headers=AUTH_HEADERS
    )
    assert resp.json()["comments"] == "Add mitigation owners\n\nSecond pass"
    assert resp.json()["rating"] == 3


@pytest.mark.asyncio
async def test_list_reviews_by_status(client: AsyncClient):
    doc = await create_document(client)
    review = await _create_review(client, doc["id"])
    await _create_review(client, doc["id"])
    await client.put(f"{BASE}/{review['id']}/status", json={"status": "approved"}, headers=AUTH_HEADERS)

    resp = await client.get(BASE, params={"status": "pending"}, headers=AUTH_HEADERS)
    assert len(resp.json()) == 1
    resp = await client.get(BASE, params={"document_id": doc["id"]}, headers=AUTH_HEADERS)
    assert len(resp.json()) == 2


@pytest.mark.asyncio
async def test_invalid_status_returns_422(client: AsyncClient):
    doc = await create_document(client)
    review = await _create_review(client, doc["id"])
    resp = await client.put(f"{BASE}/{review['id']}/status", json={"status": "done"}, headers=AUTH_HEADERS)
    assert resp.status_code == 422
