"""Tests for /api/v1/document-generation."""
import copy
from pathlib import Path

import pytest
from httpx import AsyncClient

from app.errors import AIProviderError
from app.main import app
from app.routers.document_generation import get_ai_client
from app.services.job_manager import job_manager
from tests.conftest import AUTH_HEADERS, TEMPLATE_PAYLOAD, FakeAIClient

BASE = "/api/v1/document-generation"


class FailingAIClient(FakeAIClient):
    async def complete(self, system_prompt, user_prompt, max_tokens=None):
        self.calls.append((system_prompt, user_prompt))
        raise AIProviderError("github-ai returned HTTP 500: boom", provider="github-ai", status_code=500)


async def _create_template(client: AsyncClient, **overrides) -> dict:
    payload = copy.deepcopy(TEMPLATE_PAYLOAD)
    payload.update(overrides)
    resp = await client.post("/api/v1/templates", json=payload, headers=AUTH_HEADERS)
    assert resp.status_code == 201, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_tasks(client: AsyncClient):
    resp = await client.get(f"{BASE}/tasks", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    tasks = resp.json()
    assert len(tasks) == 22
    assert tasks[0]["key"] == "mission-vision-core-values"


@pytest.mark.asyncio
async def test_list_tasks_by_category(client: AsyncClient):
    resp = await client.get(f"{BASE}/tasks", params={"category": "risk-management"}, headers=AUTH_HEADERS)
    assert [t["key"] for t in resp.json()] == [
        "risk-management-plan",
        "risk-register",
        "risk-compliance-assessment",
    ]


@pytest.mark.asyncio
async def test_list_categories(client: AsyncClient):
    resp = await client.get(f"{BASE}/categories", headers=AUTH_HEADERS)
    assert "stakeholder-management" in resp.json()
    assert len(resp.json()) == 8


# ---------------------------------------------------------------------------
# Background jobs
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_generate_job_completes_and_persists(client: AsyncClient, fake_ai: FakeAIClient):
    resp = await client.post(
        f"{BASE}/generate",
        json={
            "context": "Apollo replaces the billing platform.",
            "document_keys": ["project-charter", "business-case"],
            "project_name": "Apollo",
        },
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 202
    job_id = resp.json()["job_id"]
    assert resp.json()["phase"] in ("queued", "running")

    await job_manager.wait(job_id)

    resp = await client.get(f"{BASE}/jobs/{job_id}", headers=AUTH_HEADERS)
    assert resp.status_code == 200
    job = resp.json()
    assert job["phase"] == "completed"
    assert job["total_documents"] == 2
    assert job["documents_completed"] == 2
    assert job["documents_failed"] == 0
    assert len(job["document_ids"]) == 2
    assert all(Path(p).exists() for p in job["generated_files"])
    assert len(fake_ai.calls) == 2
    assert "Apollo replaces the billing platform." in fake_ai.calls[0][1]

    resp = await client.get("/api/v1/documents", params={"project_name": "Apollo"}, headers=AUTH_HEADERS)
    docs = resp.json()
    assert {d["document_key"] for d in docs} == {"project-charter", "business-case"}
    assert all(d["metadata_json"]["job_id"] == job_id for d in docs)


@pytest.mark.asyncio
async def test_generate_job_without_persist(client: AsyncClient):
    resp = await client.post(
        f"{BASE}/generate",
        json={"context": "ctx", "document_keys": ["project-purpose"], "persist": False},
        headers=AUTH_HEADERS,
    )
    job = await job_manager.wait(resp.json()["job_id"])
    assert job.phase.value == "completed"
    assert job.document_ids == []
    assert len(job.generated_files) == 1


@pytest.mark.asyncio
async def test_generate_job_fails_when_every_document_fails(client: AsyncClient):
    app.dependency_overrides[get_ai_client] = lambda: FailingAIClient()

    resp = await client.post(
        f"{BASE}/generate",
        json={"context": "ctx", "document_keys": ["project-charter"], "retries": 0},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 202
    job = await job_manager.wait(resp.json()["job_id"])

    assert job.phase.value == "failed"
    assert job.documents_failed == 1
    assert "project-charter" in job.errors[0]


@pytest.mark.asyncio
async def test_generate_rejects_unknown_keys(client: AsyncClient):
    resp = await client.post(
        f"{BASE}/generate", json={"context": "ctx", "document_keys": ["nope"]}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 400
    assert "nope" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_generate_rejects_unknown_categories(client: AsyncClient):
    resp = await client.post(
        f"{BASE}/generate", json={"context": "ctx", "categories": ["nope"]}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_generate_requires_context(client: AsyncClient):
    resp = await client.post(f"{BASE}/generate", json={"context": ""}, headers=AUTH_HEADERS)
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_unknown_job_returns_404(client: AsyncClient):
    resp = await client.get(f"{BASE}/jobs/does-not-exist", headers=AUTH_HEADERS)
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_unconfigured_provider_returns_503(client: AsyncClient):
    app.dependency_overrides.pop(get_ai_client)
    resp = await client.post(f"{BASE}/generate", json={"context": "ctx"}, headers=AUTH_HEADERS)
    assert resp.status_code == 503
    assert "GITHUB_TOKEN" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# Template generation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_generate_from_template(client: AsyncClient, fake_ai: FakeAIClient):
    template = await _create_template(client)

    resp = await client.post(
        f"{BASE}/templates/{template['id']}/generate",
        json={"context": "Billing replacement", "variables": {"project_name": "Apollo"}},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 201, resp.text
    doc = resp.json()
    assert doc["template_id"] == template["id"]
    assert doc["document_key"] == "project-charter"
    assert doc["content"] == "## Overview\n\nGenerated."

    system_prompt, user_prompt = fake_ai.calls[0]
    assert "Write a concise charter." in system_prompt
    assert "# Apollo Charter" in user_prompt
    assert "Sponsor: TBD" in user_prompt
    assert "{{budget}}" in user_prompt


@pytest.mark.asyncio
async def test_generate_from_template_missing_required_variable(client: AsyncClient, fake_ai: FakeAIClient):
    template = await _create_template(client)

    resp = await client.post(
        f"{BASE}/templates/{template['id']}/generate", json={}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 400
    assert "project_name" in resp.json()["detail"]
    assert fake_ai.calls == []


@pytest.mark.asyncio
async def test_generate_from_inactive_template_returns_400(client: AsyncClient):
    template = await _create_template(client, is_active=False)
    resp = await client.post(
        f"{BASE}/templates/{template['id']}/generate",
        json={"variables": {"project_name": "Apollo"}},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_generate_from_template_provider_failure_returns_502(client: AsyncClient):
    failing = FailingAIClient()
    app.dependency_overrides[get_ai_client] = lambda: failing
    template = await _create_template(client)

    resp = await client.post(
        f"{BASE}/templates/{template['id']}/generate",
        json={"variables": {"project_name": "Apollo"}, "retries": 1},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 502
    assert resp.json()["detail"].startswith(
        "AI provider failed for template:Project Charter after 2 attempt(s)"
    )
    assert len(failing.calls) == 2


@pytest.mark.asyncio
async def test_generate_from_missing_template_returns_404(client: AsyncClient):
    resp = await client.post(f"{BASE}/templates/999999/generate", json={}, headers=AUTH_HEADERS)
    assert resp.status_code == 404
