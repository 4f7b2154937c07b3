"""
Shared fixtures for ADPA backend tests.

Runs against SQLite (aiosqlite) by default; set TEST_DATABASE_URL to point at
a PostgreSQL test database instead.  Tables are created per test and every
row is deleted afterwards so each test starts clean.
"""
from __future__ import annotations

import os
import tempfile
from typing import AsyncGenerator, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Override settings *before* any app module is imported, so that
# settings.DATABASE_URL and the global engine point at the test DB.
_TMP_DIR = tempfile.mkdtemp(prefix="adpa-tests-")
TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'adpa_test.db')}",
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["API_TOKENS"] = "test-token,second-token"
os.environ["AI_PROVIDER"] = "github-ai"
os.environ["GITHUB_TOKEN"] = ""
os.environ["OUTPUT_DIR"] = os.path.join(_TMP_DIR, "generated-documents")
os.environ["GENERATION_DELAY_BETWEEN_CALLS"] = "0"
os.environ["GENERATION_RETRY_BACKOFF_MS"] = "0"
os.environ["GENERATION_RETRY_MAX_DELAY_MS"] = "0"

from app.database import Base, get_db, get_session_factory  # noqa: E402
from app.main import app  # noqa: E402
from app.models import database_models  # noqa: E402,F401
from app.routers.document_generation import get_ai_client  # noqa: E402


# ---------------------------------------------------------------------------
# Fake AI provider
# ---------------------------------------------------------------------------

class FakeAIClient:
    """
    Stand-in for AIProviderClient.

    Pops queued responses in order (an Exception instance is raised instead
    of returned), then falls back to ``default``.
    """

    def __init__(self, responses: Optional[list] = None, default: str = "## Overview\n\nGenerated.") -> None:
        self.responses = list(responses or [])
        self.default = default
        self.calls: List[Tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_prompt: str, max_tokens=None) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return self.default


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Delete all rows after the test, children first
    async with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a DB session for each test."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@pytest.fixture
def fake_ai() -> FakeAIClient:
    return FakeAIClient()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    session_factory: async_sessionmaker,
    fake_ai: FakeAIClient,
) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB session, the
    background-job session factory and the AI provider overridden.
    """

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_ai_client] = lambda: fake_ai

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

AUTH_HEADERS = {"Authorization": "Bearer test-token"}

TEMPLATE_PAYLOAD = {
    "name": "Project Charter",
    "description": "Charter skeleton",
    "category": "project-charter",
    "tags": ["pmbok", "initiation"],
    "template_data": {
        "content": "# {{project_name}} Charter\n\nSponsor: {{sponsor}}\n\nBudget: {{budget}}",
        "ai_instructions": "Write a concise charter.",
        "variables": [
            {"name": "project_name", "required": True},
            {"name": "sponsor", "default": "TBD"},
            {"name": "budget"},
        ],
    },
}


async def create_document(client: AsyncClient, **overrides) -> dict:
    payload = {"title": "Risk Register", "document_key": "risk-register", "content": "# Risks"}
    payload.update(overrides)
    resp = await client.post("/api/v1/documents", json=payload, headers=AUTH_HEADERS)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def create_reviewer(client: AsyncClient, **overrides) -> dict:
    payload = {"name": "Dana Reviewer", "email": "dana@example.com", "expertise": ["Risk"]}
    payload.update(overrides)
    resp = await client.post("/api/v1/reviewers", json=payload, headers=AUTH_HEADERS)
    assert resp.status_code == 201, resp.text
    return resp.json()


COMPLIANT_CHARTER = "\n".join(
    [
        "# Project Charter",
        "",
        "## Project Purpose",
        "The project purpose is to replace the legacy billing platform.",
        "",
        "## Measurable Objectives",
        "- Cut invoice errors by 50% before the first milestone",
        "- Deliver each deliverable against the schedule baseline",
        "- Track work performance data weekly",
        "",
        "## High-Level Requirements",
        "Requirements are captured in the work breakdown structure and every work package.",
        "",
        "## Assumptions and Constraints",
        "Assumptions and constraints are reviewed by each stakeholder through change control.",
        "",
        "## Project Approval Requirements",
        "The sponsor signs off; every change request is logged in the risk register.",
        "",
    ]
    + ["The team reviews progress, scope and budget with the sponsor every week."] * 30
)
