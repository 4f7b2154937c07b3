"""Tests for application-level error envelopes."""
import json

import pytest
from starlette.requests import Request

from app.main import ENDPOINTS, global_exception_handler


def _request(path: str = "/api/v1/documents") -> Request:
    return Request(
        {"type": "http", "method": "GET", "path": path, "headers": [], "query_string": b""}
    )


@pytest.mark.asyncio
async def test_unhandled_exception_returns_json_500():
    response = await global_exception_handler(_request(), RuntimeError("boom"))

    assert response.status_code == 500
    body = json.loads(response.body)
    assert body["error"] == "Internal Server Error"
    assert body["message"] == "boom"
    assert body["path"] == "/api/v1/documents"
    assert "timestamp" in body


def test_endpoint_map_uses_version_prefix():
    assert all(path.startswith("/api/v1/") for path in ENDPOINTS.values())
    assert ENDPOINTS["documentGeneration"] == "/api/v1/document-generation"
