"""
Authentication dependencies for FastAPI routes.

Every /api/v1 router except health is mounted with ``require_api_token``.
Clients send ``Authorization: Bearer <token>``; valid tokens come from the
comma-separated API_TOKENS setting.
"""
from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from app.config import settings

logger = logging.getLogger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_api_token(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> str:
    """Validate the bearer token on the request. Raises 401 if missing or unknown."""
    if not authorization:
        raise _unauthorized("Missing Authorization header.")

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Authorization header must be 'Bearer <token>'.")

    for candidate in settings.get_api_tokens():
        if secrets.compare_digest(token.encode("utf-8"), candidate.encode("utf-8")):
            return token

    logger.warning("Rejected request with unknown API token")
    raise _unauthorized("Invalid API token.")
