"""
Health check endpoint.  Public: no bearer token required.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.config import APP_VERSION
from app.database import get_db, ping
from app.errors import ConfigurationError
from app.models.schemas import HealthCheckResponse
from app.services.ai_provider import AIProviderClient, get_provider_metrics
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint to verify system status.

    Returns:
        HealthCheckResponse with status of database and AI provider
    """
    db_status = "ok" if await ping(db) else "error"

    # AI provider is informational; a missing provider does not make us unhealthy
    try:
        ai_status = await AIProviderClient().check_health()
    except ConfigurationError as e:
        logger.warning("⚠ AI provider misconfigured: %s", e)
        ai_status = "not_configured"

    overall_status = "healthy" if db_status == "ok" else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        database=db_status,
        ai_provider=ai_status,
        version=APP_VERSION,
        timestamp=utcnow(),
        provider_metrics=get_provider_metrics(),
    )
