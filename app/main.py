"""
Main FastAPI application for the ADPA backend.
Handles CORS, security headers, request logging middleware, lifespan events,
router registration, and the JSON 404/500 envelopes.
"""
import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import APP_NAME, APP_VERSION, settings
from app.database import close_db, init_db
from app.dependencies.auth import require_api_token
from app.errors import ConfigurationError
from app.routers import (
    document_generation,
    documents,
    feedback,
    health,
    reviewers,
    reviews,
    standards,
    templates,
)
from app.services.ai_provider import AIProviderClient
from app.utils.helpers import utcnow

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

ENDPOINTS = {
    "health": f"{API_PREFIX}/health",
    "templates": f"{API_PREFIX}/templates",
    "documents": f"{API_PREFIX}/documents",
    "reviews": f"{API_PREFIX}/reviews",
    "reviewers": f"{API_PREFIX}/reviewers",
    "standards": f"{API_PREFIX}/standards",
    "documentGeneration": f"{API_PREFIX}/document-generation",
    "feedback": f"{API_PREFIX}/feedback",
}

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

async def _check_database() -> bool:
    """Initialise DB tables and verify the connection.  Returns True on success."""
    try:
        await init_db()
        logger.info("✓ Database connection OK")
        return True
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise


async def _check_ai_provider() -> str:
    """
    Report which AI provider generation will use.
    Never raises; a missing provider only disables generation endpoints.
    """
    try:
        client = AIProviderClient()
    except ConfigurationError as exc:
        logger.warning("⚠ %s", exc)
        return "not_configured"

    missing = client.missing_configuration()
    if missing:
        logger.warning(
            "⚠ AI provider '%s' is missing %s; generation endpoints will return 503",
            client.provider,
            ", ".join(missing),
        )
        return "not_configured"

    health_status = await client.check_health()
    logger.info("✓ AI provider: %s (%s) - %s", client.provider, client.model, health_status)
    return health_status


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting ADPA backend …")
    logger.info("=" * 60)

    # 1. Database (required; raises on failure)
    await _check_database()

    # 2. AI provider (optional; logs warnings but continues)
    await _check_ai_provider()

    # 3. Output directory for generated documents
    os.makedirs(settings.OUTPUT_DIR, exist_ok=True)
    logger.info("✓ Output directory: %s", os.path.abspath(settings.OUTPUT_DIR))

    if not settings.get_api_tokens():
        logger.warning("⚠ API_TOKENS is empty; every protected endpoint will return 401")

    logger.info("=" * 60)
    logger.info("  ADPA backend ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("  Health     : http://%s:%d%s", settings.HOST, settings.PORT, ENDPOINTS["health"])
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("Shutting down ADPA backend …")
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title=APP_NAME,
    description=(
        "**ADPA** — Automated Documentation Project Assistant.\n\n"
        "Generate PMBOK-style project documents with an AI provider, manage "
        "templates, run document reviews, and check standards compliance.\n\n"
        "All endpoints except health require `Authorization: Bearer <token>`.\n\n"
        "Key endpoints:\n"
        "- `POST /api/v1/document-generation/generate` — start a generation job\n"
        "- `POST /api/v1/document-generation/templates/{id}/generate` — fill a template\n"
        "- `POST /api/v1/standards/analyze` — PMBOK/BABOK/DMBOK compliance\n"
        "- `POST /api/v1/reviews` — request a document review\n"
    ),
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) and the security
    headers to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    # Skip noisy health-check polling
    if request.url.path not in (ENDPOINTS["health"], "/"):
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Global exception handler
# ---------------------------------------------------------------------------

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal Server Error",
            "message": str(exc),
            "path": str(request.url.path),
            "timestamp": utcnow().isoformat(),
        },
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

protected = [Depends(require_api_token)]

app.include_router(health.router,              prefix=ENDPOINTS["health"],             tags=["Health"])
app.include_router(templates.router,           prefix=ENDPOINTS["templates"],          tags=["Templates"], dependencies=protected)
app.include_router(documents.router,           prefix=ENDPOINTS["documents"],          tags=["Documents"], dependencies=protected)
app.include_router(reviews.router,             prefix=ENDPOINTS["reviews"],            tags=["Reviews"], dependencies=protected)
app.include_router(reviewers.router,           prefix=ENDPOINTS["reviewers"],          tags=["Reviewers"], dependencies=protected)
app.include_router(standards.router,           prefix=ENDPOINTS["standards"],          tags=["Standards"], dependencies=protected)
app.include_router(document_generation.router, prefix=ENDPOINTS["documentGeneration"], tags=["Document Generation"], dependencies=protected)
app.include_router(feedback.router,            prefix=ENDPOINTS["feedback"],           tags=["Feedback"], dependencies=protected)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root — returns basic service info."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "description": "Automated Documentation Project Assistant",
        "docs": "/docs",
        "health": ENDPOINTS["health"],
        "endpoints": ENDPOINTS,
    }


# Must stay the last route registered: anything unmatched lands here.
@app.api_route(
    "/{full_path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def not_found(request: Request, full_path: str):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={
            "error": "Not Found",
            "message": f"Route {request.url.path} not found",
            "availableEndpoints": ENDPOINTS,
        },
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
