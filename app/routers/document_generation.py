"""
AI document generation endpoints.

Route summary
-------------
GET    /api/v1/document-generation/tasks                      task catalogue
GET    /api/v1/document-generation/categories                 task categories
POST   /api/v1/document-generation/generate                   start background job (202)
GET    /api/v1/document-generation/jobs/{job_id}              poll job status
POST   /api/v1/document-generation/templates/{id}/generate    generate from a stored template (201)
"""
import logging
from pathlib import Path
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db, get_session_factory
from app.errors import ConfigurationError, RetryExhaustedError, TemplateRenderError
from app.models.database_models import Document, DocumentFormat
from app.models.schemas import (
    DocumentResponse,
    GenerationJobResponse,
    GenerationRequest,
    GenerationTaskResponse,
    TemplateGenerationRequest,
)
from app.routers.templates import get_template_or_404
from app.services.ai_provider import AIClient, AIProviderClient
from app.services.document_generator import (
    DocumentGenerator,
    GenerationOptions,
    GenerationResult,
)
from app.services.generation_tasks import (
    GENERATION_TASKS,
    GenerationTask,
    get_available_categories,
)
from app.services.job_manager import JobPhase, JobStatus, job_manager
from app.services.retry import RetryPolicy
from app.utils.helpers import slugify

logger = logging.getLogger(__name__)

router = APIRouter()


# ═══════════════════════════════════════════════════════════════════════════════
# DEPENDENCIES
# ═══════════════════════════════════════════════════════════════════════════════

def get_ai_client() -> AIClient:
    """Configured provider client; 503 when the provider cannot be used."""
    try:
        client = AIProviderClient()
        client.validate_configuration()
    except ConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return client


def _retry_policy(retries: Optional[int]) -> RetryPolicy:
    return RetryPolicy.from_milliseconds(
        settings.GENERATION_RETRIES if retries is None else retries,
        settings.GENERATION_RETRY_BACKOFF_MS,
        settings.GENERATION_RETRY_MAX_DELAY_MS,
    )


def _job_response(job: JobStatus) -> GenerationJobResponse:
    return GenerationJobResponse(**job.to_dict())


# ═══════════════════════════════════════════════════════════════════════════════
# CATALOGUE
# ═══════════════════════════════════════════════════════════════════════════════

@router.get("/tasks", response_model=List[GenerationTaskResponse])
async def list_generation_tasks(category: Optional[str] = None) -> List[GenerationTaskResponse]:
    tasks = sorted(GENERATION_TASKS, key=lambda t: (t.priority, t.key))
    if category:
        tasks = [t for t in tasks if t.category == category]
    return [GenerationTaskResponse(**t.to_dict()) for t in tasks]


@router.get("/categories", response_model=List[str])
async def list_generation_categories() -> List[str]:
    return get_available_categories()


# ═══════════════════════════════════════════════════════════════════════════════
# BACKGROUND GENERATION JOBS
# ═══════════════════════════════════════════════════════════════════════════════

async def _persist_documents(
    result: GenerationResult,
    request: GenerationRequest,
    job: JobStatus,
    session_factory: Callable[[], AsyncSession],
) -> None:
    """Store each generated document in its own session so one failure stays local."""
    for doc in result.documents:
        try:
            async with session_factory() as session:
                row = Document(
                    title=doc.name,
                    document_key=doc.key,
                    category=doc.category,
                    content=doc.content,
                    format=request.format,
                    project_name=request.project_name,
                    metadata_json={"source": "generator", "job_id": job.job_id, "path": doc.path},
                )
                session.add(row)
                await session.commit()
                job.document_ids.append(row.id)
        except Exception as exc:
            logger.error("Job %s: could not persist %s: %s", job.job_id, doc.key, exc)
            job.errors.append(f"{doc.key}: not saved to database ({exc})")


async def run_generation_job(
    job: JobStatus,
    request: GenerationRequest,
    ai_client: AIClient,
    session_factory: Callable[[], AsyncSession],
) -> None:
    """Body of a background generation job; updates *job* in place."""
    job.phase = JobPhase.RUNNING

    def on_progress(event: str, task: GenerationTask, error: Optional[BaseException]) -> None:
        if event == "started":
            job.current_document = task.key
        elif event == "completed":
            job.documents_completed += 1
        elif event == "failed":
            job.documents_failed += 1
            job.errors.append(f"{task.key}: {error}")

    options = GenerationOptions(
        document_keys=request.document_keys,
        include_categories=request.categories,
        max_concurrent=request.max_concurrent or settings.GENERATION_MAX_CONCURRENT,
        output_dir=Path(settings.OUTPUT_DIR) / "jobs" / job.job_id,
        format=request.format.value,
        retry=_retry_policy(request.retries),
    )
    generator = DocumentGenerator(request.context, options, ai_client, on_progress=on_progress)
    job.total_documents = len(generator.filter_tasks())

    result = await generator.generate_all()
    job.generated_files = list(result.generated_files)

    if request.persist and result.documents:
        await _persist_documents(result, request, job, session_factory)

    job.phase = JobPhase.COMPLETED if result.success_count else JobPhase.FAILED
    logger.info("Job %s finished: %s", job.job_id, result.message)


@router.post(
    "/generate",
    response_model=GenerationJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_generation(
    body: GenerationRequest,
    ai_client: AIClient = Depends(get_ai_client),
    session_factory: Callable[[], AsyncSession] = Depends(get_session_factory),
) -> GenerationJobResponse:
    """
    Start generating documents in the background.

    Returns immediately. Poll ``GET /jobs/{job_id}`` for progress.
    """
    known_keys = {t.key for t in GENERATION_TASKS}
    unknown = [k for k in body.document_keys if k not in known_keys]
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown document key(s): {', '.join(unknown)}",
        )
    categories = set(get_available_categories())
    unknown = [c for c in body.categories if c not in categories]
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown categor(ies): {', '.join(unknown)}",
        )

    job = job_manager.start(
        lambda job_status: run_generation_job(job_status, body, ai_client, session_factory)
    )
    logger.info(
        "Generation job %s queued (keys=%s categories=%s)",
        job.job_id, body.document_keys or "all", body.categories or "all",
    )
    return _job_response(job)


@router.get("/jobs/{job_id}", response_model=GenerationJobResponse)
async def get_generation_job(job_id: str) -> GenerationJobResponse:
    job = job_manager.get_status(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Generation job {job_id} not found.",
        )
    return _job_response(job)


# ═══════════════════════════════════════════════════════════════════════════════
# TEMPLATE GENERATION (SYNCHRONOUS)
# ═══════════════════════════════════════════════════════════════════════════════

@router.post(
    "/templates/{template_id}/generate",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_from_template(
    template_id: int,
    body: TemplateGenerationRequest,
    ai_client: AIClient = Depends(get_ai_client),
    db: AsyncSession = Depends(get_db),
) -> Document:
    """Fill in a stored template with the AI provider and save the result."""
    template = await get_template_or_404(template_id, db)
    if not template.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Template {template_id} is inactive.",
        )

    generator = DocumentGenerator(
        body.context,
        GenerationOptions(retry=_retry_policy(body.retries)),
        ai_client,
    )
    try:
        content = await generator.generate_from_template(template, body.variables)
    except TemplateRenderError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except RetryExhaustedError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"AI provider failed for {exc.label} after {exc.attempts} attempt(s): "
                   f"{exc.last_error}",
        )

    document = Document(
        title=template.name,
        document_key=slugify(template.name),
        category=template.category,
        content=content,
        format=DocumentFormat.MARKDOWN,
        template_id=template.id,
        project_name=body.project_name,
        metadata_json={"source": "template", "variables": body.variables},
    )
    db.add(document)
    await db.flush()
    await db.refresh(document)

    logger.info("Generated document id=%d from template id=%d", document.id, template.id)
    return document
