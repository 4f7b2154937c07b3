"""
Standards compliance endpoints.

Route summary
-------------
GET    /api/v1/standards            supported standards and their elements
POST   /api/v1/standards/analyze    analyse a stored document or raw content
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.schemas import (
    ComplianceAnalyzeRequest,
    ComplianceReportResponse,
    StandardInfo,
)
from app.routers.documents import get_document_or_404
from app.services.standards_compliance import analyze_document, get_supported_standards

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[StandardInfo])
async def list_standards() -> List[StandardInfo]:
    return [StandardInfo(**s) for s in get_supported_standards()]


@router.post("/analyze", response_model=ComplianceReportResponse)
async def analyze(
    body: ComplianceAnalyzeRequest,
    db: AsyncSession = Depends(get_db),
) -> ComplianceReportResponse:
    """
    Score a document against a standard.

    With ``document_id`` the stored document's content and key are used;
    otherwise ``content`` (and optionally ``document_key``) must be sent.
    """
    document_key = body.document_key
    if body.document_id is not None:
        document = await get_document_or_404(body.document_id, db)
        content = document.content
        document_key = document_key or document.document_key
    elif body.content:
        content = body.content
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide either document_id or content.",
        )

    try:
        report = analyze_document(content, document_key=document_key, standard=body.standard)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    logger.info(
        "Compliance %s for %s: %.1f (%s)",
        report.standard,
        body.document_id or document_key or "raw content",
        report.score,
        "compliant" if report.compliant else "non-compliant",
    )
    return ComplianceReportResponse(document_id=body.document_id, **report.to_dict())
