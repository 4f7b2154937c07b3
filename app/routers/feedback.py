"""
Document feedback endpoints.

Route summary
-------------
POST   /api/v1/feedback          submit feedback on a document
GET    /api/v1/feedback          list (document_id, feedback_type)
GET    /api/v1/feedback/stats    totals, average rating, breakdowns
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.database_models import Feedback, FeedbackType
from app.models.schemas import FeedbackCreate, FeedbackResponse, FeedbackStatsResponse
from app.routers.documents import get_document_or_404

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    body: FeedbackCreate,
    db: AsyncSession = Depends(get_db),
) -> Feedback:
    await get_document_or_404(body.document_id, db)

    feedback = Feedback(**body.model_dump())
    db.add(feedback)
    await db.flush()
    await db.refresh(feedback)

    logger.info(
        "Feedback id=%d on document=%d rating=%d", feedback.id, feedback.document_id, feedback.rating
    )
    return feedback


@router.get("", response_model=List[FeedbackResponse])
async def list_feedback(
    document_id: Optional[int] = None,
    feedback_type: Optional[FeedbackType] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> List[Feedback]:
    query = select(Feedback)
    if document_id is not None:
        query = query.where(Feedback.document_id == document_id)
    if feedback_type is not None:
        query = query.where(Feedback.feedback_type == feedback_type)

    result = await db.execute(
        query.order_by(Feedback.created_at.desc(), Feedback.id.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all())


@router.get("/stats", response_model=FeedbackStatsResponse)
async def feedback_stats(
    document_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
) -> FeedbackStatsResponse:
    """Aggregate feedback, optionally for one document."""
    filters = [Feedback.document_id == document_id] if document_id is not None else []

    total, average = (
        await db.execute(
            select(func.count(Feedback.id), func.avg(Feedback.rating)).where(*filters)
        )
    ).one()

    by_type = {
        (ftype.value if isinstance(ftype, FeedbackType) else str(ftype)): count
        for ftype, count in await db.execute(
            select(Feedback.feedback_type, func.count(Feedback.id))
            .where(*filters)
            .group_by(Feedback.feedback_type)
        )
    }
    by_rating = {
        str(rating): count
        for rating, count in await db.execute(
            select(Feedback.rating, func.count(Feedback.id))
            .where(*filters)
            .group_by(Feedback.rating)
        )
    }

    return FeedbackStatsResponse(
        total=total or 0,
        average_rating=round(float(average), 2) if average is not None else None,
        by_type=by_type,
        by_rating=by_rating,
    )
