"""
Review workflow endpoints.

Route summary
-------------
POST   /api/v1/reviews                  request a review (document → in_review)
GET    /api/v1/reviews                  list (document_id, reviewer_id, status)
GET    /api/v1/reviews/{id}             review detail
PUT    /api/v1/reviews/{id}/assign      assign reviewer (409 when at capacity)
PUT    /api/v1/reviews/{id}/status      change status (approved/rejected propagate)
POST   /api/v1/reviews/{id}/feedback    add reviewer comments and rating
DELETE /api/v1/reviews/{id}             delete review
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.database_models import Document, DocumentStatus, Review, ReviewStatus
from app.models.schemas import (
    ReviewAssign,
    ReviewCreate,
    ReviewFeedback,
    ReviewResponse,
    ReviewStatusUpdate,
)
from app.routers.documents import get_document_or_404
from app.routers.reviewers import count_open_reviews, get_reviewer_or_404

logger = logging.getLogger(__name__)

router = APIRouter()

# Review outcome → resulting document status
STATUS_PROPAGATION = {
    ReviewStatus.APPROVED: DocumentStatus.APPROVED,
    ReviewStatus.REJECTED: DocumentStatus.REJECTED,
}


async def get_review_or_404(review_id: int, db: AsyncSession) -> Review:
    review = await db.get(Review, review_id)
    if review is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Review {review_id} not found.",
        )
    return review


async def ensure_reviewer_available(
    reviewer_id: int, db: AsyncSession, current_review: Optional[Review] = None
) -> None:
    """404 for unknown, 400 for inactive, 409 when the reviewer is at capacity."""
    reviewer = await get_reviewer_or_404(reviewer_id, db)
    if not reviewer.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Reviewer {reviewer_id} is inactive.",
        )

    # Re-assigning a review to its current reviewer does not add load
    if current_review is not None and current_review.reviewer_id == reviewer_id:
        return

    open_reviews = await count_open_reviews(reviewer_id, db)
    if open_reviews >= reviewer.max_concurrent_reviews:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                f"Reviewer {reviewer_id} is at capacity "
                f"({open_reviews}/{reviewer.max_concurrent_reviews} open reviews)."
            ),
        )


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    body: ReviewCreate,
    db: AsyncSession = Depends(get_db),
) -> Review:
    """Open a review for a document and move the document to ``in_review``."""
    document = await get_document_or_404(body.document_id, db)
    if body.reviewer_id is not None:
        await ensure_reviewer_available(body.reviewer_id, db)

    review = Review(
        document_id=document.id,
        reviewer_id=body.reviewer_id,
        due_date=body.due_date,
        comments=body.comments,
        status=ReviewStatus.PENDING,
    )
    db.add(review)
    document.status = DocumentStatus.IN_REVIEW
    await db.flush()
    await db.refresh(review)
    await db.refresh(document)

    logger.info(
        "Created review id=%d for document=%d reviewer=%s",
        review.id, document.id, review.reviewer_id,
    )
    return review


@router.get("", response_model=List[ReviewResponse])
async def list_reviews(
    document_id: Optional[int] = None,
    reviewer_id: Optional[int] = None,
    status_filter: Optional[ReviewStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> List[Review]:
    query = select(Review)
    if document_id is not None:
        query = query.where(Review.document_id == document_id)
    if reviewer_id is not None:
        query = query.where(Review.reviewer_id == reviewer_id)
    if status_filter is not None:
        query = query.where(Review.status == status_filter)

    result = await db.execute(
        query.order_by(Review.created_at.desc(), Review.id.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all())


@router.get("/{review_id}", response_model=ReviewResponse)
async def get_review(review_id: int, db: AsyncSession = Depends(get_db)) -> Review:
    return await get_review_or_404(review_id, db)


@router.put("/{review_id}/assign", response_model=ReviewResponse)
async def assign_reviewer(
    review_id: int,
    body: ReviewAssign,
    db: AsyncSession = Depends(get_db),
) -> Review:
    """Assign (or re-assign) a reviewer, respecting their concurrent review limit."""
    review = await get_review_or_404(review_id, db)
    await ensure_reviewer_available(body.reviewer_id, db, current_review=review)

    review.reviewer_id = body.reviewer_id
    await db.flush()
    await db.refresh(review)
    logger.info("Assigned reviewer=%d to review=%d", body.reviewer_id, review.id)
    return review


@router.put("/{review_id}/status", response_model=ReviewResponse)
async def update_review_status(
    review_id: int,
    body: ReviewStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> Review:
    """Move a review through its workflow; final outcomes update the document."""
    review = await get_review_or_404(review_id, db)
    review.status = body.status
    if body.comments is not None:
        review.comments = body.comments

    document = None
    document_status = STATUS_PROPAGATION.get(body.status)
    if document_status is not None:
        document = await db.get(Document, review.document_id)
        if document is not None:
            document.status = document_status
            logger.info("Document id=%d → %s", document.id, document_status.value)

    await db.flush()
    await db.refresh(review)
    if document is not None:
        await db.refresh(document)
    return review


@router.post("/{review_id}/feedback", response_model=ReviewResponse)
async def add_review_feedback(
    review_id: int,
    body: ReviewFeedback,
    db: AsyncSession = Depends(get_db),
) -> Review:
    """Record the reviewer's comments (appended) and optional rating."""
    review = await get_review_or_404(review_id, db)
    review.comments = f"{review.comments}\n\n{body.comments}" if review.comments else body.comments
    if body.rating is not None:
        review.rating = body.rating
    if review.status == ReviewStatus.PENDING:
        review.status = ReviewStatus.IN_PROGRESS

    await db.flush()
    await db.refresh(review)
    return review


@router.delete(
    "/{review_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_model=None,
)
async def delete_review(review_id: int, db: AsyncSession = Depends(get_db)) -> None:
    review = await get_review_or_404(review_id, db)
    await db.delete(review)
    await db.flush()
    logger.info("Deleted review id=%d", review_id)
