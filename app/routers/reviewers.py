"""
Reviewer endpoints.

Route summary
-------------
POST   /api/v1/reviewers                  register reviewer (409 on duplicate email)
GET    /api/v1/reviewers                  list (is_active, expertise)
GET    /api/v1/reviewers/{id}             reviewer detail
PUT    /api/v1/reviewers/{id}             partial update
DELETE /api/v1/reviewers/{id}             delete (their reviews become unassigned)
GET    /api/v1/reviewers/{id}/workload    open vs. completed reviews
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.database_models import Review, Reviewer, ReviewStatus
from app.models.schemas import (
    ReviewerCreate,
    ReviewerResponse,
    ReviewerUpdate,
    ReviewerWorkloadResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

OPEN_REVIEW_STATUSES = (ReviewStatus.PENDING, ReviewStatus.IN_PROGRESS)


async def get_reviewer_or_404(reviewer_id: int, db: AsyncSession) -> Reviewer:
    reviewer = await db.get(Reviewer, reviewer_id)
    if reviewer is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Reviewer {reviewer_id} not found.",
        )
    return reviewer


async def count_open_reviews(reviewer_id: int, db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(Review.id)).where(
            Review.reviewer_id == reviewer_id,
            Review.status.in_(OPEN_REVIEW_STATUSES),
        )
    )
    return result.scalar() or 0


@router.post("", response_model=ReviewerResponse, status_code=status.HTTP_201_CREATED)
async def create_reviewer(
    body: ReviewerCreate,
    db: AsyncSession = Depends(get_db),
) -> Reviewer:
    """Register a reviewer. Emails are unique."""
    existing = await db.execute(select(Reviewer.id).where(Reviewer.email == body.email))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"A reviewer with email {body.email} already exists.",
        )

    reviewer = Reviewer(**body.model_dump())
    db.add(reviewer)
    await db.flush()
    await db.refresh(reviewer)

    logger.info("Created reviewer id=%d email=%s", reviewer.id, reviewer.email)
    return reviewer


@router.get("", response_model=List[ReviewerResponse])
async def list_reviewers(
    is_active: Optional[bool] = None,
    expertise: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
) -> List[Reviewer]:
    """
    List reviewers by name.

    ``expertise`` matches case-insensitively against each reviewer's
    expertise list.
    """
    query = select(Reviewer).order_by(Reviewer.name, Reviewer.id)
    if is_active is not None:
        query = query.where(Reviewer.is_active == is_active)
    reviewers = list((await db.execute(query)).scalars().all())

    # JSON list membership is filtered in Python to stay portable across backends
    if expertise:
        wanted = expertise.lower()
        reviewers = [
            r for r in reviewers if any(e.lower() == wanted for e in (r.expertise or []))
        ]
    return reviewers


@router.get("/{reviewer_id}", response_model=ReviewerResponse)
async def get_reviewer(reviewer_id: int, db: AsyncSession = Depends(get_db)) -> Reviewer:
    return await get_reviewer_or_404(reviewer_id, db)


@router.put("/{reviewer_id}", response_model=ReviewerResponse)
async def update_reviewer(
    reviewer_id: int,
    body: ReviewerUpdate,
    db: AsyncSession = Depends(get_db),
) -> Reviewer:
    reviewer = await get_reviewer_or_404(reviewer_id, db)

    for field, value in body.model_dump(exclude_unset=True).items():
        if value is None and field != "role":
            continue
        setattr(reviewer, field, value)

    await db.flush()
    await db.refresh(reviewer)
    logger.info("Updated reviewer id=%d", reviewer.id)
    return reviewer


@router.delete(
    "/{reviewer_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_model=None,
)
async def delete_reviewer(reviewer_id: int, db: AsyncSession = Depends(get_db)) -> None:
    reviewer = await get_reviewer_or_404(reviewer_id, db)
    await db.delete(reviewer)
    await db.flush()
    logger.info("Deleted reviewer id=%d", reviewer_id)


@router.get("/{reviewer_id}/workload", response_model=ReviewerWorkloadResponse)
async def reviewer_workload(
    reviewer_id: int, db: AsyncSession = Depends(get_db)
) -> ReviewerWorkloadResponse:
    """Open and completed review counts against the reviewer's capacity."""
    reviewer = await get_reviewer_or_404(reviewer_id, db)

    open_reviews = await count_open_reviews(reviewer.id, db)
    completed = (
        await db.execute(
            select(func.count(Review.id)).where(
                Review.reviewer_id == reviewer.id,
                Review.status.not_in(OPEN_REVIEW_STATUSES),
            )
        )
    ).scalar() or 0

    return ReviewerWorkloadResponse(
        reviewer_id=reviewer.id,
        open_reviews=open_reviews,
        completed_reviews=completed,
        max_concurrent_reviews=reviewer.max_concurrent_reviews,
        available_capacity=max(reviewer.max_concurrent_reviews - open_reviews, 0),
    )
