"""
Template management endpoints.

Route summary
-------------
POST   /api/v1/templates                     create template
GET    /api/v1/templates                     list (category, search, is_active, include_inactive, skip, limit)
GET    /api/v1/templates/{id}                template detail
PUT    /api/v1/templates/{id}                partial update
DELETE /api/v1/templates/{id}                soft delete (is_active = false)
DELETE /api/v1/templates/{id}/permanent      hard delete
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.database_models import Template
from app.models.schemas import (
    TemplateCreate,
    TemplateListResponse,
    TemplateResponse,
    TemplateUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_template_or_404(template_id: int, db: AsyncSession) -> Template:
    template = await db.get(Template, template_id)
    if template is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Template {template_id} not found.",
        )
    return template


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    body: TemplateCreate,
    db: AsyncSession = Depends(get_db),
) -> Template:
    """Create a new document template."""
    template = Template(
        name=body.name,
        description=body.description,
        category=body.category,
        tags=body.tags,
        template_data=body.template_data.model_dump(),
        is_active=body.is_active,
    )
    db.add(template)
    await db.flush()
    await db.refresh(template)

    logger.info("Created template id=%d name=%r", template.id, template.name)
    return template


@router.get("", response_model=TemplateListResponse)
async def list_templates(
    category: Optional[str] = None,
    search: Optional[str] = Query(None, min_length=1),
    is_active: Optional[bool] = True,
    include_inactive: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> TemplateListResponse:
    """
    List templates, newest first.

    Soft-deleted templates are hidden by default.  ``is_active=false`` lists
    only those; ``include_inactive=true`` lists active and inactive together.
    """
    filters = []
    if not include_inactive and is_active is not None:
        filters.append(Template.is_active == is_active)
    if category:
        filters.append(Template.category == category)
    if search:
        pattern = f"%{search}%"
        filters.append(or_(Template.name.ilike(pattern), Template.description.ilike(pattern)))

    total = (
        await db.execute(select(func.count(Template.id)).where(*filters))
    ).scalar() or 0
    result = await db.execute(
        select(Template)
        .where(*filters)
        .order_by(Template.created_at.desc(), Template.id.desc())
        .offset(skip)
        .limit(limit)
    )
    templates = result.scalars().all()

    return TemplateListResponse(
        templates=[TemplateResponse.model_validate(t) for t in templates],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(template_id: int, db: AsyncSession = Depends(get_db)) -> Template:
    """Get a single template."""
    return await get_template_or_404(template_id, db)


@router.put("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: int,
    body: TemplateUpdate,
    db: AsyncSession = Depends(get_db),
) -> Template:
    """Apply the fields present in the body."""
    template = await get_template_or_404(template_id, db)

    changes = body.model_dump(exclude_unset=True)
    if "template_data" in changes and body.template_data is not None:
        changes["template_data"] = body.template_data.model_dump()
    for field, value in changes.items():
        if value is None and field in ("name", "category", "template_data", "is_active", "tags"):
            continue
        setattr(template, field, value)

    await db.flush()
    await db.refresh(template)
    logger.info("Updated template id=%d fields=%s", template.id, sorted(changes))
    return template


@router.delete("/{template_id}", response_model=TemplateResponse)
async def deactivate_template(template_id: int, db: AsyncSession = Depends(get_db)) -> Template:
    """Soft delete: the template stays in the database with ``is_active=false``."""
    template = await get_template_or_404(template_id, db)
    template.is_active = False
    await db.flush()
    await db.refresh(template)
    logger.info("Soft-deleted template id=%d", template.id)
    return template


@router.delete(
    "/{template_id}/permanent",
    status_code=status.HTTP_204_NO_CONTENT,
    response_model=None,
)
async def delete_template_permanently(
    template_id: int, db: AsyncSession = Depends(get_db)
) -> None:
    """Remove the template; documents generated from it keep existing."""
    template = await get_template_or_404(template_id, db)
    await db.delete(template)
    await db.flush()
    logger.info("Permanently deleted template id=%d", template_id)
