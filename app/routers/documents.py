"""
Document endpoints.

Route summary
-------------
POST   /api/v1/documents          create document
GET    /api/v1/documents          list (category, status, project_name, skip, limit)
GET    /api/v1/documents/{id}     document detail
PUT    /api/v1/documents/{id}     partial update
DELETE /api/v1/documents/{id}     delete (reviews and feedback cascade)
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.database_models import Document, DocumentStatus, Template
from app.models.schemas import DocumentCreate, DocumentResponse, DocumentUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_document_or_404(document_id: int, db: AsyncSession) -> Document:
    document = await db.get(Document, document_id)
    if document is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document {document_id} not found.",
        )
    return document


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def create_document(
    body: DocumentCreate,
    db: AsyncSession = Depends(get_db),
) -> Document:
    """Store a document written outside the generator."""
    if body.template_id is not None and await db.get(Template, body.template_id) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Template {body.template_id} does not exist.",
        )

    document = Document(**body.model_dump())
    db.add(document)
    await db.flush()
    await db.refresh(document)

    logger.info("Created document id=%d title=%r", document.id, document.title)
    return document


@router.get("", response_model=List[DocumentResponse])
async def list_documents(
    category: Optional[str] = None,
    status_filter: Optional[DocumentStatus] = Query(None, alias="status"),
    project_name: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
) -> List[Document]:
    """List documents, most recently updated first."""
    query = select(Document)
    if category:
        query = query.where(Document.category == category)
    if status_filter is not None:
        query = query.where(Document.status == status_filter)
    if project_name:
        query = query.where(Document.project_name == project_name)

    result = await db.execute(
        query.order_by(Document.updated_at.desc(), Document.id.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all())


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: int, db: AsyncSession = Depends(get_db)) -> Document:
    """Get a single document with its content."""
    return await get_document_or_404(document_id, db)


@router.put("/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: int,
    body: DocumentUpdate,
    db: AsyncSession = Depends(get_db),
) -> Document:
    """Apply the fields present in the body."""
    document = await get_document_or_404(document_id, db)

    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field in ("title", "content", "status"):
            continue
        setattr(document, field, value)

    await db.flush()
    await db.refresh(document)
    logger.info("Updated document id=%d fields=%s", document.id, sorted(changes))
    return document


@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_model=None,
)
async def delete_document(document_id: int, db: AsyncSession = Depends(get_db)) -> None:
    """Delete a document together with its reviews and feedback."""
    document = await get_document_or_404(document_id, db)
    await db.delete(document)
    await db.flush()
    logger.info("Deleted document id=%d", document_id)
