"""
Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import Optional, List, Dict, Any
from datetime import datetime

from app.models.database_models import (
    DocumentFormat,
    DocumentStatus,
    FeedbackType,
    ReviewStatus,
)


# ---------------------------------------------------------------------------
# Template Schemas
# ---------------------------------------------------------------------------

class TemplateVariable(BaseModel):
    """A ``{{placeholder}}`` a template expects to be filled in."""

    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    default: Optional[str] = None
    required: bool = False


class TemplateData(BaseModel):
    """Body of a template: the skeleton plus guidance for the model."""

    content: str = Field(..., min_length=1)
    ai_instructions: Optional[str] = None
    variables: List[TemplateVariable] = []
    layout: Dict[str, Any] = {}


class TemplateCreate(BaseModel):
    """Schema for creating a new template."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = Field("general", min_length=1, max_length=100)
    tags: List[str] = []
    template_data: TemplateData
    is_active: bool = True


class TemplateUpdate(BaseModel):
    """Partial update; only fields that are sent are applied."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    tags: Optional[List[str]] = None
    template_data: Optional[TemplateData] = None
    is_active: Optional[bool] = None


class TemplateResponse(BaseModel):
    """Schema for template responses."""

    id: int
    name: str
    description: Optional[str] = None
    category: str
    tags: List[str] = []
    template_data: TemplateData
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TemplateListResponse(BaseModel):
    """Paginated template listing."""

    templates: List[TemplateResponse]
    total: int
    skip: int
    limit: int


# ---------------------------------------------------------------------------
# Document Schemas
# ---------------------------------------------------------------------------

class DocumentCreate(BaseModel):
    """Schema for creating a document by hand."""

    title: str = Field(..., min_length=1, max_length=255)
    document_key: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    content: str = ""
    format: DocumentFormat = DocumentFormat.MARKDOWN
    template_id: Optional[int] = None
    project_name: Optional[str] = Field(None, max_length=255)
    metadata_json: Optional[Dict[str, Any]] = None


class DocumentUpdate(BaseModel):
    """Partial document update."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    content: Optional[str] = None
    status: Optional[DocumentStatus] = None
    project_name: Optional[str] = Field(None, max_length=255)
    metadata_json: Optional[Dict[str, Any]] = None


class DocumentResponse(BaseModel):
    """Schema for document details."""

    id: int
    title: str
    document_key: Optional[str] = None
    category: Optional[str] = None
    content: str
    format: DocumentFormat
    status: DocumentStatus
    template_id: Optional[int] = None
    project_name: Optional[str] = None
    metadata_json: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Reviewer Schemas
# ---------------------------------------------------------------------------

class ReviewerCreate(BaseModel):
    """Schema for registering a reviewer."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    role: Optional[str] = Field(None, max_length=100)
    expertise: List[str] = []
    is_active: bool = True
    max_concurrent_reviews: int = Field(3, ge=1, le=50)


class ReviewerUpdate(BaseModel):
    """Partial reviewer update."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    role: Optional[str] = Field(None, max_length=100)
    expertise: Optional[List[str]] = None
    is_active: Optional[bool] = None
    max_concurrent_reviews: Optional[int] = Field(None, ge=1, le=50)


class ReviewerResponse(BaseModel):
    """Schema for reviewer responses."""

    id: int
    name: str
    email: str
    role: Optional[str] = None
    expertise: List[str] = []
    is_active: bool
    max_concurrent_reviews: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReviewerWorkloadResponse(BaseModel):
    """Open review count against a reviewer's capacity."""

    reviewer_id: int
    open_reviews: int
    completed_reviews: int
    max_concurrent_reviews: int
    available_capacity: int


# ---------------------------------------------------------------------------
# Review Schemas
# ---------------------------------------------------------------------------

class ReviewCreate(BaseModel):
    """Schema for requesting a review of a document."""

    document_id: int
    reviewer_id: Optional[int] = None
    due_date: Optional[datetime] = None
    comments: Optional[str] = None


class ReviewAssign(BaseModel):
    """Body for PUT /reviews/{id}/assign."""

    reviewer_id: int


class ReviewStatusUpdate(BaseModel):
    """Body for PUT /reviews/{id}/status."""

    status: ReviewStatus
    comments: Optional[str] = None


class ReviewFeedback(BaseModel):
    """Body for POST /reviews/{id}/feedback."""

    comments: str = Field(..., min_length=1)
    rating: Optional[int] = Field(None, ge=1, le=5)


class ReviewResponse(BaseModel):
    """Schema for review responses."""

    id: int
    document_id: int
    reviewer_id: Optional[int] = None
    status: ReviewStatus
    comments: Optional[str] = None
    rating: Optional[int] = None
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Feedback Schemas
# ---------------------------------------------------------------------------

class FeedbackCreate(BaseModel):
    """Schema for submitting feedback on a document."""

    document_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    feedback_type: FeedbackType = FeedbackType.GENERAL
    submitted_by: Optional[str] = Field(None, max_length=255)


class FeedbackResponse(BaseModel):
    """Schema for feedback responses."""

    id: int
    document_id: int
    rating: int
    comment: Optional[str] = None
    feedback_type: FeedbackType
    submitted_by: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FeedbackStatsResponse(BaseModel):
    """Aggregate feedback numbers."""

    total: int
    average_rating: Optional[float] = None
    by_type: Dict[str, int] = {}
    by_rating: Dict[str, int] = {}


# ---------------------------------------------------------------------------
# Standards Compliance Schemas
# ---------------------------------------------------------------------------

class ComplianceAnalyzeRequest(BaseModel):
    """
    Body for POST /standards/analyze.

    Either ``document_id`` (a stored document) or raw ``content`` must be given.
    """

    document_id: Optional[int] = None
    content: Optional[str] = None
    document_key: Optional[str] = None
    standard: str = "PMBOK_7"


class ComplianceReportResponse(BaseModel):
    """Result of a standards compliance analysis."""

    standard: str
    document_key: Optional[str] = None
    document_id: Optional[int] = None
    score: float
    compliant: bool
    found_elements: List[str]
    missing_elements: List[str]
    terminology_hits: List[str]
    recommendations: List[str]


class StandardInfo(BaseModel):
    """One supported standard with the elements it checks for."""

    code: str
    name: str
    elements: List[str]


# ---------------------------------------------------------------------------
# Document Generation Schemas
# ---------------------------------------------------------------------------

class GenerationTaskResponse(BaseModel):
    """Catalogue entry for GET /document-generation/tasks."""

    key: str
    name: str
    category: str
    filename: str
    priority: int
    emoji: str
    description: str
    output: str


class GenerationRequest(BaseModel):
    """Body for POST /document-generation/generate."""

    context: str = Field(..., min_length=1)
    document_keys: List[str] = []
    categories: List[str] = []
    project_name: Optional[str] = Field(None, max_length=255)
    format: DocumentFormat = DocumentFormat.MARKDOWN
    max_concurrent: Optional[int] = Field(None, ge=1, le=10)
    retries: Optional[int] = Field(None, ge=0, le=10)
    persist: bool = True


class TemplateGenerationRequest(BaseModel):
    """Body for POST /document-generation/templates/{id}/generate."""

    context: str = ""
    variables: Dict[str, str] = {}
    project_name: Optional[str] = Field(None, max_length=255)
    retries: Optional[int] = Field(None, ge=0, le=10)


class GenerationJobResponse(BaseModel):
    """Status of a background generation job."""

    job_id: str
    phase: str
    total_documents: int
    documents_completed: int
    documents_failed: int
    current_document: Optional[str] = None
    generated_files: List[str] = []
    document_ids: List[int] = []
    errors: List[str] = []
    elapsed_seconds: float


# ---------------------------------------------------------------------------
# Health Schemas
# ---------------------------------------------------------------------------

class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    database: str
    ai_provider: str
    version: str
    timestamp: datetime
    # Per-provider call counts, latency and rate-limit hits since startup
    provider_metrics: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
