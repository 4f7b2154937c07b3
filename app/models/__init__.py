"""Database and schema models for ADPA."""
from app.models.database_models import (
    Template,
    Document,
    Reviewer,
    Review,
    Feedback,
    DocumentStatus,
    DocumentFormat,
    ReviewStatus,
    FeedbackType,
)
from app.models.schemas import (
    TemplateCreate,
    TemplateResponse,
    DocumentCreate,
    DocumentResponse,
    ReviewerCreate,
    ReviewerResponse,
    ReviewCreate,
    ReviewResponse,
    FeedbackCreate,
    FeedbackResponse,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "Template",
    "Document",
    "Reviewer",
    "Review",
    "Feedback",
    "DocumentStatus",
    "DocumentFormat",
    "ReviewStatus",
    "FeedbackType",
    # Pydantic schemas
    "TemplateCreate",
    "TemplateResponse",
    "DocumentCreate",
    "DocumentResponse",
    "ReviewerCreate",
    "ReviewerResponse",
    "ReviewCreate",
    "ReviewResponse",
    "FeedbackCreate",
    "FeedbackResponse",
    "HealthCheckResponse",
]
