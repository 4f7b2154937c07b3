"""
SQLAlchemy ORM models for the ADPA database.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Boolean,
    Enum as SQLEnum,
    JSON,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum

from app.database import Base


# Enums
class DocumentStatus(str, enum.Enum):
    """Lifecycle of a generated or uploaded document."""

    DRAFT = "draft"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    PUBLISHED = "published"


class DocumentFormat(str, enum.Enum):
    """Output formats the generator can write."""

    MARKDOWN = "markdown"
    JSON = "json"
    DOCX = "docx"


class ReviewStatus(str, enum.Enum):
    """States a review moves through."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    REJECTED = "rejected"
    CHANGES_REQUESTED = "changes_requested"


class FeedbackType(str, enum.Enum):
    """What a piece of feedback is about."""

    QUALITY = "quality"
    ACCURACY = "accuracy"
    COMPLETENESS = "completeness"
    FORMATTING = "formatting"
    GENERAL = "general"


# Models
class Template(Base):
    """Stored document template with AI instructions and variables."""

    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=False, default="general", index=True)
    tags = Column(JSON, nullable=False, default=list)
    # {content, ai_instructions, variables[], layout}
    template_data = Column(JSON, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    documents = relationship("Document", back_populates="template")


class Document(Base):
    """A project document, generated by the AI pipeline or created by hand."""

    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    document_key = Column(String(255), nullable=True, index=True)
    category = Column(String(100), nullable=True, index=True)
    content = Column(Text, nullable=False, default="")
    format = Column(SQLEnum(DocumentFormat), nullable=False, default=DocumentFormat.MARKDOWN)
    status = Column(SQLEnum(DocumentStatus), nullable=False, default=DocumentStatus.DRAFT, index=True)
    template_id = Column(
        Integer, ForeignKey("templates.id", ondelete="SET NULL"), nullable=True, index=True
    )
    project_name = Column(String(255), nullable=True)
    metadata_json = Column(JSON, nullable=True)  # task key, generation stats, etc.
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    template = relationship("Template", back_populates="documents")
    reviews = relationship("Review", back_populates="document", cascade="all, delete-orphan")
    feedback = relationship("Feedback", back_populates="document", cascade="all, delete-orphan")


class Reviewer(Base):
    """A person who can be assigned document reviews."""

    __tablename__ = "reviewers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    role = Column(String(100), nullable=True)
    expertise = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    max_concurrent_reviews = Column(Integer, default=3, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    reviews = relationship("Review", back_populates="reviewer")


class Review(Base):
    """Review of a single document by (at most) one reviewer."""

    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(
        Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reviewer_id = Column(
        Integer, ForeignKey("reviewers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    status = Column(SQLEnum(ReviewStatus), nullable=False, default=ReviewStatus.PENDING, index=True)
    comments = Column(Text, nullable=True)
    rating = Column(Integer, nullable=True)  # 1-5
    due_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    document = relationship("Document", back_populates="reviews")
    reviewer = relationship("Reviewer", back_populates="reviews")


class Feedback(Base):
    """User feedback on a document, used to tune future generations."""

    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(
        Integer, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    rating = Column(Integer, nullable=False)  # 1-5
    comment = Column(Text, nullable=True)
    feedback_type = Column(SQLEnum(FeedbackType), nullable=False, default=FeedbackType.GENERAL)
    submitted_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    document = relationship("Document", back_populates="feedback")
