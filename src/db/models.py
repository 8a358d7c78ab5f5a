"""SQLAlchemy database models for SiteGrade."""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class RequestStatus(str, enum.Enum):
    """Lifecycle of an analysis request."""

    PENDING = "pending"        # Submitted, waiting for a worker
    PROCESSING = "processing"  # Claimed by a worker, pillars landing
    COMPLETED = "completed"    # All pillars stored, report sent
    FAILED = "failed"          # Pipeline aborted, see error_message


class Pillar(str, enum.Enum):
    """The seven scoring dimensions, in pipeline order."""

    PERFORMANCE = "performance"
    DESIGN = "design"
    RESPONSIVENESS = "responsiveness"
    SEO = "seo"
    SECURITY = "security"
    COMPLIANCE = "compliance"
    ANALYTICS = "analytics"


class AnalysisRequest(Base):
    """
    One submitted website audit.

    Created once on submission and only ever mutated by status
    transitions. Each email address may own a single request.
    """

    __tablename__ = "analysis_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    url: Mapped[str] = mapped_column(String(2048), nullable=False, index=True)

    # Stored lower-cased
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)

    status: Mapped[RequestStatus] = mapped_column(
        Enum(RequestStatus),
        default=RequestStatus.PENDING,
        nullable=False,
        index=True,
    )

    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    results: Mapped[list["AnalysisResult"]] = relationship(
        back_populates="request",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="AnalysisResult.created_at",
    )
    metadata_: Mapped["AnalysisMetadata | None"] = relationship(
        back_populates="request",
        lazy="selectin",
        cascade="all, delete-orphan",
        uselist=False,
    )


class AnalysisResult(Base):
    """
    Output of one pillar analyzer for a request.

    Append-only: a rerun inserts new rows and readers take the latest
    row per pillar.
    """

    __tablename__ = "analysis_results"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("analysis_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    pillar: Mapped[Pillar] = mapped_column(Enum(Pillar), nullable=False)

    # 0-100; always 0 when analyzed is False
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    analyzed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    insights: Mapped[str] = mapped_column(Text, nullable=False, default="")
    recommendations: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Full analyzer output for detailed views and debugging
    raw_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    request: Mapped["AnalysisRequest"] = relationship(back_populates="results")


class AnalysisMetadata(Base):
    """
    Per-request side table.

    Created with the request, then updated after extraction (snapshot)
    and after aggregation (total score and duration).
    """

    __tablename__ = "analysis_metadata"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("analysis_requests.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    # ExtractedData.to_dict(), screenshot bytes excluded
    extracted_data: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    total_score: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Whole seconds from pipeline start to aggregation
    analysis_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    request: Mapped["AnalysisRequest"] = relationship(back_populates="metadata_")
