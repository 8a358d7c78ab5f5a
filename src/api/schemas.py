"""Pydantic schemas for API request/response validation."""

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Request Schemas (what clients send to us)
# =============================================================================


class AnalysisCreateRequest(BaseModel):
    """
    Request body for submitting a website.

    Both fields are optional at the schema level so that missing values
    get the same user-facing messages as invalid ones.
    """

    url: str | None = Field(
        default=None,
        description="The website to analyze; a bare host gets https://",
        examples=["https://example.org"],
    )
    email: str | None = Field(
        default=None,
        description="Where the report is sent. Each address may submit once.",
        examples=["owner@example.org"],
    )


class AnalysisProcessRequest(BaseModel):
    """Request body for triggering processing of a pending analysis."""

    model_config = ConfigDict(populate_by_name=True)

    request_id: uuid.UUID = Field(..., alias="requestId")


# =============================================================================
# Response Schemas (what we send back to clients)
# =============================================================================


class AnalysisCreatedResponse(BaseModel):
    """Response when an analysis is successfully queued."""

    id: uuid.UUID
    url: str
    status: str
    message: str = "Analysis started successfully"


class AnalysisProcessingResponse(BaseModel):
    """Response when processing has been handed to a worker."""

    id: uuid.UUID
    status: str
    message: str = "Analysis processing started"


class PillarResponse(BaseModel):
    """Latest stored result of one pillar."""

    score: int
    grade: str
    analyzed: bool
    insights: str
    recommendations: list[str] = []
    error: str | None = None


class AnalysisStatusResponse(BaseModel):
    """
    Status document polled by clients.

    Pillars appear as their results land, so a request still processing
    returns a partial map.
    """

    id: uuid.UUID
    url: str
    status: str
    progress: int = Field(..., ge=0, le=100, description="Stored pillars out of seven, in percent")
    created_at: datetime
    completed_at: datetime | None
    error_message: str | None
    overall_score: int | None
    overall_grade: str | None
    analysis_duration: int | None
    estimated_time_remaining: int = Field(..., description="Seconds, 0 unless processing")
    pillars: dict[str, PillarResponse] = {}


# =============================================================================
# Health Check
# =============================================================================


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = "healthy"
    service: str = "sitegrade"
    version: str = "0.1.0"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
