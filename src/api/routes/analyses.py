"""Analysis API endpoints."""

import logging
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import (
    AnalysisCreatedResponse,
    AnalysisCreateRequest,
    AnalysisProcessingResponse,
    AnalysisProcessRequest,
    AnalysisStatusResponse,
    PillarResponse,
)
from api.validators import validate_submission
from config import settings
from db.models import AnalysisRequest, AnalysisResult, Pillar, RequestStatus, utcnow
from db.repositories import AnalysisRequestRepository, AnalysisResultRepository
from db.session import get_db_session
from exceptions import (
    AnalysisNotFoundError,
    DuplicateSubmissionError,
    InvalidStateTransitionError,
    SubmissionRateLimitedError,
)
from grading import calculate_overall_grade, score_to_grade

from worker.tasks import enqueue_analysis

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analyses", tags=["Analyses"])

STALE_PENDING_MESSAGE = "Analysis timed out - process may have failed to start"


@router.post(
    "",
    response_model=AnalysisCreatedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Submit a website",
    description="Validate the submission, store a pending analysis and queue it. Returns immediately.",
)
async def create_analysis(
    request: AnalysisCreateRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AnalysisCreatedResponse:
    """
    Create an analysis request.

    The request is queued for background processing; poll
    GET /analyses/{id} for progress.
    """
    url, email = validate_submission(request.url, request.email)

    repo = AnalysisRequestRepository(db)
    if await repo.email_exists(email):
        raise DuplicateSubmissionError()

    since = utcnow() - timedelta(seconds=settings.submission_cooldown_seconds)
    if await repo.submitted_since(url, since):
        raise SubmissionRateLimitedError(
            "Analysis for this URL was recently requested. Please wait before requesting again."
        )

    try:
        analysis = await repo.create(url=url, email=email)
        await db.commit()
    except IntegrityError:
        # Lost a race against a concurrent submission with the same email
        await db.rollback()
        raise DuplicateSubmissionError()

    logger.info(f"Created analysis {analysis.id} for {url}")

    # Queue the analysis task
    enqueue_analysis(analysis.id)

    return AnalysisCreatedResponse(
        id=analysis.id,
        url=analysis.url,
        status=analysis.status.value,
    )


@router.post(
    "/process",
    response_model=AnalysisProcessingResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start processing",
    description="Claim a pending analysis and hand it to a worker.",
)
async def process_analysis(
    request: AnalysisProcessRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AnalysisProcessingResponse:
    repo = AnalysisRequestRepository(db)
    analysis = await repo.get_by_id(request.request_id)

    if not analysis:
        raise AnalysisNotFoundError(f"Analysis {request.request_id} not found")

    if analysis.status != RequestStatus.PENDING:
        raise InvalidStateTransitionError(f"Analysis already {analysis.status.value}")

    if not await repo.claim_for_processing(analysis.id):
        raise InvalidStateTransitionError(f"Analysis already {RequestStatus.PROCESSING.value}")
    await db.commit()

    enqueue_analysis(analysis.id, claimed=True)

    return AnalysisProcessingResponse(id=analysis.id, status=RequestStatus.PROCESSING.value)


@router.get(
    "/{analysis_id}",
    response_model=AnalysisStatusResponse,
    summary="Get analysis status",
    description="Status, progress and the latest result of every pillar stored so far.",
)
async def get_analysis(
    analysis_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> AnalysisStatusResponse:
    """
    Build the status document.

    Also repairs two lagging states: a processing request whose seven
    pillars are all stored is marked completed, and a pending request
    that no worker picked up in time is marked failed.
    """
    repo = AnalysisRequestRepository(db)
    analysis = await repo.get_by_id(analysis_id)

    if not analysis:
        raise AnalysisNotFoundError(f"Analysis {analysis_id} not found")

    latest = await AnalysisResultRepository(db).latest_by_pillar(analysis_id)
    now = utcnow()

    if analysis.status == RequestStatus.PROCESSING and len(latest) == len(Pillar):
        logger.info(f"All pillars stored for {analysis_id}, marking completed")
        await repo.update_status(analysis, RequestStatus.COMPLETED)
    elif analysis.status == RequestStatus.PENDING and now - as_utc(analysis.created_at) > timedelta(
        minutes=settings.stale_pending_minutes
    ):
        logger.warning(f"Analysis {analysis_id} never started, marking failed")
        await repo.update_status(analysis, RequestStatus.FAILED, STALE_PENDING_MESSAGE)

    return _status_document(analysis, latest, now)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _status_document(
    analysis: AnalysisRequest,
    latest: dict[Pillar, AnalysisResult],
    now: datetime,
) -> AnalysisStatusResponse:
    pillars = {
        pillar.value: PillarResponse(
            score=latest[pillar].score,
            grade=score_to_grade(latest[pillar].score),
            analyzed=latest[pillar].analyzed,
            insights=latest[pillar].insights,
            recommendations=latest[pillar].recommendations or [],
            error=latest[pillar].error_message,
        )
        for pillar in Pillar
        if pillar in latest
    }

    overall_score = None
    overall_grade = None
    if analysis.status == RequestStatus.COMPLETED:
        scores = [result.score for result in latest.values() if result.analyzed]
        stored_total = analysis.metadata_.total_score if analysis.metadata_ else None
        if stored_total is not None:
            overall_score = stored_total
        else:
            overall_score = round(sum(scores) / len(scores)) if scores else 0
        overall_grade = calculate_overall_grade(scores)

    estimated = 0
    if analysis.status == RequestStatus.PROCESSING:
        started = as_utc(analysis.started_at or analysis.created_at)
        elapsed = int((now - started).total_seconds())
        estimated = max(0, settings.expected_analysis_seconds - elapsed)

    return AnalysisStatusResponse(
        id=analysis.id,
        url=analysis.url,
        status=analysis.status.value,
        progress=round(len(latest) / len(Pillar) * 100),
        created_at=analysis.created_at,
        completed_at=analysis.completed_at,
        error_message=analysis.error_message,
        overall_score=overall_score,
        overall_grade=overall_grade,
        analysis_duration=analysis.metadata_.analysis_duration if analysis.metadata_ else None,
        estimated_time_remaining=estimated,
        pillars=pillars,
    )
