"""Debug-only endpoints, registered when settings.debug is on."""

import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas import AnalysisProcessingResponse
from db.models import RequestStatus
from db.repositories import AnalysisRequestRepository
from db.session import get_db_session
from exceptions import AnalysisNotFoundError, InvalidStateTransitionError

from worker.tasks import enqueue_analysis

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/debug", tags=["Debug"])


@router.post(
    "/trigger/{analysis_id}",
    response_model=AnalysisProcessingResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Re-queue a pending analysis",
)
async def trigger_analysis(
    analysis_id: uuid.UUID,
    db: AsyncSession = Depends(get_db_session),
) -> AnalysisProcessingResponse:
    """Queue start_analysis again for a request no worker has claimed."""
    repo = AnalysisRequestRepository(db)
    analysis = await repo.get_by_id(analysis_id)

    if not analysis:
        raise AnalysisNotFoundError(f"Analysis {analysis_id} not found")

    if analysis.status != RequestStatus.PENDING:
        raise InvalidStateTransitionError(f"Analysis already {analysis.status.value}")

    logger.info(f"Debug trigger re-queued analysis {analysis_id}")
    enqueue_analysis(analysis.id)

    return AnalysisProcessingResponse(
        id=analysis.id,
        status=analysis.status.value,
        message="Analysis re-queued",
    )
