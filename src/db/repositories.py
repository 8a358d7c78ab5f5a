"""Repository pattern for database operations used by the API."""

import uuid
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import (
    AnalysisMetadata,
    AnalysisRequest,
    AnalysisResult,
    Pillar,
    RequestStatus,
    utcnow,
)


class AnalysisRequestRepository:
    """Handles all AnalysisRequest-related database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, url: str, email: str) -> AnalysisRequest:
        """Create a pending request together with its empty metadata row."""
        request = AnalysisRequest(
            url=url,
            email=email.lower(),
            status=RequestStatus.PENDING,
        )
        request.metadata_ = AnalysisMetadata()
        self.session.add(request)
        await self.session.flush()  # Assigns the ID without committing
        return request

    async def get_by_id(self, request_id: uuid.UUID) -> AnalysisRequest | None:
        result = await self.session.execute(
            select(AnalysisRequest).where(AnalysisRequest.id == request_id)
        )
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        result = await self.session.execute(
            select(func.count())
            .select_from(AnalysisRequest)
            .where(AnalysisRequest.email == email.lower())
        )
        return result.scalar_one() > 0

    async def submitted_since(self, url: str, since: datetime) -> bool:
        """Whether the normalized URL was submitted at or after `since`."""
        result = await self.session.execute(
            select(func.count())
            .select_from(AnalysisRequest)
            .where(AnalysisRequest.url == url, AnalysisRequest.created_at >= since)
        )
        return result.scalar_one() > 0

    async def claim_for_processing(self, request_id: uuid.UUID) -> bool:
        """
        Atomically move a request from pending to processing.

        Returns False when another caller already claimed it.
        """
        result = await self.session.execute(
            update(AnalysisRequest)
            .where(
                AnalysisRequest.id == request_id,
                AnalysisRequest.status == RequestStatus.PENDING,
            )
            .values(status=RequestStatus.PROCESSING, started_at=utcnow())
        )
        return result.rowcount == 1

    async def update_status(
        self,
        request: AnalysisRequest,
        status: RequestStatus,
        error_message: str | None = None,
    ) -> None:
        request.status = status
        if status in (RequestStatus.COMPLETED, RequestStatus.FAILED):
            request.completed_at = utcnow()
        if error_message:
            request.error_message = error_message
        await self.session.flush()


class AnalysisResultRepository:
    """Handles AnalysisResult database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def latest_by_pillar(self, request_id: uuid.UUID) -> dict[Pillar, AnalysisResult]:
        """Most recent result per pillar; older rows from reruns are ignored."""
        result = await self.session.execute(
            select(AnalysisResult)
            .where(AnalysisResult.request_id == request_id)
            .order_by(AnalysisResult.created_at)
        )
        latest: dict[Pillar, AnalysisResult] = {}
        for row in result.scalars().all():
            latest[row.pillar] = row
        return latest
