"""Synchronous persistence used by the analysis pipeline."""

import uuid
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from analyzers.base import PillarResult
from db.models import (
    AnalysisMetadata,
    AnalysisRequest,
    AnalysisResult,
    Pillar,
    RequestStatus,
    utcnow,
)
from db.session import get_sync_session_factory


@dataclass(frozen=True)
class RequestSnapshot:
    """Detached copy of the request fields the pipeline needs."""

    id: uuid.UUID
    url: str
    email: str
    status: RequestStatus


class AnalysisStore:
    """
    Request, result and metadata writes for Celery workers.

    Every method opens and commits its own short session so that each
    pillar result is durable as soon as it is saved.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self.session_factory = session_factory or get_sync_session_factory()

    def get_request(self, request_id: uuid.UUID) -> RequestSnapshot | None:
        with self.session_factory() as session:
            request = session.get(AnalysisRequest, request_id)
            if request is None:
                return None
            return RequestSnapshot(
                id=request.id,
                url=request.url,
                email=request.email,
                status=request.status,
            )

    def claim_for_processing(self, request_id: uuid.UUID) -> bool:
        """Conditional pending -> processing update; False when the claim is lost."""
        with self.session_factory() as session:
            result = session.execute(
                update(AnalysisRequest)
                .where(
                    AnalysisRequest.id == request_id,
                    AnalysisRequest.status == RequestStatus.PENDING,
                )
                .values(status=RequestStatus.PROCESSING, started_at=utcnow())
            )
            session.commit()
            return result.rowcount == 1

    def save_result(self, request_id: uuid.UUID, pillar: Pillar, result: PillarResult) -> None:
        """Append one pillar row; earlier rows for the same pillar are kept."""
        with self.session_factory() as session:
            session.add(
                AnalysisResult(
                    request_id=request_id,
                    pillar=pillar,
                    score=result.score,
                    analyzed=result.analyzed,
                    insights=result.insights,
                    recommendations=list(result.recommendations),
                    raw_data=result.raw_data,
                    error_message=None if result.analyzed else result.error,
                )
            )
            session.commit()

    def update_metadata(self, request_id: uuid.UUID, **fields) -> None:
        """Update the request's metadata row, creating it if it is missing."""
        with self.session_factory() as session:
            metadata = session.execute(
                select(AnalysisMetadata).where(AnalysisMetadata.request_id == request_id)
            ).scalar_one_or_none()
            if metadata is None:
                metadata = AnalysisMetadata(request_id=request_id)
                session.add(metadata)
            for key, value in fields.items():
                setattr(metadata, key, value)
            session.commit()

    def mark_completed(self, request_id: uuid.UUID) -> None:
        self._finish(request_id, RequestStatus.COMPLETED)

    def mark_failed(self, request_id: uuid.UUID, error_message: str) -> None:
        self._finish(request_id, RequestStatus.FAILED, error_message)

    def _finish(
        self,
        request_id: uuid.UUID,
        status: RequestStatus,
        error_message: str | None = None,
    ) -> None:
        with self.session_factory() as session:
            request = session.get(AnalysisRequest, request_id)
            if request is None:
                return
            request.status = status
            request.completed_at = utcnow()
            if error_message:
                request.error_message = error_message
            session.commit()
