"""Domain exceptions and their HTTP mapping."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SiteGradeError(Exception):
    """Base exception for SiteGrade operations."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidSubmissionError(SiteGradeError):
    """Raised when a submission fails input validation."""

    status_code = status.HTTP_400_BAD_REQUEST


class DuplicateSubmissionError(SiteGradeError):
    """Raised when the submitting email already has an analysis."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str | None = None):
        super().__init__(
            message
            or "This email address has already been used to request an analysis. "
            "Each email address can request one SiteGrade report."
        )


class SubmissionRateLimitedError(SiteGradeError):
    """Raised when the same URL is resubmitted inside the cooldown window."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class AnalysisNotFoundError(SiteGradeError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidStateTransitionError(SiteGradeError):
    """Raised when a request is not in the state an operation requires."""

    status_code = status.HTTP_409_CONFLICT


class ExtractionError(SiteGradeError):
    """Raised when the target page cannot be loaded after all retries."""


def setup_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(SiteGradeError)
    async def sitegrade_exception_handler(request: Request, exc: SiteGradeError):
        if exc.status_code >= 500:
            logger.error(f"Unhandled SiteGrade error on {request.url.path}: {exc.message}")
        else:
            logger.info(f"Rejected {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message},
        )
