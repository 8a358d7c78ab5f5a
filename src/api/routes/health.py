"""Liveness endpoint."""

from fastapi import APIRouter

from api.schemas import HealthResponse
from config import settings

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Liveness probe for load balancers; does not touch the database or broker.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(service=settings.app_name.lower())
