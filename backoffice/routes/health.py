"""
Liveness check.

Mounted at the application root and left outside the session/Bearer auth
so deploy checks can reach it.
"""

from fastapi import APIRouter

from backoffice.schemas.health import HealthResponse
from backoffice.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    status_code=200,
)
async def health_check() -> HealthResponse:
    logger.debug("Health check")
    return HealthResponse()
