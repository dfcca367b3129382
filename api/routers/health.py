"""Health check endpoint"""

import time

from fastapi import APIRouter

from api.schemas.common import HealthCheckResponse
from config.settings import get_settings

router = APIRouter(tags=["Health"])

_started_at = time.monotonic()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Liveness probe."""
    settings = get_settings()
    return HealthCheckResponse(
        status="ok",
        service=settings.app.name,
        version=settings.app.version,
        uptime=round(time.monotonic() - _started_at, 3),
    )
