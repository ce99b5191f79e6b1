"""
System endpoints for health checks.
"""

from __future__ import annotations

from fastapi import APIRouter

from ...core.config import settings
from ...models import HealthResponse

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(
        success=True,
        message="Server is running",
        model=settings.model_name,
        raster_backend=settings.raster_backend,
    )
