"""
Shared helper functions for API endpoints.

- Dependency that builds the simulation service for a request
- Translation of pipeline errors into ``{"success": false, "error": ...}``
"""
from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

from fastapi import status
from fastapi.responses import JSONResponse

from ...core.errors import (
    ConfigurationError,
    GenerationFailure,
    InvalidImageError,
    ValidationRejected,
)
from ...services.simulation_service import SimulationService, build_simulation_service

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[Optional[str]], SimulationService]


def get_service_factory() -> ServiceFactory:
    """Dependency returning a callable that builds a service from an optional request key."""
    return build_simulation_service


def status_for(exc: Exception) -> Tuple[int, str]:
    """
    Map a pipeline exception to an HTTP status and user-facing message.

    Returns:
        Tuple of (status_code, error message)
    """
    if isinstance(exc, ConfigurationError):
        return status.HTTP_401_UNAUTHORIZED, str(exc)
    if isinstance(exc, (ValidationRejected, InvalidImageError)):
        return status.HTTP_400_BAD_REQUEST, str(exc)
    if isinstance(exc, GenerationFailure):
        return status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc)
    return status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or exc.__class__.__name__


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def exception_response(exc: Exception, operation: str) -> JSONResponse:
    """Log a failed request and build its error response."""
    status_code, message = status_for(exc)
    if status_code >= 500:
        logger.error(f"❌ {operation} failed: {message}", exc_info=True)
    else:
        logger.warning(f"⚠️ {operation} refused ({status_code}): {message}")
    return error_response(status_code, message)
