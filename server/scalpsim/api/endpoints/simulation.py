"""
Simulation endpoints.

- POST /api/v1/validate: Is the photo a head/scalp photo?
- POST /api/v1/simulate: Generate the hair restoration preview

Both endpoints are plain ``def`` handlers: the Gemini call blocks, so
FastAPI runs them in its worker threadpool.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from ...models import SimulateRequest, SimulateResponse, ValidateRequest, ValidateResponse
from ._helpers import ServiceFactory, error_response, exception_response, get_service_factory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["simulation"])


@router.post("/validate", response_model=ValidateResponse, response_model_exclude_none=True)
def validate_photo(
    request: ValidateRequest,
    service_factory: ServiceFactory = Depends(get_service_factory),
):
    """
    Check whether the uploaded photo is suitable for simulation.

    Returns ``{"success": true}`` when accepted; a rejected photo answers 400
    with the rejection message.
    """
    try:
        service = service_factory(request.api_key)
        result = service.validate(request.patient_image)
    except Exception as exc:
        return exception_response(exc, "Validation")

    if not result.accepted:
        return error_response(400, result.reason)
    return ValidateResponse(success=True)


@router.post("/simulate", response_model=SimulateResponse, response_model_exclude_none=True)
def simulate(
    request: SimulateRequest,
    service_factory: ServiceFactory = Depends(get_service_factory),
):
    """Run the full pipeline and return the final image as a PNG data URI."""
    logger.info(
        f"📥 /simulate request: density={request.density.value}, "
        f"mask={'yes' if request.mask else 'no'}, client_key={'yes' if request.api_key else 'no'}"
    )
    try:
        service = service_factory(request.api_key)
        result_image = service.simulate(
            request.patient_image,
            mask_uri=request.mask,
            density=request.density.value,
        )
    except Exception as exc:
        return exception_response(exc, "Simulation")

    return SimulateResponse(success=True, result_image=result_image)
