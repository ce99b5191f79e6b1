from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DensityLevel(str, Enum):
    """Simulated follicle density; also selects the reference exemplar."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class _CamelModel(BaseModel):
    # Frontend sends camelCase keys; accept snake_case too for Python callers
    model_config = ConfigDict(populate_by_name=True)


class ValidateRequest(_CamelModel):
    patient_image: str = Field(..., alias="patientImage", description="Data URI of the patient photo")
    api_key: Optional[str] = Field(
        default=None, alias="apiKey",
        description="Gemini API key, used only when the server has none configured"
    )


class ValidateResponse(_CamelModel):
    success: bool
    error: Optional[str] = None


class SimulateRequest(_CamelModel):
    patient_image: str = Field(..., alias="patientImage", description="Data URI of the patient photo")
    mask: Optional[str] = Field(
        default=None,
        description="Data URI of the brush mask (alpha or luminance marks the treatment region)"
    )
    density: DensityLevel = Field(default=DensityLevel.MEDIUM, description="LOW, MEDIUM or HIGH")
    api_key: Optional[str] = Field(
        default=None, alias="apiKey",
        description="Gemini API key, used only when the server has none configured"
    )

    @field_validator("density", mode="before")
    @classmethod
    def normalize_density(cls, value):
        """Accept any casing and treat an empty value as MEDIUM."""
        if value is None or (isinstance(value, str) and not value.strip()):
            return DensityLevel.MEDIUM
        if isinstance(value, str):
            return value.strip().upper()
        return value


class SimulateResponse(_CamelModel):
    success: bool
    result_image: Optional[str] = Field(default=None, alias="resultImage")
    error: Optional[str] = None


class HealthResponse(BaseModel):
    success: bool
    message: str
    model: str
    raster_backend: str
