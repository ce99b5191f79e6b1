"""
Models package for the scalp simulation backend.

This package contains Pydantic models for request/response validation.
Field names follow the frontend's camelCase contract through aliases.
"""

from .schemas import (
    DensityLevel,
    HealthResponse,
    SimulateRequest,
    SimulateResponse,
    ValidateRequest,
    ValidateResponse,
)

__all__ = [
    "DensityLevel",
    "HealthResponse",
    "SimulateRequest",
    "SimulateResponse",
    "ValidateRequest",
    "ValidateResponse",
]
