"""
Error taxonomy for the simulation pipeline.

Endpoints translate these into ``{"success": false, "error": ...}`` responses:
- ConfigurationError -> 401
- ValidationRejected / InvalidImageError -> 400
- GenerationFailure -> 500

CompositionFailure never reaches the HTTP boundary directly: the pipeline
either falls back to the raw model output or re-raises it as GenerationFailure.
"""

from __future__ import annotations


class ScalpSimError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(ScalpSimError):
    """The generative-service credential is missing or was rejected."""


class ValidationRejected(ScalpSimError):
    """The suitability classifier said the photo is not a head/scalp photo."""


class GenerationFailure(ScalpSimError):
    """Model transport error, or the model returned no image part."""


class CompositionFailure(ScalpSimError):
    """An image could not be decoded, resampled or blended."""


class InvalidImageError(ScalpSimError, ValueError):
    """A request image is not a well-formed data URI or decodable image."""


class InvalidTransitionError(ScalpSimError):
    """A simulation session was asked to move along an illegal edge."""
