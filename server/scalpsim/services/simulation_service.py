"""
Simulation service: validate → reference → chroma-key → generate → composite.

This service handles:
- Photo ingestion and normalisation
- The suitability gate, which always runs before any image generation
- Density reference lookup and chroma-key input composition
- The generative call and the feathered blend back into the photo
- Fallback to the raw model output when the final blend fails

Each call allocates its own working images and its own SimulationSession,
so concurrent requests share nothing mutable.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional, Union

from PIL import Image

from ..core.config import settings
from ..core.errors import (
    CompositionFailure,
    ConfigurationError,
    GenerationFailure,
    InvalidImageError,
    ValidationRejected,
)
from ..core.prompts import density_label
from .chroma_key import compose_ai_input
from .gemini_client import (
    MISSING_KEY_MESSAGE,
    GeminiClient,
    GenerativeModel,
    build_simulation_parts,
)
from .image_processing import InlineImage, apply_exif_orientation, normalize_photo, to_rgb
from .raster import RasterBackend, get_raster_backend
from .reference_catalog import select_reference
from .result_compositor import composite_final
from .session_state import SimulationSession, SimulationStage
from .validation_gate import ValidationGate, ValidationResult

logger = logging.getLogger(__name__)


# ============================================================================
# Helper Functions
# ============================================================================

def _decode_mask(mask_uri: Optional[str]) -> Optional[Image.Image]:
    """Decode the brush mask, keeping its mode so the alpha channel survives."""
    if not mask_uri:
        return None
    mask, _ = apply_exif_orientation(InlineImage.from_data_uri(mask_uri).open())
    return mask


def _encode_ai_input(image: Image.Image) -> InlineImage:
    """Lossless PNG so the marker region stays exactly (0, 255, 0)."""
    return InlineImage.from_image(image.convert("RGB"), format="PNG")


class SimulationService:
    """
    Runs one simulation request end to end.

    Args:
        model: Generative model (GeminiClient in production, a stub in tests)
        reference_root: Catalog root holding ``references/density/<level>``
        backend: Raster primitives; configured default when None
        max_dimension: Longer-edge limit applied to uploaded photos
        jpeg_quality: Quality for re-encoded photos
    """

    def __init__(
        self,
        model: GenerativeModel,
        reference_root: Optional[Union[str, Path]] = None,
        backend: Optional[RasterBackend] = None,
        max_dimension: Optional[int] = None,
        jpeg_quality: Optional[int] = None,
    ) -> None:
        self.model = model
        self.reference_root = Path(reference_root or settings.reference_root_path)
        self.backend = backend or get_raster_backend()
        self.max_dimension = max_dimension or settings.max_image_dimension
        self.jpeg_quality = jpeg_quality or settings.jpeg_quality
        self.gate = ValidationGate(model)

    def _ingest(self, patient_image_uri: str) -> tuple[Image.Image, InlineImage]:
        photo = InlineImage.from_data_uri(patient_image_uri)
        return normalize_photo(photo, self.max_dimension, self.jpeg_quality)

    def _run_gate(self, session: SimulationSession, photo: InlineImage) -> ValidationResult:
        session.advance(SimulationStage.VALIDATING)
        try:
            result = self.gate.validate(photo)
        except Exception as exc:
            session.advance(SimulationStage.FAILED, error=str(exc))
            raise
        if result.accepted:
            session.advance(SimulationStage.READY)
        else:
            session.advance(SimulationStage.FAILED, error=result.reason)
        return result

    def validate(self, patient_image_uri: str) -> ValidationResult:
        """
        Run only the suitability check on an uploaded photo.

        Raises:
            InvalidImageError: If the photo cannot be decoded
            ConfigurationError: If the model credential is missing or rejected
            GenerationFailure: If the model call fails
        """
        session = SimulationSession(label="validate")
        _, photo = self._ingest(patient_image_uri)
        session.advance(SimulationStage.UPLOADED)
        return self._run_gate(session, photo)

    def simulate(
        self,
        patient_image_uri: str,
        mask_uri: Optional[str] = None,
        density: Optional[str] = None,
    ) -> str:
        """
        Produce the "after" image for a photo, mask and density level.

        Args:
            patient_image_uri: Data URI of the patient photo
            mask_uri: Data URI of the brush mask; when absent the whole frame
                is the region and the raw model output is returned
            density: LOW, MEDIUM or HIGH (any casing); MEDIUM when empty

        Returns:
            PNG data URI of the final image

        Raises:
            InvalidImageError: If the photo or mask cannot be decoded
            ValidationRejected: If the photo is not a head/scalp photo
            ConfigurationError: If the model credential is missing or rejected
            GenerationFailure: If the model fails or returns no image
        """
        start_time = time.time()
        label = density_label(density)
        session = SimulationSession(label=f"simulate:{label}")

        photo_image, photo = self._ingest(patient_image_uri)
        mask = _decode_mask(mask_uri)
        session.advance(SimulationStage.UPLOADED)
        logger.info(
            f"🧪 Simulation requested: size={photo_image.size}, density={label}, "
            f"mask={'yes' if mask is not None else 'no'}"
        )

        validation = self._run_gate(session, photo)
        if not validation.accepted:
            raise ValidationRejected(validation.reason)

        # A missing mask selects the whole frame
        session.advance(SimulationStage.MASKED)
        session.advance(SimulationStage.GENERATING)
        try:
            result = self._generate(photo_image, photo, mask, label)
        except Exception as exc:
            session.advance(SimulationStage.FAILED, error=str(exc))
            raise
        session.advance(SimulationStage.COMPLETE)

        logger.info(f"✅ Simulation complete in {time.time() - start_time:.2f}s")
        return InlineImage.from_image(result, format="PNG").to_data_uri()

    def _generate(
        self,
        photo_image: Image.Image,
        photo: InlineImage,
        mask: Optional[Image.Image],
        label: str,
    ) -> Image.Image:
        reference = select_reference(label, self.reference_root)

        if mask is None:
            subject = photo
        else:
            try:
                composed = compose_ai_input(photo_image, mask, self.backend)
            except CompositionFailure as exc:
                logger.error(f"❌ Chroma-key composition failed: {exc}")
                raise GenerationFailure(f"Failed to prepare AI input: {exc}") from exc
            subject = _encode_ai_input(composed)

        parts = build_simulation_parts(subject, label, reference)
        logger.info(
            f"📤 Sending {len(parts)} parts to the model "
            f"(reference={'yes' if reference is not None else 'no'})"
        )
        generated = self.model.generate_image(parts)
        try:
            ai_output = to_rgb(generated.open())
        except InvalidImageError as exc:
            logger.error(f"❌ Model returned undecodable image data: {exc}")
            raise GenerationFailure("AI failed to generate results") from exc

        if mask is None:
            return ai_output

        try:
            return composite_final(photo_image, ai_output, mask, backend=self.backend)
        except CompositionFailure as exc:
            logger.warning(f"⚠️ Final composite failed, returning raw model output: {exc}")
            return ai_output


def build_simulation_service(api_key: Optional[str] = None) -> SimulationService:
    """
    Create a service bound to the configured model.

    The server's GEMINI_API_KEY always wins; a key sent with the request is
    only used when the server has none.

    Raises:
        ConfigurationError: If neither key is available
    """
    key = settings.gemini_api_key or api_key
    if not key:
        raise ConfigurationError(MISSING_KEY_MESSAGE)
    return SimulationService(GeminiClient(api_key=key, model_name=settings.model_name))
