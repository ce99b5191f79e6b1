"""
Feathered blending of the model output back into the original photo.

Only the masked region is replaced. The mask's alpha is blurred with a deep
feather before it is used, so the replaced region fades into the photo over
``FEATHER_RADIUS`` pixels instead of ending in a visible seam. Outside the
feathered mask the photo is untouched, pixel for pixel.
"""

from __future__ import annotations

import logging
from typing import Optional

from PIL import Image

from ..core.errors import CompositionFailure
from .image_processing import mask_to_alpha
from .raster import RasterBackend, get_raster_backend

logger = logging.getLogger(__name__)

# Shared by every backend; changing it changes the look of every result.
FEATHER_RADIUS = 12


def feathered_alpha(
    size: tuple[int, int],
    mask: Image.Image,
    feather_radius: float = FEATHER_RADIUS,
    backend: Optional[RasterBackend] = None,
) -> Image.Image:
    """Mask opacity resampled to ``size`` and feathered; L mode."""
    backend = backend or get_raster_backend()
    alpha = backend.resample(mask_to_alpha(mask), size)
    return backend.blur_mask(alpha, feather_radius)


def composite_final(
    photo: Image.Image,
    ai_output: Image.Image,
    mask: Image.Image,
    feather_radius: float = FEATHER_RADIUS,
    backend: Optional[RasterBackend] = None,
) -> Image.Image:
    """
    Blend the model output into the photo inside the feathered mask.

    Steps:
    1. Resample mask and model output to the photo's size
    2. Feather the mask alpha
    3. Destination-in: model colour, feathered mask alpha
    4. Source-over onto the photo at (0, 0)

    Args:
        photo: Original patient photo
        ai_output: Image returned by the model (any size)
        mask: Brush mask (any size)
        feather_radius: Blur reach in pixels
        backend: Raster primitives to use (configured default when None)

    Returns:
        RGB image with the photo's dimensions

    Raises:
        CompositionFailure: If any image cannot be resampled or blended
    """
    backend = backend or get_raster_backend()
    size = photo.size
    try:
        alpha = feathered_alpha(size, mask, feather_radius, backend)
        ai_resized = backend.resample(ai_output.convert("RGB"), size)
        ai_with_alpha = backend.mask_with(ai_resized, alpha)
        result = backend.alpha_over(photo.convert("RGB"), ai_with_alpha)
    except (OSError, ValueError) as exc:
        raise CompositionFailure(f"Failed to composite final result: {exc}") from exc

    if ai_output.size != size:
        logger.info(f"🔁 Model output resampled {ai_output.size} -> {size}")
    logger.info(
        f"🎨 Final composite ready: size={size}, feather={feather_radius}px, backend={backend.name}"
    )
    return result
