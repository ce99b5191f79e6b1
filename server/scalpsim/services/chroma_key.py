"""
Chroma-key composition of the AI input image.

The user's brush mask is painted onto the photo in pure green (#00FF00), a
colour that never occurs in skin or hair, so the model treats the region as
artificial and replaces it completely. The mask keeps its exact shape; only
its fill colour changes, and its edge gets a 1px softening before it is laid
over the photo.
"""

from __future__ import annotations

import logging
from typing import Optional

from PIL import Image

from ..core.errors import CompositionFailure
from .image_processing import mask_to_alpha
from .raster import RasterBackend, get_raster_backend

logger = logging.getLogger(__name__)

MARKER_COLOR = (0, 255, 0)
CHROMA_EDGE_RADIUS = 1


def chroma_key_layer(
    size: tuple[int, int],
    mask: Image.Image,
    backend: Optional[RasterBackend] = None,
) -> Image.Image:
    """
    Recolor the mask to the marker colour at ``size``, before any softening.

    The alpha channel of the returned RGBA layer equals the (resampled) mask
    opacity exactly.
    """
    backend = backend or get_raster_backend()
    alpha = backend.resample(mask_to_alpha(mask), size)
    return backend.marker_layer(alpha, MARKER_COLOR)


def compose_ai_input(
    photo: Image.Image,
    mask: Optional[Image.Image],
    backend: Optional[RasterBackend] = None,
    edge_radius: float = CHROMA_EDGE_RADIUS,
) -> Image.Image:
    """
    Paint the mask region of the photo in the marker colour.

    Args:
        photo: Patient photo (any mode; flattened to RGB)
        mask: Brush mask, or None
        backend: Raster primitives to use (configured default when None)
        edge_radius: Softening applied to the recoloured mask only

    Returns:
        RGB image with the photo's dimensions; ``photo`` itself when there is
        no mask

    Raises:
        CompositionFailure: If the mask cannot be resampled or blended
    """
    if mask is None:
        logger.info("No mask supplied, AI input is the unmodified photo")
        return photo

    backend = backend or get_raster_backend()
    try:
        layer = chroma_key_layer(photo.size, mask, backend)
        layer = backend.blur_alpha(layer, edge_radius)
        composed = backend.alpha_over(photo.convert("RGB"), layer)
    except (OSError, ValueError) as exc:
        raise CompositionFailure(f"Failed to compose chroma-key input: {exc}") from exc

    logger.info(f"🟩 Chroma-key input composed: size={composed.size}, backend={backend.name}")
    return composed
