"""
Image Processing Service

This module provides utilities for image transport and ingestion:
- Data URI splitting and joining (``data:<mime>;base64,<payload>``)
- Base64 decoding to PIL images and encoding back
- Photo normalisation (longer edge capped, high-quality JPEG)
- Reading a brush mask as a single-channel opacity image

All functions work with PIL Image objects. Photos are handled in RGB mode,
masks in L mode.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from ..core.errors import InvalidImageError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"
SUPPORTED_FORMATS = ("PNG", "JPEG", "MPO", "WEBP", "BMP", "GIF", "TIFF")

EXIF_ORIENTATION_TAG = 0x0112

_FORMAT_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
}


# ============================================================================
# Data URIs
# ============================================================================

def split_data_uri(data_uri: str) -> Tuple[str, str]:
    """
    Split a data URI into its mime type and base64 payload.

    A bare base64 string (no ``data:`` prefix) is accepted and reported as
    ``image/png``. The payload is returned verbatim so that
    ``join_data_uri(*split_data_uri(uri)) == uri``.

    Raises:
        InvalidImageError: If the input is empty or the header is malformed
    """
    if not data_uri or not data_uri.strip():
        raise InvalidImageError("Image data cannot be empty")

    if not data_uri.startswith("data:"):
        return DEFAULT_MIME_TYPE, data_uri

    header, sep, payload = data_uri.partition(",")
    if not sep:
        raise InvalidImageError("Malformed data URI: missing ',' separator")
    if not header.endswith(";base64"):
        raise InvalidImageError("Malformed data URI: only base64 payloads are supported")

    mime_type = header[len("data:"):-len(";base64")]
    if not mime_type:
        raise InvalidImageError("Malformed data URI: missing mime type")

    return mime_type, payload


def join_data_uri(mime_type: str, payload: str) -> str:
    """Reassemble a data URI from a mime type and base64 payload."""
    return f"data:{mime_type};base64,{payload}"


@dataclass(frozen=True)
class InlineImage:
    """Raw image bytes plus their mime type, as exchanged with Gemini."""

    mime_type: str
    data: bytes

    @classmethod
    def from_data_uri(cls, data_uri: str) -> "InlineImage":
        mime_type, payload = split_data_uri(data_uri)
        if not payload.strip():
            raise InvalidImageError("Image data is empty after removing data URI prefix")
        try:
            data = base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as exc:
            raise InvalidImageError(f"Invalid base64 image data: {exc}") from exc
        if not data:
            raise InvalidImageError("Decoded image bytes are empty")
        return cls(mime_type=mime_type, data=data)

    @classmethod
    def from_image(cls, image: Image.Image, format: str = "PNG", **save_kwargs) -> "InlineImage":
        buffer = io.BytesIO()
        image.save(buffer, format=format, **save_kwargs)
        mime_type = _FORMAT_MIME_TYPES.get(format.upper(), f"image/{format.lower()}")
        return cls(mime_type=mime_type, data=buffer.getvalue())

    @property
    def payload(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_uri(self) -> str:
        return join_data_uri(self.mime_type, self.payload)

    def open(self) -> Image.Image:
        """Decode the bytes into a loaded PIL image (mode untouched)."""
        return open_image_bytes(self.data)


# ============================================================================
# Decoding / encoding
# ============================================================================

def open_image_bytes(data: bytes) -> Image.Image:
    """
    Decode raw bytes into a fully loaded PIL image.

    Raises:
        InvalidImageError: If the bytes are not a supported image
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise InvalidImageError(f"Invalid image data or unsupported format: {exc}") from exc

    if image.format and image.format not in SUPPORTED_FORMATS:
        raise InvalidImageError(
            f"Unsupported image format: {image.format}. "
            f"Supported formats: {', '.join(SUPPORTED_FORMATS)}"
        )
    return image


def to_rgb(image: Image.Image) -> Image.Image:
    """
    Convert any PIL image to RGB.

    Images with transparency are flattened onto a white background so that
    transparent areas do not turn black.
    """
    if image.mode == "RGB":
        return image
    if image.mode in ("RGBA", "LA", "PA") or (image.mode == "P" and "transparency" in image.info):
        white_bg = Image.new("RGBA", image.size, (255, 255, 255, 255))
        return Image.alpha_composite(white_bg, image.convert("RGBA")).convert("RGB")
    return image.convert("RGB")


def apply_exif_orientation(image: Image.Image) -> Tuple[Image.Image, bool]:
    """
    Rotate or mirror an image the way viewers display it.

    Returns:
        Tuple of (upright image, whether a transpose was applied)
    """
    orientation = image.getexif().get(EXIF_ORIENTATION_TAG, 1)
    if orientation in (None, 1):
        return image, False
    return ImageOps.exif_transpose(image), True


def base64_to_image(data: str) -> Image.Image:
    """
    Convert a data URI (or bare base64) into an RGB PIL image.

    Raises:
        InvalidImageError: If the data is empty, not base64, or not an image
    """
    image, _ = apply_exif_orientation(InlineImage.from_data_uri(data).open())
    return to_rgb(image)


def image_to_base64(image: Image.Image, format: str = "PNG") -> str:
    """
    Convert PIL Image to base64 encoded string.

    Returns:
        Base64 encoded image string (without data URL prefix)
    """
    return InlineImage.from_image(image, format=format).payload


def image_to_data_uri(image: Image.Image, format: str = "PNG") -> str:
    return InlineImage.from_image(image, format=format).to_data_uri()


# ============================================================================
# Ingestion
# ============================================================================

def fit_within(size: Tuple[int, int], max_dimension: int) -> Tuple[int, int]:
    """
    Scale ``size`` down so its longer edge is ``max_dimension``.

    Sizes already within the limit are returned unchanged; the image is never
    upscaled.
    """
    width, height = size
    if width <= max_dimension and height <= max_dimension:
        return width, height
    if width > height:
        return max_dimension, max(1, round(height * max_dimension / width))
    return max(1, round(width * max_dimension / height)), max_dimension


def normalize_photo(
    photo: InlineImage,
    max_dimension: int = 1280,
    jpeg_quality: int = 95,
) -> Tuple[Image.Image, InlineImage]:
    """
    Decode and normalise an uploaded photo.

    EXIF orientation is applied first. Oversized photos are downscaled
    (LANCZOS) and re-encoded as JPEG, as are photos that had to be turned
    upright. Any other photo keeps its original bytes so the model sees
    exactly what the user uploaded.

    Args:
        photo: Uploaded photo bytes
        max_dimension: Limit for the longer edge in pixels
        jpeg_quality: Quality used when re-encoding

    Returns:
        Tuple of (RGB image, bytes to send downstream)
    """
    oriented, rotated = apply_exif_orientation(photo.open())
    image = to_rgb(oriented)
    target = fit_within(image.size, max_dimension)
    if target == image.size:
        if not rotated:
            return image, photo
        # Bytes must show the same pixels the compositor works on
        logger.info(f"🔄 Photo re-encoded upright {image.size}")
        return image, InlineImage.from_image(image, format="JPEG", quality=jpeg_quality)

    logger.info(f"📐 Normalizing photo {image.size} -> {target}")
    resized = image.resize(target, Image.Resampling.LANCZOS)
    encoded = InlineImage.from_image(resized, format="JPEG", quality=jpeg_quality)
    return resized, encoded


def mask_to_alpha(mask: Image.Image) -> Image.Image:
    """
    Read a brush mask as a single-channel opacity image.

    Masks exported from a drawing canvas carry the selection in their alpha
    channel; plain grayscale masks carry it in their luminance (white =
    selected).

    Returns:
        L-mode image, 0 = untouched, 255 = fully selected
    """
    if mask.mode in ("RGBA", "LA", "PA"):
        return mask.getchannel("A")
    if mask.mode == "P" and "transparency" in mask.info:
        return mask.convert("RGBA").getchannel("A")
    return mask.convert("L")
