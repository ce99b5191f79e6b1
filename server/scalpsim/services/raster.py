"""
Raster primitives for mask compositing.

The chroma-key and result-blending algorithms are written once (see
``chroma_key.py`` and ``result_compositor.py``) against the small set of
primitives below. Two interchangeable backends implement them:

- PillowRaster: PIL resampling, ``ImageFilter.GaussianBlur`` and
  ``Image.alpha_composite`` (server-side raster library path)
- ArrayRaster: float compositing in numpy with a separable Gaussian kernel
  (canvas-style path, source-over arithmetic done by hand)

Blur radius convention shared by both: ``radius`` is the reach of the kernel
in pixels and its standard deviation is ``radius / 3``, so a blurred alpha is
exactly zero further than ``radius`` pixels from any opaque pixel.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Tuple, Type

import numpy as np
from PIL import Image, ImageFilter

logger = logging.getLogger(__name__)

Size = Tuple[int, int]
Color = Tuple[int, int, int]


def blur_sigma(radius: float) -> float:
    """Standard deviation of the Gaussian kernel for a blur radius."""
    return radius / 3.0


class RasterBackend(ABC):
    """Drawing, blending, blurring and resampling primitives."""

    name: str = "abstract"

    @abstractmethod
    def resample(self, image: Image.Image, size: Size) -> Image.Image:
        """Return ``image`` at ``size`` (the same object when already that size)."""

    @abstractmethod
    def marker_layer(self, alpha: Image.Image, color: Color) -> Image.Image:
        """
        Recolor a mask in place: RGBA layer of a constant ``color`` whose alpha
        channel is exactly ``alpha``.
        """

    @abstractmethod
    def blur_alpha(self, layer: Image.Image, radius: float) -> Image.Image:
        """Gaussian-blur the alpha channel of an RGBA layer; color is untouched."""

    @abstractmethod
    def mask_with(self, image: Image.Image, alpha: Image.Image) -> Image.Image:
        """Destination-in: RGBA layer with color from ``image`` and alpha from ``alpha``."""

    @abstractmethod
    def alpha_over(self, base: Image.Image, layer: Image.Image) -> Image.Image:
        """Source-over ``layer`` onto the opaque ``base`` at (0, 0); returns RGB."""

    def blur_mask(self, alpha: Image.Image, radius: float) -> Image.Image:
        """Blur a single-channel mask by going through ``blur_alpha``."""
        layer = self.marker_layer(alpha, (255, 255, 255))
        return self.blur_alpha(layer, radius).getchannel("A")


class PillowRaster(RasterBackend):
    """Primitives backed by Pillow's C implementations."""

    name = "pillow"

    def resample(self, image: Image.Image, size: Size) -> Image.Image:
        if image.size == tuple(size):
            return image
        return image.resize(size, Image.Resampling.LANCZOS)

    def marker_layer(self, alpha: Image.Image, color: Color) -> Image.Image:
        layer = Image.new("RGBA", alpha.size, (*color, 0))
        layer.putalpha(alpha.convert("L"))
        return layer

    def blur_alpha(self, layer: Image.Image, radius: float) -> Image.Image:
        if radius <= 0:
            return layer
        blurred = layer.getchannel("A").filter(ImageFilter.GaussianBlur(blur_sigma(radius)))
        result = layer.copy()
        result.putalpha(blurred)
        return result

    def mask_with(self, image: Image.Image, alpha: Image.Image) -> Image.Image:
        layer = image.convert("RGBA")
        layer.putalpha(alpha.convert("L"))
        return layer

    def alpha_over(self, base: Image.Image, layer: Image.Image) -> Image.Image:
        return Image.alpha_composite(base.convert("RGBA"), layer.convert("RGBA")).convert("RGB")


def gaussian_kernel(radius: int) -> np.ndarray:
    """Normalised 1-D Gaussian of half-width ``radius`` and sigma ``radius / 3``."""
    sigma = blur_sigma(radius)
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    kernel = np.exp(-(offsets ** 2) / (2.0 * sigma ** 2))
    return kernel / kernel.sum()


def _convolve_axis(values: np.ndarray, kernel: np.ndarray, axis: int) -> np.ndarray:
    radius = len(kernel) // 2
    pad = [(0, 0)] * values.ndim
    pad[axis] = (radius, radius)
    padded = np.pad(values, pad, mode="edge")
    length = values.shape[axis]
    out = np.zeros_like(values, dtype=np.float64)
    for offset, weight in enumerate(kernel):
        out += weight * np.take(padded, np.arange(offset, offset + length), axis=axis)
    return out


class ArrayRaster(RasterBackend):
    """Primitives implemented as float arithmetic over numpy arrays."""

    name = "array"

    def resample(self, image: Image.Image, size: Size) -> Image.Image:
        if image.size == tuple(size):
            return image
        return image.resize(size, Image.Resampling.BILINEAR)

    def marker_layer(self, alpha: Image.Image, color: Color) -> Image.Image:
        alpha_np = np.asarray(alpha.convert("L"), dtype=np.uint8)
        layer = np.empty(alpha_np.shape + (4,), dtype=np.uint8)
        layer[..., :3] = np.asarray(color, dtype=np.uint8)
        layer[..., 3] = alpha_np
        return Image.fromarray(layer)

    def blur_alpha(self, layer: Image.Image, radius: float) -> Image.Image:
        reach = int(round(radius))
        if reach <= 0:
            return layer
        rgba = np.array(layer.convert("RGBA"), dtype=np.uint8)
        kernel = gaussian_kernel(reach)
        alpha = rgba[..., 3].astype(np.float64)
        alpha = _convolve_axis(alpha, kernel, axis=1)
        alpha = _convolve_axis(alpha, kernel, axis=0)
        rgba[..., 3] = np.clip(np.rint(alpha), 0, 255).astype(np.uint8)
        return Image.fromarray(rgba)

    def mask_with(self, image: Image.Image, alpha: Image.Image) -> Image.Image:
        rgba = np.array(image.convert("RGBA"), dtype=np.uint8)
        rgba[..., 3] = np.asarray(alpha.convert("L"), dtype=np.uint8)
        return Image.fromarray(rgba)

    def alpha_over(self, base: Image.Image, layer: Image.Image) -> Image.Image:
        dst = np.asarray(base.convert("RGB"), dtype=np.float64)
        src = np.asarray(layer.convert("RGBA"), dtype=np.float64)
        weight = src[..., 3:4] / 255.0
        out = src[..., :3] * weight + dst * (1.0 - weight)
        return Image.fromarray(np.clip(np.rint(out), 0, 255).astype(np.uint8))


_BACKENDS: Dict[str, Type[RasterBackend]] = {
    PillowRaster.name: PillowRaster,
    ArrayRaster.name: ArrayRaster,
}


def available_backends() -> list[str]:
    return list(_BACKENDS.keys())


def get_raster_backend(name: str | None = None) -> RasterBackend:
    """
    Instantiate a raster backend by name.

    Args:
        name: "pillow" or "array"; None uses the configured default

    Raises:
        ValueError: If the name is unknown
    """
    if name is None:
        from ..core.config import settings
        name = settings.raster_backend

    key = name.strip().lower()
    if key not in _BACKENDS:
        raise ValueError(
            f"Unknown raster backend '{name}'. Valid options: {', '.join(_BACKENDS)}"
        )
    logger.debug(f"Using raster backend: {key}")
    return _BACKENDS[key]()
