"""
Density reference catalog.

One canonical exemplar per density level lives at
``<root>/references/density/<level>/1<ext>``. Extensions are tried in a fixed
order and the first readable file wins. A missing exemplar is a normal
outcome: the simulation simply runs without a reference image.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from .image_processing import InlineImage

logger = logging.getLogger(__name__)

REFERENCE_EXTENSIONS = (".jpg", ".JPG", ".jpeg", ".png")
CANONICAL_STEM = "1"


def density_key(density: Optional[str]) -> str:
    """Directory name for a density level (enum member or raw string)."""
    value = getattr(density, "value", density) or "MEDIUM"
    return str(value).strip().lower()


def reference_dir(root: Union[str, Path], density: Optional[str]) -> Path:
    return Path(root) / "references" / "density" / density_key(density)


def _mime_type_for(extension: str) -> str:
    return "image/png" if extension.lower().endswith("png") else "image/jpeg"


def select_reference(
    density: Optional[str],
    root: Union[str, Path],
) -> Optional[InlineImage]:
    """
    Load the canonical exemplar for a density level.

    Args:
        density: DensityLevel member or string, any casing
        root: Catalog root containing ``references/density``

    Returns:
        The exemplar bytes with their mime type, or None when no candidate
        file exists
    """
    directory = reference_dir(root, density)

    for extension in REFERENCE_EXTENSIONS:
        candidate = directory / f"{CANONICAL_STEM}{extension}"
        try:
            data = candidate.read_bytes()
        except OSError:
            logger.debug(f"Reference candidate not readable: {candidate}")
            continue
        logger.info(f"📚 Using density reference {candidate}")
        return InlineImage(mime_type=_mime_type_for(extension), data=data)

    if not directory.is_dir():
        logger.warning(
            f"⚠️ No reference catalog for density '{density_key(density)}' "
            f"(missing directory {directory}); continuing without reference"
        )
    else:
        logger.warning(
            f"⚠️ Reference catalog {directory} has no canonical exemplar "
            f"({CANONICAL_STEM} with any of {', '.join(REFERENCE_EXTENSIONS)}); "
            "continuing without reference"
        )
    return None
