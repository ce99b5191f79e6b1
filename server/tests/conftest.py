"""
Shared fixtures for the scalp simulation test suite.

No test talks to the real Gemini service: the pipeline is exercised through
``StubModel`` and the transport through a mocked ``genai`` client.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import numpy as np
import pytest
from PIL import Image

from scalpsim.core.errors import GenerationFailure
from scalpsim.services.image_processing import InlineImage, image_to_data_uri
from scalpsim.services.raster import available_backends, get_raster_backend

GRAY = (128, 128, 128)
RED = (255, 0, 0)


class StubModel:
    """
    Deterministic stand-in for the generative model.

    Records every request so tests can assert on ordering and content.
    """

    def __init__(
        self,
        answer: str = "TRUE",
        image: Optional[Image.Image] = None,
        image_error: Optional[Exception] = None,
        text_error: Optional[Exception] = None,
    ) -> None:
        self.answer = answer
        self.image = image if image is not None else Image.new("RGB", (800, 600), RED)
        self.image_error = image_error
        self.text_error = text_error
        self.calls: List[str] = []
        self.image_requests: List[list] = []
        self.text_requests: List[list] = []

    def generate_text(self, parts) -> str:
        self.calls.append("text")
        self.text_requests.append(list(parts))
        if self.text_error is not None:
            raise self.text_error
        return self.answer

    def generate_image(self, parts) -> InlineImage:
        self.calls.append("image")
        self.image_requests.append(list(parts))
        if self.image_error is not None:
            raise self.image_error
        return InlineImage.from_image(self.image, format="PNG")


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(params=available_backends())
def backend(request):
    """Every compositing property runs against each raster backend."""
    return get_raster_backend(request.param)


@pytest.fixture
def gray_photo() -> Image.Image:
    """800x600 solid gray photo."""
    return Image.new("RGB", (800, 600), GRAY)


@pytest.fixture
def red_output() -> Image.Image:
    """800x600 solid red model output."""
    return Image.new("RGB", (800, 600), RED)


@pytest.fixture
def square_mask() -> Image.Image:
    """Canvas-style RGBA mask: 100x100 opaque white square centred at (400, 300)."""
    mask = Image.new("RGBA", (800, 600), (0, 0, 0, 0))
    mask.paste((255, 255, 255, 255), (350, 250, 450, 350))
    return mask


@pytest.fixture
def noisy_photo() -> Image.Image:
    rng = np.random.default_rng(7)
    return Image.fromarray(rng.integers(0, 256, size=(120, 160, 3), dtype=np.uint8))


@pytest.fixture
def noisy_output() -> Image.Image:
    rng = np.random.default_rng(11)
    return Image.fromarray(rng.integers(0, 256, size=(120, 160, 3), dtype=np.uint8))


@pytest.fixture
def soft_mask() -> Image.Image:
    """L-mode mask with a hard blob, a soft ramp and empty space."""
    values = np.zeros((120, 160), dtype=np.uint8)
    values[30:70, 40:90] = 255
    values[80:100, 20:140] = np.linspace(0, 255, 120, dtype=np.uint8)
    return Image.fromarray(values)


@pytest.fixture
def photo_uri(gray_photo: Image.Image) -> str:
    return image_to_data_uri(gray_photo, format="PNG")


@pytest.fixture
def mask_uri(square_mask: Image.Image) -> str:
    return image_to_data_uri(square_mask, format="PNG")


@pytest.fixture
def stub_model() -> StubModel:
    return StubModel()


@pytest.fixture
def failing_model() -> StubModel:
    return StubModel(image_error=GenerationFailure("AI failed to generate results"))


def write_reference(root: Path, level: str, filename: str, color=(10, 20, 30)) -> bytes:
    """Write a tiny exemplar into ``root/references/density/<level>`` and return its bytes."""
    directory = root / "references" / "density" / level
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    image_format = "PNG" if filename.lower().endswith(".png") else "JPEG"
    Image.new("RGB", (8, 8), color).save(path, format=image_format)
    return path.read_bytes()


@pytest.fixture
def reference_root(tmp_path: Path) -> Path:
    """Catalog with exemplars for high (png) and medium (jpg); low is missing."""
    write_reference(tmp_path, "high", "1.png", color=(200, 180, 160))
    write_reference(tmp_path, "medium", "1.jpg", color=(90, 80, 70))
    return tmp_path
