from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


BASE_DIR = Path(__file__).resolve().parents[3]

# Same lookup order as the frontend dev server: .env.local wins over .env
load_dotenv(BASE_DIR / ".env.local")
load_dotenv()

DEFAULT_REFERENCE_ROOT = BASE_DIR / "public"

RASTER_BACKENDS = ("pillow", "array")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "Scalp Simulation API"
    description: str = "Mask-driven hair restoration previews backed by Gemini image generation"
    version: str = "1.0.0"

    # Generative model
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    model_name: str = Field(default="gemini-2.5-flash-image", alias="GEMINI_MODEL")

    # Density reference catalog: <root>/references/density/<level>/1.<ext>
    reference_root: str = Field(default=str(DEFAULT_REFERENCE_ROOT), alias="REFERENCE_ROOT")

    # Image ingestion
    max_image_dimension: int = Field(
        default=1280, alias="MAX_IMAGE_DIMENSION", ge=256, le=4096,
        description="Photos are downscaled so the longer edge is at most this many pixels."
    )
    jpeg_quality: int = Field(default=95, alias="JPEG_QUALITY", ge=50, le=100)

    raster_backend: str = Field(
        default="pillow", alias="RASTER_BACKEND",
        description="Raster primitives used for compositing: 'pillow' or 'array'."
    )

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=3001, alias="PORT")
    debug: bool = Field(default=False, alias="DEBUG")
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"], alias="ALLOWED_ORIGINS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("raster_backend", mode="before")
    @classmethod
    def validate_raster_backend(cls, value: str) -> str:
        """Normalize and validate the raster backend name."""
        if not value:
            return "pillow"
        normalized = value.strip().lower()
        if normalized not in RASTER_BACKENDS:
            raise ValueError(
                f"Invalid RASTER_BACKEND '{value}'. "
                f"Valid options: {', '.join(RASTER_BACKENDS)}"
            )
        return normalized

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        return (value or "INFO").strip().upper()

    @property
    def reference_root_path(self) -> Path:
        return Path(self.reference_root)


settings = Settings()
