"""
Gemini transport for simulation and validation calls.

Builds the ordered multi-part request (reference, patient photo, instruction
block), sends it through ``google-genai`` and pulls the first inline image or
the concatenated text out of the response. The rest of the pipeline only
sees the ``GenerativeModel`` protocol, so tests swap in a deterministic stub.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Iterable, List, Optional, Protocol, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from ..core.errors import ConfigurationError, GenerationFailure
from ..core.prompts import (
    REFERENCE_LABEL,
    SUBJECT_LABEL,
    VALIDATION_PROMPT,
    compose_simulation_prompt,
)
from .image_processing import InlineImage

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "gemini-2.5-flash-image"

NO_IMAGE_MESSAGE = "AI failed to generate results"
TRANSPORT_FAILURE_MESSAGE = "Failed to generate simulation. Please try again."
MISSING_KEY_MESSAGE = "API Key not found"
REJECTED_KEY_MESSAGE = "API Key was rejected by the generative service"

_AUTH_ERROR_CODES = (401, 403)


class GenerativeModel(Protocol):
    """What the pipeline needs from an image model."""

    def generate_image(self, parts: Sequence[genai_types.Part]) -> InlineImage:
        ...

    def generate_text(self, parts: Sequence[genai_types.Part]) -> str:
        ...


# ---------------------------------------------------------------------------
# Request construction helpers


def image_part(image: InlineImage) -> genai_types.Part:
    return genai_types.Part(
        inline_data=genai_types.Blob(mime_type=image.mime_type, data=image.data)
    )


def text_part(text: str) -> genai_types.Part:
    return genai_types.Part(text=text)


def build_simulation_parts(
    subject: InlineImage,
    density: Optional[str],
    reference: Optional[InlineImage] = None,
) -> List[genai_types.Part]:
    """
    Assemble the simulation request in priority order.

    The reference (when found) comes first and is labelled as a density
    standard only; the chroma-keyed patient photo follows as the sole source
    of identity; the instruction block closes the request.
    """
    parts: List[genai_types.Part] = []
    if reference is not None:
        parts.append(text_part(REFERENCE_LABEL))
        parts.append(image_part(reference))

    parts.append(text_part(SUBJECT_LABEL))
    parts.append(image_part(subject))
    parts.append(text_part(compose_simulation_prompt(density)))
    return parts


def build_validation_parts(photo: InlineImage) -> List[genai_types.Part]:
    return [text_part(VALIDATION_PROMPT), image_part(photo)]


# ---------------------------------------------------------------------------
# Response parsing helpers


def iter_response_parts(response: Any) -> Iterable[Any]:
    """Yield content parts across all candidates of a response."""
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        if not content or not getattr(content, "parts", None):
            continue
        for part in content.parts:
            yield part


def extract_first_image(response: Any) -> Optional[InlineImage]:
    """Return the first part carrying inline image bytes, if any."""
    for part in iter_response_parts(response):
        inline = getattr(part, "inline_data", None)
        if not inline or not getattr(inline, "data", None):
            continue
        mime_type = getattr(inline, "mime_type", None) or "image/png"
        return InlineImage(mime_type=mime_type, data=inline.data)
    return None


def extract_text(response: Any) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return ""
    content = getattr(candidates[0], "content", None)
    texts: List[str] = []
    for part in getattr(content, "parts", None) or []:
        text = getattr(part, "text", None)
        if text:
            texts.append(text)
    return "".join(texts)


def _is_auth_error(exc: genai_errors.APIError) -> bool:
    if getattr(exc, "code", None) in _AUTH_ERROR_CODES:
        return True
    return "api key not valid" in str(exc).lower()


class GeminiClient:
    """Single-call wrapper around ``genai.Client.models.generate_content``."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = DEFAULT_MODEL_NAME,
        client: Optional[Any] = None,
    ) -> None:
        self.api_key = api_key
        self.model_name = model_name
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise ConfigurationError(MISSING_KEY_MESSAGE)
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _generate_content(
        self,
        parts: Sequence[genai_types.Part],
        response_modalities: List[str],
    ) -> Any:
        client = self._get_client()
        started = time.time()
        try:
            response = client.models.generate_content(
                model=self.model_name,
                contents=[genai_types.Content(role="user", parts=list(parts))],
                config=genai_types.GenerateContentConfig(
                    response_modalities=response_modalities,
                    candidate_count=1,
                ),
            )
        except genai_errors.APIError as exc:
            if _is_auth_error(exc):
                logger.error(f"❌ Gemini rejected the API key: {exc}")
                raise ConfigurationError(REJECTED_KEY_MESSAGE) from exc
            logger.error(f"❌ Gemini request failed: {exc}")
            raise GenerationFailure(TRANSPORT_FAILURE_MESSAGE) from exc
        except (httpx.HTTPError, OSError, RuntimeError) as exc:
            logger.error(f"❌ Gemini transport error: {exc}")
            raise GenerationFailure(TRANSPORT_FAILURE_MESSAGE) from exc

        logger.info(
            f"⏱️ Gemini {self.model_name} answered in {time.time() - started:.2f}s "
            f"(modalities={response_modalities})"
        )
        return response

    def generate_image(self, parts: Sequence[genai_types.Part]) -> InlineImage:
        """
        Send the request and return the first inline image of the response.

        Raises:
            ConfigurationError: If the API key is missing or rejected
            GenerationFailure: On transport errors or when no image came back
        """
        response = self._generate_content(parts, ["IMAGE", "TEXT"])
        image = extract_first_image(response)
        if image is None:
            logger.warning("⚠️ Gemini response did not include any inline image data")
            raise GenerationFailure(NO_IMAGE_MESSAGE)
        return image

    def generate_text(self, parts: Sequence[genai_types.Part]) -> str:
        """Send the request and return the response text (may be empty)."""
        response = self._generate_content(parts, ["TEXT"])
        return extract_text(response)
