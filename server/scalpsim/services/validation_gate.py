"""
Suitability check for uploaded photos.

The model is asked whether the photo shows a human head or scalp and to
answer TRUE or FALSE. The decision is conservative: a photo is rejected only
when the answer explicitly says FALSE. Empty or ambiguous answers pass, so a
flaky classifier never blocks a legitimate user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.prompts import REJECTION_MESSAGE
from .gemini_client import GenerativeModel, build_validation_parts
from .image_processing import InlineImage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    accepted: bool
    reason: Optional[str] = None


def interpret_validation_text(text: Optional[str]) -> ValidationResult:
    """Map the classifier's raw answer to a decision."""
    if "FALSE" in (text or "").upper():
        return ValidationResult(accepted=False, reason=REJECTION_MESSAGE)
    return ValidationResult(accepted=True)


class ValidationGate:
    """Runs the classifier once per photo; no retries."""

    def __init__(self, model: GenerativeModel) -> None:
        self.model = model

    def validate(self, photo: InlineImage) -> ValidationResult:
        text = self.model.generate_text(build_validation_parts(photo))
        result = interpret_validation_text(text)
        answer = (text or "").strip()
        if result.accepted:
            logger.info(f"✅ Photo accepted by validation (answer={answer!r})")
        else:
            logger.warning(f"🚫 Photo rejected by validation (answer={answer!r})")
        return result
