"""
Prompt templates for the Gemini image model.

These are tuned text, not logic: the simulation template is parameterised
only by the density label, and the labels frame the order in which the model
should weigh the images that follow them.
"""

from __future__ import annotations

from typing import Optional

VALIDATION_PROMPT = (
    "Analyze this image. Is it a human scalp, human hair, or a human head/face "
    "suitable for a hair transplant simulation? Answer ONLY with 'TRUE' if it is, "
    "or 'FALSE' if it is anything else (animals, landscapes, objects, etc)."
)

REJECTION_MESSAGE = (
    "Please upload a clear photo of your scalp/head for simulation, "
    "not any other type of image."
)

REFERENCE_LABEL = "[MASTER CLINICAL DENSITY REFERENCE - FOR DATA ONLY]"

SUBJECT_LABEL = "[PRIMARY PATIENT PHOTO - USE THIS FOR ALL PIXELS AND IDENTITY]"

SIMULATION_TEMPLATE = """ROLE: MEDICAL HAIR VISUALIZATION SPECIALIST.
MISSION: HARMONIOUS SURGICAL RESTORATION.
1. BIOLOGICAL HARMONY (PRIORITY #1):
   - LIGHTING INTEGRATION: Analyze the light source, shadows, and highlights of the patient's photo. Apply the EXACT same lighting to the new hair so it melts into the donor hair perfectly.
   - NATURAL HANDSHAKE: Do not create a "box" or "patch". Taper the density at the mask edges to blend seamlessly with the patient's real hair.
   - DIRECTIONAL FLOW: Follow the patient's natural hair direction (forward at forehead, swirl at crown) with 100% precision.
2. DENSITY MAPPING (MASTER REFERENCE):
   - [MASTER CLINICAL REFERENCE]: Use this as your primary frequency standard for follicle count.
   - OPAQUE CORE, SOFT EDGES: The center of the mask should follow high frequency follicle counts, while the perimeter must be soft and tapered.
3. IDENTITY PRESERVATION:
   - [PATIENT PHOTO] is the exclusive source for DNA (Color + Texture + Wave).
   - IGNORE CURRENT THINNING: Restore the area as a successful, fully-grown result.
4. ANATOMY & FRONTOTEMPORAL DESIGN:
   - FRONTAL HAIRLINE: Create an irregular, organic, "micro-jagged" line. No straight lines.
   - TEMPORAL CLOSURE: Populate the frontotemporal corners densely.
FINAL OUTPUT: A realistic medical simulation. {density} DENSITY. PERFECT LIGHTING MATCH. INVISIBLE SEAMS."""


def density_label(density: Optional[str]) -> str:
    """Upper-case label for a density level (enum member or raw string)."""
    value = getattr(density, "value", density) or "MEDIUM"
    return str(value).strip().upper()


def compose_simulation_prompt(density: Optional[str]) -> str:
    """
    Fill the simulation template for a density level.

    Args:
        density: DensityLevel member or its string value; None means MEDIUM

    Returns:
        The instruction block sent after the patient photo
    """
    return SIMULATION_TEMPLATE.format(density=density_label(density))
