"""
src/explain/explanation_generator.py
=====================================
Explanation Generator — DocVerify

Responsibility:
    - Turn a validated SignalBundle and its final risk score into an
      ordered, human-readable narrative
    - Emit findings in a fixed order, then exactly two closing lines

Narrative order:
    1. Face detection finding   (single | multiple | none)
    2. Tampering finding
    3. Blur finding
    4. Lighting finding         (only when lighting is poor)
    5. Name finding             (value or failure notice)
    6. ID number finding        (value or failure notice)
    7. Date of birth finding    (value or failure notice)
    8. Assessment line          (five-way score band)
    9. Recommendation line      (five-way score band)

The closing band (≥80, 60–79, 40–59, 20–39, <20) is deliberately finer
than the three-way storage tier.

Output is deterministic: identical inputs always produce identical lines.

This module does NOT:
    - Compute or modify the risk score
    - Call any collaborator or model
    - Store data
"""

import logging

from src.risk.signals import SignalBundle

logger = logging.getLogger("docverify.explain.explanation_generator")


# ---------------------------------------------------------------------------
# Closing bands — (lower bound, assessment, recommendation), highest first
# ---------------------------------------------------------------------------

CLOSING_BANDS: tuple[tuple[int, str, str], ...] = (
    (
        80,
        "Overall assessment: very high risk, strong indicators of fraud.",
        "Recommendation: reject the document and escalate for manual investigation.",
    ),
    (
        60,
        "Overall assessment: high risk, multiple significant concerns found.",
        "Recommendation: hold the verification pending manual review.",
    ),
    (
        40,
        "Overall assessment: moderate risk, some concerns found.",
        "Recommendation: request an additional identity document or a clearer capture.",
    ),
    (
        20,
        "Overall assessment: low risk, minor concerns found.",
        "Recommendation: proceed, with spot-check review of the flagged items.",
    ),
    (
        0,
        "Overall assessment: very low risk, document appears authentic.",
        "Recommendation: proceed with verification.",
    ),
)


# ---------------------------------------------------------------------------
# Finding builders
# ---------------------------------------------------------------------------


def _face_finding(bundle: SignalBundle) -> str:
    if not bundle.face_detected:
        return "No face detected on the document; a portrait is expected on identity documents."
    if bundle.face_count > 1:
        return (
            f"Multiple faces detected ({bundle.face_count}); "
            "identity documents normally carry a single portrait."
        )
    return "Single face detected on the document."


def _tamper_finding(bundle: SignalBundle) -> str:
    if bundle.tampered:
        return "Possible tampering detected: the image shows signs of editing."
    return "No signs of tampering detected."


def _blur_finding(bundle: SignalBundle) -> str:
    if bundle.blurry:
        return "Image is blurry, which reduces the reliability of the analysis."
    return "Image is sharp enough for analysis."


def _field_finding(label: str, value: str | None) -> str:
    if value is None:
        return f"{label} could not be extracted from the document."
    return f"{label} extracted: {value}"


def closing_lines(score: int) -> tuple[str, str]:
    """Return (assessment, recommendation) for the score's five-way band."""
    for lower, assessment, recommendation in CLOSING_BANDS:
        if score >= lower:
            return assessment, recommendation
    # Scores are clamped to [0, 100]; anything lower falls into the last band
    _, assessment, recommendation = CLOSING_BANDS[-1]
    return assessment, recommendation


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def generate_explanation(bundle: SignalBundle, score: int) -> list[str]:
    """
    Build the ordered narrative for one verification.

    Args:
        bundle: Validated SignalBundle.
        score:  Final clamped risk score (0–100).

    Returns:
        Ordered list of explanation lines; always ends with the
        assessment line followed by the recommendation line.
    """
    lines = [
        _face_finding(bundle),
        _tamper_finding(bundle),
        _blur_finding(bundle),
    ]

    if not bundle.good_lighting:
        lines.append("Lighting is poor, which may hide document details.")

    fields = bundle.fields
    lines.append(_field_finding("Name", fields.name))
    lines.append(_field_finding("ID number", fields.id_number))
    lines.append(_field_finding("Date of birth", fields.dob))

    lines.extend(closing_lines(score))

    logger.info("Explanation generated: %d lines for score %d.", len(lines), score)
    return lines
