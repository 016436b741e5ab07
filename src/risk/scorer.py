"""
src/risk/scorer.py
===================
Deterministic Risk Scorer — DocVerify

Responsibility:
    - Accept a validated SignalBundle (from signals.py)
    - Sum fixed additive/subtractive weights into an unclamped subtotal
    - Fold in an optional external model adjustment (0–25)
    - Clamp the result to [0, 100] exactly once
    - Classify the storage tier (LOW | MEDIUM | HIGH RISK)
    - Report which rules fired, so every score is auditable

Scoring philosophy:
    - Each rule is a predicate over the bundle with a signed integer weight
    - Rules are independent; all matching weights are summed
    - Clamping happens only after the model adjustment is added

This module does NOT:
    - Call any collaborator or the external model
    - Generate explanations
    - Inspect raw image bytes or OCR text
    - Store data or generate identifiers
"""

import logging
from typing import Any, Callable

from src.risk.signals import SignalBundle
from src.schemas.verification import RiskTier

logger = logging.getLogger("docverify.risk.scorer")


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

SCORE_MIN: int = 0
SCORE_MAX: int = 100

# Tier thresholds (applied to the final clamped score)
TIER_THRESHOLD_MEDIUM: int = 30
TIER_THRESHOLD_HIGH: int = 70

# Image resolution bounds, in total pixels
MIN_PIXELS: int = 100_000
MAX_PIXELS: int = 20_000_000

# External model adjustment bounds
MODEL_ADJUSTMENT_MAX: int = 25


# ---------------------------------------------------------------------------
# Weighted rules — (factor label, predicate, weight)
# ---------------------------------------------------------------------------


def _core_fields_present(bundle: SignalBundle) -> bool:
    f = bundle.fields
    return f.name is not None and f.id_number is not None and f.dob is not None


RISK_RULES: tuple[tuple[str, Callable[[SignalBundle], bool], int], ...] = (
    ("no_face_detected",     lambda b: not b.face_detected,                      35),
    ("multiple_faces",       lambda b: b.face_detected and b.face_count > 1,     15),
    ("tampering_detected",   lambda b: b.tampered,                               60),
    ("blurry_image",         lambda b: b.blurry,                                 25),
    ("poor_lighting",        lambda b: not b.good_lighting,                      10),
    ("document_like",        lambda b: b.document_like,                         -15),
    ("name_missing",         lambda b: b.fields.name is None,                    20),
    ("id_number_missing",    lambda b: b.fields.id_number is None,               25),
    ("dob_missing",          lambda b: b.fields.dob is None,                     10),
    ("core_fields_present",  _core_fields_present,                              -20),
    ("suspicious_content",   lambda b: b.suspicious_content,                     30),
    ("low_resolution",       lambda b: b.pixel_count < MIN_PIXELS,               20),
    ("oversized_image",      lambda b: b.pixel_count > MAX_PIXELS,               10),
)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def compute_subtotal(bundle: SignalBundle) -> tuple[int, dict[str, int]]:
    """
    Sum the weights of every matching rule.

    Returns:
        (unclamped subtotal, {factor label: weight} for the rules that fired)
    """
    contributions: dict[str, int] = {}
    for label, predicate, weight in RISK_RULES:
        if predicate(bundle):
            contributions[label] = weight
    return sum(contributions.values()), contributions


def clamp_score(value: int) -> int:
    return min(max(value, SCORE_MIN), SCORE_MAX)


def classify_tier(score: int) -> RiskTier:
    """Map a clamped score to its storage tier."""
    if score >= TIER_THRESHOLD_HIGH:
        return RiskTier.HIGH
    if score >= TIER_THRESHOLD_MEDIUM:
        return RiskTier.MEDIUM
    return RiskTier.LOW


def compute_risk(
    bundle: SignalBundle,
    model_adjustment: int | None = 0,
) -> dict[str, Any]:
    """
    Compute the deterministic risk score for a validated signal bundle.

    Steps:
        1. Sum the weights of every matching rule (unclamped subtotal)
        2. Add the external model adjustment (None → 0, bounded to 0–25)
        3. Clamp to [0, 100] once
        4. Classify the storage tier

    Args:
        bundle:
            Validated SignalBundle.
        model_adjustment:
            Optional external model contribution; unavailable → 0.

    Returns:
        Risk assessment dict:
            {
                "risk_score": int (0–100),
                "risk_level": RiskTier,
                "subtotal": int (unclamped, before adjustment),
                "model_adjustment": int (0–25),
                "key_risk_factors": list[str]  (positive-weight rules that fired)
            }
    """
    subtotal, contributions = compute_subtotal(bundle)

    adjustment = min(max(int(model_adjustment or 0), 0), MODEL_ADJUSTMENT_MAX)
    risk_score = clamp_score(subtotal + adjustment)
    risk_level = classify_tier(risk_score)

    logger.info("Rule contributions: %s", contributions)

    result: dict[str, Any] = {
        "risk_score": risk_score,
        "risk_level": risk_level,
        "subtotal": subtotal,
        "model_adjustment": adjustment,
        "key_risk_factors": [label for label, weight in contributions.items() if weight > 0],
    }

    logger.info(
        "Risk assessment: subtotal=%d, adjustment=%d, score=%d, level=%s.",
        subtotal, adjustment, risk_score, risk_level.value,
    )
    return result
