"""
src/stage_validator.py
=======================
Stage Output Validator — DocVerify Integration Layer

Responsibility:
    - Validate the output of every collaborator before it enters the core
    - Validate the core's own outputs (assessment, narrative) before persisting
    - FAIL FAST with clear errors if any stage output is invalid
    - NO auto-correction — if something is missing, raise an error

This module does NOT:
    - Execute any stage logic
    - Call any collaborator or external API
    - Modify stage outputs
    - Infer missing values
"""

import logging
from collections.abc import Sequence
from typing import Any

from src.schemas.verification import RiskTier, TextLine

logger = logging.getLogger("docverify.stage_validator")


# =====================================================================
# Custom exception for stage verification failures
# =====================================================================


class StageVerificationError(Exception):
    """Raised when a stage output fails verification."""

    def __init__(self, stage: str, message: str):
        self.stage = stage
        self.message = message
        super().__init__(f"Stage '{stage}' verification failed: {message}")


def _require_dict(stage: str, payload: Any) -> None:
    if not isinstance(payload, dict):
        raise StageVerificationError(
            stage, f"Expected dict, got {type(payload).__name__}"
        )


def _require_keys_bool(stage: str, payload: dict[str, Any], keys: tuple[str, ...]) -> None:
    for key in keys:
        if key not in payload:
            raise StageVerificationError(stage, f"Missing required key '{key}'")
        if not isinstance(payload[key], bool):
            raise StageVerificationError(
                stage, f"'{key}' must be bool, got {type(payload[key]).__name__}"
            )


def _require_keys_count(stage: str, payload: dict[str, Any], keys: tuple[str, ...]) -> None:
    for key in keys:
        if key not in payload:
            raise StageVerificationError(stage, f"Missing required key '{key}'")
        value = payload[key]
        if isinstance(value, bool) or not isinstance(value, int):
            raise StageVerificationError(
                stage, f"'{key}' must be int, got {type(value).__name__}"
            )
        if value < 0:
            raise StageVerificationError(stage, f"'{key}' must be >= 0, got {value}")


# =====================================================================
# Image analysis — face detection
# =====================================================================


def verify_face_detection(result: dict[str, Any]) -> None:
    """
    Verify face detection output.

    Checks:
        - Output is a dict with face_count (int >= 0) and any_face (bool)
        - any_face agrees with face_count
        - highest_confidence, when present, is None or a number in [0, 100]

    Raises:
        StageVerificationError: If any check fails.
    """
    stage = "face_detection"
    _require_dict(stage, result)
    _require_keys_count(stage, result, ("face_count",))
    _require_keys_bool(stage, result, ("any_face",))

    if result["any_face"] != (result["face_count"] > 0):
        raise StageVerificationError(
            stage,
            f"any_face={result['any_face']} contradicts face_count={result['face_count']}",
        )

    confidence = result.get("highest_confidence")
    if confidence is not None:
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise StageVerificationError(stage, "highest_confidence must be numeric")
        if not 0.0 <= confidence <= 100.0:
            raise StageVerificationError(
                stage, f"highest_confidence {confidence} out of range [0, 100]"
            )

    logger.info("Face detection verification passed: %d face(s).", result["face_count"])


# =====================================================================
# Image analysis — tamper analysis
# =====================================================================


def verify_tamper_analysis(result: dict[str, Any]) -> None:
    """
    Verify tamper analysis output.

    Checks:
        - tampered and suspicious_content are bool
        - width and height are non-negative ints

    Raises:
        StageVerificationError: If any check fails.
    """
    stage = "tamper_analysis"
    _require_dict(stage, result)
    _require_keys_bool(stage, result, ("tampered", "suspicious_content"))
    _require_keys_count(stage, result, ("width", "height"))

    logger.info(
        "Tamper analysis verification passed: tampered=%s, %dx%d.",
        result["tampered"], result["width"], result["height"],
    )


# =====================================================================
# Image analysis — quality analysis
# =====================================================================


def verify_quality_analysis(result: dict[str, Any]) -> None:
    """
    Verify quality analysis output.

    Raises:
        StageVerificationError: If blurry, good_lighting or document_like
        is missing or not a bool.
    """
    stage = "quality_analysis"
    _require_dict(stage, result)
    _require_keys_bool(stage, result, ("blurry", "good_lighting", "document_like"))

    logger.info("Quality analysis verification passed.")


# =====================================================================
# OCR — text lines
# =====================================================================


def verify_text_lines(lines: Sequence[TextLine]) -> None:
    """
    Verify OCR output.

    Checks:
        - Output is an ordered sequence (list or tuple; may be empty:
          documents can carry no legible text)
        - Each item is a TextLine with str content
        - Each confidence is a number in [0, 100]

    Raises:
        StageVerificationError: If any check fails.
    """
    stage = "text_extraction"
    if not isinstance(lines, (list, tuple)):
        raise StageVerificationError(
            stage, f"Expected list or tuple, got {type(lines).__name__}"
        )

    for i, line in enumerate(lines):
        if not isinstance(line, TextLine):
            raise StageVerificationError(
                stage, f"Line {i} is not a TextLine: {type(line).__name__}"
            )
        if not isinstance(line.content, str):
            raise StageVerificationError(stage, f"Line {i} content is not a string")
        conf = line.confidence_percent
        if isinstance(conf, bool) or not isinstance(conf, (int, float)):
            raise StageVerificationError(stage, f"Line {i} confidence is not numeric")
        if not 0.0 <= conf <= 100.0:
            raise StageVerificationError(
                stage, f"Line {i} confidence {conf} out of range [0, 100]"
            )

    logger.info("Text extraction verification passed: %d lines.", len(lines))


# =====================================================================
# Core — risk assessment
# =====================================================================


def verify_assessment(assessment: dict[str, Any]) -> None:
    """
    Verify the risk scorer output.

    Checks:
        - risk_score is an int in [0, 100]
        - risk_level is a RiskTier consistent with the score
        - model_adjustment is an int in [0, 25]

    Raises:
        StageVerificationError: If any check fails.
    """
    stage = "risk_scoring"
    _require_dict(stage, assessment)

    for key in ("risk_score", "risk_level", "model_adjustment"):
        if key not in assessment:
            raise StageVerificationError(stage, f"Missing required key '{key}'")

    score = assessment["risk_score"]
    if isinstance(score, bool) or not isinstance(score, int):
        raise StageVerificationError(
            stage, f"risk_score must be int, got {type(score).__name__}"
        )
    if not 0 <= score <= 100:
        raise StageVerificationError(stage, f"risk_score {score} out of range [0, 100]")

    level = assessment["risk_level"]
    if not isinstance(level, RiskTier):
        raise StageVerificationError(stage, f"Invalid risk_level: {level!r}")

    if score >= 70:
        expected = RiskTier.HIGH
    elif score >= 30:
        expected = RiskTier.MEDIUM
    else:
        expected = RiskTier.LOW
    if level != expected:
        raise StageVerificationError(
            stage, f"risk_level {level.value} inconsistent with score {score}"
        )

    adjustment = assessment["model_adjustment"]
    if isinstance(adjustment, bool) or not isinstance(adjustment, int) or not 0 <= adjustment <= 25:
        raise StageVerificationError(
            stage, f"model_adjustment {adjustment!r} out of range [0, 25]"
        )

    logger.info("Risk assessment verification passed: score=%d.", score)


# =====================================================================
# Core — explanation narrative
# =====================================================================


def verify_narrative(narrative: list[str]) -> None:
    """
    Verify the explanation narrative.

    Checks:
        - Output is a list of 8 or 9 non-empty strings
          (the lighting finding is conditional)

    Raises:
        StageVerificationError: If any check fails.
    """
    stage = "explanation"
    if not isinstance(narrative, list):
        raise StageVerificationError(
            stage, f"Expected list, got {type(narrative).__name__}"
        )
    if len(narrative) not in (8, 9):
        raise StageVerificationError(
            stage, f"Expected 8 or 9 lines, got {len(narrative)}"
        )
    for i, line in enumerate(narrative):
        if not isinstance(line, str) or not line.strip():
            raise StageVerificationError(stage, f"Line {i} is empty or not a string")

    logger.info("Narrative verification passed: %d lines.", len(narrative))
