"""
src/risk/signals.py
====================
Risk Signal Definitions — DocVerify

Responsibility:
    - Define the immutable SignalBundle consumed by the scorer and the
      explanation generator
    - Validate and normalize raw collaborator outputs into one bundle

Inputs:
    - Face detection output       {"face_count", "any_face"}
    - Tamper analysis output      {"tampered", "suspicious_content", "width", "height"}
    - Quality analysis output     {"blurry", "good_lighting", "document_like"}
    - Extracted identity fields   IdentityFields

This module does NOT:
    - Call any collaborator
    - Compute risk scores (that is scorer.py)
    - Generate explanations
    - Store data or generate identifiers
"""

import logging
from typing import Any

from src.schemas.verification import IdentityFields

logger = logging.getLogger("docverify.risk.signals")


# ---------------------------------------------------------------------------
# Signal bundle — immutable container for all scoring inputs
# ---------------------------------------------------------------------------


class SignalBundle:
    """
    Immutable container for every input signal of one verification.

    Attributes:
        face_detected:      At least one face found on the document
        face_count:         Number of faces found
        tampered:           Image shows signs of editing
        suspicious_content: Provider flagged suspicious content
        blurry:             Image is out of focus
        good_lighting:      Lighting is adequate for analysis
        document_like:      Image looks like an identity document
        image_width:        Width in pixels
        image_height:       Height in pixels
        fields:             Extracted identity fields (plaintext)
    """

    __slots__ = (
        "face_detected",
        "face_count",
        "tampered",
        "suspicious_content",
        "blurry",
        "good_lighting",
        "document_like",
        "image_width",
        "image_height",
        "fields",
    )

    def __init__(
        self,
        face_detected: bool,
        face_count: int,
        tampered: bool,
        suspicious_content: bool,
        blurry: bool,
        good_lighting: bool,
        document_like: bool,
        image_width: int,
        image_height: int,
        fields: IdentityFields,
    ) -> None:
        # Snapshot the fields so later mutation of the caller's copy is invisible
        values = {
            "face_detected": face_detected,
            "face_count": face_count,
            "tampered": tampered,
            "suspicious_content": suspicious_content,
            "blurry": blurry,
            "good_lighting": good_lighting,
            "document_like": document_like,
            "image_width": image_width,
            "image_height": image_height,
            "fields": fields.map_values(lambda v: v),
        }
        for attr, value in values.items():
            object.__setattr__(self, attr, value)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"SignalBundle is immutable (cannot set {name!r})")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"SignalBundle is immutable (cannot delete {name!r})")

    @property
    def pixel_count(self) -> int:
        return self.image_width * self.image_height

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SignalBundle):
            return NotImplemented
        return all(
            getattr(self, attr) == getattr(other, attr)
            for attr in self.__slots__
        )

    def __repr__(self) -> str:
        # Identity values are never rendered, only their presence
        parts = [
            f"{attr}={getattr(self, attr)!r}"
            for attr in self.__slots__
            if attr != "fields"
        ]
        parts.append(f"fields_present={self.fields.present()!r}")
        return f"SignalBundle({', '.join(parts)})"


# ---------------------------------------------------------------------------
# Factory / validator — builds a validated SignalBundle from raw dicts
# ---------------------------------------------------------------------------


def _require_bool(source: str, payload: dict[str, Any], key: str) -> bool:
    value = payload.get(key)
    if not isinstance(value, bool):
        raise ValueError(
            f"{source}.{key} must be bool, got {type(value).__name__}"
        )
    return value


def _require_non_negative_int(source: str, payload: dict[str, Any], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(
            f"{source}.{key} must be int, got {type(value).__name__}"
        )
    if value < 0:
        raise ValueError(f"{source}.{key} must be non-negative, got {value}")
    return value


def build_signal_bundle(
    face_detection: dict[str, Any],
    tamper_analysis: dict[str, Any],
    quality_analysis: dict[str, Any],
    fields: IdentityFields,
) -> SignalBundle:
    """
    Build a validated SignalBundle from collaborator outputs.

    Args:
        face_detection:
            {"face_count": int, "any_face": bool, ...}
        tamper_analysis:
            {"tampered": bool, "suspicious_content": bool,
             "width": int, "height": int, ...}
        quality_analysis:
            {"blurry": bool, "good_lighting": bool, "document_like": bool}
        fields:
            IdentityFields from the field extractor.

    Returns:
        Validated, immutable SignalBundle.

    Raises:
        ValueError: If any input value is invalid or missing.
    """
    face_count = _require_non_negative_int("face_detection", face_detection, "face_count")
    any_face = _require_bool("face_detection", face_detection, "any_face")

    tampered = _require_bool("tamper_analysis", tamper_analysis, "tampered")
    suspicious = _require_bool("tamper_analysis", tamper_analysis, "suspicious_content")
    width = _require_non_negative_int("tamper_analysis", tamper_analysis, "width")
    height = _require_non_negative_int("tamper_analysis", tamper_analysis, "height")

    blurry = _require_bool("quality_analysis", quality_analysis, "blurry")
    good_lighting = _require_bool("quality_analysis", quality_analysis, "good_lighting")
    document_like = _require_bool("quality_analysis", quality_analysis, "document_like")

    if not isinstance(fields, IdentityFields):
        raise ValueError(
            f"fields must be IdentityFields, got {type(fields).__name__}"
        )

    bundle = SignalBundle(
        face_detected=any_face,
        face_count=face_count,
        tampered=tampered,
        suspicious_content=suspicious,
        blurry=blurry,
        good_lighting=good_lighting,
        document_like=document_like,
        image_width=width,
        image_height=height,
        fields=fields,
    )

    logger.info("SignalBundle built: %s", bundle)
    return bundle
