"""
src/schemas/verification.py
============================
Verification Data Model — DocVerify

Responsibility:
    - Define the typed values exchanged between pipeline stages
    - Define the persisted VerificationRecord and its storage layout

Persisted layout (camelCase keys, one item per verification):
    id, createdAt, updatedAt, fileName, storageKey, fileHash,
    riskLevel, riskScore, explanation, extractedData{name, idNumber, dob,
    address, expiryDate}, faceMatchConfidence, isTampered

This module does NOT:
    - Encrypt or decrypt fields (handled by src.crypto)
    - Assign ids or timestamps (handled by the record store)
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional


# ---------------------------------------------------------------------------
# OCR output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextLine:
    """One OCR line with its recognition confidence (0–100)."""

    content: str
    confidence_percent: float


# ---------------------------------------------------------------------------
# Identity fields
# ---------------------------------------------------------------------------

# Attribute name → persisted key
_FIELD_KEYS: dict[str, str] = {
    "name": "name",
    "id_number": "idNumber",
    "dob": "dob",
    "address": "address",
    "expiry_date": "expiryDate",
}


@dataclass
class IdentityFields:
    """
    Identity fields extracted from a document.

    Each field is independently optional; unset fields are None.
    """

    name: Optional[str] = None
    id_number: Optional[str] = None
    dob: Optional[str] = None
    address: Optional[str] = None
    expiry_date: Optional[str] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def present(self) -> list[str]:
        """Names of the fields that are set — safe to log."""
        return [f.name for f in fields(self) if getattr(self, f.name) is not None]

    def map_values(self, fn: Callable[[Optional[str]], Optional[str]]) -> "IdentityFields":
        """Return a copy with ``fn`` applied to every field value."""
        return IdentityFields(**{f.name: fn(getattr(self, f.name)) for f in fields(self)})

    def to_item(self) -> dict[str, Optional[str]]:
        return {key: getattr(self, attr) for attr, key in _FIELD_KEYS.items()}

    @classmethod
    def from_item(cls, item: dict[str, Any] | None) -> "IdentityFields":
        item = item or {}
        return cls(**{attr: item.get(key) for attr, key in _FIELD_KEYS.items()})


# ---------------------------------------------------------------------------
# Risk assessment
# ---------------------------------------------------------------------------


class RiskTier(str, Enum):
    """Three-way storage classification of a risk score."""

    LOW = "LOW RISK"
    MEDIUM = "MEDIUM RISK"
    HIGH = "HIGH RISK"


@dataclass(frozen=True)
class RiskAssessment:
    """Final score, tier and ordered narrative for one document."""

    score: int
    tier: RiskTier
    narrative: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Persisted record
# ---------------------------------------------------------------------------


def _format_ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class VerificationRecord:
    """
    One persisted verification.

    ``id`` and ``created_at`` are assigned by the record store on first save
    and never change afterwards; ``updated_at`` is refreshed on every save.
    Identity fields hold envelope-encrypted values while at rest.
    """

    file_name: str
    storage_key: str
    risk_level: RiskTier
    risk_score: int
    explanation: tuple[str, ...]
    extracted_data: IdentityFields = field(default_factory=IdentityFields)
    is_tampered: bool = False
    face_match_confidence: Optional[float] = None
    file_hash: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def with_fields(self, extracted_data: IdentityFields) -> "VerificationRecord":
        return replace(self, extracted_data=extracted_data)

    def to_item(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "createdAt": _format_ts(self.created_at),
            "updatedAt": _format_ts(self.updated_at),
            "fileName": self.file_name,
            "storageKey": self.storage_key,
            "fileHash": self.file_hash,
            "riskLevel": self.risk_level.value,
            "riskScore": self.risk_score,
            "explanation": list(self.explanation),
            "extractedData": self.extracted_data.to_item(),
            "faceMatchConfidence": self.face_match_confidence,
            "isTampered": self.is_tampered,
        }

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> "VerificationRecord":
        return cls(
            id=item.get("id"),
            created_at=_parse_ts(item.get("createdAt")),
            updated_at=_parse_ts(item.get("updatedAt")),
            file_name=item.get("fileName", ""),
            storage_key=item.get("storageKey", ""),
            file_hash=item.get("fileHash"),
            risk_level=RiskTier(item["riskLevel"]),
            risk_score=int(item["riskScore"]),
            explanation=tuple(item.get("explanation") or ()),
            extracted_data=IdentityFields.from_item(item.get("extractedData")),
            face_match_confidence=item.get("faceMatchConfidence"),
            is_tampered=bool(item.get("isTampered", False)),
        )
