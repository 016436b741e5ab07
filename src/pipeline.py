"""
src/pipeline.py
================
Verification Pipeline Orchestrator — DocVerify Integration Layer

Responsibility:
    1. Drive one verification through every stage, sequentially
    2. Verify each collaborator's output before it enters the core
    3. Fold in the optional external model adjustment (fail-open)
    4. Persist the record with every identity field encrypted
    5. Return the assessment and the PLAINTEXT fields to the caller
    6. Decrypt identity fields on every read-back path
    7. Remove the uploaded object when a later stage aborts

This layer MUST NOT:
    - Analyze images or read text itself
    - Retry failed collaborator calls
    - Persist anything when a mandatory collaborator fails
    - Return encrypted values to callers

Stage order:
    Stage 1: Store upload            → storage key
    Stage 2: Fetch document bytes    → bytes
    Stage 3: Image analysis          → face / tamper / quality signals
    Stage 4: OCR                     → confidence-filtered lines
    Stage 5: Field extraction        → IdentityFields
    Stage 6: Risk scoring            → score + tier (+ model adjustment)
    Stage 7: Explanation             → ordered narrative
    Stage 8: Persistence             → record with id / timestamps
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Protocol, Sequence, TypeVar

from src.crypto.envelope import PiiEnvelope, content_fingerprint
from src.explain.explanation_generator import generate_explanation
from src.ocr.field_extractor import extract_identity_fields
from src.risk.fraud_model import DisabledFraudModel
from src.risk.scorer import compute_risk
from src.risk.signals import build_signal_bundle
from src.schemas.verification import (
    IdentityFields,
    RiskAssessment,
    RiskTier,
    TextLine,
    VerificationRecord,
)
from src.stage_validator import (
    verify_assessment,
    verify_face_detection,
    verify_narrative,
    verify_quality_analysis,
    verify_tamper_analysis,
    verify_text_lines,
)

logger = logging.getLogger("docverify.pipeline")

T = TypeVar("T")

STATS_SAMPLE_LIMIT: int = 1000


# =====================================================================
# Collaborator capabilities
# =====================================================================


class ObjectStore(Protocol):
    def put(self, data: bytes, file_name: str = "") -> str: ...
    def get(self, key: str) -> bytes: ...
    def delete(self, key: str) -> bool: ...


class ImageAnalyzer(Protocol):
    def detect_faces(self, image_bytes: bytes) -> dict[str, Any]: ...
    def detect_tampering(self, image_bytes: bytes) -> dict[str, Any]: ...
    def analyze_quality(self, image_bytes: bytes) -> dict[str, bool]: ...


class TextExtractor(Protocol):
    def extract_lines(self, image_bytes: bytes) -> Sequence[TextLine]: ...


class FraudModel(Protocol):
    def score(self, content_fingerprint: str, hint: str) -> int: ...


class RecordStore(Protocol):
    def save(self, record: VerificationRecord) -> VerificationRecord: ...
    def get_by_id(self, record_id: str) -> Optional[VerificationRecord]: ...
    def list_recent(self, limit: int = 50) -> list[VerificationRecord]: ...
    def delete(self, record_id: str) -> bool: ...


# =====================================================================
# Errors and results
# =====================================================================


class CollaboratorFailure(Exception):
    """A mandatory collaborator call failed; the verification was aborted."""

    def __init__(self, collaborator: str, message: str):
        self.collaborator = collaborator
        self.message = message
        super().__init__(f"{collaborator} failed: {message}")


@dataclass(frozen=True)
class VerificationResult:
    """What a caller gets back from one verification (fields in plaintext)."""

    record_id: str
    storage_key: str
    assessment: RiskAssessment
    fields: IdentityFields
    created_at: Optional[datetime] = None


def _banner(title: str) -> None:
    logger.info("=" * 60)
    logger.info(title)
    logger.info("=" * 60)


# =====================================================================
# Orchestrator
# =====================================================================


class VerificationPipeline:
    """
    Sequential verification of one identity-document image.

    Collaborators are injected; the pipeline holds no per-request state
    and is safe to share across concurrent requests.
    """

    def __init__(
        self,
        object_store: ObjectStore,
        image_analyzer: ImageAnalyzer,
        text_extractor: TextExtractor,
        record_store: RecordStore,
        envelope: PiiEnvelope,
        fraud_model: FraudModel | None = None,
    ) -> None:
        self.object_store = object_store
        self.image_analyzer = image_analyzer
        self.text_extractor = text_extractor
        self.record_store = record_store
        self.envelope = envelope
        self.fraud_model = fraud_model or DisabledFraudModel()

    # ------------------------------------------------------------------
    # Collaborator call wrapper
    # ------------------------------------------------------------------

    @staticmethod
    def _call(
        collaborator: str,
        fn: Callable[..., T],
        *args: Any,
        verify: Callable[[T], None] | None = None,
    ) -> T:
        """Run one mandatory collaborator call; any failure aborts the pipeline."""
        try:
            result = fn(*args)
            if verify is not None:
                verify(result)
        except Exception as exc:
            logger.error("%s failed: %s", collaborator, exc)
            raise CollaboratorFailure(collaborator, str(exc)) from exc
        return result

    def _model_adjustment(self, fingerprint: str, hint: RiskTier) -> int:
        try:
            return int(self.fraud_model.score(fingerprint, hint.value))
        except Exception as exc:
            logger.warning("Fraud model raised: %s — adjustment 0.", exc)
            return 0

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def verify(self, data: bytes, file_name: str) -> VerificationResult:
        """
        Execute the full verification for one uploaded document.

        Args:
            data:      Raw image bytes.
            file_name: Original file name (kept on the record).

        Returns:
            VerificationResult with the assessment and plaintext fields.

        Raises:
            CollaboratorFailure: A mandatory collaborator failed or returned
                malformed output. Nothing was persisted and the uploaded
                object was removed.
            CryptoError: Field encryption failed.
        """
        # ==============================================================
        # STAGES 1–2 — Store upload, fetch document bytes
        # ==============================================================
        _banner("STAGE 1–2: Store upload + fetch document")

        storage_key = self._call("object_store", self.object_store.put, data, file_name)
        try:
            return self._run_stages(storage_key, file_name)
        except Exception:
            self._discard_upload(storage_key)
            raise

    def _discard_upload(self, storage_key: str) -> None:
        """Remove the object of an aborted verification; the original error wins."""
        try:
            self.object_store.delete(storage_key)
        except Exception as exc:
            logger.warning("Could not remove orphaned upload %s: %s", storage_key, exc)
        else:
            logger.info("Removed upload %s after aborted verification.", storage_key)

    def _run_stages(self, storage_key: str, file_name: str) -> VerificationResult:
        document = self._call("object_store", self.object_store.get, storage_key)

        logger.info("Stages 1–2 complete: %s (%d bytes).", storage_key, len(document))

        # ==============================================================
        # STAGE 3 — Image analysis
        # ==============================================================
        _banner("STAGE 3: Image analysis")

        analyzer = self.image_analyzer
        faces = self._call(
            "image_analyzer", analyzer.detect_faces, document, verify=verify_face_detection,
        )
        tamper = self._call(
            "image_analyzer", analyzer.detect_tampering, document, verify=verify_tamper_analysis,
        )
        quality = self._call(
            "image_analyzer", analyzer.analyze_quality, document, verify=verify_quality_analysis,
        )

        logger.info(
            "Stage 3 complete: faces=%d, tampered=%s, blurry=%s.",
            faces["face_count"], tamper["tampered"], quality["blurry"],
        )

        # ==============================================================
        # STAGES 4–5 — OCR + field extraction
        # ==============================================================
        _banner("STAGE 4–5: OCR + field extraction")

        lines = self._call(
            "text_extractor", self.text_extractor.extract_lines, document, verify=verify_text_lines,
        )
        fields = extract_identity_fields(lines)

        logger.info(
            "Stages 4–5 complete: %d lines, fields present=%s.", len(lines), fields.present(),
        )

        # ==============================================================
        # STAGE 6 — Risk scoring
        # ==============================================================
        _banner("STAGE 6: Risk scoring")

        bundle = build_signal_bundle(faces, tamper, quality, fields)

        base = compute_risk(bundle)
        fingerprint = content_fingerprint(document)
        adjustment = self._model_adjustment(fingerprint, base["risk_level"])

        risk = compute_risk(bundle, adjustment)
        verify_assessment(risk)

        logger.info(
            "Stage 6 complete: score=%d (%s), adjustment=%d.",
            risk["risk_score"], risk["risk_level"].value, adjustment,
        )

        # ==============================================================
        # STAGE 7 — Explanation
        # ==============================================================
        _banner("STAGE 7: Explanation")

        narrative = generate_explanation(bundle, risk["risk_score"])
        verify_narrative(narrative)

        assessment = RiskAssessment(
            score=risk["risk_score"],
            tier=risk["risk_level"],
            narrative=tuple(narrative),
        )

        # ==============================================================
        # STAGE 8 — Persistence (identity fields encrypted at rest)
        # ==============================================================
        _banner("STAGE 8: Persistence")

        record = VerificationRecord(
            file_name=file_name,
            storage_key=storage_key,
            file_hash=fingerprint,
            risk_level=assessment.tier,
            risk_score=assessment.score,
            explanation=assessment.narrative,
            extracted_data=fields.map_values(self.envelope.encrypt),
            is_tampered=bundle.tampered,
            face_match_confidence=faces.get("highest_confidence"),
        )
        saved = self._call("record_store", self.record_store.save, record)

        logger.info("Pipeline complete — record %s saved.", saved.id)
        return VerificationResult(
            record_id=saved.id,
            storage_key=storage_key,
            assessment=assessment,
            fields=fields,
            created_at=saved.created_at,
        )

    # ------------------------------------------------------------------
    # Read paths (identity fields decrypted)
    # ------------------------------------------------------------------

    def _decrypted(self, record: VerificationRecord) -> VerificationRecord:
        return record.with_fields(record.extracted_data.map_values(self.envelope.decrypt))

    def get_verification(self, record_id: str) -> Optional[VerificationRecord]:
        record = self.record_store.get_by_id(record_id)
        if record is None:
            return None
        return self._decrypted(record)

    def list_verifications(self, limit: int = 50) -> list[VerificationRecord]:
        """Up to ``limit`` records, decrypted; order is not guaranteed."""
        return [self._decrypted(r) for r in self.record_store.list_recent(limit)]

    def delete_verification(self, record_id: str) -> bool:
        """Delete the record and its stored document; False if absent."""
        record = self.record_store.get_by_id(record_id)
        if record is None:
            return False

        self.record_store.delete(record_id)
        if record.storage_key and not self.object_store.delete(record.storage_key):
            logger.warning("Stored object %s was already gone.", record.storage_key)

        logger.info("Deleted verification %s.", record_id)
        return True

    def verification_stats(self, limit: int = STATS_SAMPLE_LIMIT) -> dict[str, Any]:
        """Tier counts and average score over up to ``limit`` records."""
        records = self.record_store.list_recent(limit)
        counts = {tier: 0 for tier in RiskTier}
        for r in records:
            counts[r.risk_level] += 1

        total = len(records)
        average = round(sum(r.risk_score for r in records) / total, 2) if total else 0.0

        return {
            "totalVerifications": total,
            "lowRiskCount": counts[RiskTier.LOW],
            "mediumRiskCount": counts[RiskTier.MEDIUM],
            "highRiskCount": counts[RiskTier.HIGH],
            "averageRiskScore": average,
            "riskDistribution": {
                "low": counts[RiskTier.LOW],
                "medium": counts[RiskTier.MEDIUM],
                "high": counts[RiskTier.HIGH],
            },
        }

    def health(self) -> dict[str, str]:
        """Reachability of the storage collaborators."""
        status: dict[str, str] = {}
        for name, store in (("objectStore", self.object_store), ("recordStore", self.record_store)):
            check = getattr(store, "is_available", None)
            if check is None:
                status[name] = "UNKNOWN"
                continue
            try:
                status[name] = "CONNECTED" if check() else "UNAVAILABLE"
            except OSError as exc:
                status[name] = f"ERROR: {exc}"
        return status
