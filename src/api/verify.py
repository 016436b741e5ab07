"""
src/api/verify.py
==================
API Endpoints — DocVerify

Responsibility:
    - Expose POST /api/verify
    - Accept a single document image (.jpg, .jpeg or .png) via
      multipart/form-data, reject empty, oversized or disallowed uploads
    - Delegate verification to src.pipeline.VerificationPipeline
    - Expose read-back endpoints (list, get, delete), stats and health

Status codes:
    400 — upload rejected before the pipeline starts (ValidationError)
    404 — unknown verification id
    502 — a mandatory collaborator failed (CollaboratorFailure)
    500 — any other failure

This module does NOT:
    - Analyze images, extract fields or score risk
    - Encrypt or decrypt identity fields (handled by the pipeline)
"""

import asyncio
import functools
import logging
import os
import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src import config
from src.crypto.envelope import KeyDerivationError, PiiEnvelope
from src.ocr.tesseract_client import TesseractTextExtractor
from src.pipeline import CollaboratorFailure, VerificationPipeline, VerificationResult
from src.risk.fraud_model import HttpFraudModel
from src.schemas.verification import VerificationRecord
from src.storage.object_store import LocalObjectStore
from src.storage.record_store import InMemoryRecordStore, JsonFileRecordStore
from src.vision.image_analyzer import LocalImageAnalyzer

logger = logging.getLogger("docverify.api")


SERVICE_NAME: str = "DocVerify"


class ValidationError(Exception):
    """Raised when an upload is rejected before the pipeline starts."""
    pass


# ---------------------------------------------------------------------------
# Pipeline wiring
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=1)
def get_pipeline() -> VerificationPipeline:
    """
    Build the process-wide pipeline once, from configuration.

    Called by the lifespan handler before the first request is accepted.

    Raises:
        KeyDerivationError: ENCRYPTION_SECRET cannot yield a key.
    """
    if config.ENCRYPTION_SECRET == config.DEFAULT_ENCRYPTION_SECRET:
        logger.warning("ENCRYPTION_SECRET is the built-in default — set it in production.")
    envelope = PiiEnvelope(config.ENCRYPTION_SECRET)

    if config.RECORDS_DIR:
        record_store = JsonFileRecordStore(config.RECORDS_DIR)
    else:
        record_store = InMemoryRecordStore()

    return VerificationPipeline(
        object_store=LocalObjectStore(config.STORAGE_DIR),
        image_analyzer=LocalImageAnalyzer(),
        text_extractor=TesseractTextExtractor(
            min_confidence=config.OCR_MIN_CONFIDENCE,
            tesseract_cmd=config.TESSERACT_CMD,
        ),
        record_store=record_store,
        envelope=envelope,
        fraud_model=HttpFraudModel(
            url=config.FRAUD_MODEL_URL,
            timeout_ms=config.FRAUD_MODEL_TIMEOUT_MS,
            enabled=config.FRAUD_MODEL_ENABLED,
        ),
    )


def validate_upload(file_name: str | None, data: bytes) -> None:
    """
    Reject uploads the pipeline must never see.

    Raises:
        ValidationError: Missing name, disallowed extension, empty body,
            or body above the size limit.
    """
    if not file_name:
        raise ValidationError("A document image file is required.")

    ext = os.path.splitext(file_name)[1].lower()
    if ext not in config.ALLOWED_EXTENSIONS:
        allowed = ", ".join(sorted(config.ALLOWED_EXTENSIONS))
        raise ValidationError(f"Unsupported file type '{ext or file_name}'. Allowed: {allowed}.")

    if not data:
        raise ValidationError("Uploaded file is empty.")

    if len(data) > config.MAX_UPLOAD_BYTES:
        raise ValidationError(
            f"File too large ({len(data)} bytes). Maximum is {config.MAX_UPLOAD_BYTES} bytes."
        )


def _result_json(result: VerificationResult) -> dict[str, Any]:
    return {
        "id": result.record_id,
        "riskLevel": result.assessment.tier.value,
        "riskScore": result.assessment.score,
        "explanation": list(result.assessment.narrative),
        "extractedData": result.fields.to_item(),
    }


def _record_json(record: VerificationRecord) -> dict[str, Any]:
    return record.to_item()


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Derive the encryption key and wire collaborators before serving."""
    logger.info("Starting %s.", SERVICE_NAME)
    try:
        get_pipeline()
    except KeyDerivationError as exc:
        logger.critical("Cannot derive encryption key — refusing to start: %s", exc)
        raise
    logger.info("%s ready.", SERVICE_NAME)
    yield


app = FastAPI(
    title=SERVICE_NAME,
    description="Identity document fraud-risk verification.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.post("/api/verify")
async def verify_document(file: UploadFile = File(...)):
    """
    Accept a document image and run the full verification pipeline.

    Returns:
        {"id", "riskLevel", "riskScore", "explanation", "extractedData"}
        with extractedData in plaintext.
    """
    try:
        data = await file.read()
    except OSError:
        raise HTTPException(status_code=400, detail="Failed to read uploaded file.")

    try:
        validate_upload(file.filename, data)
    except ValidationError as exc:
        logger.warning("Upload rejected: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc))

    logger.info("Document received: %s (%.2f KB)", file.filename, len(data) / 1024)

    try:
        result = await asyncio.to_thread(get_pipeline().verify, data, file.filename)
    except CollaboratorFailure as exc:
        logger.error("Collaborator failure: %s", exc)
        raise HTTPException(
            status_code=502,
            detail=f"Verification aborted: {exc.collaborator} unavailable.",
        )
    except Exception as exc:
        logger.error("Verification unexpected error: %s", exc, exc_info=True)
        raise HTTPException(status_code=500, detail="Verification failed.")

    logger.info("Verification complete — returning assessment.")
    return JSONResponse(status_code=200, content=_result_json(result))


@app.get("/api/verifications")
async def list_verifications(limit: int = 50):
    """Up to ``limit`` decrypted records; order is not guaranteed."""
    limit = max(0, min(limit, 1000))
    records = await asyncio.to_thread(get_pipeline().list_verifications, limit)
    return [_record_json(r) for r in records]


@app.get("/api/verifications/{record_id}")
async def get_verification(record_id: str):
    record = await asyncio.to_thread(get_pipeline().get_verification, record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Verification not found.")
    return _record_json(record)


@app.delete("/api/verifications/{record_id}")
async def delete_verification(record_id: str):
    deleted = await asyncio.to_thread(get_pipeline().delete_verification, record_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Verification not found.")
    return {"id": record_id, "deleted": True}


@app.get("/api/stats")
async def verification_stats():
    return await asyncio.to_thread(get_pipeline().verification_stats)


@app.get("/api/health")
async def health():
    info: dict[str, Any] = {
        "status": "UP",
        "service": SERVICE_NAME,
        "timestamp": int(time.time() * 1000),
    }
    info.update(get_pipeline().health())
    return info
