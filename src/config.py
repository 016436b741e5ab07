"""
src/config.py
==============
Process Configuration — DocVerify

Responsibility:
    - Load .env once and expose every tunable as a module-level constant
    - Provide the defaults the rest of the service relies on

Values are read once at import time and never mutated afterwards, so they
are safe to share across concurrent requests.

This module does NOT:
    - Derive encryption keys (handled by src.crypto.envelope)
    - Construct collaborators (handled by src.api.verify)
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("docverify.config")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid %s=%r — using default %s.", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid %s=%r — using default %s.", name, raw, default)
        return default


# ---------------------------------------------------------------------------
# Field encryption
# ---------------------------------------------------------------------------

DEFAULT_ENCRYPTION_SECRET: str = "change-me-for-production"
ENCRYPTION_SECRET: str = os.getenv("ENCRYPTION_SECRET", DEFAULT_ENCRYPTION_SECRET)

# ---------------------------------------------------------------------------
# OCR
# ---------------------------------------------------------------------------

OCR_MIN_CONFIDENCE: float = _env_float("OCR_MIN_CONFIDENCE", 80.0)
TESSERACT_CMD: str | None = os.getenv("TESSERACT_CMD") or None

# ---------------------------------------------------------------------------
# External fraud model (optional, fail-open)
# ---------------------------------------------------------------------------

FRAUD_MODEL_ENABLED: bool = _env_bool("FRAUD_MODEL_ENABLED", False)
FRAUD_MODEL_URL: str = os.getenv("FRAUD_MODEL_URL", "")
FRAUD_MODEL_TIMEOUT_MS: int = _env_int("FRAUD_MODEL_TIMEOUT_MS", 2000)

# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

STORAGE_DIR: str = os.getenv("STORAGE_DIR", os.path.join("data", "uploads"))
# Empty string selects the in-memory record store.
RECORDS_DIR: str = os.getenv("RECORDS_DIR", os.path.join("data", "records"))

# ---------------------------------------------------------------------------
# Upload validation
# ---------------------------------------------------------------------------

MAX_UPLOAD_BYTES: int = _env_int("MAX_UPLOAD_BYTES", 10 * 1024 * 1024)
ALLOWED_EXTENSIONS: set[str] = {".jpg", ".jpeg", ".png"}
