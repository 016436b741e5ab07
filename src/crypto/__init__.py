# src/crypto/__init__.py
# =======================
# Field Encryption Layer — DocVerify
#
# Responsibility:
#   - Seal extracted identity fields before they reach the record store
#   - Open them again on every read-back path
#   - Fingerprint raw document bytes (SHA-256, lowercase hex)
#
# Public API:
#   - PiiEnvelope          — encrypt() / decrypt() with passthrough contract
#   - content_fingerprint() — SHA-256 hex digest of bytes

from src.crypto.envelope import (  # noqa: F401
    VERSION_TAG,
    CryptoError,
    DecryptionError,
    KeyDerivationError,
    PiiEnvelope,
    content_fingerprint,
    is_encrypted,
)
