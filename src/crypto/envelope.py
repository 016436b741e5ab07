"""
src/crypto/envelope.py
=======================
PII Envelope — DocVerify field-level encryption

Responsibility:
    - Encrypt single text fields with AES-256-GCM before they are persisted
    - Decrypt stored fields on every read-back path
    - Expose a SHA-256 content fingerprint helper

Envelope format:
    enc:v1:<base64(nonce ‖ ciphertext ‖ tag)>

    - nonce: 12 random bytes, fresh per call
    - tag:   16 bytes, appended to the ciphertext by AESGCM

Passthrough contract:
    - encrypt() returns None, blank, or already-tagged input unchanged
    - decrypt() returns None, blank, or untagged input unchanged
    - decrypt() of a payload no longer than the nonce returns ""

Key derivation:
    The 256-bit key is the SHA-256 digest of the configured secret. It is
    derived once, when the envelope is constructed, and is read-only after
    that. There is no rotation or per-field diversification; changing that
    requires a new version tag.

This module does NOT:
    - Decide which fields are sensitive (handled by src.pipeline)
    - Store data
    - Read configuration (the secret is passed in)
"""

import base64
import binascii
import hashlib
import logging
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger("docverify.crypto.envelope")


VERSION_TAG: str = "enc:v1:"
NONCE_LENGTH: int = 12  # 96-bit
KEY_LENGTH: int = 32  # 256-bit


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CryptoError(Exception):
    """Base class for envelope failures."""
    pass


class KeyDerivationError(CryptoError):
    """Raised when the encryption key cannot be derived. Fatal at startup."""
    pass


class DecryptionError(CryptoError):
    """Raised when a tagged value cannot be opened (bad tag, corrupt data)."""
    pass


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def content_fingerprint(data: bytes) -> str:
    """Return the lowercase hex SHA-256 digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


def is_encrypted(value: str | None) -> bool:
    """True if ``value`` carries the envelope version tag."""
    return isinstance(value, str) and value.startswith(VERSION_TAG)


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _derive_key(secret: str) -> bytes:
    if not isinstance(secret, str) or not secret:
        raise KeyDerivationError("Encryption secret must be a non-empty string.")
    return hashlib.sha256(secret.encode("utf-8")).digest()


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------


class PiiEnvelope:
    """
    Symmetric authenticated encryption for single text fields.

    Safe to share across threads: the only state is the AESGCM instance
    built from the key derived in ``__init__``.
    """

    __slots__ = ("_aead",)

    def __init__(self, secret: str) -> None:
        key = _derive_key(secret)
        if len(key) != KEY_LENGTH:
            raise KeyDerivationError(f"Derived key has {len(key)} bytes, expected {KEY_LENGTH}.")
        self._aead = AESGCM(key)
        logger.info("PII envelope initialized (%s).", VERSION_TAG.rstrip(":"))

    def encrypt(self, plaintext: str | None) -> str | None:
        """
        Seal a text field.

        Returns the input unchanged if it is None, blank, or already
        carries the version tag.
        """
        if _is_blank(plaintext) or is_encrypted(plaintext):
            return plaintext

        nonce = secrets.token_bytes(NONCE_LENGTH)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return VERSION_TAG + base64.b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, value: str | None) -> str | None:
        """
        Open a sealed text field.

        Returns the input unchanged if it is None, blank, or untagged.
        Returns "" if the decoded payload is not longer than the nonce.

        Raises:
            DecryptionError: If the payload is corrupt or fails authentication.
        """
        if _is_blank(value) or not is_encrypted(value):
            return value

        try:
            combined = base64.b64decode(value[len(VERSION_TAG):], validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecryptionError(f"Envelope payload is not valid base64: {exc}") from exc

        if len(combined) <= NONCE_LENGTH:
            logger.warning("Envelope payload too short (%d bytes) — returning empty value.", len(combined))
            return ""

        nonce, sealed = combined[:NONCE_LENGTH], combined[NONCE_LENGTH:]
        try:
            plaintext = self._aead.decrypt(nonce, sealed, None)
        except InvalidTag as exc:
            raise DecryptionError("Envelope authentication failed — wrong key or tampered data.") from exc

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError("Decrypted payload is not valid UTF-8.") from exc
