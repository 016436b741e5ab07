"""
tests/test_envelope.py
=======================
PII Envelope Tests — field-level AES-GCM encryption

Test categories:
    1. Passthrough contract (None, blank, already-tagged, untagged)
    2. Round trip and idempotence
    3. Envelope format (version tag, nonce freshness)
    4. Soft failure on short payloads
    5. Hard failures (wrong key, corrupt data, bad base64)
    6. Key derivation and content fingerprint

All tests are offline.
"""

import base64
import hashlib
import os
import sys
import unittest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.crypto.envelope import (
    NONCE_LENGTH,
    VERSION_TAG,
    DecryptionError,
    KeyDerivationError,
    PiiEnvelope,
    content_fingerprint,
    is_encrypted,
)


SECRET = "unit-test-secret"


# ===================================================================
# 1. Passthrough
# ===================================================================


class TestPassthrough(unittest.TestCase):

    def setUp(self):
        self.envelope = PiiEnvelope(SECRET)

    def test_encrypt_none(self):
        self.assertIsNone(self.envelope.encrypt(None))

    def test_encrypt_empty(self):
        self.assertEqual(self.envelope.encrypt(""), "")

    def test_encrypt_whitespace(self):
        self.assertEqual(self.envelope.encrypt("   "), "   ")

    def test_decrypt_none(self):
        self.assertIsNone(self.envelope.decrypt(None))

    def test_decrypt_blank(self):
        self.assertEqual(self.envelope.decrypt(""), "")
        self.assertEqual(self.envelope.decrypt("  "), "  ")

    def test_decrypt_untagged_plaintext(self):
        self.assertEqual(self.envelope.decrypt("JOHN SMITH"), "JOHN SMITH")

    def test_decrypt_legacy_value_with_other_prefix(self):
        self.assertEqual(self.envelope.decrypt("enc:v0:abc"), "enc:v0:abc")


# ===================================================================
# 2. Round trip and idempotence
# ===================================================================


class TestRoundTrip(unittest.TestCase):

    def setUp(self):
        self.envelope = PiiEnvelope(SECRET)

    def test_round_trip_ascii(self):
        sealed = self.envelope.encrypt("ID1234567")
        self.assertEqual(self.envelope.decrypt(sealed), "ID1234567")

    def test_round_trip_unicode(self):
        value = "José Ñúñez — 東京都"
        self.assertEqual(self.envelope.decrypt(self.envelope.encrypt(value)), value)

    def test_round_trip_preserves_surrounding_whitespace(self):
        value = "  12 Main Street  "
        self.assertEqual(self.envelope.decrypt(self.envelope.encrypt(value)), value)

    def test_encrypt_is_idempotent(self):
        once = self.envelope.encrypt("01/02/1990")
        self.assertEqual(self.envelope.encrypt(once), once)

    def test_separate_instances_same_secret_interoperate(self):
        sealed = PiiEnvelope(SECRET).encrypt("JOHN SMITH")
        self.assertEqual(PiiEnvelope(SECRET).decrypt(sealed), "JOHN SMITH")


# ===================================================================
# 3. Envelope format
# ===================================================================


class TestFormat(unittest.TestCase):

    def setUp(self):
        self.envelope = PiiEnvelope(SECRET)

    def test_tagged_output(self):
        sealed = self.envelope.encrypt("JOHN SMITH")
        self.assertTrue(sealed.startswith(VERSION_TAG))
        self.assertTrue(is_encrypted(sealed))

    def test_payload_layout(self):
        plaintext = "JOHN SMITH"
        sealed = self.envelope.encrypt(plaintext)
        raw = base64.b64decode(sealed[len(VERSION_TAG):])
        # nonce + ciphertext + 16-byte tag
        self.assertEqual(len(raw), NONCE_LENGTH + len(plaintext.encode("utf-8")) + 16)

    def test_fresh_nonce_per_call(self):
        a = self.envelope.encrypt("JOHN SMITH")
        b = self.envelope.encrypt("JOHN SMITH")
        self.assertNotEqual(a, b)

    def test_ciphertext_hides_plaintext(self):
        sealed = self.envelope.encrypt("JOHN SMITH")
        self.assertNotIn("JOHN", sealed)

    def test_is_encrypted_rejects_non_strings(self):
        self.assertFalse(is_encrypted(None))
        self.assertFalse(is_encrypted("JOHN"))


# ===================================================================
# 4. Soft failure
# ===================================================================


class TestShortPayload(unittest.TestCase):

    def setUp(self):
        self.envelope = PiiEnvelope(SECRET)

    def test_payload_equal_to_nonce_length_returns_empty(self):
        value = VERSION_TAG + base64.b64encode(b"\x00" * NONCE_LENGTH).decode("ascii")
        self.assertEqual(self.envelope.decrypt(value), "")

    def test_payload_shorter_than_nonce_returns_empty(self):
        value = VERSION_TAG + base64.b64encode(b"\x01\x02").decode("ascii")
        self.assertEqual(self.envelope.decrypt(value), "")


# ===================================================================
# 5. Hard failures
# ===================================================================


class TestHardFailures(unittest.TestCase):

    def setUp(self):
        self.envelope = PiiEnvelope(SECRET)

    def test_wrong_key(self):
        sealed = PiiEnvelope("another-secret").encrypt("JOHN SMITH")
        with self.assertRaises(DecryptionError):
            self.envelope.decrypt(sealed)

    def test_flipped_ciphertext_bit(self):
        sealed = self.envelope.encrypt("JOHN SMITH")
        raw = bytearray(base64.b64decode(sealed[len(VERSION_TAG):]))
        raw[NONCE_LENGTH] ^= 0x01
        tampered = VERSION_TAG + base64.b64encode(bytes(raw)).decode("ascii")
        with self.assertRaises(DecryptionError):
            self.envelope.decrypt(tampered)

    def test_invalid_base64(self):
        with self.assertRaises(DecryptionError):
            self.envelope.decrypt(VERSION_TAG + "!!not-base64!!")

    def test_truncated_tag(self):
        sealed = self.envelope.encrypt("JOHN SMITH")
        raw = base64.b64decode(sealed[len(VERSION_TAG):])[:-4]
        with self.assertRaises(DecryptionError):
            self.envelope.decrypt(VERSION_TAG + base64.b64encode(raw).decode("ascii"))


# ===================================================================
# 6. Key derivation and fingerprint
# ===================================================================


class TestKeyAndFingerprint(unittest.TestCase):

    def test_empty_secret_rejected(self):
        with self.assertRaises(KeyDerivationError):
            PiiEnvelope("")

    def test_non_string_secret_rejected(self):
        with self.assertRaises(KeyDerivationError):
            PiiEnvelope(None)

    def test_fingerprint_is_lowercase_sha256_hex(self):
        data = b"document-bytes"
        fp = content_fingerprint(data)
        self.assertEqual(fp, hashlib.sha256(data).hexdigest())
        self.assertEqual(fp, fp.lower())
        self.assertEqual(len(fp), 64)

    def test_fingerprint_deterministic(self):
        self.assertEqual(content_fingerprint(b"x"), content_fingerprint(b"x"))
        self.assertNotEqual(content_fingerprint(b"x"), content_fingerprint(b"y"))


if __name__ == "__main__":
    unittest.main()
