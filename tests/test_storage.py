"""
tests/test_storage.py
======================
Storage Tests — object store and record stores

Test categories:
    1. LocalObjectStore key scheme, round trip, delete, key containment
    2. Record stores: id / timestamp assignment, upsert, get, list, delete
       (run against both the in-memory and the JSON file backend)
    3. Persisted item layout (camelCase keys)

Filesystem tests run inside a temporary directory.
"""

import os
import re
import sys
import tempfile
import unittest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.schemas.verification import IdentityFields, RiskTier, VerificationRecord
from src.storage.object_store import LocalObjectStore, ObjectNotFoundError
from src.storage.record_store import InMemoryRecordStore, JsonFileRecordStore


_KEY_PATTERN = re.compile(r"^uploads/[0-9a-f-]{36}\.png$")


def _record(**overrides) -> VerificationRecord:
    values = dict(
        file_name="id.png",
        storage_key="uploads/abc.png",
        risk_level=RiskTier.MEDIUM,
        risk_score=42,
        explanation=("line one", "line two"),
        extracted_data=IdentityFields(name="enc:v1:AAAA", dob="enc:v1:BBBB"),
        is_tampered=True,
        face_match_confidence=None,
        file_hash="ab" * 32,
    )
    values.update(overrides)
    return VerificationRecord(**values)


# ===================================================================
# 1. Object store
# ===================================================================


class TestLocalObjectStore(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = LocalObjectStore(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_key_scheme(self):
        key = self.store.put(b"data", "Passport.PNG")
        self.assertRegex(key, _KEY_PATTERN)

    def test_round_trip(self):
        key = self.store.put(b"\x00\x01binary", "id.jpg")
        self.assertEqual(self.store.get(key), b"\x00\x01binary")
        self.assertTrue(self.store.exists(key))

    def test_every_put_gets_new_key(self):
        self.assertNotEqual(self.store.put(b"same", "a.png"), self.store.put(b"same", "a.png"))

    def test_missing_key(self):
        with self.assertRaises(ObjectNotFoundError):
            self.store.get("uploads/nope.png")

    def test_key_outside_root_rejected(self):
        with self.assertRaises(ObjectNotFoundError):
            self.store.get("uploads/../../etc/passwd")
        self.assertFalse(self.store.exists("other/file.png"))

    def test_delete(self):
        key = self.store.put(b"data", "id.png")
        self.assertTrue(self.store.delete(key))
        self.assertFalse(self.store.exists(key))
        self.assertFalse(self.store.delete(key))

    def test_available(self):
        self.assertTrue(self.store.is_available())


# ===================================================================
# 2. Record stores (shared behaviour)
# ===================================================================


class _RecordStoreContract:
    """Mixin: every record store backend must pass these."""

    def make_store(self):
        raise NotImplementedError

    def setUp(self):
        self.store = self.make_store()

    def test_save_assigns_id_and_timestamps(self):
        saved = self.store.save(_record())
        self.assertIsNotNone(saved.id)
        self.assertIsNotNone(saved.created_at)
        self.assertIsNotNone(saved.updated_at)
        self.assertIsNotNone(saved.created_at.tzinfo)

    def test_resave_keeps_id_and_created_at(self):
        first = self.store.save(_record())
        second = self.store.save(first)
        self.assertEqual(second.id, first.id)
        self.assertEqual(second.created_at, first.created_at)
        self.assertGreaterEqual(second.updated_at, first.updated_at)

    def test_get_by_id_round_trip(self):
        saved = self.store.save(_record())
        loaded = self.store.get_by_id(saved.id)
        self.assertEqual(loaded, saved)

    def test_get_unknown(self):
        self.assertIsNone(self.store.get_by_id("does-not-exist"))

    def test_upsert_last_write_wins(self):
        saved = self.store.save(_record())
        self.store.save(_record(id=saved.id, created_at=saved.created_at, risk_score=90,
                                risk_level=RiskTier.HIGH))
        self.assertEqual(self.store.get_by_id(saved.id).risk_score, 90)
        self.assertEqual(len(self.store.list_recent(10)), 1)

    def test_list_respects_limit(self):
        for _ in range(5):
            self.store.save(_record())
        self.assertEqual(len(self.store.list_recent(3)), 3)
        self.assertEqual(len(self.store.list_recent(50)), 5)
        self.assertEqual(self.store.list_recent(0), [])

    def test_delete(self):
        saved = self.store.save(_record())
        self.assertTrue(self.store.delete(saved.id))
        self.assertIsNone(self.store.get_by_id(saved.id))
        self.assertFalse(self.store.delete(saved.id))

    def test_available(self):
        self.assertTrue(self.store.is_available())


class TestInMemoryRecordStore(_RecordStoreContract, unittest.TestCase):

    def make_store(self):
        return InMemoryRecordStore()


class TestJsonFileRecordStore(_RecordStoreContract, unittest.TestCase):

    def make_store(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        return JsonFileRecordStore(self._tmp.name)

    def test_one_file_per_record(self):
        saved = self.store.save(_record())
        self.assertTrue(os.path.isfile(os.path.join(self._tmp.name, f"{saved.id}.json")))

    def test_unsafe_id_not_found(self):
        self.assertIsNone(self.store.get_by_id("../escape"))
        self.assertFalse(self.store.delete("../escape"))


# ===================================================================
# 3. Item layout
# ===================================================================


class TestItemLayout(unittest.TestCase):

    def test_camel_case_keys(self):
        item = InMemoryRecordStore().save(_record()).to_item()
        self.assertEqual(
            set(item),
            {
                "id", "createdAt", "updatedAt", "fileName", "storageKey", "fileHash",
                "riskLevel", "riskScore", "explanation", "extractedData",
                "faceMatchConfidence", "isTampered",
            },
        )
        self.assertEqual(item["riskLevel"], "MEDIUM RISK")
        self.assertEqual(
            set(item["extractedData"]), {"name", "idNumber", "dob", "address", "expiryDate"},
        )
        self.assertIsNone(item["extractedData"]["idNumber"])


if __name__ == "__main__":
    unittest.main()
