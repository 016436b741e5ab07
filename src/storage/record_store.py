"""
src/storage/record_store.py
============================
Verification Record Stores — DocVerify

Responsibility:
    - Persist VerificationRecords as single-item upserts keyed by id
    - Assign id (uuid4) and created_at on first save; refresh updated_at
      on every save
    - Fetch by id, list up to N records, delete by id

Two backends:
    - InMemoryRecordStore: process-local dict (tests, ephemeral runs)
    - JsonFileRecordStore: one JSON document per record in a directory

Listing order is whatever the backend yields; callers must not rely on it.
There is no locking: concurrent saves of the same id are last-write-wins.

This module does NOT:
    - Encrypt or decrypt identity fields (handled by the pipeline)
    - Store uploaded document bytes (handled by object_store.py)
"""

import json
import logging
import os
import re
import tempfile
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from src.schemas.verification import VerificationRecord

logger = logging.getLogger("docverify.storage.record_store")


_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def _stamp(record: VerificationRecord) -> VerificationRecord:
    """Assign id/created_at when absent and refresh updated_at."""
    now = datetime.now(timezone.utc)
    return replace(
        record,
        id=record.id or str(uuid.uuid4()),
        created_at=record.created_at or now,
        updated_at=now,
    )


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------


class InMemoryRecordStore:
    """RecordStore held in a process-local dict."""

    def __init__(self) -> None:
        self._items: dict[str, dict] = {}

    def save(self, record: VerificationRecord) -> VerificationRecord:
        saved = _stamp(record)
        self._items[saved.id] = saved.to_item()
        logger.info("Saved record %s.", saved.id)
        return saved

    def get_by_id(self, record_id: str) -> Optional[VerificationRecord]:
        item = self._items.get(record_id)
        return VerificationRecord.from_item(item) if item is not None else None

    def list_recent(self, limit: int = 50) -> list[VerificationRecord]:
        if limit <= 0:
            return []
        items = list(self._items.values())[:limit]
        return [VerificationRecord.from_item(item) for item in items]

    def delete(self, record_id: str) -> bool:
        return self._items.pop(record_id, None) is not None

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# JSON file backend
# ---------------------------------------------------------------------------


class JsonFileRecordStore:
    """RecordStore writing one ``<id>.json`` document per record."""

    def __init__(self, directory: str) -> None:
        self.directory = os.path.abspath(directory)
        os.makedirs(self.directory, exist_ok=True)

    def _path_for(self, record_id: str) -> Optional[str]:
        if not isinstance(record_id, str) or not _SAFE_ID.match(record_id):
            return None
        return os.path.join(self.directory, f"{record_id}.json")

    def save(self, record: VerificationRecord) -> VerificationRecord:
        saved = _stamp(record)
        path = self._path_for(saved.id)
        if path is None:
            raise ValueError(f"Record id {saved.id!r} is not storable")

        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(saved.to_item(), f, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.info("Saved record %s.", saved.id)
        return saved

    def get_by_id(self, record_id: str) -> Optional[VerificationRecord]:
        path = self._path_for(record_id)
        if path is None or not os.path.isfile(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return VerificationRecord.from_item(json.load(f))

    def list_recent(self, limit: int = 50) -> list[VerificationRecord]:
        records: list[VerificationRecord] = []
        if limit <= 0:
            return records

        with os.scandir(self.directory) as entries:
            for entry in entries:
                if len(records) >= limit:
                    break
                if not entry.is_file() or not entry.name.endswith(".json"):
                    continue
                with open(entry.path, "r", encoding="utf-8") as f:
                    records.append(VerificationRecord.from_item(json.load(f)))
        return records

    def delete(self, record_id: str) -> bool:
        path = self._path_for(record_id)
        if path is None:
            return False
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        logger.info("Deleted record %s.", record_id)
        return True

    def is_available(self) -> bool:
        return os.path.isdir(self.directory) and os.access(self.directory, os.W_OK)
