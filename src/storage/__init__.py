# src/storage/__init__.py
# ========================
# Storage — DocVerify
#
# Responsibility:
#   - Object storage for uploaded document bytes
#   - Record storage for verification results (identity fields encrypted)

from src.storage.object_store import LocalObjectStore, ObjectNotFoundError  # noqa: F401
from src.storage.record_store import InMemoryRecordStore, JsonFileRecordStore  # noqa: F401
