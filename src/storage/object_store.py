"""
src/storage/object_store.py
============================
Local Object Store — DocVerify

Responsibility:
    - Persist uploaded document bytes under a root directory
    - Hand out opaque keys of the form "uploads/<uuid4><ext>"
    - Fetch, check and delete stored objects by key

This module does NOT:
    - Inspect or validate image content
    - Deduplicate identical uploads (every put yields a new key)
    - Store verification records (handled by record_store.py)
"""

import logging
import os
import uuid

logger = logging.getLogger("docverify.storage.object_store")


KEY_PREFIX: str = "uploads/"


class ObjectNotFoundError(Exception):
    """Raised when a key has no stored object."""
    pass


class LocalObjectStore:
    """ObjectStore backed by the local filesystem."""

    def __init__(self, root: str) -> None:
        self.root = os.path.abspath(root)
        os.makedirs(os.path.join(self.root, KEY_PREFIX), exist_ok=True)

    def _path_for(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.root, key))
        # Keys must resolve inside the root
        if not key.startswith(KEY_PREFIX) or os.path.dirname(path) != os.path.join(self.root, "uploads"):
            raise ObjectNotFoundError(f"Invalid object key: {key!r}")
        return path

    def put(self, data: bytes, file_name: str = "") -> str:
        """Store ``data`` and return its new key."""
        ext = os.path.splitext(file_name or "")[1].lower()
        key = f"{KEY_PREFIX}{uuid.uuid4()}{ext}"
        path = self._path_for(key)

        with open(path, "wb") as f:
            f.write(data)

        logger.info("Stored object %s (%d bytes).", key, len(data))
        return key

    def get(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as exc:
            raise ObjectNotFoundError(f"No object stored under {key!r}") from exc

    def exists(self, key: str) -> bool:
        try:
            return os.path.isfile(self._path_for(key))
        except ObjectNotFoundError:
            return False

    def delete(self, key: str) -> bool:
        """Remove the object; returns False when nothing was stored."""
        try:
            os.remove(self._path_for(key))
        except (FileNotFoundError, ObjectNotFoundError):
            return False
        logger.info("Deleted object %s.", key)
        return True

    def is_available(self) -> bool:
        return os.path.isdir(self.root) and os.access(self.root, os.W_OK)
