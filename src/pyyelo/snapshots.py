"""Timestamped snapshots of pages, sections and products.

Snapshots let a listing render the last known data immediately while a
fresh fetch runs.  Each is stored as ``{"savedAt": <epoch ms>, "data": ...}``
under ``yelo_snapshot_<kind>_<key>``.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from pyyelo._constants import SNAPSHOT_KEY_PREFIX
from pyyelo.exceptions import StorageError
from pyyelo.storage import KeyValueStorage

_logger = logging.getLogger(__name__)


class SnapshotCache:
    def __init__(self, storage: KeyValueStorage, *, prefix: str = SNAPSHOT_KEY_PREFIX) -> None:
        self._storage = storage
        self._prefix = prefix

    def storage_key(self, kind: str, key: str) -> str:
        return f"{self._prefix}{kind}_{key}"

    async def save(self, kind: str, key: str, data: Any) -> bool:
        """Store *data*; returns ``False`` if it could not be persisted."""
        record = {"savedAt": int(time.time() * 1000), "data": data}
        try:
            await self._storage.set(self.storage_key(kind, key), record)
        except StorageError as exc:
            _logger.warning("Could not save %s snapshot %s: %s", kind, key, exc)
            return False
        return True

    async def load(self, kind: str, key: str, *, max_age: float | None = None) -> Any | None:
        """Return the stored data, or ``None`` if absent or older than *max_age* seconds."""
        storage_key = self.storage_key(kind, key)
        try:
            record = await self._storage.get(storage_key)
        except StorageError as exc:
            _logger.warning("Could not read snapshot %s: %s", storage_key, exc)
            return None
        if not isinstance(record, dict) or "data" not in record:
            return None
        if max_age is not None:
            saved_at = record.get("savedAt")
            if not isinstance(saved_at, (int, float)):
                return None
            age = time.time() - saved_at / 1000.0
            if age > max_age:
                _logger.debug("Snapshot %s is stale (%.1fs old)", storage_key, age)
                return None
        return record["data"]

    async def discard(self, kind: str, key: str) -> None:
        try:
            await self._storage.remove(self.storage_key(kind, key))
        except StorageError as exc:
            _logger.warning("Could not discard %s snapshot %s: %s", kind, key, exc)
