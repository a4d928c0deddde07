"""Durable key-value persistence.

All collections, the recent-search history, notification read-state and
cached snapshots share one storage namespace keyed by string.  Values are
JSON documents; each backend serializes on write so that an unserializable
value fails at the write site, exactly as it would in the browser.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol

from pyyelo.exceptions import StorageError

_logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class KeyValueStorage(Protocol):
    """Structural storage interface injected into every store.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementations concrete.
    """

    async def get(self, key: str) -> Any | None:
        ...

    async def set(self, key: str, value: Any) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


def _dumps(key: str, value: Any) -> str:
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise StorageError(f"Value for {key!r} is not JSON serializable: {exc}", key=key) from exc


def _loads(key: str, text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise StorageError(f"Stored value for {key!r} is not JSON: {text[:64]}", key=key) from exc


class MemoryStorage:
    """Process-local storage holding serialized JSON text per key."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = _dumps(key, value)

    def raw(self, key: str) -> str | None:
        """Serialized text stored under *key* (for inspection)."""
        return self._data.get(key)

    def keys(self) -> list[str]:
        return list(self._data)

    async def get(self, key: str) -> Any | None:
        text = self._data.get(key)
        if text is None:
            return None
        return _loads(key, text)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = _dumps(key, value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage:
    """Storage backed by one ``<key>.json`` file per key.

    File I/O runs in the loop's default executor so it never blocks the
    event loop.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        if not key:
            raise StorageError("Storage key must be non-empty", key=key)
        return self._directory / f"{_UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def _read(self, path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(path)

    async def get(self, key: str) -> Any | None:
        path = self._path(key)
        loop = asyncio.get_running_loop()
        try:
            text = await loop.run_in_executor(None, self._read, path)
        except OSError as exc:
            raise StorageError(f"Reading {key!r} failed: {exc}", key=key) from exc
        if text is None:
            return None
        return _loads(key, text)

    async def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        text = _dumps(key, value)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._write, path, text)
        except OSError as exc:
            raise StorageError(f"Writing {key!r} failed: {exc}", key=key) from exc
        _logger.debug("Persisted %s (%d bytes)", key, len(text))

    async def remove(self, key: str) -> None:
        path = self._path(key)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, lambda: path.unlink(missing_ok=True))
        except OSError as exc:
            raise StorageError(f"Removing {key!r} failed: {exc}", key=key) from exc
