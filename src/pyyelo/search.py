"""Recent search history and notification read-state."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from pyyelo._constants import MAX_RECENT_SEARCHES, READ_NOTIFICATIONS_KEY, RECENT_SEARCHES_KEY
from pyyelo._normalize import safe_str
from pyyelo.exceptions import StorageError
from pyyelo.storage import KeyValueStorage

_logger = logging.getLogger(__name__)

ReadStateListener = Callable[[frozenset[str]], None]


class RecentSearches:
    """Most-recent-first search history, de-duplicated case-insensitively."""

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        key: str = RECENT_SEARCHES_KEY,
        limit: int = MAX_RECENT_SEARCHES,
    ) -> None:
        self._storage = storage
        self._key = key
        self._limit = limit
        self._queries: list[str] = []

    @property
    def queries(self) -> list[str]:
        return list(self._queries)

    async def load(self) -> None:
        try:
            stored = await self._storage.get(self._key)
        except StorageError as exc:
            _logger.warning("Could not load %s: %s", self._key, exc)
            return
        if isinstance(stored, list):
            self._queries = [query for query in stored if isinstance(query, str)][: self._limit]

    async def add(self, query: str) -> list[str]:
        """Record *query*; blank queries are ignored."""
        trimmed = (query or "").strip()
        if not trimmed:
            return self.queries
        folded = trimmed.lower()
        others = [existing for existing in self._queries if existing.lower() != folded]
        self._queries = [trimmed, *others][: self._limit]
        await self._save()
        return self.queries

    async def clear(self) -> None:
        self._queries = []
        try:
            await self._storage.remove(self._key)
        except StorageError as exc:
            _logger.warning("Could not clear %s: %s", self._key, exc)

    async def _save(self) -> None:
        try:
            await self._storage.set(self._key, list(self._queries))
        except StorageError as exc:
            _logger.warning("Could not persist %s: %s", self._key, exc)


def _notification_id(notification: Any) -> str | None:
    if isinstance(notification, Mapping):
        return safe_str(notification.get("id") or notification.get("_id"))
    return safe_str(notification)


class ReadNotifications:
    """Set of notification ids the user has already read.

    Listeners are called with the new read set after every change, the
    in-process equivalent of the browser's storage-change event.
    """

    def __init__(self, storage: KeyValueStorage, *, key: str = READ_NOTIFICATIONS_KEY) -> None:
        self._storage = storage
        self._key = key
        self._read: list[str] = []
        self._listeners: list[ReadStateListener] = []

    @property
    def read_ids(self) -> frozenset[str]:
        return frozenset(self._read)

    def subscribe(self, listener: ReadStateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def load(self) -> None:
        try:
            stored = await self._storage.get(self._key)
        except StorageError as exc:
            _logger.warning("Could not load %s: %s", self._key, exc)
            return
        if isinstance(stored, list):
            ids = (safe_str(value) for value in stored)
            self._read = list(dict.fromkeys(value for value in ids if value is not None))

    def is_read(self, notification: Any) -> bool:
        notification_id = _notification_id(notification)
        return notification_id is not None and notification_id in self._read

    def unread_count(self, notifications: Iterable[Any]) -> int:
        return sum(1 for notification in notifications if not self.is_read(notification))

    async def mark_read(self, notification: Any) -> bool:
        """Mark one notification read; returns ``False`` if it already was."""
        notification_id = _notification_id(notification)
        if notification_id is None or notification_id in self._read:
            return False
        self._read.append(notification_id)
        await self._changed()
        return True

    async def mark_all_read(self, notifications: Iterable[Any]) -> int:
        """Mark every notification read; returns how many were newly marked."""
        added = 0
        for notification in notifications:
            notification_id = _notification_id(notification)
            if notification_id is not None and notification_id not in self._read:
                self._read.append(notification_id)
                added += 1
        if added:
            await self._changed()
        return added

    async def _changed(self) -> None:
        try:
            await self._storage.set(self._key, list(self._read))
        except StorageError as exc:
            _logger.warning("Could not persist %s: %s", self._key, exc)
        snapshot = self.read_ids
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _logger.warning("Read-state listener failed", exc_info=True)
