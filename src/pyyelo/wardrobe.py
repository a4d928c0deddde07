"""Wardrobe: saved items, saved looks and purchase history."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pyyelo._constants import PURCHASED_ITEMS_KEY, WARDROBE_ITEMS_KEY, WARDROBE_LOOKS_KEY
from pyyelo.collection import CollectionStore, payload_snapshot
from pyyelo.exceptions import MissingIdentityError, StorageError
from pyyelo.identity import require_identity
from pyyelo.models.collection import CollectionEntry
from pyyelo.storage import KeyValueStorage

_logger = logging.getLogger(__name__)

#: Wardrobe category -> keywords matched against category, name and tags.
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "office-wear": ("office", "formal", "business"),
    "gym-wear": ("gym", "sport", "active", "fitness"),
    "casual-wear": ("casual", "everyday"),
    "party-wear": ("party", "evening", "cocktail", "formal"),
    "ethnic-wear": ("ethnic", "traditional", "saree", "kurta", "sherwani"),
    "accessories": ("accessory", "bag", "watch", "jewelry", "belt"),
}


def _iso_now() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _matches_keywords(payload: Mapping[str, Any], keywords: tuple[str, ...]) -> bool:
    category = str(payload.get("category") or "").lower()
    name = str(payload.get("name") or "").lower()
    raw_tags = payload.get("tags")
    tags = [str(tag).lower() for tag in raw_tags] if isinstance(raw_tags, list) else []
    return any(keyword in category or keyword in name or keyword in tags for keyword in keywords)


class WardrobeStore(CollectionStore):
    """Saved items (one entry per identity) plus looks and purchases.

    Saved looks are free-form records persisted as one list; purchases are
    a separate variant-tracking collection whose quantities merge.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        key: str = WARDROBE_ITEMS_KEY,
        looks_key: str = WARDROBE_LOOKS_KEY,
        purchased_key: str = PURCHASED_ITEMS_KEY,
    ) -> None:
        super().__init__(storage, key, tracks_variants=False, merge_duplicates=False)
        self._looks_key = looks_key
        self._looks: list[dict[str, Any]] = []
        self._looks_loaded = False
        self._looks_lock = asyncio.Lock()
        self._looks_load_lock = asyncio.Lock()
        self.purchased = CollectionStore(storage, purchased_key, tracks_variants=True, merge_duplicates=True)

    @property
    def looks(self) -> list[dict[str, Any]]:
        return [dict(look) for look in self._looks]

    def is_in_wardrobe(self, identity: Any) -> bool:
        return self.contains(identity)

    async def load(self) -> None:
        await super().load()
        await self.purchased.load()
        await self._load_looks()

    # ------------------------------------------------------------------
    # Looks
    # ------------------------------------------------------------------

    async def _load_looks(self) -> None:
        async with self._looks_load_lock:
            if self._looks_loaded:
                return
            try:
                stored = await self._storage.get(self._looks_key)
            except StorageError as exc:
                _logger.warning("Could not load %s: %s", self._looks_key, exc)
                stored = None
            loaded = [dict(look) for look in stored if isinstance(look, Mapping)] if isinstance(stored, list) else []
            # Looks added before the read completed stay after the stored ones.
            pending = self._looks
            self._looks = loaded + pending
            self._looks_loaded = True
        if pending:
            await self._commit_looks()

    async def _commit_looks(self) -> None:
        if not self._looks_loaded:
            _logger.debug("Skipping commit of %s before initial load", self._looks_key)
            return
        async with self._looks_lock:
            rows = [dict(look) for look in self._looks]
            try:
                await self._storage.set(self._looks_key, rows)
            except StorageError as exc:
                _logger.warning("Could not persist %s: %s", self._looks_key, exc)

    def _new_look_id(self) -> str:
        candidate = int(time.time() * 1000)
        existing = {look.get("id") for look in self._looks}
        while str(candidate) in existing:
            candidate += 1
        return str(candidate)

    async def add_look(self, look: Mapping[str, Any]) -> str:
        """Save *look* and return its generated id."""
        record = {**look, "id": self._new_look_id(), "createdAt": _iso_now()}
        self._looks.append(record)
        await self._commit_looks()
        return record["id"]

    async def remove_look(self, look_id: str) -> bool:
        remaining = [look for look in self._looks if look.get("id") != look_id]
        if len(remaining) == len(self._looks):
            return False
        self._looks = remaining
        await self._commit_looks()
        return True

    async def update_look(self, look_id: str, updates: Mapping[str, Any]) -> bool:
        """Merge *updates* into the look; its id cannot be changed."""
        for index, look in enumerate(self._looks):
            if look.get("id") == look_id:
                self._looks[index] = {**look, **updates, "id": look_id}
                await self._commit_looks()
                return True
        return False

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------

    async def add_purchased(
        self,
        item: Any,
        *,
        size: str | None = None,
        color: str | None = None,
        quantity: int = 1,
    ) -> CollectionEntry | None:
        """Record a purchase, stamped with ``purchasedAt``.

        Repeat purchases of the same size/color increase the quantity and
        keep the first timestamp.
        """
        try:
            identity = require_identity(item)
        except MissingIdentityError as exc:
            _logger.warning("Not recording purchase: %s", exc)
            return None
        record = {**payload_snapshot(item), "id": identity, "purchasedAt": _iso_now()}
        return await self.purchased.add(record, size=size, color=color, quantity=quantity, silent=True)

    def purchased_by_category(self, category: str) -> list[CollectionEntry]:
        """Purchases matching a wardrobe category such as ``"gym-wear"``."""
        keywords = CATEGORY_KEYWORDS.get(category, ())
        if not keywords:
            return []
        return [entry for entry in self.purchased.entries if _matches_keywords(entry.payload, keywords)]
