"""Persistent collection stores (cart, wishlist, wardrobe).

A :class:`CollectionStore` owns an insertion-ordered list of
:class:`~pyyelo.models.CollectionEntry` and is the only component allowed to
mutate it.  Each mutating operation follows the same sequence:

1. resolve the item identity (abort without touching state if missing),
2. latch the action for the notification dispatcher,
3. update the in-memory list synchronously,
4. publish the settled state to observers,
5. ``commit()`` the whole collection to durable storage,
6. mirror the change to the remote store, if one is attached.

Steps 1-4 run before the first ``await``, so concurrent operations never
observe each other half-applied.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any, Protocol

from pyyelo._constants import CART_KEY, WISHLIST_KEY
from pyyelo._normalize import safe_int, safe_str
from pyyelo.exceptions import MissingIdentityError, StorageError
from pyyelo.identity import (
    require_identity,
    resolve_identity,
    resolve_reference_identity,
    unwrap_reference,
)
from pyyelo.models.collection import (
    ENTRY_FIELDS,
    ActionKind,
    CollectionEntry,
    RemoteSyncState,
    Variant,
)
from pyyelo.models.product import CatalogItem
from pyyelo.notify import NotificationDispatcher
from pyyelo.storage import KeyValueStorage

_logger = logging.getLogger(__name__)

StateListener = Callable[[tuple[CollectionEntry, ...]], None]


class RemoteMirror(Protocol):
    """Best-effort remote counterpart of a collection."""

    async def push_add(self, identity: str) -> RemoteSyncState:
        ...

    async def push_remove(self, identity: str) -> RemoteSyncState:
        ...


def payload_snapshot(item: Any) -> dict[str, Any]:
    """Return the item payload to keep with an entry.

    Populated references are unwrapped to the product record, and the keys
    reserved for entry bookkeeping are dropped.
    """
    if isinstance(item, Mapping):
        payload = unwrap_reference(item)
    else:
        raw = getattr(item, "raw", None)
        payload = dict(raw) if isinstance(raw, Mapping) else {}
    return {key: value for key, value in payload.items() if key not in ENTRY_FIELDS}


class CollectionStore:
    """Ordered, persisted collection of entries keyed by ``(identity, variant)``.

    Parameters
    ----------
    storage
        Shared key-value storage.
    key
        Storage key holding this collection.
    tracks_variants
        Key entries by size/color as well as identity.  Identity-only
        collections store an empty :class:`Variant`.
    merge_duplicates
        Adding an existing key increments its quantity.  When ``False`` a
        duplicate add leaves the collection unchanged.
    dispatcher
        Optional notification dispatcher observing this collection.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str,
        *,
        tracks_variants: bool = True,
        merge_duplicates: bool = True,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._storage = storage
        self._key = key
        self._tracks_variants = tracks_variants
        self._merge_duplicates = merge_duplicates
        self._dispatcher = dispatcher
        self._entries: list[CollectionEntry] = []
        self._loaded = False
        self._listeners: list[StateListener] = []
        self._remote: RemoteMirror | None = None
        self._commit_lock = asyncio.Lock()
        self._load_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def key(self) -> str:
        return self._key

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def entries(self) -> tuple[CollectionEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CollectionEntry]:
        return iter(tuple(self._entries))

    def identities(self) -> list[str]:
        """Distinct identities in insertion order."""
        return list(dict.fromkeys(entry.identity for entry in self._entries))

    def total_count(self) -> int:
        return sum(entry.quantity for entry in self._entries)

    def total_value(self) -> float:
        return sum(entry.price * entry.quantity for entry in self._entries)

    def get(self, identity: Any, variant: Variant | None = None) -> CollectionEntry | None:
        """First entry for *identity*; any variant when *variant* is ``None``."""
        resolved = resolve_identity(identity)
        if resolved is None:
            return None
        wanted = self._normalize_variant(variant) if variant is not None else None
        for entry in self._entries:
            if entry.identity != resolved:
                continue
            if wanted is None or entry.variant == wanted:
                return entry
        return None

    def contains(self, identity: Any, variant: Variant | None = None) -> bool:
        return self.get(identity, variant) is not None

    # ------------------------------------------------------------------
    # Observers and remote mirror
    # ------------------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call *listener* with the settled entries after every change."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def attach_remote(self, remote: RemoteMirror | None) -> None:
        self._remote = remote

    def _publish(self) -> None:
        if self._dispatcher is not None:
            self._dispatcher.observe(len(self._entries))
        snapshot = tuple(self._entries)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _logger.warning("Listener on %s failed", self._key, exc_info=True)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Load the collection from durable storage (once per session)."""
        async with self._load_lock:
            if self._loaded:
                _logger.debug("%s already loaded", self._key)
                return
            try:
                rows = await self._storage.get(self._key)
            except StorageError as exc:
                _logger.warning("Could not load %s: %s", self._key, exc)
                rows = None
            if self._loaded:
                # An authoritative replace() landed while the read was in flight.
                return
            entries = self.deserialize(rows)
            # Mutations issued while the read was in flight are kept on top.
            pending = bool(self._entries)
            for entry in self._entries:
                self._merge_into(entries, entry)
            self._entries = entries
            self.mark_loaded()
        self._publish()
        # Rewrite when rows were standardized or pending mutations merged.
        if pending or (isinstance(rows, list) and self.serialize() != rows):
            await self.commit()

    def mark_loaded(self) -> None:
        """Allow commits without reading storage (fresh sessions)."""
        self._loaded = True
        if self._dispatcher is not None:
            self._dispatcher.baseline(len(self._entries))

    async def commit(self) -> None:
        """Overwrite the stored collection with the current in-memory state.

        Skipped until the initial load has completed, so an empty
        in-memory list can never clobber stored data.
        """
        if not self._loaded:
            _logger.debug("Skipping commit of %s before initial load", self._key)
            return
        # Serialize under the lock so the last write carries the latest state.
        async with self._commit_lock:
            rows = self.serialize()
            try:
                await self._storage.set(self._key, rows)
            except StorageError as exc:
                _logger.warning("Could not persist %s: %s", self._key, exc)

    def serialize(self) -> list[dict[str, Any]]:
        return [entry.to_row() for entry in self._entries]

    def deserialize(self, rows: Any) -> list[CollectionEntry]:
        """Rebuild entries from stored rows, dropping unusable ones."""
        if rows is None:
            return []
        if not isinstance(rows, list):
            _logger.warning("Ignoring stored %s: expected a list, got %s", self._key, type(rows).__name__)
            return []
        entries: list[CollectionEntry] = []
        for row in rows:
            if not isinstance(row, Mapping):
                continue
            identity = resolve_identity(row)
            if identity is None:
                _logger.debug("Dropping stored %s row without identity", self._key)
                continue
            quantity = safe_int(row.get("quantity"))
            if quantity is None:
                quantity = 1
            if quantity <= 0:
                continue
            if self._tracks_variants:
                variant = Variant(size=safe_str(row.get("size")), color=safe_str(row.get("color")))
            else:
                variant = Variant()
            entry = CollectionEntry(
                identity=identity,
                variant=variant,
                quantity=quantity,
                payload={key: value for key, value in row.items() if key not in ENTRY_FIELDS},
            )
            self._merge_into(entries, entry)
        return entries

    def _merge_into(self, entries: list[CollectionEntry], entry: CollectionEntry) -> None:
        for index, existing in enumerate(entries):
            if existing.key == entry.key:
                if self._merge_duplicates:
                    entries[index] = existing.model_copy(update={"quantity": existing.quantity + entry.quantity})
                return
        entries.append(entry)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _normalize_variant(self, variant: Variant | None) -> Variant:
        if not self._tracks_variants or variant is None:
            return Variant()
        return variant

    def _variant_for(self, payload: dict[str, Any], size: str | None, color: str | None) -> Variant:
        if not self._tracks_variants:
            return Variant()
        product = CatalogItem.coerce(payload)
        return Variant(size=size or product.default_size, color=color or product.default_color)

    def _index_of(self, identity: str, variant: Variant) -> int | None:
        for index, entry in enumerate(self._entries):
            if entry.identity == identity and entry.variant == variant:
                return index
        return None

    async def _settle(self, *, changed: bool) -> None:
        self._publish()
        if changed:
            await self.commit()

    async def add(
        self,
        item: Any,
        *,
        size: str | None = None,
        color: str | None = None,
        quantity: int = 1,
        silent: bool = False,
    ) -> CollectionEntry | None:
        """Add *item*, or increase the quantity of its existing entry.

        Returns the resulting entry, or ``None`` when the item has no
        identity or *quantity* is not positive (nothing is changed).
        """
        try:
            identity = require_identity(item)
        except MissingIdentityError as exc:
            _logger.warning("Not adding to %s: %s", self._key, exc)
            return None
        if quantity <= 0:
            _logger.warning("Not adding %s to %s: quantity %d", identity, self._key, quantity)
            return None

        payload = payload_snapshot(item)
        variant = self._variant_for(payload, size, color)

        if self._dispatcher is not None and not silent:
            self._dispatcher.arm(ActionKind.ADD, payload)

        created = False
        changed = True
        index = self._index_of(identity, variant)
        if index is None:
            entry = CollectionEntry(identity=identity, variant=variant, quantity=quantity, payload=payload)
            self._entries.append(entry)
            created = True
        elif self._merge_duplicates:
            existing = self._entries[index]
            entry = existing.model_copy(update={"quantity": existing.quantity + quantity})
            self._entries[index] = entry
        else:
            entry = self._entries[index]
            changed = False

        await self._settle(changed=changed)
        if created and self._remote is not None:
            await self._remote.push_add(identity)
        return entry

    async def remove(self, identity: Any, variant: Variant | None = None) -> bool:
        """Remove the entry matching ``(identity, variant)`` exactly.

        Returns ``False`` (and changes nothing) when no entry matches.
        """
        resolved = resolve_identity(identity)
        if resolved is None:
            _logger.warning("Not removing from %s: no identity", self._key)
            return False
        index = self._index_of(resolved, self._normalize_variant(variant))
        if index is None:
            return False

        entry = self._entries[index]
        if self._dispatcher is not None:
            self._dispatcher.arm(ActionKind.REMOVE, entry.payload)
        del self._entries[index]

        await self._settle(changed=True)
        if self._remote is not None and not self.contains(resolved):
            await self._remote.push_remove(resolved)
        return True

    async def update_quantity(self, identity: Any, variant: Variant | None, delta: int) -> bool:
        """Change an entry's quantity by *delta*; at zero or below it is removed."""
        resolved = resolve_identity(identity)
        if resolved is None:
            return False
        index = self._index_of(resolved, self._normalize_variant(variant))
        if index is None:
            return False

        existing = self._entries[index]
        new_quantity = existing.quantity + delta
        removed = new_quantity <= 0
        if removed:
            del self._entries[index]
        else:
            self._entries[index] = existing.model_copy(update={"quantity": new_quantity})

        await self._settle(changed=True)
        if removed and self._remote is not None and not self.contains(resolved):
            await self._remote.push_remove(resolved)
        return True

    async def clear(self) -> None:
        """Empty the collection locally; remote state is left untouched."""
        self._entries = []
        await self._settle(changed=True)

    async def replace(self, items: Iterable[Any]) -> None:
        """Replace the whole collection (authoritative remote load)."""
        entries: list[CollectionEntry] = []
        for item in items:
            identity = resolve_reference_identity(item)
            if identity is None:
                _logger.debug("Dropping %s item without identity", self._key)
                continue
            fields: Mapping[str, Any] = item if isinstance(item, Mapping) else {}
            quantity = safe_int(fields.get("quantity"))
            if quantity is None:
                quantity = 1
            if quantity <= 0:
                continue
            if self._tracks_variants:
                variant = Variant(size=safe_str(fields.get("size")), color=safe_str(fields.get("color")))
            else:
                variant = Variant()
            entry = CollectionEntry(
                identity=identity,
                variant=variant,
                quantity=quantity,
                payload=payload_snapshot(item),
            )
            self._merge_into(entries, entry)
        self._entries = entries
        if self._dispatcher is not None:
            self._dispatcher.baseline(len(self._entries))
        self._loaded = True
        await self._settle(changed=True)


class CartStore(CollectionStore):
    """Shopping cart: entries keyed by size/color, quantities merge."""

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        key: str = CART_KEY,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        super().__init__(storage, key, tracks_variants=True, merge_duplicates=True, dispatcher=dispatcher)


class WishlistStore(CollectionStore):
    """Wishlist: one entry per identity, duplicate adds are no-ops."""

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        key: str = WISHLIST_KEY,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        super().__init__(storage, key, tracks_variants=False, merge_duplicates=False, dispatcher=dispatcher)

    def is_in_wishlist(self, identity: Any) -> bool:
        return self.contains(identity)
