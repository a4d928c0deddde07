from __future__ import annotations

import asyncio
import json
import random
from typing import Any

import pytest

from pyyelo._constants import CART_KEY, WISHLIST_KEY
from pyyelo.collection import CartStore, WishlistStore
from pyyelo.exceptions import StorageError
from pyyelo.models import CollectionEntry, Variant
from pyyelo.storage import MemoryStorage


class _FailingStorage(MemoryStorage):
    async def get(self, key: str) -> Any | None:
        raise StorageError("quota exceeded", key=key)

    async def set(self, key: str, value: Any) -> None:
        raise StorageError("quota exceeded", key=key)


class _SlowFirstWriteStorage(MemoryStorage):
    """Earlier writes take longer, so unordered writes would finish stale."""

    def __init__(self, delays: list[float]) -> None:
        super().__init__()
        self._delays = delays

    async def set(self, key: str, value: Any) -> None:
        delay = self._delays.pop(0) if self._delays else 0.0
        await asyncio.sleep(delay)
        await super().set(key, value)


def _stored(storage: MemoryStorage, key: str) -> Any:
    raw = storage.raw(key)
    return None if raw is None else json.loads(raw)


def _shirt(identity: str = "p1", **extra: Any) -> dict[str, Any]:
    return {"_id": identity, "name": f"Shirt {identity}", "price": 100, **extra}


@pytest.mark.asyncio
async def test_add_same_variant_twice_merges_quantity() -> None:
    storage = MemoryStorage()
    cart = CartStore(storage)
    await cart.load()

    await cart.add(_shirt(), size="L", color="Blue")
    await cart.add(_shirt(), size="L", color="Blue")

    assert len(cart) == 1
    entry = cart.get("p1", Variant(size="L", color="Blue"))
    assert entry is not None
    assert entry.quantity == 2
    assert _stored(storage, CART_KEY) == [
        {"_id": "p1", "name": "Shirt p1", "price": 100, "id": "p1", "size": "L", "color": "Blue", "quantity": 2}
    ]


@pytest.mark.asyncio
async def test_different_variants_are_separate_entries_in_insertion_order() -> None:
    cart = CartStore(MemoryStorage())
    await cart.load()

    await cart.add(_shirt(), size="L")
    await cart.add(_shirt("p2"))
    await cart.add(_shirt(), size="S")

    assert [(e.identity, e.variant.size) for e in cart.entries] == [("p1", "L"), ("p2", "M"), ("p1", "S")]


@pytest.mark.asyncio
async def test_variant_defaults_come_from_item_then_fixed_fallback() -> None:
    cart = CartStore(MemoryStorage())
    await cart.load()

    declared = await cart.add(_shirt(sizes=["XS", "S"], colors=[{"name": "Red"}]))
    fallback = await cart.add(_shirt("p2"))

    assert declared is not None and declared.variant == Variant(size="XS", color="Red")
    assert fallback is not None and fallback.variant == Variant(size="M", color="White")


@pytest.mark.asyncio
async def test_add_without_identity_changes_nothing() -> None:
    storage = MemoryStorage()
    cart = CartStore(storage)
    await cart.load()

    result = await cart.add({"name": "Mystery", "price": 10})

    assert result is None
    assert len(cart) == 0
    assert storage.raw(CART_KEY) is None


@pytest.mark.asyncio
async def test_add_rejects_non_positive_quantity() -> None:
    cart = CartStore(MemoryStorage())
    await cart.load()
    assert await cart.add(_shirt(), quantity=0) is None
    assert len(cart) == 0


@pytest.mark.asyncio
async def test_remove_then_add_yields_fresh_entry() -> None:
    cart = CartStore(MemoryStorage())
    await cart.load()
    variant = Variant(size="M", color="White")

    await cart.add(_shirt(), quantity=3)
    assert await cart.remove("p1", variant)
    await cart.add(_shirt(price=120))

    assert len(cart) == 1
    entry = cart.entries[0]
    assert entry.quantity == 1
    assert entry.price == 120.0


@pytest.mark.asyncio
async def test_remove_requires_exact_variant() -> None:
    cart = CartStore(MemoryStorage())
    await cart.load()
    await cart.add(_shirt(), size="L", color="Blue")

    assert not await cart.remove("p1", Variant(size="M", color="Blue"))
    assert not await cart.remove("missing", Variant(size="L", color="Blue"))
    assert len(cart) == 1


@pytest.mark.asyncio
async def test_update_quantity_to_zero_removes_entry() -> None:
    storage = MemoryStorage()
    cart = CartStore(storage)
    await cart.load()
    variant = Variant(size="M", color="White")
    await cart.add(_shirt(), quantity=2)
    await cart.add(_shirt("p2"))

    assert await cart.update_quantity("p1", variant, 3)
    assert cart.get("p1").quantity == 5  # type: ignore[union-attr]

    assert await cart.update_quantity("p1", variant, -7)
    assert cart.identities() == ["p2"]
    assert all(entry.quantity > 0 for entry in cart)
    assert cart.total_count() == 1
    assert [row["id"] for row in _stored(storage, CART_KEY)] == ["p2"]


@pytest.mark.asyncio
async def test_totals() -> None:
    cart = CartStore(MemoryStorage())
    await cart.load()
    await cart.add(_shirt(), quantity=2)
    await cart.add({"_id": "p2", "price": "50.5"})
    await cart.add({"_id": "p3"})

    assert cart.total_count() == 4
    assert cart.total_value() == pytest.approx(250.5)


@pytest.mark.asyncio
async def test_clear_empties_and_persists() -> None:
    storage = MemoryStorage()
    cart = CartStore(storage)
    await cart.load()
    await cart.add(_shirt())

    await cart.clear()

    assert len(cart) == 0
    assert _stored(storage, CART_KEY) == []


@pytest.mark.asyncio
async def test_no_commit_before_load_and_pending_entries_survive_load() -> None:
    storage = MemoryStorage({CART_KEY: [{"id": "stored", "size": "M", "color": "White", "quantity": 1}]})
    cart = CartStore(storage)

    await cart.add(_shirt("early"))
    assert [row["id"] for row in _stored(storage, CART_KEY)] == ["stored"]

    await cart.load()

    assert cart.loaded
    assert cart.identities() == ["stored", "early"]
    assert [row["id"] for row in _stored(storage, CART_KEY)] == ["stored", "early"]


@pytest.mark.asyncio
async def test_load_standardizes_legacy_rows() -> None:
    storage = MemoryStorage(
        {
            CART_KEY: [
                {"_id": "a", "name": "A", "quantity": 0},
                {"productId": {"_id": "b"}, "size": "L", "color": "Black"},
                {"name": "no identity"},
                {"id": "c", "size": "M", "color": "White", "quantity": 2},
                {"id": "c", "size": "M", "color": "White", "quantity": 1},
                "garbage",
            ]
        }
    )
    cart = CartStore(storage)
    await cart.load()

    assert [(e.identity, e.quantity) for e in cart.entries] == [("b", 1), ("c", 3)]
    assert _stored(storage, CART_KEY) == cart.serialize()


@pytest.mark.asyncio
async def test_load_is_idempotent() -> None:
    storage = MemoryStorage({CART_KEY: [{"id": "a", "size": "M", "color": "White", "quantity": 1}]})
    cart = CartStore(storage)
    await cart.load()
    await cart.add(_shirt("b"))
    await cart.load()
    assert cart.identities() == ["a", "b"]


def test_serialization_round_trip_is_stable() -> None:
    cart = CartStore(MemoryStorage())
    entries = [
        CollectionEntry(identity="a", variant=Variant(size="L", color="Red"), quantity=2, payload={"name": "A"}),
        CollectionEntry(identity="b", variant=Variant(size="M", color="White"), quantity=1, payload={"price": 10}),
    ]
    rows = [entry.to_row() for entry in entries]

    restored = cart.deserialize(rows)

    assert restored == entries
    assert [entry.to_row() for entry in restored] == rows


@pytest.mark.asyncio
async def test_storage_failures_do_not_break_the_store() -> None:
    cart = CartStore(_FailingStorage())
    await cart.load()

    entry = await cart.add(_shirt())

    assert cart.loaded
    assert entry is not None
    assert len(cart) == 1


@pytest.mark.asyncio
async def test_last_write_carries_latest_state() -> None:
    storage = _SlowFirstWriteStorage([0.03, 0.01, 0.0])
    cart = CartStore(storage)
    await cart.load()

    await asyncio.gather(cart.add(_shirt("a")), cart.add(_shirt("b")), cart.add(_shirt("c")))

    assert [row["id"] for row in _stored(storage, CART_KEY)] == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_listeners_receive_snapshots_and_failures_are_isolated() -> None:
    cart = CartStore(MemoryStorage())
    await cart.load()
    seen: list[list[str]] = []

    def _broken(_entries: tuple[CollectionEntry, ...]) -> None:
        raise RuntimeError("listener bug")

    cart.subscribe(_broken)
    unsubscribe = cart.subscribe(lambda entries: seen.append([e.identity for e in entries]))

    await cart.add(_shirt("a"))
    await cart.add(_shirt("b"))
    unsubscribe()
    await cart.add(_shirt("c"))

    assert seen == [["a"], ["a", "b"]]


@pytest.mark.asyncio
async def test_wishlist_duplicate_add_is_a_no_op() -> None:
    storage = MemoryStorage()
    wishlist = WishlistStore(storage)
    await wishlist.load()

    await wishlist.add(_shirt(sizes=["L"]))
    await wishlist.add(_shirt(), size="S")

    assert len(wishlist) == 1
    assert wishlist.is_in_wishlist("p1")
    assert wishlist.entries[0].variant == Variant()
    assert _stored(storage, WISHLIST_KEY) == [{"_id": "p1", "name": "Shirt p1", "price": 100, "sizes": ["L"], "id": "p1", "quantity": 1}]

    assert await wishlist.remove("p1")
    assert not wishlist.is_in_wishlist("p1")


@pytest.mark.asyncio
async def test_reference_row_keeps_its_identity_across_reload() -> None:
    storage = MemoryStorage()
    cart = CartStore(storage)
    await cart.load()

    entry = await cart.add({"_id": "row1", "productId": {"_id": "p1", "name": "Shirt p1", "price": 100}})
    assert entry is not None and entry.identity == "row1"
    rows = _stored(storage, CART_KEY)
    assert rows == [
        {"name": "Shirt p1", "price": 100, "productId": "p1", "id": "row1", "size": "M", "color": "White", "quantity": 1}
    ]

    reloaded = CartStore(storage)
    await reloaded.load()

    assert reloaded.identities() == ["row1"]
    assert reloaded.serialize() == rows
    assert await reloaded.remove("row1", entry.variant)
    assert len(reloaded) == 0


class _YieldingStorage(MemoryStorage):
    async def get(self, key: str) -> Any | None:
        await asyncio.sleep(0)
        return await super().get(key)


@pytest.mark.asyncio
async def test_overlapping_loads_read_storage_once() -> None:
    storage = _YieldingStorage({CART_KEY: [{"id": "a", "size": "M", "color": "White", "quantity": 2}]})
    cart = CartStore(storage)

    await asyncio.gather(cart.load(), cart.load())

    assert cart.total_count() == 2
    assert _stored(storage, CART_KEY) == [{"id": "a", "size": "M", "color": "White", "quantity": 2}]


@pytest.mark.asyncio
async def test_random_mutation_sequences_keep_counts_consistent() -> None:
    rng = random.Random(20240611)
    storage = MemoryStorage()
    cart = CartStore(storage)
    await cart.load()
    identities = ["p1", "p2", "p3", "p4"]
    sizes = ["S", "M", "L"]

    for _ in range(300):
        identity = rng.choice(identities)
        variant = Variant(size=rng.choice(sizes), color="White")
        operation = rng.randrange(3)
        if operation == 0:
            await cart.add(_shirt(identity), size=variant.size, color=variant.color, quantity=rng.randint(1, 3))
        elif operation == 1:
            await cart.remove(identity, variant)
        else:
            await cart.update_quantity(identity, variant, rng.randint(-3, 3))

        assert all(entry.quantity > 0 for entry in cart.entries)
        assert cart.total_count() == sum(entry.quantity for entry in cart.entries)
        assert len({entry.key for entry in cart.entries}) == len(cart)

    rows = _stored(storage, CART_KEY)
    assert sum(row["quantity"] for row in rows) == cart.total_count()
