from __future__ import annotations

import asyncio

import pytest

from pyyelo.collection import CartStore, WishlistStore
from pyyelo.models import ActionKind
from pyyelo.notify import CART_MESSAGES, WISHLIST_MESSAGES, NotificationDispatcher
from pyyelo.storage import MemoryStorage


class _RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def show(self, message: str, style: str) -> str:
        self.messages.append((message, style))
        return f"toast-{len(self.messages)}"

    def dismiss(self, toast_id: str) -> None:
        pass


class _BrokenNotifier:
    def show(self, message: str, style: str) -> str:
        raise RuntimeError("toast surface gone")

    def dismiss(self, toast_id: str) -> None:
        pass


def _texts(notifier: _RecordingNotifier) -> list[str]:
    return [message for message, _style in notifier.messages]


@pytest.mark.asyncio
async def test_three_rapid_adds_produce_three_notifications() -> None:
    notifier = _RecordingNotifier()
    cart = CartStore(MemoryStorage(), dispatcher=NotificationDispatcher(notifier, CART_MESSAGES, reset_delay=0.05))
    await cart.load()

    await asyncio.gather(
        cart.add({"_id": "a", "name": "Alpha"}),
        cart.add({"_id": "b", "name": "Beta"}),
        cart.add({"_id": "c", "name": "Gamma"}),
    )

    assert _texts(notifier) == ["Alpha added to cart!", "Beta added to cart!", "Gamma added to cart!"]


@pytest.mark.asyncio
async def test_extra_observation_passes_do_not_duplicate() -> None:
    notifier = _RecordingNotifier()
    dispatcher = NotificationDispatcher(notifier, CART_MESSAGES, reset_delay=0.05)
    cart = CartStore(MemoryStorage(), dispatcher=dispatcher)
    await cart.load()

    await cart.add({"_id": "a", "name": "Alpha"})
    assert dispatcher.observe(len(cart)) is None
    assert dispatcher.observe(len(cart)) is None

    assert _texts(notifier) == ["Alpha added to cart!"]
    assert notifier.messages[0][1] == "success"


@pytest.mark.asyncio
async def test_latch_released_after_delay() -> None:
    notifier = _RecordingNotifier()
    dispatcher = NotificationDispatcher(notifier, CART_MESSAGES, reset_delay=0.0)
    cart = CartStore(MemoryStorage(), dispatcher=dispatcher)
    await cart.load()

    await cart.add({"_id": "a", "name": "Alpha"})
    assert dispatcher.pending is not None
    assert dispatcher.shown

    await asyncio.sleep(0.01)

    assert dispatcher.pending is None
    assert not dispatcher.shown


@pytest.mark.asyncio
async def test_late_release_does_not_clear_newer_action() -> None:
    notifier = _RecordingNotifier()
    dispatcher = NotificationDispatcher(notifier, CART_MESSAGES, reset_delay=0.0)
    dispatcher.baseline(0)

    dispatcher.arm(ActionKind.ADD, {"name": "Alpha"})
    dispatcher.observe(1)
    dispatcher.arm(ActionKind.ADD, {"name": "Beta"})

    await asyncio.sleep(0.01)

    assert dispatcher.pending is not None
    assert dispatcher.pending.name == "Beta"
    assert dispatcher.observe(2) == "toast-2"
    assert _texts(notifier) == ["Alpha added to cart!", "Beta added to cart!"]


@pytest.mark.asyncio
async def test_cart_quantity_increment_still_announces_add() -> None:
    notifier = _RecordingNotifier()
    cart = CartStore(MemoryStorage(), dispatcher=NotificationDispatcher(notifier, CART_MESSAGES, reset_delay=0.0))
    await cart.load()

    await cart.add({"_id": "a", "name": "Alpha"})
    await cart.add({"_id": "a", "name": "Alpha"})

    assert _texts(notifier) == ["Alpha added to cart!", "Alpha added to cart!"]


@pytest.mark.asyncio
async def test_wishlist_messages() -> None:
    notifier = _RecordingNotifier()
    wishlist = WishlistStore(
        MemoryStorage(),
        dispatcher=NotificationDispatcher(notifier, WISHLIST_MESSAGES, reset_delay=0.0),
    )
    await wishlist.load()

    await wishlist.add({"_id": "a", "name": "Alpha"})
    await wishlist.add({"_id": "a", "name": "Alpha"})
    await wishlist.remove("a")
    await wishlist.add({"_id": "b"})

    assert _texts(notifier) == [
        "Alpha added to wishlist!",
        "Already in wishlist!",
        "Alpha removed from wishlist",
        "Item added to wishlist!",
    ]


@pytest.mark.asyncio
async def test_silent_add_and_cart_removal_do_not_notify() -> None:
    notifier = _RecordingNotifier()
    cart = CartStore(MemoryStorage(), dispatcher=NotificationDispatcher(notifier, CART_MESSAGES, reset_delay=0.0))
    await cart.load()

    entry = await cart.add({"_id": "a", "name": "Alpha"}, silent=True)
    assert entry is not None
    await cart.remove("a", entry.variant)

    assert notifier.messages == []


@pytest.mark.asyncio
async def test_loading_stored_items_does_not_notify() -> None:
    notifier = _RecordingNotifier()
    storage = MemoryStorage({"yelo-cart": [{"id": "a", "size": "M", "color": "White", "quantity": 1}]})
    cart = CartStore(storage, dispatcher=NotificationDispatcher(notifier, CART_MESSAGES, reset_delay=0.0))

    await cart.load()

    assert notifier.messages == []


def test_notifier_failure_is_contained() -> None:
    dispatcher = NotificationDispatcher(_BrokenNotifier(), CART_MESSAGES, reset_delay=0.0)
    dispatcher.baseline(0)
    dispatcher.arm(ActionKind.ADD, {"name": "Alpha"})

    assert dispatcher.observe(1) is None
    assert dispatcher.pending is None
