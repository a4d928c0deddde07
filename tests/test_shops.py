from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from pyyelo.shops import (
    ShopSlug,
    belongs_to_shop,
    effective_discount,
    has_any_discount,
    item_age,
    shop_items,
)


def _now() -> datetime:
    return datetime(2026, 6, 1, tzinfo=UTC)


def test_under_999_is_strictly_less_than() -> None:
    assert not belongs_to_shop({"_id": "a", "price": 999}, "under-999")
    assert belongs_to_shop({"_id": "b", "price": 998.5}, ShopSlug.UNDER_999)


def test_discount_from_original_price_qualifies_for_deals() -> None:
    item = {"_id": "d", "originalPrice": 1000, "price": 600}
    assert effective_discount(item) == 40
    assert has_any_discount(item)
    assert belongs_to_shop(item, "deals")
    assert belongs_to_shop(item, "offers")


def test_declared_discount_beats_smaller_calculated_discount() -> None:
    item = {"_id": "d", "originalPrice": 1000, "price": 900, "discount": 25}
    assert effective_discount(item) == 25


def test_no_discount_excluded_from_deals() -> None:
    item = {"_id": "d", "price": 500}
    assert effective_discount(item) == 0
    assert not has_any_discount(item)
    assert not belongs_to_shop(item, "deals")


@pytest.mark.parametrize(
    ("item", "expected"),
    [
        ({"price": 800, "rating": 4.5}, True),
        ({"price": 800, "reviews": 500}, True),
        ({"price": 800, "rating": 4.4, "reviews": 499}, False),
        ({"price": 1200, "rating": 5}, False),
    ],
)
def test_best_sellers(item: dict[str, object], expected: bool) -> None:
    assert belongs_to_shop({"_id": "x", **item}, "best-sellers") is expected


def test_trending_accepts_large_effective_discount() -> None:
    item = {"_id": "t", "price": 700, "originalPrice": 1000, "rating": 3.0}
    assert belongs_to_shop(item, "trending")
    assert not belongs_to_shop({"_id": "t", "price": 700, "rating": 3.9, "reviews": 99}, "trending")


def test_new_arrivals_uses_thirty_day_window() -> None:
    recent = {"_id": "n", "price": 500, "dateAdded": (_now() - timedelta(days=29)).isoformat()}
    old = {"_id": "o", "price": 500, "createdAt": (_now() - timedelta(days=31)).isoformat()}
    undated = {"_id": "u", "price": 500}
    assert belongs_to_shop(recent, "new-arrivals", now=_now())
    assert not belongs_to_shop(old, "new-arrivals", now=_now())
    assert not belongs_to_shop(undated, "new-arrivals", now=_now())


def test_item_age_unknown_without_date() -> None:
    assert item_age({"_id": "u"}, _now()) is None
    assert item_age({"_id": "a", "dateAdded": "2026-05-31T00:00:00Z"}, _now()) == timedelta(days=1)


def test_price_ceiling_shops() -> None:
    assert belongs_to_shop({"_id": "s", "price": 1299}, "super-savers")
    assert not belongs_to_shop({"_id": "s", "price": 1300}, "super-savers")
    assert belongs_to_shop({"_id": "p", "price": 1999}, "price-spot")
    assert belongs_to_shop({"_id": "a", "price": 1000}, "affordable")


def test_luxury_shop_requires_brand() -> None:
    assert belongs_to_shop({"_id": "l", "brand": "Maison", "price": 50000}, "luxury-shop")
    assert not belongs_to_shop({"_id": "l", "brand": "  "}, "luxury-shop")


def test_unknown_shop_admits_everything() -> None:
    assert belongs_to_shop({"_id": "x", "price": 99999}, "some-new-shop")


def test_shop_items_preserves_order() -> None:
    items = [
        {"_id": "1", "price": 100},
        {"_id": "2", "price": 5000},
        {"_id": "3", "price": 300},
    ]
    assert [item["_id"] for item in shop_items("affordable", items)] == ["1", "3"]
