"""Shop listing predicates.

Every shop page derives its base product list from the same catalog by
filtering it through a fixed rule.  Rules only look at numeric thresholds
(price, rating, review count, discount, age) and the brand label, so the
classification is a pure function of the item and the current time.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any

from pyyelo.models.product import CatalogItem

NEW_ARRIVAL_WINDOW = timedelta(days=30)


class ShopSlug(StrEnum):
    AFFORDABLE = "affordable"
    UNDER_999 = "under-999"
    BEST_SELLERS = "best-sellers"
    DEALS = "deals"
    NEW_ARRIVALS = "new-arrivals"
    OFFERS = "offers"
    TRENDING = "trending"
    SUPER_SAVERS = "super-savers"
    PRICE_SPOT = "price-spot"
    LUXURY_SHOP = "luxury-shop"


def _js_round(value: float) -> int:
    """Round half up, matching the storefront's percentage display."""
    return math.floor(value + 0.5)


def effective_discount(item: Any) -> float:
    """Larger of the declared discount and the one implied by the prices."""
    product = CatalogItem.coerce(item)
    declared = product.discount or 0.0
    if product.original_price and product.price:
        calculated = _js_round((product.original_price - product.price) / product.original_price * 100)
        return max(declared, float(calculated))
    return declared


def has_any_discount(item: Any) -> bool:
    product = CatalogItem.coerce(item)
    if product.discount and product.discount > 0:
        return True
    if product.original_price and product.price:
        return product.original_price > product.price
    return False


def item_age(item: Any, now: datetime | None = None) -> timedelta | None:
    """Age of the item since it was added; ``None`` when unknown.

    Callers treat ``None`` as infinitely old.
    """
    product = CatalogItem.coerce(item)
    if product.date_added is None:
        return None
    current = now or datetime.now(UTC)
    return current - product.date_added


def _is_recent(product: CatalogItem, now: datetime) -> bool:
    age = item_age(product, now)
    return age is not None and age <= NEW_ARRIVAL_WINDOW


_Rule = Callable[[CatalogItem, datetime], bool]


def _price(product: CatalogItem) -> float:
    return product.price or 0.0


def _rating(product: CatalogItem) -> float:
    return product.rating or 0.0


def _reviews(product: CatalogItem) -> int:
    return product.reviews or 0


_SHOP_RULES: dict[ShopSlug, _Rule] = {
    ShopSlug.AFFORDABLE: lambda p, _now: _price(p) <= 1000,
    ShopSlug.UNDER_999: lambda p, _now: _price(p) < 999,
    ShopSlug.BEST_SELLERS: lambda p, _now: _price(p) <= 1000 and (_rating(p) >= 4.5 or _reviews(p) >= 500),
    ShopSlug.DEALS: lambda p, _now: _price(p) <= 1000 and has_any_discount(p),
    ShopSlug.NEW_ARRIVALS: lambda p, now: _price(p) <= 1000 and _is_recent(p, now),
    ShopSlug.OFFERS: lambda p, _now: _price(p) <= 1000 and has_any_discount(p),
    ShopSlug.TRENDING: lambda p, _now: (
        _price(p) <= 1000 and (_rating(p) >= 4.0 or _reviews(p) >= 100 or effective_discount(p) > 20)
    ),
    ShopSlug.SUPER_SAVERS: lambda p, _now: _price(p) <= 1299,
    ShopSlug.PRICE_SPOT: lambda p, _now: _price(p) <= 1999,
    ShopSlug.LUXURY_SHOP: lambda p, _now: bool(p.brand.strip()),
}


def belongs_to_shop(item: Any, shop_id: str, *, now: datetime | None = None) -> bool:
    """Whether *item* is listed in the shop *shop_id*.

    Unrecognized shop ids admit every item.
    """
    try:
        rule = _SHOP_RULES[ShopSlug(shop_id)]
    except ValueError:
        return True
    return rule(CatalogItem.coerce(item), now or datetime.now(UTC))


def shop_items(shop_id: str, items: Iterable[Any], *, now: datetime | None = None) -> list[Any]:
    """Filter *items* down to the base list of *shop_id*, preserving order."""
    current = now or datetime.now(UTC)
    return [item for item in items if belongs_to_shop(item, shop_id, now=current)]
