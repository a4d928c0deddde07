"""Catalog item model."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator

from pyyelo._constants import DEFAULT_COLOR, DEFAULT_ITEM_NAME, DEFAULT_SIZE
from pyyelo._normalize import parse_timestamp, safe_float, safe_int, safe_str
from pyyelo.identity import resolve_identity
from pyyelo.models._base import YeloBaseModel


def _label(value: Any) -> str:
    """Return the display label of a string-or-``{name}`` value."""
    if isinstance(value, Mapping):
        name = value.get("name")
        return str(name).strip() if name is not None else ""
    if value is None:
        return ""
    return str(value).strip()


class CatalogItem(YeloBaseModel):
    """A product record as returned by the catalog and listing endpoints.

    Only the fields needed for collection bookkeeping and shop
    classification are modelled; everything else stays in ``raw``.
    """

    id: str | None = None
    """Canonical identity (see :func:`pyyelo.identity.resolve_identity`)."""
    name: str = ""
    price: float | None = None
    original_price: float | None = Field(
        default=None,
        validation_alias=AliasChoices("originalPrice", "original_price", "mrp"),
    )
    discount: float | None = None
    """Declared discount percentage."""
    rating: float | None = None
    reviews: int | None = Field(default=None, validation_alias=AliasChoices("reviews", "reviewCount", "numReviews"))
    brand: str = ""
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    sizes: list[str] = Field(default_factory=list)
    colors: list[str] = Field(default_factory=list)
    date_added: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("dateAdded", "date_added", "createdAt"),
    )

    @model_validator(mode="after")
    def _fill_identity(self) -> CatalogItem:
        identity = resolve_identity(self.raw)
        if identity is not None and identity != self.id:
            # Frozen model: bypass __setattr__ during validation.
            object.__setattr__(self, "id", identity)
        return self

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str | None:
        if isinstance(value, (str, int)) and not isinstance(value, bool):
            return safe_str(value)
        return None

    @field_validator("price", "original_price", "discount", "rating", mode="before")
    @classmethod
    def _coerce_float(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("reviews", mode="before")
    @classmethod
    def _coerce_reviews(cls, value: Any) -> int | None:
        if isinstance(value, list):
            return len(value)
        return safe_int(value)

    @field_validator("brand", "category", "name", mode="before")
    @classmethod
    def _coerce_label(cls, value: Any) -> str:
        return _label(value)

    @field_validator("tags", "sizes", "colors", mode="before")
    @classmethod
    def _coerce_labels(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        labels = [_label(item) for item in value]
        return [label for label in labels if label]

    @field_validator("date_added", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> datetime | None:
        return parse_timestamp(value)

    @property
    def display_name(self) -> str:
        return self.name or DEFAULT_ITEM_NAME

    @property
    def default_size(self) -> str:
        return self.sizes[0] if self.sizes else DEFAULT_SIZE

    @property
    def default_color(self) -> str:
        return self.colors[0] if self.colors else DEFAULT_COLOR

    @classmethod
    def coerce(cls, item: Any) -> CatalogItem:
        """Return *item* as a :class:`CatalogItem`."""
        if isinstance(item, CatalogItem):
            return item
        if isinstance(item, Mapping):
            return cls.model_validate(dict(item))
        raise TypeError(f"cannot interpret {type(item).__name__} as a catalog item")
