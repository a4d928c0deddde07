"""Paginated listing models."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pyyelo._normalize import safe_int
from pyyelo.exceptions import FetchError

_ITEM_KEYS = ("items", "products", "data")


def _extract_items(response: Mapping[str, Any]) -> list[Any]:
    for key in _ITEM_KEYS:
        value = response.get(key)
        if isinstance(value, list):
            return value
        # Some endpoints nest once more: {"data": {"products": [...]}}
        if isinstance(value, Mapping):
            for inner_key in _ITEM_KEYS:
                inner = value.get(inner_key)
                if isinstance(inner, list):
                    return inner
    return []


def _extract_pagination(response: Mapping[str, Any]) -> Mapping[str, Any] | None:
    pagination = response.get("pagination")
    if isinstance(pagination, Mapping):
        return pagination
    data = response.get("data")
    if isinstance(data, Mapping) and isinstance(data.get("pagination"), Mapping):
        return data["pagination"]
    return None


class FetchPage(BaseModel):
    """One page of listing results."""

    model_config = ConfigDict(frozen=True)

    page_number: int
    items: list[dict[str, Any]] = Field(default_factory=list)
    has_more: bool = False

    @classmethod
    def from_response(cls, response: Any, *, page_number: int, batch_size: int) -> FetchPage:
        """Normalize a listing response.

        Accepts ``{items|products|data, pagination: {hasMore, pages}}``
        envelopes and bare item arrays.  ``hasMore`` prefers explicit
        pagination metadata and otherwise assumes more pages exist iff the
        batch was full.

        Raises
        ------
        FetchError
            The response is an envelope with ``success: false``.
        """
        if isinstance(response, Mapping):
            if response.get("success") is False:
                raise FetchError(str(response.get("message") or "Failed to fetch products"))
            raw_items = _extract_items(response)
            pagination = _extract_pagination(response)
        elif isinstance(response, Sequence) and not isinstance(response, (str, bytes)):
            raw_items = list(response)
            pagination = None
        elif response is None:
            raw_items = []
            pagination = None
        else:
            raise FetchError(f"Unexpected listing response type: {type(response).__name__}")

        items = [dict(item) for item in raw_items if isinstance(item, Mapping)]

        if pagination is not None:
            pages = safe_int(pagination.get("pages"))
            has_more = pagination.get("hasMore") is not False and pages is not None and pages > page_number
        else:
            has_more = len(items) >= batch_size

        return cls(page_number=page_number, items=items, has_more=has_more)
