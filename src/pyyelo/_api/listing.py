"""Generic paginated listing endpoint."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pyyelo._transport import Transport


async def fetch_listing_page(
    transport: Transport,
    endpoint: str,
    page: int,
    *,
    limit: int,
    params: Mapping[str, Any] | None = None,
    token: str | None = None,
) -> Any:
    """Request one listing page.

    The response is returned undecoded; it is either
    ``{items, pagination: {hasMore, pages}}`` or a bare item array, and
    :meth:`pyyelo.models.FetchPage.from_response` normalizes both.
    """
    query: dict[str, Any] = dict(params or {})
    query["page"] = page
    query["limit"] = limit
    return await transport.request("GET", endpoint, token=token, params=query)
