"""Remote wishlist endpoints."""

from __future__ import annotations

from typing import Any

from pyyelo._api._common import check_envelope, extract_list
from pyyelo._transport import Transport
from pyyelo.session import Session

WISHLIST_ENDPOINT = "/wishlist"
WISHLIST_ADD_ENDPOINT = "/wishlist/add"
WISHLIST_REMOVE_ENDPOINT = "/wishlist/remove"


async def fetch_wishlist(transport: Transport, session: Session) -> list[dict[str, Any]]:
    """Fetch the signed-in user's wishlist rows."""
    body = await transport.request("GET", WISHLIST_ENDPOINT, token=session.token)
    check_envelope(WISHLIST_ENDPOINT, body)
    return extract_list(body, "wishlist", "items", "products", "data")


async def add_to_wishlist(transport: Transport, session: Session, identity: str) -> None:
    body = await transport.request("POST", WISHLIST_ADD_ENDPOINT, token=session.token, json_body={"id": identity})
    check_envelope(WISHLIST_ADD_ENDPOINT, body)


async def remove_from_wishlist(transport: Transport, session: Session, identity: str) -> None:
    body = await transport.request("POST", WISHLIST_REMOVE_ENDPOINT, token=session.token, json_body={"id": identity})
    check_envelope(WISHLIST_REMOVE_ENDPOINT, body)
