"""Canonical identity resolution for catalog items.

Items reach the collection stores in several shapes:

* a raw catalog record (``{"_id": ...}`` from the API, ``{"id": ...}``
  from older local storage),
* a populated reference (``{"productId": {"_id": ...}}`` as returned by
  the remote wishlist),
* a bare reference (``{"productId": "..."}``, or just the id itself).

:func:`resolve_identity` collapses all of them to one string key.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pyyelo.exceptions import MissingIdentityError

_PRIMARY_KEY = "_id"
_ALIAS_KEY = "id"
_REFERENCE_KEY = "productId"


def _as_identity(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (str, int)):
        text = str(value).strip()
        return text or None
    return None


def _payload_of(item: Any) -> Mapping[str, Any] | None:
    if isinstance(item, Mapping):
        return item
    # Pydantic models keep the original payload in ``raw``.
    raw = getattr(item, "raw", None)
    if isinstance(raw, Mapping):
        return raw
    return None


def resolve_identity(item: Any) -> str | None:
    """Return the canonical identity of *item*, or ``None``.

    Precedence: primary key (``_id``), alias key (``id``), then the
    nested reference's primary key (``productId._id``) or a bare
    ``productId`` reference.
    """
    direct = _as_identity(item)
    if direct is not None:
        return direct

    payload = _payload_of(item)
    if payload is None:
        return None

    for key in (_PRIMARY_KEY, _ALIAS_KEY):
        identity = _as_identity(payload.get(key))
        if identity is not None:
            return identity

    reference = payload.get(_REFERENCE_KEY)
    if isinstance(reference, Mapping):
        return _as_identity(reference.get(_PRIMARY_KEY)) or _as_identity(reference.get(_ALIAS_KEY))
    return _as_identity(reference)


def require_identity(item: Any) -> str:
    """Like :func:`resolve_identity` but raise :class:`MissingIdentityError`."""
    identity = resolve_identity(item)
    if identity is None:
        raise MissingIdentityError(f"item has no identity: {type(item).__name__}")
    return identity


def unwrap_reference(item: Mapping[str, Any]) -> dict[str, Any]:
    """Return the populated product record of a reference row.

    Remote collections return ``{"productId": {...product...}, ...}`` rows;
    the product record is the useful payload.  Plain records are returned
    as a shallow copy.
    """
    reference = item.get(_REFERENCE_KEY)
    if isinstance(reference, Mapping) and (_PRIMARY_KEY in reference or _ALIAS_KEY in reference):
        return dict(reference)
    return dict(item)


def resolve_reference_identity(item: Any) -> str | None:
    """Identity of the product a remote collection row points at.

    Remote rows carry their own ``_id`` next to the ``productId``
    reference, so the reference wins when present.
    """
    payload = _payload_of(item)
    if payload is not None:
        reference = payload.get(_REFERENCE_KEY)
        if isinstance(reference, Mapping):
            identity = _as_identity(reference.get(_PRIMARY_KEY)) or _as_identity(reference.get(_ALIAS_KEY))
            if identity is not None:
                return identity
        else:
            identity = _as_identity(reference)
            if identity is not None:
                return identity
    return resolve_identity(item)
