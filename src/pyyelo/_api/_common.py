"""Shared helpers for Yelo API endpoint modules.

It is internal to pyyelo and may change at any time.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pyyelo.exceptions import YeloApiError


def check_envelope(endpoint: str, body: Any) -> Any:
    """Raise for ``{"success": false}`` envelopes and return *body*."""
    if isinstance(body, Mapping) and body.get("success") is False:
        raise YeloApiError(
            f"{endpoint} failed: {body.get('message') or 'unknown error'}",
            endpoint=endpoint,
        )
    return body


def extract_list(body: Any, *keys: str) -> list[dict[str, Any]]:
    """Return the first list found under *keys* (or *body* itself)."""
    if isinstance(body, list):
        return [dict(item) for item in body if isinstance(item, Mapping)]
    if not isinstance(body, Mapping):
        return []
    for key in keys:
        value = body.get(key)
        if isinstance(value, list):
            return [dict(item) for item in value if isinstance(item, Mapping)]
        if isinstance(value, Mapping):
            nested = extract_list(value, *keys)
            if nested:
                return nested
    return []
