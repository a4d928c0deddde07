"""Redaction of shopper secrets in DEBUG payload logs.

OTP sign-in payloads carry bearer tokens, phone numbers and one-time codes,
and listing pages can hold dozens of products.  :func:`redact_for_log`
masks the former and shortens the latter.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_SECRET_KEYS: frozenset[str] = frozenset(
    {"authorization", "cookie", "token", "accesstoken", "refreshtoken", "otp", "code", "password"}
)
_PHONE_KEYS: frozenset[str] = frozenset({"phone", "phonenumber", "mobile"})

_LISTING_HEAD = 5
_MAX_DEPTH = 20


def _mask_phone(value: Any) -> str:
    digits = "".join(ch for ch in str(value) if ch.isdigit())
    if len(digits) <= 4:
        return "<redacted>"
    return f"<phone:***{digits[-4:]}>"


def _redact_field(key: str, value: Any, max_string: int, depth: int) -> Any:
    lowered = key.lower()
    if lowered in _SECRET_KEYS:
        return "<redacted>"
    if lowered in _PHONE_KEYS:
        return _mask_phone(value)
    return redact_for_log(value, max_string=max_string, _depth=depth + 1)


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of *value* that is safe to write to DEBUG logs."""
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if isinstance(value, Mapping):
        return {str(key): _redact_field(str(key), item, max_string, _depth) for key, item in value.items()}
    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value
    if isinstance(value, (list, tuple)):
        head = [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value[:_LISTING_HEAD]]
        if len(value) > _LISTING_HEAD:
            head.append(f"<+{len(value) - _LISTING_HEAD} more>")
        return head
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return repr(value)
