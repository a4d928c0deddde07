"""Custom exception hierarchy for pyyelo."""

from __future__ import annotations


class YeloError(Exception):
    """Base exception for all pyyelo errors."""


class YeloConfigError(YeloError):
    """Invalid or missing configuration."""


class MissingIdentityError(YeloError):
    """An item carries no resolvable identity.

    Collection mutations catch this internally and abort before touching
    state; it never reaches callers of the store operations.
    """


class StorageError(YeloError):
    """Durable key-value read or write failed (quota, I/O, serialization)."""

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class YeloTransportError(YeloError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class YeloApiError(YeloError):
    """API answered with ``success: false`` (application-level error)."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class RemoteSyncError(YeloError):
    """Best-effort remote collection mutation failed.

    The optimistic local state is kept; this error is only logged.
    """

    def __init__(self, message: str, *, action: str = "", identity: str = "") -> None:
        self.action = action
        self.identity = identity
        super().__init__(message)


class FetchError(YeloError):
    """Listing fetch failed for a reason other than cancellation."""


class FetchCancelledError(YeloError):
    """A fetch sequence was superseded by a newer one.

    Not an error condition: the controller discards it silently.
    """
