"""Signed-in session state consumed by the collection stores.

The OTP flow itself lives elsewhere; this module only tracks whether a
user is signed in and tells subscribers when that changes.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pyyelo._constants import BACKEND_USER_KEY, TOKEN_KEY
from pyyelo._normalize import safe_str
from pyyelo.exceptions import StorageError
from pyyelo.storage import KeyValueStorage

_logger = logging.getLogger(__name__)

AuthListener = Callable[["Session | None"], Awaitable[None]]


class Session(BaseModel):
    """Authenticated user session.

    Parameters
    ----------
    user_id : str
        The authenticated user's ID.
    token : str
        Bearer token sent with remote collection calls.
    user : dict
        Backend user record as returned by the OTP verification.
    created_at : float
        Monotonic timestamp when the session was created.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    user_id: str
    token: str
    user: dict[str, Any] = Field(default_factory=dict)
    created_at: float = Field(default_factory=time.monotonic)

    @classmethod
    def from_backend_user(cls, token: str, user: dict[str, Any]) -> Session | None:
        """Build a session from a stored token and backend user record."""
        user_id = safe_str(user.get("_id") or user.get("id"))
        if not token or user_id is None:
            return None
        return cls(user_id=user_id, token=token, user=user)


class AuthState:
    """Current signed-in identity plus presence-transition listeners.

    Listeners are awaited in subscription order on every identity-presence
    transition: signed-out to signed-in, signed-in to signed-out, and a
    switch to a different user.  Token refreshes for the same user are not
    transitions.
    """

    def __init__(self, storage: KeyValueStorage | None = None) -> None:
        self._storage = storage
        self._session: Session | None = None
        self._loading = storage is not None
        self._listeners: list[AuthListener] = []

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def signed_in(self) -> bool:
        return self._session is not None

    @property
    def loading(self) -> bool:
        return self._loading

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def restore(self) -> Session | None:
        """Restore a previously persisted session, if any."""
        if self._storage is None:
            self._loading = False
            return self._session
        try:
            token = await self._storage.get(TOKEN_KEY)
            user = await self._storage.get(BACKEND_USER_KEY)
        except StorageError as exc:
            _logger.warning("Could not restore session: %s", exc)
            token, user = None, None
        finally:
            self._loading = False

        if isinstance(token, str) and isinstance(user, dict):
            restored = Session.from_backend_user(token, user)
            if restored is not None:
                await self._transition(restored)
        return self._session

    async def sign_in(self, session: Session) -> None:
        await self._persist(session)
        await self._transition(session)

    async def sign_out(self) -> None:
        await self._persist(None)
        await self._transition(None)

    async def _persist(self, session: Session | None) -> None:
        if self._storage is None:
            return
        try:
            if session is None:
                await self._storage.remove(TOKEN_KEY)
                await self._storage.remove(BACKEND_USER_KEY)
            else:
                await self._storage.set(TOKEN_KEY, session.token)
                await self._storage.set(BACKEND_USER_KEY, session.user)
        except StorageError as exc:
            _logger.warning("Could not persist session: %s", exc)

    async def _transition(self, session: Session | None) -> None:
        previous = self._session
        self._session = session
        previous_user = previous.user_id if previous is not None else None
        current_user = session.user_id if session is not None else None
        if previous_user == current_user:
            return
        _logger.debug("Auth transition %s -> %s", previous_user is not None, current_user is not None)
        for listener in list(self._listeners):
            try:
                await listener(session)
            except Exception:
                _logger.warning("Auth listener failed", exc_info=True)
