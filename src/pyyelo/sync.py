"""Remote reconciliation for collections backed by an authenticated API.

Policy:

- On sign-in the remote collection is authoritative: it is fetched and
  replaces local state entirely.  Entries accumulated locally while signed
  out are discarded.
- While signed in, mutations are applied locally first (optimistic) and
  then mirrored with a best-effort remote call.  Failures are logged, never
  retried and never rolled back.
- While signed out, nothing is sent.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pyyelo._api import wishlist as _wishlist_api
from pyyelo._transport import Transport
from pyyelo.collection import CollectionStore
from pyyelo.exceptions import RemoteSyncError, YeloError
from pyyelo.models.collection import ActionKind, RemoteSyncState
from pyyelo.session import AuthState, Session

_logger = logging.getLogger(__name__)


class RemoteCollectionApi(Protocol):
    """Remote persistence for one collection type."""

    async def fetch(self, session: Session) -> list[dict[str, Any]]:
        ...

    async def add(self, session: Session, identity: str) -> None:
        ...

    async def remove(self, session: Session, identity: str) -> None:
        ...


class WishlistApi:
    """`RemoteCollectionApi` over the wishlist endpoints."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def fetch(self, session: Session) -> list[dict[str, Any]]:
        return await _wishlist_api.fetch_wishlist(self._transport, session)

    async def add(self, session: Session, identity: str) -> None:
        await _wishlist_api.add_to_wishlist(self._transport, session, identity)

    async def remove(self, session: Session, identity: str) -> None:
        await _wishlist_api.remove_from_wishlist(self._transport, session, identity)


class RemoteReconciler:
    """Keeps a :class:`CollectionStore` in step with its remote counterpart."""

    def __init__(
        self,
        store: CollectionStore,
        api: RemoteCollectionApi,
        auth: AuthState,
        *,
        clear_on_sign_out: bool = True,
    ) -> None:
        self._store = store
        self._api = api
        self._auth = auth
        self._clear_on_sign_out = clear_on_sign_out
        self._unsubscribe = auth.subscribe(self._on_auth_change)
        store.attach_remote(self)

    def detach(self) -> None:
        self._unsubscribe()
        self._store.attach_remote(None)

    async def _on_auth_change(self, session: Session | None) -> None:
        if session is not None:
            await self.reconcile()
        elif self._clear_on_sign_out:
            await self._store.clear()

    async def reconcile(self) -> bool:
        """Replace local state with the remote collection.

        Returns ``True`` when the replacement happened.  The fetched state
        is discarded if the signed-in user changed while the request was in
        flight.
        """
        session = self._auth.session
        if session is None:
            return False
        try:
            remote_items = await self._api.fetch(session)
        except YeloError as exc:
            _logger.warning("Could not fetch remote %s: %s", self._store.key, exc)
            return False
        except Exception:
            _logger.warning("Unexpected failure fetching remote %s", self._store.key, exc_info=True)
            return False

        current = self._auth.session
        if current is None or current.user_id != session.user_id:
            _logger.debug("Discarding remote %s fetched for a previous session", self._store.key)
            return False

        before = set(self._store.identities())
        await self._store.replace(remote_items)
        local_only = before - set(self._store.identities())
        if local_only:
            _logger.debug("Sign-in replaced %d local-only %s entries", len(local_only), self._store.key)
        return True

    async def push_add(self, identity: str) -> RemoteSyncState:
        return await self._push(ActionKind.ADD, identity)

    async def push_remove(self, identity: str) -> RemoteSyncState:
        return await self._push(ActionKind.REMOVE, identity)

    async def clear_remote(self) -> None:
        """Remove every identity currently in the store from the remote."""
        for identity in self._store.identities():
            await self.push_remove(identity)

    async def _push(self, action: ActionKind, identity: str) -> RemoteSyncState:
        session = self._auth.session
        if session is None:
            _logger.debug("Signed out; %s of %s kept local", action, identity)
            return RemoteSyncState.APPLIED_LOCALLY
        call = self._api.add if action == ActionKind.ADD else self._api.remove
        try:
            await call(session, identity)
        except Exception as exc:
            error = RemoteSyncError(
                f"Remote {action} of {identity} on {self._store.key} failed: {exc!r}",
                action=str(action),
                identity=identity,
            )
            # Unexpected failures keep their traceback.
            _logger.warning("%s", error, exc_info=not isinstance(exc, YeloError))
            return RemoteSyncState.REMOTE_FAILED
        _logger.debug("Remote %s of %s confirmed", action, identity)
        return RemoteSyncState.REMOTE_CONFIRMED
