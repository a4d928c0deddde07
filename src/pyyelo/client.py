"""High-level async client wiring the Yelo collection services together."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from pyyelo._transport import HttpTransport, Transport
from pyyelo.collection import CartStore, WishlistStore
from pyyelo.config import YeloConfig
from pyyelo.exceptions import YeloError
from pyyelo.fetch import ProgressiveFetcher, listing_fetch_function
from pyyelo.notify import (
    CART_MESSAGES,
    WISHLIST_MESSAGES,
    LoggingNotifier,
    NotificationDispatcher,
    Notifier,
)
from pyyelo.search import ReadNotifications, RecentSearches
from pyyelo.session import AuthState
from pyyelo.snapshots import SnapshotCache
from pyyelo.storage import JsonFileStorage, KeyValueStorage, MemoryStorage
from pyyelo.sync import RemoteReconciler, WishlistApi
from pyyelo.wardrobe import WardrobeStore

_logger = logging.getLogger(__name__)


class YeloClient:
    """Async client owning the shopper's collections for one process.

    Every service is constructed once and shares the same storage and
    notifier.  The wishlist is mirrored remotely while a user is signed in.

    Usage::

        async with YeloClient(config) as client:
            await client.load()
            await client.cart.add(product, size="L")
            fetcher = client.listing("/products", shop="affordable")
            await fetcher.reset()
    """

    def __init__(
        self,
        config: YeloConfig | None = None,
        *,
        storage: KeyValueStorage | None = None,
        notifier: Notifier | None = None,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config or YeloConfig()
        self._external_session = session is not None
        self._http_session = session
        self._external_transport = transport is not None
        self._transport: Transport | None = transport
        self._reconciler: RemoteReconciler | None = None

        if storage is None:
            if self._config.storage_dir:
                storage = JsonFileStorage(self._config.storage_dir)
            else:
                storage = MemoryStorage()
        self.storage = storage
        self.notifier = notifier or LoggingNotifier()

        delay = self._config.notification_reset_delay
        self.auth = AuthState(storage)
        self.cart = CartStore(
            storage,
            dispatcher=NotificationDispatcher(self.notifier, CART_MESSAGES, reset_delay=delay),
        )
        self.wishlist = WishlistStore(
            storage,
            dispatcher=NotificationDispatcher(self.notifier, WISHLIST_MESSAGES, reset_delay=delay),
        )
        self.wardrobe = WardrobeStore(storage)
        self.recent_searches = RecentSearches(storage, limit=self._config.max_recent_searches)
        self.read_notifications = ReadNotifications(storage)
        self.snapshots = SnapshotCache(storage)

    @property
    def config(self) -> YeloConfig:
        return self._config

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> YeloClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
        self._reconciler = RemoteReconciler(
            self.wishlist,
            WishlistApi(self._transport),
            self.auth,
            clear_on_sign_out=self._config.clear_on_sign_out,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._reconciler is not None:
            self._reconciler.detach()
            self._reconciler = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._external_transport:
            self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise YeloError("Client not initialized. Use 'async with YeloClient(...)' or call __aenter__.")
        return self._transport

    @property
    def wishlist_sync(self) -> RemoteReconciler | None:
        return self._reconciler

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Load every persisted collection, then restore the signed-in session.

        The session is restored last so a restored user's remote wishlist
        replaces the locally loaded one.
        """
        await self.cart.load()
        await self.wishlist.load()
        await self.wardrobe.load()
        await self.recent_searches.load()
        await self.read_notifications.load()
        session = await self.auth.restore()
        _logger.debug("Client loaded (signed_in=%s)", session is not None)

    def listing(self, endpoint: str, *, shop: str | None = None, **params: Any) -> ProgressiveFetcher:
        """Build a :class:`ProgressiveFetcher` over a paginated listing endpoint."""
        fetch_function = listing_fetch_function(
            self._require_transport(),
            endpoint,
            limit=self._config.batch_size,
            params=params,
            auth=self.auth,
        )
        return ProgressiveFetcher(
            fetch_function,
            batch_size=self._config.batch_size,
            initial_skeleton_count=self._config.skeleton_count,
            progressive_delay=self._config.progressive_delay,
            shop=shop,
        )
