"""pyyelo - Async Python client for Yelo shopper collections and listings."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyyelo")
except PackageNotFoundError:
    __version__ = "0+local"
from pyyelo.client import YeloClient
from pyyelo.collection import CartStore, CollectionStore, WishlistStore
from pyyelo.config import YeloConfig
from pyyelo.exceptions import (
    FetchCancelledError,
    FetchError,
    MissingIdentityError,
    RemoteSyncError,
    StorageError,
    YeloApiError,
    YeloConfigError,
    YeloError,
    YeloTransportError,
)
from pyyelo.fetch import CancellationToken, FetchStatus, ProgressiveFetcher
from pyyelo.identity import resolve_identity
from pyyelo.models import (
    ActionKind,
    CatalogItem,
    CollectionEntry,
    FetchPage,
    RemoteSyncState,
    Variant,
)
from pyyelo.notify import LoggingNotifier, NotificationDispatcher, NotificationMessages
from pyyelo.search import ReadNotifications, RecentSearches
from pyyelo.session import AuthState, Session
from pyyelo.shops import ShopSlug, belongs_to_shop, shop_items
from pyyelo.snapshots import SnapshotCache
from pyyelo.storage import JsonFileStorage, MemoryStorage
from pyyelo.sync import RemoteReconciler, WishlistApi
from pyyelo.wardrobe import WardrobeStore

__all__ = [
    "__version__",
    "ActionKind",
    "AuthState",
    "CancellationToken",
    "CartStore",
    "CatalogItem",
    "CollectionEntry",
    "CollectionStore",
    "FetchCancelledError",
    "FetchError",
    "FetchPage",
    "FetchStatus",
    "JsonFileStorage",
    "LoggingNotifier",
    "MemoryStorage",
    "MissingIdentityError",
    "NotificationDispatcher",
    "NotificationMessages",
    "ProgressiveFetcher",
    "ReadNotifications",
    "RecentSearches",
    "RemoteReconciler",
    "RemoteSyncError",
    "RemoteSyncState",
    "Session",
    "ShopSlug",
    "SnapshotCache",
    "StorageError",
    "Variant",
    "WardrobeStore",
    "WishlistApi",
    "WishlistStore",
    "YeloApiError",
    "YeloClient",
    "YeloConfig",
    "YeloConfigError",
    "YeloError",
    "YeloTransportError",
    "belongs_to_shop",
    "resolve_identity",
    "shop_items",
]
