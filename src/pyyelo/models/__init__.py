"""Data models for Yelo payloads and collection state."""

from pyyelo.models._base import YeloBaseModel
from pyyelo.models.collection import (
    ActionKind,
    CollectionEntry,
    PendingAction,
    RemoteSyncState,
    Variant,
)
from pyyelo.models.listing import FetchPage
from pyyelo.models.product import CatalogItem

__all__ = [
    "ActionKind",
    "CatalogItem",
    "CollectionEntry",
    "FetchPage",
    "PendingAction",
    "RemoteSyncState",
    "Variant",
    "YeloBaseModel",
]
