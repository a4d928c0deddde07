"""Collection entry models.

Entries are frozen: every mutation replaces an entry rather than editing
it in place, so snapshots handed to observers never change underneath them.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyyelo._constants import DEFAULT_ITEM_NAME
from pyyelo._normalize import safe_float

#: Keys the flat storage row format reserves for entry bookkeeping.
ENTRY_FIELDS: frozenset[str] = frozenset({"id", "size", "color", "quantity"})


class ActionKind(StrEnum):
    ADD = "add"
    REMOVE = "remove"


class RemoteSyncState(StrEnum):
    """Outcome of a mutation with respect to the remote store (logged only)."""

    APPLIED_LOCALLY = "applied_locally"
    REMOTE_CONFIRMED = "remote_confirmed"
    REMOTE_FAILED = "remote_failed"


class Variant(BaseModel):
    """Size/color selection; ``None`` fields for identity-only collections."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    size: str | None = None
    color: str | None = None


class CollectionEntry(BaseModel):
    """One line item of a collection, keyed by ``(identity, variant)``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    identity: str
    variant: Variant = Field(default_factory=Variant)
    quantity: int = 1
    payload: dict[str, Any] = Field(default_factory=dict)
    """Snapshot of the item as it was when first added."""

    @field_validator("identity")
    @classmethod
    def _non_empty_identity(cls, value: str) -> str:
        identity = value.strip()
        if not identity:
            raise ValueError("identity must be non-empty")
        return identity

    @field_validator("quantity")
    @classmethod
    def _positive_quantity(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("quantity must be positive")
        return value

    @property
    def key(self) -> tuple[str, Variant]:
        return (self.identity, self.variant)

    @property
    def name(self) -> str:
        name = self.payload.get("name")
        return str(name) if name else DEFAULT_ITEM_NAME

    @property
    def price(self) -> float:
        return safe_float(self.payload.get("price")) or 0.0

    def to_row(self) -> dict[str, Any]:
        """Flat storage row: the payload overlaid with the entry fields.

        The row resolves back to :attr:`identity` when it is loaded again.
        """
        row = {key: value for key, value in self.payload.items() if key not in ENTRY_FIELDS}
        # ``_id`` outranks ``id`` when the row is read back; a product key
        # that differs from the entry identity is kept as a reference.
        if "_id" in row and str(row["_id"]) != self.identity:
            row.setdefault("productId", row.pop("_id"))
        row["id"] = self.identity
        if self.variant.size is not None:
            row["size"] = self.variant.size
        if self.variant.color is not None:
            row["color"] = self.variant.color
        row["quantity"] = self.quantity
        return row


class PendingAction(BaseModel):
    """Single-slot latch used by the notification dispatcher."""

    model_config = ConfigDict(frozen=True)

    kind: ActionKind
    item: dict[str, Any] = Field(default_factory=dict)

    @property
    def name(self) -> str:
        name = self.item.get("name")
        return str(name) if name else DEFAULT_ITEM_NAME
