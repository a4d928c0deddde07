"""User-facing mutation notifications.

A collection may be observed several times while a single mutation
settles, e.g. the store's own observer pass plus UI re-renders.
:class:`NotificationDispatcher` guarantees that each logical
action produces exactly one toast regardless of how many passes observe it.

The action is latched synchronously when the mutation is issued.  The first
observing pass that sees a pending, unshown action fires the toast and marks
it shown; the latch is released after a short delay.  A new action always
re-arms the latch, so rapid sequential actions each get their own toast.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import secrets
from collections.abc import Mapping
from typing import Any, Protocol

from pyyelo._constants import NOTIFICATION_RESET_DELAY
from pyyelo.models.collection import ActionKind, PendingAction

_logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Process-wide toast emitter."""

    def show(self, message: str, style: str) -> str:
        ...

    def dismiss(self, toast_id: str) -> None:
        ...


class LoggingNotifier:
    """Notifier that writes toasts to the log.

    Used when the embedding application does not provide a toast surface.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _logger
        self._active: set[str] = set()

    def show(self, message: str, style: str) -> str:
        toast_id = secrets.token_hex(8)
        self._active.add(toast_id)
        self._logger.info("[%s] %s", style, message)
        return toast_id

    def dismiss(self, toast_id: str) -> None:
        self._active.discard(toast_id)


@dataclasses.dataclass(frozen=True)
class NotificationMessages:
    """Toast templates for one collection; ``{name}`` is the item name.

    ``removed=None`` disables removal toasts.  ``already_present=None``
    reuses ``added`` when an add does not grow the collection (cart
    quantity increments).
    """

    added: str
    removed: str | None = None
    already_present: str | None = None
    style: str = "success"


CART_MESSAGES = NotificationMessages(added="{name} added to cart!")
WISHLIST_MESSAGES = NotificationMessages(
    added="{name} added to wishlist!",
    removed="{name} removed from wishlist",
    already_present="Already in wishlist!",
)


class NotificationDispatcher:
    """Emit at most one notification per logical collection action."""

    def __init__(
        self,
        notifier: Notifier,
        messages: NotificationMessages,
        *,
        reset_delay: float = NOTIFICATION_RESET_DELAY,
    ) -> None:
        self._notifier = notifier
        self._messages = messages
        self._reset_delay = reset_delay
        self._pending: PendingAction | None = None
        self._shown = False
        self._previous_size: int | None = None
        self._generation = 0
        self._reset_handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> PendingAction | None:
        return self._pending

    @property
    def shown(self) -> bool:
        return self._shown

    def baseline(self, size: int) -> None:
        """Record the collection size without firing (after load/replace)."""
        self._previous_size = size

    def arm(self, kind: ActionKind, item: Mapping[str, Any]) -> None:
        """Latch *kind* on *item*; called synchronously at mutation time."""
        if kind == ActionKind.REMOVE and self._messages.removed is None:
            return
        self._cancel_reset()
        self._generation += 1
        self._pending = PendingAction(kind=kind, item=dict(item))
        self._shown = False

    def observe(self, size: int) -> str | None:
        """Observe the settled collection size; fire if an action is pending.

        Returns the toast id when a notification was shown.
        """
        previous = self._previous_size if self._previous_size is not None else size
        self._previous_size = size

        action = self._pending
        if action is None or self._shown:
            return None

        template = self._template_for(action.kind, previous, size)
        if template is None:
            return None

        self._shown = True
        message = template.format(name=action.name)
        toast_id: str | None = None
        try:
            toast_id = self._notifier.show(message, self._messages.style)
        except Exception:
            _logger.warning("Notifier failed to show %r", message, exc_info=True)
        self._schedule_release(self._generation)
        return toast_id

    def _template_for(self, kind: ActionKind, previous: int, current: int) -> str | None:
        if kind == ActionKind.ADD:
            if current > previous:
                return self._messages.added
            if current == previous:
                return self._messages.already_present or self._messages.added
            return None
        if current < previous:
            return self._messages.removed
        return None

    def _schedule_release(self, generation: int) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._release(generation)
            return
        self._reset_handle = loop.call_later(self._reset_delay, self._release, generation)

    def _cancel_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None

    def _release(self, generation: int) -> None:
        # A newer action owns the latch; leave it alone.
        if generation != self._generation:
            return
        self._reset_handle = None
        self._pending = None
        self._shown = False
