"""Progressive, cancellable listing fetches with skeleton bookkeeping.

State machine::

    idle -> loading -> (partial <-> loading_more) -> complete | errored

Each fetch sequence owns a :class:`CancellationToken`.  Starting a new
sequence cancels the previous token, which also cancels the in-flight
request task; whatever the superseded request eventually produces is
dropped without touching state.

Skeleton placeholders start at the initial count and shrink by the number
of real items each batch delivers.  ``load_more()`` refuses to run while
placeholders are still outstanding.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from enum import StrEnum
from typing import Any

from pyyelo._api.listing import fetch_listing_page
from pyyelo._constants import DEFAULT_BATCH_SIZE, PROGRESSIVE_REVEAL_DELAY
from pyyelo._transport import Transport
from pyyelo.exceptions import FetchCancelledError, FetchError
from pyyelo.models.listing import FetchPage
from pyyelo.session import AuthState
from pyyelo.shops import shop_items

_logger = logging.getLogger(__name__)

_DEFAULT_ERROR = "Failed to fetch products"


class CancellationToken:
    """Cancellation handle for one fetch sequence."""

    def __init__(self) -> None:
        self._cancelled = False
        self._task: asyncio.Future[Any] | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def bind(self, task: asyncio.Future[Any]) -> None:
        """Attach the in-flight request so cancelling aborts it."""
        self._task = task
        if self._cancelled:
            task.cancel()

    def cancel(self) -> None:
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise FetchCancelledError("fetch superseded")


FetchFunction = Callable[[int, CancellationToken], Awaitable[Any]]


class FetchStatus(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    PARTIAL = "partial"
    LOADING_MORE = "loading_more"
    COMPLETE = "complete"
    ERRORED = "errored"


class ProgressiveFetcher:
    """Paginated product loader driving a listing view.

    Parameters
    ----------
    fetch_function
        ``async (page, token) -> response``; the response may be a
        pagination envelope or a bare list (see :class:`FetchPage`).
    batch_size
        Expected items per page; used for the ``hasMore`` fallback.
    initial_skeleton_count
        Placeholders before the first page; defaults to *batch_size*.
    progressive_delay
        Seconds between revealed items in :meth:`fetch_progressive`.
    shop
        Optional shop slug; :attr:`visible` then only shows items the
        shop predicate admits.
    """

    def __init__(
        self,
        fetch_function: FetchFunction,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        initial_skeleton_count: int | None = None,
        progressive_delay: float = PROGRESSIVE_REVEAL_DELAY,
        shop: str | None = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self._fetch_function = fetch_function
        self._batch_size = batch_size
        self._initial_skeletons = batch_size if initial_skeleton_count is None else initial_skeleton_count
        self._progressive_delay = progressive_delay
        self._shop = shop

        self._products: list[dict[str, Any]] = []
        self._skeletons = self._initial_skeletons
        self._is_loading = False
        self._has_more = True
        self._error: str | None = None
        self._current_page = 0
        self._status = FetchStatus.IDLE
        self._token: CancellationToken | None = None

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def products(self) -> list[dict[str, Any]]:
        return list(self._products)

    @property
    def visible(self) -> list[dict[str, Any]]:
        """Products classified through the shop predicate, if any."""
        if self._shop is None:
            return list(self._products)
        return shop_items(self._shop, self._products)

    @property
    def skeletons(self) -> int:
        return self._skeletons

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def status(self) -> FetchStatus:
        return self._status

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def reset(self) -> FetchPage | None:
        """Discard everything and fetch page 1."""
        return await self._fetch_batch(1, reset=True)

    async def refetch(self) -> FetchPage | None:
        return await self._fetch_batch(1, reset=True)

    async def load_more(self) -> FetchPage | None:
        """Fetch the next page, if allowed; otherwise do nothing.

        Allowed only when no fetch is running, more pages exist and every
        skeleton placeholder has been filled.
        """
        if self._is_loading or not self._has_more or self._skeletons > 0:
            return None
        self._skeletons = self._batch_size
        return await self._fetch_batch(self._current_page + 1, reset=False)

    async def fetch_progressive(self) -> None:
        """Reveal items one by one, up to twice the initial skeleton count."""
        token = self._supersede()
        self._start(reset=True)
        limit = self._initial_skeletons * 2
        page = 1
        loaded = 0
        has_more = True
        try:
            while has_more and loaded < limit:
                fetched = await self._request(page, token)
                if not fetched.items:
                    has_more = False
                    break
                for item in fetched.items:
                    if loaded >= limit:
                        break
                    await asyncio.sleep(self._progressive_delay)
                    token.raise_if_cancelled()
                    self._products = [*self._products, item]
                    self._skeletons = max(0, self._skeletons - 1)
                    loaded += 1
                has_more = fetched.has_more
                self._current_page = page
                page += 1
        except (FetchCancelledError, asyncio.CancelledError):
            if token.cancelled:
                _logger.debug("Progressive fetch superseded at page %d", page)
                return
            raise
        except Exception as exc:
            self._fail(exc, page)
            return

        self._has_more = has_more
        self._skeletons = 0
        self._is_loading = False
        self._status = FetchStatus.PARTIAL if has_more else FetchStatus.COMPLETE

    def close(self) -> None:
        """Abort any in-flight fetch (the view went away)."""
        if self._token is not None:
            self._token.cancel()
            self._token = None
        self._is_loading = False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _supersede(self) -> CancellationToken:
        if self._token is not None:
            self._token.cancel()
        self._token = CancellationToken()
        return self._token

    def _start(self, *, reset: bool) -> None:
        if reset:
            self._products = []
            self._skeletons = self._initial_skeletons
            self._current_page = 0
            self._has_more = True
            self._error = None
        self._is_loading = True
        self._status = FetchStatus.LOADING if reset else FetchStatus.LOADING_MORE

    async def _request(self, page: int, token: CancellationToken) -> FetchPage:
        task = asyncio.ensure_future(self._fetch_function(page, token))
        token.bind(task)
        response = await task
        token.raise_if_cancelled()
        return FetchPage.from_response(response, page_number=page, batch_size=self._batch_size)

    async def _fetch_batch(self, page: int, *, reset: bool) -> FetchPage | None:
        token = self._supersede()
        self._start(reset=reset)
        try:
            fetched = await self._request(page, token)
        except (FetchCancelledError, asyncio.CancelledError):
            if token.cancelled:
                _logger.debug("Fetch of page %d superseded", page)
                return None
            raise
        except Exception as exc:
            self._fail(exc, page)
            return None

        if reset:
            self._products = list(fetched.items)
        else:
            self._products = [*self._products, *fetched.items]
        self._skeletons = max(0, self._skeletons - len(fetched.items))
        self._has_more = fetched.has_more
        if not self._has_more:
            # No further page can fill leftover placeholders.
            self._skeletons = 0
        self._current_page = page
        self._is_loading = False
        self._status = FetchStatus.PARTIAL if self._has_more else FetchStatus.COMPLETE
        return fetched

    def _fail(self, exc: Exception, page: int) -> None:
        message = str(exc) or _DEFAULT_ERROR
        if isinstance(exc, FetchError):
            _logger.warning("Listing fetch of page %d failed: %s", page, message)
        else:
            _logger.warning("Listing fetch of page %d failed", page, exc_info=True)
        self._error = message
        self._has_more = False
        self._skeletons = 0
        self._is_loading = False
        self._status = FetchStatus.ERRORED


def listing_fetch_function(
    transport: Transport,
    endpoint: str,
    *,
    limit: int = DEFAULT_BATCH_SIZE,
    params: Mapping[str, Any] | None = None,
    auth: AuthState | None = None,
) -> FetchFunction:
    """Build a fetch function over the generic paginated listing endpoint."""

    async def _fetch(page: int, token: CancellationToken) -> Any:
        token.raise_if_cancelled()
        session = auth.session if auth is not None else None
        return await fetch_listing_page(
            transport,
            endpoint,
            page,
            limit=limit,
            params=params,
            token=session.token if session is not None else None,
        )

    return _fetch
