"""Cursor-based pagination over ledger list actions."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, AsyncIterator, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from seqledger.errors import RequestCancelledError, SequenceError
from seqledger.query import QuerySpec

if TYPE_CHECKING:
    from seqledger.executor import RequestExecutor

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Page(BaseModel, Generic[T]):
    """One page of results from a list or sum action.

    ``cursor`` is opaque; pass it back verbatim to fetch the next page.
    Once ``last_page`` is true there is nothing left to fetch.
    """

    items: list[T] = Field(default_factory=list)
    last_page: bool = False
    cursor: Optional[str] = None


async def fetch_page(
    executor: "RequestExecutor",
    action: str,
    query: QuerySpec,
    item_type: Any = dict,
    *,
    cancel_event: Optional[asyncio.Event] = None,
) -> Page[Any]:
    """Fetch a single page of ``action`` results for ``query``."""
    return await executor.execute(
        action, query, Page[item_type], cancel_event=cancel_event
    )


class PageIterator(Generic[T]):
    """Async iterator over the items of a paged list action.

    Pages are fetched lazily: the next page is requested only after every
    item of the current one has been consumed. The sequence ends when a
    page has ``last_page`` set or comes back empty. A page without a
    cursor to continue from also ends it. Iterating twice does not
    restart; build a new PageIterator for that.

    Usage:
        async for account in PageIterator(executor, "list-accounts", query):
            print(account["id"])

    Args:
        executor: Executor performing the page requests.
        action: List action name.
        query: Initial query; a cursor in it resumes a previous listing.
        item_type: Type each item is decoded into.
        swallow_errors: When a page fetch fails, end the sequence quietly
            and keep the error on ``error`` instead of raising it.
            Cancellation is always raised.
        cancel_event: Forwarded to the executor for every page.
    """

    def __init__(
        self,
        executor: "RequestExecutor",
        action: str,
        query: Optional[QuerySpec] = None,
        item_type: Any = dict,
        *,
        swallow_errors: bool = False,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        self._executor = executor
        self._action = action
        self._query = query or QuerySpec()
        self._item_type = item_type
        self._swallow_errors = swallow_errors
        self._cancel_event = cancel_event

        self._items: list[T] = []
        self._pos = 0
        self._cursor: Optional[str] = self._query.cursor
        self._done = False
        self.error: Optional[SequenceError] = None
        self.pages_fetched = 0

    @property
    def cursor(self) -> Optional[str]:
        """Cursor of the most recently fetched page."""
        return self._cursor

    def __aiter__(self) -> "PageIterator[T]":
        return self

    async def __anext__(self) -> T:
        while self._pos >= len(self._items):
            if self._done:
                raise StopAsyncIteration
            await self._fetch()
        item = self._items[self._pos]
        self._pos += 1
        return item

    async def _fetch(self) -> None:
        query = self._query.with_cursor(self._cursor)
        try:
            page = await fetch_page(
                self._executor,
                self._action,
                query,
                self._item_type,
                cancel_event=self._cancel_event,
            )
        except RequestCancelledError:
            self._done = True
            raise
        except SequenceError as exc:
            self._done = True
            self.error = exc
            if not self._swallow_errors:
                raise
            logger.warning("%s listing stopped early: %s", self._action, exc)
            return

        self.pages_fetched += 1
        self._items = page.items
        self._pos = 0
        self._cursor = page.cursor
        if page.last_page or not page.items:
            self._done = True
        elif not page.cursor:
            # refetching without a cursor would restart the listing
            logger.warning("%s page has no cursor; stopping", self._action)
            self._done = True


async def iter_pages(
    executor: "RequestExecutor",
    action: str,
    query: Optional[QuerySpec] = None,
    item_type: Any = dict,
    *,
    cancel_event: Optional[asyncio.Event] = None,
) -> AsyncIterator[Page[Any]]:
    """Yield whole non-empty pages until the last one.

    Fetch errors are raised to the caller.
    """
    query = query or QuerySpec()
    while True:
        page = await fetch_page(
            executor, action, query, item_type, cancel_event=cancel_event
        )
        if not page.items:
            return
        yield page
        if page.last_page:
            return
        if not page.cursor:
            logger.warning("%s page has no cursor; stopping", action)
            return
        query = query.with_cursor(page.cursor)
