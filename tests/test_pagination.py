"""Pagination tests against a paging MockTransport server."""

import httpx
import pytest
from pydantic import BaseModel
from unittest.mock import AsyncMock, patch

from seqledger.errors import APIError, TransportError
from seqledger.pagination import Page, PageIterator, iter_pages
from seqledger.query import QuerySpec

from tests.conftest import make_executor, make_page, make_response, request_body


class Key(BaseModel):
    id: str


class ScriptedServer:
    """Serves a fixed list of pages, recording every request body."""

    def __init__(self, pages):
        self.pages = list(pages)
        self.bodies = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.bodies.append(request_body(request))
        page = self.pages[len(self.bodies) - 1]
        if isinstance(page, httpx.Response):
            return page
        return make_response(200, page)


class PagingServer:
    """Pages over ``total`` keys honoring page_size and cursors."""

    def __init__(self, total: int):
        self.keys = [{"id": f"key-{n}"} for n in range(total)]
        self.bodies = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = request_body(request)
        self.bodies.append(body)
        size = body.get("page_size") or 100
        start = int(body["cursor"]) if body.get("cursor") else 0
        items = self.keys[start:start + size]
        end = start + len(items)
        return make_response(
            200, make_page(items, last_page=end >= len(self.keys), cursor=str(end))
        )


async def collect(iterator):
    return [item async for item in iterator]


class TestPageIterator:
    async def test_yields_items_across_pages_in_order(self):
        server = ScriptedServer(
            [
                make_page(["a", "b"], cursor="c1"),
                make_page(["c"], cursor="c2"),
                make_page([], last_page=True, cursor="c3"),
            ]
        )
        iterator = PageIterator(make_executor(server), "list-things", item_type=str)
        assert await collect(iterator) == ["a", "b", "c"]
        assert [b.get("cursor") for b in server.bodies] == [None, "c1", "c2"]

    async def test_empty_page_terminates_without_last_page(self):
        server = ScriptedServer(
            [
                make_page(["a", "b"], cursor="c1"),
                {"items": [], "cursor": "c2"},
            ]
        )
        iterator = PageIterator(make_executor(server), "list-things", item_type=str)
        assert await collect(iterator) == ["a", "b"]
        assert len(server.bodies) == 2

    async def test_last_page_stops_without_refetch(self):
        server = ScriptedServer([make_page(["a"], last_page=True, cursor="c1")])
        iterator = PageIterator(make_executor(server), "list-things", item_type=str)
        assert await collect(iterator) == ["a"]
        assert len(server.bodies) == 1

    async def test_page_size_five_over_eleven_items(self):
        server = PagingServer(11)
        query = QuerySpec(page_size=5)
        iterator = PageIterator(make_executor(server), "list-keys", query, Key)
        keys = await collect(iterator)
        assert [k.id for k in keys] == [f"key-{n}" for n in range(11)]
        assert iterator.pages_fetched == 3
        assert all(b["page_size"] == 5 for b in server.bodies)

    async def test_short_page_does_not_mean_exhausted(self):
        server = ScriptedServer(
            [
                make_page(["a"], cursor="c1"),
                make_page(["b", "c", "d"], cursor="c2"),
                make_page(["e"], last_page=True, cursor="c3"),
            ]
        )
        query = QuerySpec(page_size=3)
        iterator = PageIterator(make_executor(server), "list-things", query, str)
        assert await collect(iterator) == ["a", "b", "c", "d", "e"]

    async def test_no_read_ahead(self):
        server = ScriptedServer(
            [
                make_page(["a", "b"], cursor="c1"),
                make_page(["c"], last_page=True, cursor="c2"),
            ]
        )
        iterator = PageIterator(make_executor(server), "list-things", item_type=str)
        assert await iterator.__anext__() == "a"
        assert await iterator.__anext__() == "b"
        assert len(server.bodies) == 1
        assert await iterator.__anext__() == "c"
        assert len(server.bodies) == 2

    async def test_query_is_kept_and_cursor_replaced(self):
        server = ScriptedServer(
            [
                make_page(["a"], cursor="c1"),
                make_page(["b"], last_page=True, cursor="c2"),
            ]
        )
        query = QuerySpec(filter="tags.x = $1", filter_params=[1], page_size=1)
        iterator = PageIterator(make_executor(server), "list-things", query, str)
        await collect(iterator)
        assert server.bodies[1]["filter"] == "tags.x = $1"
        assert server.bodies[1]["cursor"] == "c1"
        assert query.cursor is None

    async def test_resumes_from_initial_cursor(self):
        server = ScriptedServer([make_page(["z"], last_page=True, cursor="c9")])
        iterator = PageIterator(
            make_executor(server), "list-things", QuerySpec(cursor="c8"), str
        )
        assert await collect(iterator) == ["z"]
        assert server.bodies[0]["cursor"] == "c8"
        assert iterator.cursor == "c9"

    async def test_missing_cursor_stops_instead_of_restarting(self):
        server = ScriptedServer(
            [
                {"items": ["a", "b"], "last_page": False, "cursor": None},
                make_page(["a", "b"], cursor="c1"),
            ]
        )
        iterator = PageIterator(make_executor(server), "list-things", item_type=str)
        assert await collect(iterator) == ["a", "b"]
        assert len(server.bodies) == 1
        assert iterator.error is None

    async def test_exhausted_iterator_does_not_restart(self):
        server = ScriptedServer([make_page(["a"], last_page=True)])
        iterator = PageIterator(make_executor(server), "list-things", item_type=str)
        assert await collect(iterator) == ["a"]
        assert await collect(iterator) == []
        assert len(server.bodies) == 1


class TestPageIteratorErrors:
    @patch("seqledger.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_fetch_error_is_raised_by_default(self, mock_sleep):
        server = ScriptedServer(
            [
                make_page(["a"], cursor="c1"),
                make_response(400, {"seq_code": "SEQ706", "message": "bad cursor"}),
            ]
        )
        iterator = PageIterator(make_executor(server), "list-things", item_type=str)
        assert await iterator.__anext__() == "a"
        with pytest.raises(APIError) as exc_info:
            await iterator.__anext__()
        assert exc_info.value.code == "SEQ706"
        assert iterator.error is exc_info.value
        with pytest.raises(StopAsyncIteration):
            await iterator.__anext__()

    @patch("seqledger.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_swallow_errors_ends_quietly(self, mock_sleep):
        def handler(request: httpx.Request) -> httpx.Response:
            if request_body(request).get("cursor"):
                raise httpx.ConnectError("connection refused")
            return make_response(200, make_page(["a", "b"], cursor="c1"))

        executor = make_executor(handler, max_retries=2)
        iterator = PageIterator(executor, "list-things", item_type=str, swallow_errors=True)
        assert await collect(iterator) == ["a", "b"]
        assert isinstance(iterator.error, TransportError)
        assert mock_sleep.call_count == 2

    async def test_natural_end_has_no_error(self):
        server = ScriptedServer([make_page(["a"], last_page=True)])
        iterator = PageIterator(
            make_executor(server), "list-things", item_type=str, swallow_errors=True
        )
        await collect(iterator)
        assert iterator.error is None


class TestIterPages:
    async def test_yields_pages(self):
        server = PagingServer(11)
        executor = make_executor(server)
        pages = [p async for p in iter_pages(executor, "list-keys", QuerySpec(page_size=5), Key)]
        assert [len(p.items) for p in pages] == [5, 5, 1]
        assert [p.last_page for p in pages] == [False, False, True]
        assert all(isinstance(p, Page) for p in pages)
        assert isinstance(pages[0].items[0], Key)

    async def test_skips_trailing_empty_page(self):
        server = ScriptedServer(
            [make_page(["a"], cursor="c1"), make_page([], last_page=True)]
        )
        pages = [p async for p in iter_pages(make_executor(server), "list-things", None, str)]
        assert [p.items for p in pages] == [["a"]]

    async def test_stops_on_page_without_cursor(self):
        server = ScriptedServer(
            [make_page(["a"]), make_page(["a"], cursor="c1")]
        )
        pages = [p async for p in iter_pages(make_executor(server), "list-things", None, str)]
        assert [p.items for p in pages] == [["a"]]
        assert len(server.bodies) == 1
