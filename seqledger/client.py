"""Sequence ledger async HTTP client."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Optional, Sequence

import httpx

from seqledger.config import ClientSettings
from seqledger.errors import ConfigurationError
from seqledger.executor import RequestExecutor
from seqledger.models import HelloResponse, TransactionAction, TransactionRequest
from seqledger.pagination import Page, PageIterator, fetch_page, iter_pages
from seqledger.query import QuerySpec
from seqledger.retry import RetryPolicy

DEFAULT_API_URL = "https://api.seq.com"

logger = logging.getLogger(__name__)


class SequenceClient:
    """Async client for a Sequence ledger.

    Usage:
        async with SequenceClient("my-ledger", "cred_xxx") as client:
            async for account in client.iter_items("list-accounts"):
                print(account["id"])
    """

    def __init__(
        self,
        ledger_name: str,
        credential: str,
        *,
        addr: Optional[str] = None,
        ledger_url: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not ledger_name:
            raise ConfigurationError("No ledger name provided")
        if not credential:
            raise ConfigurationError("No credential provided")
        self._ledger_name = ledger_name
        self._api_url = f"https://{addr}" if addr else DEFAULT_API_URL
        self._ledger_url = ledger_url.rstrip("/") if ledger_url else None
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=False,
        )
        self._executor = RequestExecutor(
            self._client,
            credential,
            retry_policy=retry_policy,
            resolve_base_url=self.hello,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ClientSettings] = None,
        **kwargs: Any,
    ) -> "SequenceClient":
        """Build a client from ClientSettings (the environment by default)."""
        settings = settings or ClientSettings()
        kwargs.setdefault(
            "retry_policy", RetryPolicy(max_retries=settings.max_retries)
        )
        return cls(
            settings.ledger_name,
            settings.credential,
            addr=settings.addr,
            timeout=settings.timeout,
            **kwargs,
        )

    @property
    def ledger_name(self) -> str:
        return self._ledger_name

    @property
    def executor(self) -> RequestExecutor:
        return self._executor

    async def __aenter__(self) -> "SequenceClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._owns_client:
            await self._client.aclose()

    # -----------------------------------------------------------------
    # Endpoint discovery
    # -----------------------------------------------------------------

    async def hello(self) -> str:
        """POST {api}/hello -- Resolve the ledger URL.

        The result is cached; later calls return it without a request.
        """
        if self._ledger_url is None:
            resp = await self._executor.post(
                f"{self._api_url}/hello", {}, HelloResponse
            )
            self._ledger_url = f"https://{resp.addr}/{resp.team_name}/{self._ledger_name}"
            logger.info("resolved ledger %s to %s", self._ledger_name, self._ledger_url)
        return self._ledger_url

    # -----------------------------------------------------------------
    # Generic actions
    # -----------------------------------------------------------------

    async def request(
        self,
        action: str,
        body: Any = None,
        response_type: Any = dict,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Any:
        """POST {ledger}/{action} -- Perform a single API action.

        Args:
            action: The requested API action, e.g. "create-account".
            body: Payload sent as JSON.
            response_type: Type the response JSON is decoded into.
            cancel_event: Stops retrying between attempts when set.
        """
        return await self._executor.execute(
            action, body, response_type, cancel_event=cancel_event
        )

    async def get_page(
        self,
        action: str,
        query: Optional[QuerySpec] = None,
        item_type: Any = dict,
        *,
        cursor: Optional[str] = None,
    ) -> Page[Any]:
        """Fetch one page of a list or sum action.

        Args:
            action: List action, e.g. "list-accounts" or "sum-tokens".
            query: Query to run.
            item_type: Type each item is decoded into.
            cursor: Cursor of a previous page; only the cursor is sent, as
                it already encodes the rest of the query.
        """
        if cursor is not None:
            query = QuerySpec(cursor=cursor)
        return await fetch_page(self._executor, action, query or QuerySpec(), item_type)

    def iter_items(
        self,
        action: str,
        query: Optional[QuerySpec] = None,
        item_type: Any = dict,
        *,
        swallow_errors: bool = False,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PageIterator[Any]:
        """Iterate lazily over every item matching ``query``.

        Fetch errors are raised from the iteration unless
        ``swallow_errors`` is set, in which case iteration just stops and
        the error is left on the iterator's ``error`` attribute.
        """
        return PageIterator(
            self._executor,
            action,
            query,
            item_type,
            swallow_errors=swallow_errors,
            cancel_event=cancel_event,
        )

    def iter_pages(
        self,
        action: str,
        query: Optional[QuerySpec] = None,
        item_type: Any = dict,
    ) -> AsyncIterator[Page[Any]]:
        """Iterate lazily over whole pages matching ``query``."""
        return iter_pages(self._executor, action, query, item_type)

    # -----------------------------------------------------------------
    # Transactions
    # -----------------------------------------------------------------

    async def transact(
        self,
        actions: Sequence[TransactionAction],
        *,
        reference_data: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Build, sign and submit a transaction.

        Each of the three steps is its own logical call with its own
        idempotency key and retries.

        Args:
            actions: Issue, Transfer and Retire actions.
            reference_data: Key-value data recorded in the transaction.

        Returns:
            The submitted transaction.
        """
        request = TransactionRequest(actions=list(actions), reference_data=reference_data)
        template = await self.request("build-transaction", request)
        template = await self.request("sign-transaction", {"transaction": template})
        return await self.request("submit-transaction", {"transaction": template})

    # -----------------------------------------------------------------
    # Ledger utilities
    # -----------------------------------------------------------------

    async def stats(self) -> dict[str, Any]:
        """POST stats -- Flavor, account and transaction counts."""
        return await self.request("stats")

    async def reset(self) -> None:
        """POST reset -- Delete all data in a development ledger."""
        await self.request("reset", {}, Any)
