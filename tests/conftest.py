"""Shared pytest fixtures for seqledger tests."""

import json

import httpx

from seqledger.client import SequenceClient
from seqledger.executor import RequestExecutor
from seqledger.retry import RetryPolicy

# Standard response fixtures
LEDGER_URL = "https://api.seq.test/team-1/ledger-1"
CREDENTIAL = "cred_test_token"
REQUEST_ID = "3f7c1a2b9e0d"


def make_response(status_code: int, body, *, request_id: str = REQUEST_ID) -> httpx.Response:
    """Create an httpx.Response as the ledger API would send it."""
    headers = {"Chain-Request-ID": request_id} if request_id else {}
    return httpx.Response(status_code=status_code, json=body, headers=headers)


def make_page(items, *, last_page: bool = False, cursor: str = "") -> dict:
    return {"items": items, "last_page": last_page, "cursor": cursor}


def request_body(request: httpx.Request) -> dict:
    return json.loads(request.content)


def make_executor(handler, **policy) -> RequestExecutor:
    """Create a RequestExecutor over httpx.MockTransport."""

    async def resolve() -> str:
        return LEDGER_URL

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RequestExecutor(
        http_client,
        CREDENTIAL,
        retry_policy=RetryPolicy(**policy),
        resolve_base_url=resolve,
    )


def make_client(handler, **kwargs) -> SequenceClient:
    """Create a SequenceClient with MockTransport and a known ledger URL."""
    kwargs.setdefault("ledger_url", LEDGER_URL)
    kwargs.setdefault("retry_policy", RetryPolicy(max_retries=0))
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SequenceClient(
        "ledger-1",
        CREDENTIAL,
        http_client=http_client,
        **kwargs,
    )
