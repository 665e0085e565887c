"""Retrying execution of ledger API actions."""

from __future__ import annotations

import asyncio
import json
import logging
import secrets
import uuid
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from seqledger._version import __version__
from seqledger.classify import classify_response
from seqledger.errors import BadURLError, JSONError, TransportError
from seqledger.retry import RetryPolicy, RetryState, with_retry

T = TypeVar("T")

USER_AGENT = f"seqledger-python/{__version__}"

logger = logging.getLogger(__name__)


def encode_body(body: Any) -> bytes:
    """Serialize a request body: pydantic models, plain JSON values or None."""
    if body is None:
        body = {}
    elif isinstance(body, BaseModel):
        body = body.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(body).encode("utf-8")


def _check_url(url: str) -> httpx.URL:
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise BadURLError(str(exc)) from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise BadURLError(f"not an absolute http(s) URL: {url!r}")
    return parsed


class RequestExecutor:
    """Runs one logical API call as a series of POST attempts.

    Every logical call gets its own idempotency key, reused by all of its
    attempts, so the server can collapse retried mutations into a single
    operation.

    Args:
        http_client: Transport shared by all calls.
        credential: API credential sent with every request.
        retry_policy: Backoff configuration.
        resolve_base_url: Awaitable returning the ledger base URL, used to
            build ``{base}/{action}`` URLs in ``execute``.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        credential: str,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        resolve_base_url: Optional[Callable[[], Awaitable[str]]] = None,
        user_agent: str = USER_AGENT,
    ) -> None:
        self._client = http_client
        self._credential = credential
        self._retry_policy = retry_policy or RetryPolicy()
        self._resolve_base_url = resolve_base_url
        self._user_agent = user_agent

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    async def execute(
        self,
        action: str,
        body: Any,
        response_type: Any = dict,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Any:
        """POST ``body`` to the ledger endpoint for ``action``.

        Args:
            action: API action name, e.g. "list-accounts".
            body: Request payload (pydantic model, dict, list or None).
            response_type: Type the 2xx body is decoded into; anything a
                pydantic TypeAdapter accepts.
            cancel_event: Stops the retry loop between attempts when set.

        Returns:
            The decoded response.

        Raises:
            APIError: non-retriable API error, or the last retriable one.
            ConnectivityError / TransportError: when retries run out.
            JSONError: malformed error body or undecodable 2xx body.
            RequestCancelledError: cancel_event was set.
        """
        if self._resolve_base_url is None:
            raise BadURLError("no ledger base URL configured")
        base_url = await self._resolve_base_url()
        return await self.post(
            f"{base_url.rstrip('/')}/{action}",
            body,
            response_type,
            cancel_event=cancel_event,
        )

    async def post(
        self,
        url: str,
        body: Any,
        response_type: Any = dict,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Any:
        """Like ``execute`` but against an already resolved URL."""
        endpoint = _check_url(url)
        content = encode_body(body)
        adapter: TypeAdapter[Any] = TypeAdapter(response_type)
        request_id = secrets.token_hex(10)
        state = RetryState(idempotency_key=str(uuid.uuid4()))

        async def _attempt(state: RetryState) -> Any:
            attempt_id = f"{request_id}/{state.attempt}"
            logger.debug("POST %s (Id: %s)", endpoint.path, attempt_id)
            try:
                response = await self._client.post(
                    endpoint,
                    content=content,
                    headers=self._build_headers(state.idempotency_key, attempt_id),
                )
            except httpx.TransportError as exc:
                raise TransportError(f"{type(exc).__name__}: {exc}") from exc

            classification = classify_response(response)
            if classification.error is not None:
                raise classification.error

            # bodiless replies are fine when the caller ignores the result
            if not response.content and response_type in (Any, None):
                return None
            try:
                return adapter.validate_json(response.content)
            except ValidationError as exc:
                raise JSONError(
                    f"Unable to decode response body. {exc}",
                    classification.request_id,
                ) from exc

        return await with_retry(
            _attempt,
            self._retry_policy,
            state=state,
            cancel_event=cancel_event,
        )

    def _build_headers(self, idempotency_key: str, attempt_id: str) -> dict[str, str]:
        return {
            "User-Agent": self._user_agent,
            "Credential": self._credential,
            "Idempotency-Key": idempotency_key,
            "Id": attempt_id,
            "Content-Type": "application/json",
        }
