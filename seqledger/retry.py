"""Exponential backoff with jitter for retriable ledger API failures."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from seqledger.errors import RequestCancelledError, SequenceError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class RetryPolicy:
    """Configuration for exponential backoff retry.

    The defaults cover the longest a ledger leader election can take.
    """

    max_retries: int = 10
    base_delay: float = 0.040  # seconds
    max_delay: float = 15.0  # seconds

    def get_max_delay(self, retry: int) -> float:
        """Upper bound of the delay before the given retry (1-indexed)."""
        delay = self.base_delay * (2 ** (retry - 1))
        return min(delay, self.max_delay)

    def get_delay(self, retry: int) -> float:
        """Jittered delay before the given retry, in [max/2, max] seconds."""
        if retry < 1:
            return 0.0
        ceiling = self.get_max_delay(retry)
        return random.uniform(ceiling / 2, ceiling)


@dataclass
class RetryState:
    """Per-call retry bookkeeping, discarded when the call ends."""

    idempotency_key: str = ""
    attempt: int = 0
    last_error: Optional[SequenceError] = None


async def _backoff(delay: float, cancel_event: Optional[asyncio.Event]) -> bool:
    """Sleep for ``delay`` seconds. Returns True if cancelled meanwhile."""
    if cancel_event is None:
        await asyncio.sleep(delay)
        return False
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return False
    return True


async def with_retry(
    fn: Callable[[RetryState], Awaitable[T]],
    policy: RetryPolicy,
    *,
    state: Optional[RetryState] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> T:
    """Execute an async function with exponential backoff retry.

    Retries on SequenceError whose ``retriable`` attribute is true; any
    other error is raised at once. The first attempt never waits.

    Args:
        fn: Async function performing one attempt. It receives the shared
            RetryState with ``attempt`` set (1-based).
        policy: Retry policy configuration.
        state: State to reuse, e.g. one carrying an idempotency key.
        cancel_event: When set, no further attempt is started and the
            pending backoff sleep is cut short.

    Returns:
        The result of the function call.

    Raises:
        RequestCancelledError: cancel_event was set between attempts.
        The last retriable error if all retries are exhausted.
    """
    state = state or RetryState()
    for attempt in range(1, policy.max_retries + 2):
        if attempt > 1:
            delay = policy.get_delay(attempt - 1)
            logger.warning(
                "retrying after %s (attempt %d of %d, waiting %.3fs)",
                state.last_error.__class__.__name__,
                attempt,
                policy.max_retries + 1,
                delay,
            )
            if await _backoff(delay, cancel_event):
                raise RequestCancelledError(state.last_error)

        if cancel_event is not None and cancel_event.is_set():
            raise RequestCancelledError(state.last_error)

        state.attempt = attempt
        try:
            return await fn(state)
        except SequenceError as e:
            if not e.retriable:
                raise
            state.last_error = e

    # Every attempt failed with a retriable error
    assert state.last_error is not None
    raise state.last_error
