"""Classification of completed HTTP exchanges with the ledger API."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional

import httpx
from pydantic import ValidationError

from seqledger.errors import (
    APIError,
    ConnectivityError,
    JSONError,
    SequenceError,
)

# Set by the API server on every response it produces. Without it we are
# probably talking to a gateway or proxy and the body may not be JSON.
TRACING_HEADER = "Chain-Request-ID"

# Bodies quoted in ConnectivityError messages are cut to this many chars.
MAX_QUOTED_BODY = 512


class Outcome(str, Enum):
    """Possible outcomes of one HTTP exchange.

    - SUCCESS: 2xx from the real service
    - CONNECTIVITY_ANOMALY: tracing header missing, response not trusted
    - API_ERROR: structured error from the service
    - MALFORMED: error status with an undecodable body
    """

    SUCCESS = "success"
    CONNECTIVITY_ANOMALY = "connectivity_anomaly"
    API_ERROR = "api_error"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class Classification:
    outcome: Outcome
    request_id: Optional[str] = None
    error: Optional[SequenceError] = None

    @property
    def retriable(self) -> bool:
        return self.error is not None and self.error.retriable


def classify(
    status_code: int,
    headers: Mapping[str, str],
    body: bytes,
) -> Classification:
    """Decide what a completed exchange represents.

    Args:
        status_code: HTTP status of the response.
        headers: Response headers. Lookups must be case-insensitive, as
            with ``httpx.Headers``.
        body: Raw response body.

    Returns:
        A Classification. For every outcome except SUCCESS, ``error`` is
        the exception the caller should raise.
    """
    request_id = headers.get(TRACING_HEADER)
    if not request_id:
        text = body.decode("utf-8", errors="replace")[:MAX_QUOTED_BODY]
        return Classification(
            Outcome.CONNECTIVITY_ANOMALY,
            error=ConnectivityError(status_code, text),
        )

    if status_code // 100 == 2:
        return Classification(Outcome.SUCCESS, request_id=request_id)

    try:
        data = json.loads(body)
        if not isinstance(data, dict):
            raise ValueError(f"expected JSON object, got {type(data).__name__}")
        err = APIError.from_response(status_code, data, request_id)
    except (ValueError, ValidationError) as exc:
        return Classification(
            Outcome.MALFORMED,
            request_id=request_id,
            error=JSONError(
                f"Unable to read error body (status={status_code}). {exc}",
                request_id,
            ),
        )

    if not err.code:
        return Classification(
            Outcome.MALFORMED,
            request_id=request_id,
            error=JSONError(
                f"Error response without code (status={status_code}): "
                f"{err.message or 'no message'}",
                request_id,
            ),
        )
    return Classification(Outcome.API_ERROR, request_id=request_id, error=err)


def classify_response(response: httpx.Response) -> Classification:
    """Classify an ``httpx.Response`` whose body has been read."""
    return classify(response.status_code, response.headers, response.content)
