"""Sequence ledger error types matching the API's error response format."""

from __future__ import annotations

from typing import Any, Optional


class SequenceError(Exception):
    """Base class for every error raised by the SDK."""

    retriable = False

    def __init__(self, message: str, request_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.request_id = request_id

    def __str__(self) -> str:
        if self.request_id:
            return f"Message: {self.message} Request-ID: {self.request_id}"
        return f"Message: {self.message}"


class APIError(SequenceError):
    """Structured error returned by the ledger API.

    ``nested`` holds per-item errors, e.g. the individual actions of a
    batch transaction that were rejected.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 0,
        retriable: bool = False,
        detail: Optional[str] = None,
        request_id: Optional[str] = None,
        nested: Optional[list["APIError"]] = None,
    ) -> None:
        super().__init__(message, request_id)
        self.code = code
        self.status_code = status_code
        self.retriable = retriable
        self.detail = detail
        self.nested = nested or []

    @classmethod
    def from_response(
        cls,
        status_code: int,
        body: dict[str, Any],
        request_id: Optional[str] = None,
    ) -> "APIError":
        """Create APIError from an API error response JSON object.

        Raises pydantic.ValidationError if the body does not have the
        error shape.
        """
        from seqledger.models import ErrorBody

        return ErrorBody.model_validate(body).to_error(status_code, request_id)

    def __str__(self) -> str:
        s = ""
        if self.code:
            s += f"Code: {self.code} "
        s += f"Message: {self.message}"
        if self.detail:
            s += f" Detail: {self.detail}"
        if self.request_id:
            s += f" Request-ID: {self.request_id}"
        return s

    def __repr__(self) -> str:
        return (
            f"APIError(code={self.code!r}, message={self.message!r}, "
            f"status_code={self.status_code}, retriable={self.retriable})"
        )


class ConnectivityError(SequenceError):
    """Response arrived without the headers set on every ledger API response.

    Usually a misconfigured proxy or another upstream network problem, so
    the body cannot be trusted and the request is always retried.
    """

    retriable = True

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(
            "Response HTTP header field Chain-Request-ID is unset. There may be "
            "network issues. Please check your local network settings. "
            f"status={status_code} body={body}"
        )
        self.status_code = status_code
        self.body = body


class TransportError(SequenceError):
    """Low-level I/O failure (connect, read or write) talking to the API."""

    retriable = True


class JSONError(SequenceError):
    """Response body could not be decoded.

    Only arises from a bug in the API or an upstream server spoofing the
    API's response headers.
    """


class BadURLError(SequenceError):
    """A malformed endpoint URL was provided."""


class ConfigurationError(SequenceError):
    """The client was constructed with missing or invalid settings."""


class RequestCancelledError(SequenceError):
    """The retry loop was stopped by the caller's cancel signal."""

    def __init__(self, last_error: Optional[SequenceError] = None) -> None:
        super().__init__(
            "request cancelled",
            request_id=getattr(last_error, "request_id", None),
        )
        self.last_error = last_error
