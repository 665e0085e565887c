"""Sequence ledger Python SDK -- resilient async client for the ledger API."""

import logging

from seqledger._version import __version__
from seqledger.classify import Classification, Outcome, classify, classify_response
from seqledger.client import SequenceClient
from seqledger.config import ClientSettings
from seqledger.errors import (
    APIError,
    BadURLError,
    ConfigurationError,
    ConnectivityError,
    JSONError,
    RequestCancelledError,
    SequenceError,
    TransportError,
)
from seqledger.executor import RequestExecutor
from seqledger.models import Issue, Retire, TransactionRequest, Transfer
from seqledger.pagination import Page, PageIterator, iter_pages
from seqledger.query import QuerySpec
from seqledger.retry import RetryPolicy, RetryState, with_retry

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "SequenceClient",
    "ClientSettings",
    "RequestExecutor",
    "RetryPolicy",
    "RetryState",
    "with_retry",
    "QuerySpec",
    "Page",
    "PageIterator",
    "iter_pages",
    "Classification",
    "Outcome",
    "classify",
    "classify_response",
    "SequenceError",
    "APIError",
    "ConnectivityError",
    "TransportError",
    "JSONError",
    "BadURLError",
    "ConfigurationError",
    "RequestCancelledError",
    "Issue",
    "Transfer",
    "Retire",
    "TransactionRequest",
]
