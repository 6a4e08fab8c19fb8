"""
Price Request Relay - off-chain half of a request/response price oracle

This module answers on-chain price requests with quotes from an HTTP source:
- RequestSubscription: Polls the oracle contract for request events
- RequestQueue: FIFO buffer of pending requests
- RetryFetcher: Quote fetching with a fixed retry budget
- QueueProcessor: Batch-wise processing and result submission
- Relay: Main orchestrator
- fetchers: Modular quote fetcher implementations
"""

from .errors import RelayError, SubmissionError, SubscriptionError
from .FetchOutcome import Failure, FetchOutcome, Success
from .FixedPoint import VALUE_SCALE_FACTOR, MalformedQuoteError, normalize_quote
from .OracleLedger import SENTINEL_VALUE, OracleLedger
from .OracleRequest import OracleRequest
from .QueueProcessor import ProcessorState, ProcessorStats, QueueProcessor
from .Relay import Relay
from .RelayConfig import DEFAULT_ORACLE_ADDRESS, RelayConfig
from .RequestQueue import RequestQueue
from .RequestSubscription import RequestSubscription
from .RetryFetcher import RetryFetcher

__all__ = [
    "DEFAULT_ORACLE_ADDRESS",
    "Failure",
    "FetchOutcome",
    "MalformedQuoteError",
    "OracleLedger",
    "OracleRequest",
    "ProcessorState",
    "ProcessorStats",
    "QueueProcessor",
    "Relay",
    "RelayConfig",
    "RelayError",
    "RequestQueue",
    "RequestSubscription",
    "RetryFetcher",
    "SENTINEL_VALUE",
    "SubmissionError",
    "SubscriptionError",
    "Success",
    "VALUE_SCALE_FACTOR",
    "normalize_quote",
]
