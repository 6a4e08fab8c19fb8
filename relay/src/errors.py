"""Relay-level exceptions.

Fetch failures are not listed here: they are FetcherError (see fetchers.base)
and are absorbed by RetryFetcher. The classes below are the failures that
escape a single request's processing.
"""


class RelayError(Exception):
    """Base exception for unrecoverable relay failures."""

    pass


class SubscriptionError(RelayError):
    """Raised when the request event subscription can no longer deliver events."""

    pass


class SubmissionError(RelayError):
    """Raised when the ledger does not accept a result transaction.

    :ivar request_id: Id of the request whose result was rejected.
    """

    def __init__(self, request_id: int, message: str):
        """Initialize the submission error.

        :param request_id: Request id the transaction answered.
        :param message: Reason reported by the submitter or receipt.
        """
        self.request_id = request_id
        super().__init__(f"Request {request_id}: {message}")
