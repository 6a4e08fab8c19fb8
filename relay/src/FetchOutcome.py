"""FetchOutcome: result of fetching a quote for one request.

A tagged union of Success and Failure. Both are terminal: a Failure means the
retry budget is spent, not that the caller should retry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Success:
    """A normalized quote.

    :ivar value: Scaled integer value, ready for submission.
    :ivar attempts: Attempts used, including the successful one.
    """

    value: int
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """No quote could be produced.

    :ivar reason: Human readable reason, including the last error seen.
    :ivar attempts: Attempts made before giving up.
    """

    reason: str
    attempts: int

    @property
    def ok(self) -> bool:
        return False


FetchOutcome = Union[Success, Failure]
