"""OracleRequest: one pending price query observed on-chain.

.. code-block:: python

    >>> req = OracleRequest("0xAbC...", 7, arrival_order=0)
    >>> str(req)
    'request#7 from 0xAbC... (arrival 0)'
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class OracleRequest:
    """A price query emitted by a caller contract.

    Two requests with the same request_id are still distinct objects in the
    queue; arrival_order tells them apart.

    :ivar requester: Address of the caller contract to answer.
    :ivar request_id: Request id assigned by the oracle contract.
    :ivar arrival_order: Monotonic sequence number assigned on intake.
    """

    requester: str
    request_id: int
    arrival_order: int

    def __str__(self) -> str:
        """Return a short identifier for log messages."""
        return f"request#{self.request_id} from {self.requester} (arrival {self.arrival_order})"

    @classmethod
    def from_event(cls, event: Mapping[str, Any], arrival_order: int) -> OracleRequest:
        """Build a request from a decoded GetLatestEthPriceEvent log.

        :param event: Decoded web3 event with ``args.callerAddress`` and ``args.id``.
        :param arrival_order: Sequence number for this intake.
        :returns: New OracleRequest.
        :raises ValueError: If the event lacks the expected arguments.
        """
        args = event.get("args") or {}
        try:
            requester = args["callerAddress"]
            request_id = int(args["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed request event: {event}") from e
        return cls(requester=requester, request_id=request_id, arrival_order=arrival_order)
