"""OracleLedger: the oracle contract seen as an event log and a result sink.

Reads GetLatestEthPriceEvent logs (incoming requests) and answers them with
setLatestEthPrice transactions sent through a TxSubmitter. All methods are
blocking; async callers run them in a worker thread.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from .errors import SubmissionError
from .TxSubmitter import tx_succeeded

if TYPE_CHECKING:
    from web3 import Web3
    from web3.contract import Contract

    from .TxSubmitter import TxSubmitter

logger = logging.getLogger(__name__)

# Value submitted when no quote could be obtained.
SENTINEL_VALUE = 0


class OracleLedger:
    """Adapter around the deployed oracle contract.

    :ivar contract: Oracle contract instance.
    :ivar submitter: Submitting identity for result transactions.
    """

    REQUEST_EVENT = "GetLatestEthPriceEvent"

    def __init__(
        self,
        w3: Web3,
        contract: Contract,
        submitter: TxSubmitter,
        gas_price_fn: Callable[[], int] | None = None,
    ) -> None:
        """Initialize the ledger adapter.

        :param w3: Web3 instance the contract is bound to.
        :param contract: Oracle contract instance.
        :param submitter: Submitter used for result transactions.
        :param gas_price_fn: Callable returning current gas price
            (default: the node's eth_gasPrice).
        """
        self.w3 = w3
        self.contract = contract
        self.submitter = submitter
        self.gas_price_fn = gas_price_fn or (lambda: self.w3.eth.gas_price)

    def block_number(self) -> int:
        """Return the current chain head."""
        return self.w3.eth.block_number

    def get_request_events(self, from_block: int, to_block: int) -> list[Any]:
        """Read request events in an inclusive block range.

        :param from_block: First block to scan.
        :param to_block: Last block to scan.
        :returns: Decoded events in chain order.
        """
        event = getattr(self.contract.events, self.REQUEST_EVENT)
        return list(event.get_logs(from_block=from_block, to_block=to_block))

    def submit_result(self, request_id: int, value: int, requester: str) -> dict[str, Any]:
        """Answer a request on-chain.

        :param request_id: Request id from the event.
        :param value: Scaled quote, or SENTINEL_VALUE when none is available.
        :param requester: Caller contract that emitted the request.
        :returns: Submitter result.
        :raises SubmissionError: If the transaction cannot be built, sent, or
            is reverted.
        """
        try:
            tx_params = self.contract.functions.setLatestEthPrice(
                value, requester, request_id
            ).build_transaction({"gasPrice": self.gas_price_fn()})
            result = self.submitter.submit_tx(tx_params)
        except Exception as e:
            raise SubmissionError(request_id, f"{type(e).__name__}: {e}") from e

        if not tx_succeeded(result):
            raise SubmissionError(request_id, f"transaction failed: {result.get('data')}")

        logger.debug(f"Request {request_id}: submitted value={value}. Result: {result}")
        return result
