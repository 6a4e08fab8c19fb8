"""TxSubmitter: Abstract base class for the relay's submitting identity."""

from abc import ABC, abstractmethod
from typing import Any

from web3.types import TxParams


def tx_succeeded(result: dict[str, Any]) -> bool:
    """Check a submit_tx() result for success.

    Both implementations return ``{"data": {"ok": ...}}`` on success and
    ``{"data": {"fail": ...}}`` (or no data) otherwise.

    :param result: Value returned by TxSubmitter.submit_tx().
    :returns: True if the transaction was included and did not revert.
    """
    data = result.get("data")
    return isinstance(data, dict) and "ok" in data


class TxSubmitter(ABC):
    """Signs and sends transactions from one fixed account.

    Transactions from one account must be sent one at a time (nonces), so
    callers are expected to serialize calls to submit_tx().
    """

    @abstractmethod
    def submit_tx(self, tx: TxParams) -> dict[str, Any]:
        """Sign, send and wait for a transaction.

        :param tx: Transaction parameters.
        :returns: Result dict; see tx_succeeded().
        """
        pass
