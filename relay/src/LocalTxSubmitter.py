"""LocalTxSubmitter: sign with a local key and send over JSON-RPC."""

import logging
from typing import Any

from web3 import Web3
from web3.types import TxParams

from .TxSubmitter import TxSubmitter

logger = logging.getLogger(__name__)


class LocalTxSubmitter(TxSubmitter):
    """Submitter for a Web3 instance with a signing middleware installed.

    ContractUtility installs the signing middleware and default account,
    so send_transaction() signs locally before broadcasting.

    :ivar w3: Web3 instance for transaction submission.
    :ivar receipt_timeout: Seconds to wait for the transaction receipt.
    """

    def __init__(self, w3: Web3, receipt_timeout: float = 120.0) -> None:
        """Initialize the local submitter.

        :param w3: Web3 instance with a default account and signer.
        :param receipt_timeout: Seconds to wait for inclusion (default: 120).
        """
        self.w3 = w3
        self.receipt_timeout = receipt_timeout

    def submit_tx(self, tx: TxParams) -> dict[str, Any]:
        """Submit a transaction directly via Web3.

        :param tx: Transaction parameters.
        :returns: Dict with status data and the receipt.
        """
        tx_hash = self.w3.eth.send_transaction(tx)
        logger.debug(f"Sent transaction {tx_hash.hex()}")

        tx_receipt = self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.receipt_timeout
        )

        if tx_receipt["status"] == 1:
            return {"data": {"ok": b""}, "tx_receipt": tx_receipt}
        return {
            "data": {"fail": {"message": f"transaction {tx_hash.hex()} reverted"}},
            "tx_receipt": tx_receipt,
        }
