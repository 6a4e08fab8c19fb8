"""Relay: wires event intake, queue processing and submission together.

Architecture:
    - RequestSubscription polls the oracle contract for request events and
      appends them to the RequestQueue
    - QueueProcessor drains the queue every tick, fetching a quote per
      request through RetryFetcher and answering via OracleLedger
    - SIGINT/SIGTERM stop the processor after the batch in flight
    - A dead subscription stops the processor with an error
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

from .AppdTxSubmitter import AppdTxSubmitter
from .ContractUtility import ContractUtility
from .fetchers import BaseFetcher, get_fetcher
from .LocalTxSubmitter import LocalTxSubmitter
from .OracleLedger import OracleLedger
from .QueueProcessor import QueueProcessor
from .RequestQueue import RequestQueue
from .RequestSubscription import RequestSubscription
from .RetryFetcher import RetryFetcher

if TYPE_CHECKING:
    from .RelayConfig import RelayConfig
    from .TxSubmitter import TxSubmitter

logger = logging.getLogger(__name__)


class Relay:
    """Main orchestrator of the price request relay.

    :ivar config: Relay configuration.
    :ivar ledger: Oracle contract adapter.
    :ivar queue: Pending requests.
    :ivar subscription: Request event intake.
    :ivar processor: Queue consumer.
    """

    def __init__(
        self,
        config: RelayConfig,
        ledger: OracleLedger | None = None,
        fetcher: BaseFetcher | None = None,
    ) -> None:
        """Initialize the relay.

        :param config: Relay configuration.
        :param ledger: Optional ready-made ledger; built from config if omitted.
        :param fetcher: Optional quote fetcher; looked up by config.source if omitted.
        :raises ValueError: If the configured source is unknown.
        """
        self.config = config
        self.ledger = ledger or self._build_ledger(config)

        if fetcher is None:
            fetcher = get_fetcher(
                config.source, api_key=config.api_key, timeout=config.fetch_timeout
            )

        self.retry_fetcher = RetryFetcher(
            fetcher,
            base=config.pair_base,
            quote=config.pair_quote,
            max_retries=config.max_retries,
            retry_backoff=config.retry_backoff,
            fetch_timeout=config.fetch_timeout,
            scale_factor=config.value_scale_factor,
        )
        self.queue = RequestQueue()
        self.subscription = RequestSubscription(
            self.ledger,
            poll_interval=config.poll_interval,
            max_poll_failures=config.max_poll_failures,
            max_block_range=config.max_block_range,
            start_block=config.start_block,
        )
        self.processor = QueueProcessor(
            self.queue,
            self.retry_fetcher,
            self.ledger,
            batch_size=config.batch_size,
            tick_interval=config.tick_interval,
            submit_retries=config.submit_retries,
            submit_backoff=config.retry_backoff,
        )

        logger.info(
            f"Relay initialized: oracle={config.oracle_address}, "
            f"source={fetcher.name}, pair={self.retry_fetcher.pair}"
        )

    @staticmethod
    def _build_ledger(config: RelayConfig) -> OracleLedger:
        """Connect to the network and bind the oracle contract."""
        contract_utility = ContractUtility(
            config.network,
            rpc_url=config.rpc_url,
            private_key=config.private_key if config.submitter == "local" else None,
        )
        w3 = contract_utility.w3

        submitter: TxSubmitter
        if config.submitter == "appd":
            submitter = AppdTxSubmitter(config.appd_url)
        else:
            if contract_utility.account is None:
                raise ValueError(
                    f"A private key is required for the local submitter on {config.network}"
                )
            submitter = LocalTxSubmitter(w3)

        abi = ContractUtility.get_contract(config.abi_path)
        contract = w3.eth.contract(
            address=w3.to_checksum_address(config.oracle_address), abi=abi
        )
        return OracleLedger(w3, contract, submitter)

    def _install_signal_handlers(self) -> list[signal.Signals]:
        """Route SIGINT/SIGTERM to a graceful processor shutdown."""
        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.processor.request_shutdown)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                # Not on the main thread, or no signal support on this platform
                logger.debug(f"Cannot install handler for {sig.name}")
        return installed

    async def run(self) -> None:
        """Run until a shutdown signal or a fatal error.

        :raises RelayError: If the relay stopped because of a fatal error.
        """
        installed = self._install_signal_handlers()
        self.subscription.start(self.queue.enqueue, on_error=self.processor.fail)

        try:
            await self.processor.run()
        finally:
            self.subscription.cancel()
            await self.subscription.wait_closed()
            await BaseFetcher.close_shared_client()

            loop = asyncio.get_running_loop()
            for sig in installed:
                loop.remove_signal_handler(sig)
