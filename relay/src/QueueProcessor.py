"""QueueProcessor: drains the RequestQueue and answers requests on-chain.

State machine:

    IDLE --tick--> DRAINING --batch done--> IDLE
    IDLE --shutdown--> SHUTTING_DOWN

Every tick_interval seconds the processor takes up to batch_size requests
from the queue and handles them one after another:

    1. RetryFetcher.fetch_with_retry(request)
    2. Success(v) -> submit (request_id, v, requester)
       Failure    -> submit (request_id, 0, requester)

Requests are never processed concurrently: all results are sent from one
account, whose transactions must go out in nonce order.

A shutdown request is honoured between ticks. A batch that has started is
always finished, so every dequeued request gets its submission attempt.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .errors import RelayError, SubmissionError
from .FetchOutcome import Success
from .OracleLedger import SENTINEL_VALUE

if TYPE_CHECKING:
    from .OracleLedger import OracleLedger
    from .OracleRequest import OracleRequest
    from .RequestQueue import RequestQueue
    from .RetryFetcher import RetryFetcher

logger = logging.getLogger(__name__)


class ProcessorState(Enum):
    IDLE = "idle"
    DRAINING = "draining"
    SHUTTING_DOWN = "shutting_down"


@dataclass
class ProcessorStats:
    """Counters since the processor was created.

    :ivar batches: Non-empty batches processed.
    :ivar processed: Requests taken from the queue.
    :ivar succeeded: Requests answered with a real quote.
    :ivar sentinels: Requests answered with the sentinel value.
    :ivar dropped: Requests whose result could not be submitted.
    """

    batches: int = 0
    processed: int = 0
    succeeded: int = 0
    sentinels: int = 0
    dropped: int = 0


class QueueProcessor:
    """Periodic single-worker consumer of the RequestQueue.

    :ivar queue: Queue to drain (this processor is its only consumer).
    :ivar fetcher: Retry-wrapped quote source.
    :ivar ledger: Ledger receiving result transactions.
    :ivar batch_size: Maximum requests per tick.
    :ivar tick_interval: Seconds between ticks.
    :ivar submit_retries: Attempts per result transaction.
    :ivar submit_backoff: Seconds between submission attempts.
    :ivar stats: Processing counters.
    """

    DEFAULT_BATCH_SIZE = 3
    DEFAULT_TICK_INTERVAL = 2.0
    DEFAULT_SUBMIT_RETRIES = 3

    def __init__(
        self,
        queue: RequestQueue,
        fetcher: RetryFetcher,
        ledger: OracleLedger,
        batch_size: int = DEFAULT_BATCH_SIZE,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        submit_retries: int = DEFAULT_SUBMIT_RETRIES,
        submit_backoff: float = 2.0,
    ) -> None:
        """Initialize the processor.

        :param queue: Queue to drain.
        :param fetcher: Retry-wrapped quote source.
        :param ledger: Ledger receiving result transactions.
        :param batch_size: Maximum requests per tick (default: 3).
        :param tick_interval: Seconds between ticks (default: 2.0).
        :param submit_retries: Attempts per result transaction (default: 3).
        :param submit_backoff: Seconds between submission attempts (default: 2.0).
        :raises ValueError: If batch_size or submit_retries < 1.
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if submit_retries < 1:
            raise ValueError("submit_retries must be at least 1")

        self.queue = queue
        self.fetcher = fetcher
        self.ledger = ledger
        self.batch_size = batch_size
        self.tick_interval = tick_interval
        self.submit_retries = submit_retries
        self.submit_backoff = submit_backoff
        self.stats = ProcessorStats()

        self._state = ProcessorState.IDLE
        self._shutdown = asyncio.Event()
        self._error: BaseException | None = None

    @property
    def state(self) -> ProcessorState:
        return self._state

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown.is_set()

    def request_shutdown(self) -> None:
        """Ask the processor to stop after the batch in flight, if any."""
        if not self._shutdown.is_set():
            logger.info(f"Shutdown requested (state={self._state.value})")
            self._shutdown.set()

    def fail(self, error: BaseException) -> None:
        """Stop the processor because of a fatal error elsewhere.

        run() finishes the batch in flight and then raises RelayError.

        :param error: The fatal error, e.g. a SubscriptionError.
        """
        if self._error is None:
            self._error = error
        self.request_shutdown()

    async def run(self) -> None:
        """Tick until shutdown is requested.

        :raises RelayError: If fail() was called.
        """
        logger.info(
            f"Queue processor started (batch_size={self.batch_size}, "
            f"tick={self.tick_interval}s)"
        )

        while not self._shutdown.is_set():
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=self.tick_interval)
            except asyncio.TimeoutError:
                pass
            if self._shutdown.is_set():
                break
            await self.process_batch()

        self._state = ProcessorState.SHUTTING_DOWN

        pending = self.queue.peek_all()
        if pending:
            logger.warning(
                f"Stopping with {len(pending)} unprocessed requests: "
                f"{[r.request_id for r in pending]}"
            )
        logger.info(f"Queue processor stopped: {self.stats}")

        if self._error is not None:
            raise RelayError(f"Relay stopped: {self._error}") from self._error

    async def process_batch(self) -> int:
        """Run one tick: take up to batch_size requests and answer each.

        :returns: Number of requests taken from the queue.
        """
        if self._state is ProcessorState.SHUTTING_DOWN:
            return 0

        batch = self.queue.dequeue_up_to(self.batch_size)
        if not batch:
            return 0

        self._state = ProcessorState.DRAINING
        logger.debug(
            f"Processing batch of {len(batch)} ({len(self.queue)} still queued)"
        )
        try:
            for request in batch:
                try:
                    await self._process_request(request)
                except Exception as e:
                    # The request is already out of the queue; record the loss
                    logger.exception(
                        f"Dropping request {request.request_id} from {request.requester}: "
                        f"unexpected error: {type(e).__name__}: {e}"
                    )
                    self.stats.dropped += 1
        finally:
            self._state = ProcessorState.IDLE

        self.stats.batches += 1
        return len(batch)

    async def _process_request(self, request: OracleRequest) -> None:
        """Fetch a quote for one request and submit the result."""
        self.stats.processed += 1
        outcome = await self.fetcher.fetch_with_retry(request)

        if isinstance(outcome, Success):
            value = outcome.value
        else:
            logger.warning(f"{request}: no quote ({outcome.reason}), submitting sentinel")
            value = SENTINEL_VALUE

        if not await self._submit(request, value):
            return

        if isinstance(outcome, Success):
            self.stats.succeeded += 1
        else:
            self.stats.sentinels += 1

    async def _submit(self, request: OracleRequest, value: int) -> bool:
        """Submit a result with bounded retry.

        :returns: True if the ledger accepted the result.
        """
        for attempt in range(1, self.submit_retries + 1):
            try:
                await asyncio.to_thread(
                    self.ledger.submit_result,
                    request.request_id,
                    value,
                    request.requester,
                )
            except SubmissionError as e:
                logger.warning(
                    f"{request}: submission attempt {attempt}/{self.submit_retries} "
                    f"failed: {e}"
                )
                if attempt < self.submit_retries:
                    await asyncio.sleep(self.submit_backoff)
            else:
                logger.info(f"{request}: submitted value={value}")
                return True

        logger.error(
            f"Dropping request {request.request_id} from {request.requester}: "
            f"result value={value} was not accepted after {self.submit_retries} attempts"
        )
        self.stats.dropped += 1
        return False
