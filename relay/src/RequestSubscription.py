"""RequestSubscription: feed on-chain request events into the RequestQueue.

The subscription polls the oracle contract's request log from the last
scanned block up to the chain head, reading at most max_block_range blocks
per log query. Every decoded event becomes an OracleRequest with the next
arrival number and is handed to the consumer callback (normally
RequestQueue.enqueue). A gap longer than max_block_range, e.g. after a
replay from an old start block, is read chunk by chunk and each chunk that
was read is not scanned again.

Transport hiccups are retried on the next poll. After max_poll_failures
consecutive failed polls the subscription gives up and reports a
SubscriptionError through its error callback, so the relay never keeps
running with a dead intake.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import TYPE_CHECKING, Callable

from .errors import SubscriptionError
from .OracleRequest import OracleRequest

if TYPE_CHECKING:
    from .OracleLedger import OracleLedger

logger = logging.getLogger(__name__)


class RequestSubscription:
    """Polling subscription to request events.

    :ivar ledger: Ledger to read events from.
    :ivar poll_interval: Seconds between polls.
    :ivar max_poll_failures: Consecutive failed polls tolerated.
    :ivar max_block_range: Most blocks read by one log query.
    :ivar next_block: First block the next poll scans, None until known.
    :ivar error: The SubscriptionError that ended the subscription, if any.
    """

    DEFAULT_POLL_INTERVAL = 2.0
    DEFAULT_MAX_POLL_FAILURES = 5
    DEFAULT_MAX_BLOCK_RANGE = 100

    def __init__(
        self,
        ledger: OracleLedger,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_poll_failures: int = DEFAULT_MAX_POLL_FAILURES,
        start_block: int | None = None,
        max_block_range: int = DEFAULT_MAX_BLOCK_RANGE,
    ) -> None:
        """Initialize the subscription.

        :param ledger: Ledger to read events from.
        :param poll_interval: Seconds between polls (default: 2.0).
        :param max_poll_failures: Consecutive failures before the
            subscription is declared dead (default: 5).
        :param start_block: First block to scan. None starts after the chain
            head seen on the first poll, so only new requests are relayed.
        :param max_block_range: Most blocks per log query (default: 100).
            Longer gaps are read in several queries.
        """
        if max_poll_failures < 1:
            raise ValueError("max_poll_failures must be at least 1")
        if max_block_range < 1:
            raise ValueError("max_block_range must be at least 1")

        self.ledger = ledger
        self.poll_interval = poll_interval
        self.max_poll_failures = max_poll_failures
        self.max_block_range = max_block_range
        self.next_block = start_block
        self.error: SubscriptionError | None = None

        self._arrival = itertools.count()
        self._consecutive_failures = 0
        self._task: asyncio.Task | None = None
        self._on_request: Callable[[OracleRequest], None] | None = None
        self._on_error: Callable[[BaseException], None] | None = None

    @property
    def active(self) -> bool:
        """Check if the polling task is running."""
        return self._task is not None and not self._task.done()

    def start(
        self,
        on_request: Callable[[OracleRequest], None],
        on_error: Callable[[BaseException], None] | None = None,
    ) -> RequestSubscription:
        """Start polling in a background task.

        :param on_request: Called once per observed request event.
        :param on_error: Called with a SubscriptionError if the subscription dies.
        :returns: self, usable as a cancellable handle.
        :raises RuntimeError: If already started.
        """
        if self.active:
            raise RuntimeError("Subscription already started")

        self._on_request = on_request
        self._on_error = on_error
        self._task = asyncio.create_task(self._poll_loop(), name="request-subscription")
        logger.info(
            f"Subscribed to {self.ledger.REQUEST_EVENT} "
            f"(poll every {self.poll_interval}s)"
        )
        return self

    def cancel(self) -> None:
        """Stop polling. Safe to call more than once."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.info("Request subscription cancelled")

    async def wait_closed(self) -> None:
        """Wait for the polling task to finish after cancel()."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    async def poll_once(self) -> int:
        """Scan new blocks once and deliver their request events.

        :returns: Number of requests delivered.
        """
        head = await asyncio.to_thread(self.ledger.block_number)

        if self.next_block is None:
            self.next_block = head + 1
            logger.info(f"Watching for requests from block {self.next_block}")
            return 0
        if head < self.next_block:
            return 0

        delivered = 0
        while self.next_block <= head:
            chunk_end = min(self.next_block + self.max_block_range - 1, head)
            events = await asyncio.to_thread(
                self.ledger.get_request_events, self.next_block, chunk_end
            )
            self.next_block = chunk_end + 1
            delivered += self._deliver(events)
        return delivered

    def _deliver(self, events: list) -> int:
        """Hand decoded events to the consumer in chain order."""
        delivered = 0
        for event in events:
            try:
                request = OracleRequest.from_event(event, next(self._arrival))
            except ValueError as e:
                logger.error(f"Skipping undecodable request event: {e}")
                continue
            logger.info(f"Received {request}")
            assert self._on_request is not None
            self._on_request(request)
            delivered += 1
        return delivered

    async def _poll_loop(self) -> None:
        """Poll until cancelled or until too many consecutive failures."""
        while True:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._consecutive_failures += 1
                logger.warning(
                    f"Request poll failed ({self._consecutive_failures}/"
                    f"{self.max_poll_failures}): {e}"
                )
                if self._consecutive_failures >= self.max_poll_failures:
                    self.error = SubscriptionError(
                        f"Request subscription lost after {self._consecutive_failures} "
                        f"consecutive failures: {e}"
                    )
                    self.error.__cause__ = e
                    logger.error(str(self.error))
                    if self._on_error is not None:
                        self._on_error(self.error)
                    return
            else:
                self._consecutive_failures = 0

            await asyncio.sleep(self.poll_interval)
