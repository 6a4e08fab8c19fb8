"""RetryFetcher: bounded-retry quote fetching for a single request.

Algorithm:
    1. Call the fetcher, bounded by fetch_timeout
    2. Normalize the quote to a scaled integer
    3. On any failure (transport, HTTP, timeout, malformed quote) count the
       attempt; if fewer than max_retries attempts were made, sleep
       retry_backoff seconds and go to 1
    4. After max_retries failed attempts return Failure

The backoff is constant. A Failure is a normal return value, never raised.

.. code-block:: python

    >>> fetcher = RetryFetcher(get_fetcher("binance"), base="eth", quote="usdt")
    >>> await fetcher.fetch_with_retry(request)
    Success(value=24125300000000, attempts=1)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .FetchOutcome import Failure, FetchOutcome, Success
from .fetchers import FetcherError
from .FixedPoint import VALUE_SCALE_FACTOR, MalformedQuoteError, normalize_quote

if TYPE_CHECKING:
    from .fetchers import BaseFetcher
    from .OracleRequest import OracleRequest

logger = logging.getLogger(__name__)


class RetryFetcher:
    """Wraps a quote fetcher with a fixed retry budget.

    :ivar fetcher: Underlying quote source.
    :ivar base: Base currency of the quoted pair.
    :ivar quote: Quote currency of the quoted pair.
    :ivar max_retries: Maximum number of attempts per request.
    :ivar retry_backoff: Seconds to wait between attempts.
    :ivar fetch_timeout: Seconds allowed for a single attempt.
    :ivar scale_factor: Multiplier used to normalize quotes.
    """

    DEFAULT_MAX_RETRIES = 5
    DEFAULT_RETRY_BACKOFF = 2.0
    DEFAULT_FETCH_TIMEOUT = 10.0

    def __init__(
        self,
        fetcher: BaseFetcher,
        base: str = "eth",
        quote: str = "usdt",
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        scale_factor: int = VALUE_SCALE_FACTOR,
    ) -> None:
        """Initialize the retry fetcher.

        :param fetcher: Quote source to call.
        :param base: Base currency symbol (default: "eth").
        :param quote: Quote currency symbol (default: "usdt").
        :param max_retries: Maximum attempts per request (default: 5).
        :param retry_backoff: Seconds between attempts (default: 2.0).
        :param fetch_timeout: Seconds per attempt (default: 10.0).
        :param scale_factor: Normalization multiplier (default: 10**10).
        :raises ValueError: If max_retries < 1 or a duration is negative.
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if retry_backoff < 0:
            raise ValueError("retry_backoff must be non-negative")
        if fetch_timeout <= 0:
            raise ValueError("fetch_timeout must be positive")

        self.fetcher = fetcher
        self.base = base.lower()
        self.quote = quote.lower()
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.fetch_timeout = fetch_timeout
        self.scale_factor = scale_factor

    @property
    def pair(self) -> str:
        return f"{self.base}/{self.quote}"

    async def fetch_with_retry(self, request: OracleRequest) -> FetchOutcome:
        """Fetch and normalize a quote for a request.

        :param request: Request being answered (used for logging).
        :returns: Success with the scaled value, or Failure once
            max_retries attempts have failed.
        """
        last_error = ""
        for attempt in range(1, self.max_retries + 1):
            try:
                value = await self._attempt()
            except asyncio.TimeoutError:
                last_error = f"timeout after {self.fetch_timeout}s"
            except (FetcherError, MalformedQuoteError) as e:
                last_error = str(e)
            else:
                logger.debug(
                    f"{request}: {self.pair} = {value} (attempt {attempt})"
                )
                return Success(value=value, attempts=attempt)

            logger.warning(
                f"[{self.fetcher.name}] {request}: attempt {attempt}/{self.max_retries} "
                f"failed: {last_error}"
            )
            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_backoff)

        return Failure(
            reason=f"exhausted {self.max_retries} attempts: {last_error}",
            attempts=self.max_retries,
        )

    async def _attempt(self) -> int:
        """Run one fetch and normalize its result."""
        raw = await asyncio.wait_for(
            self.fetcher.fetch_quote(self.base, self.quote),
            timeout=self.fetch_timeout,
        )
        return normalize_quote(raw, self.scale_factor)
