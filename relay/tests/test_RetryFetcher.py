"""Unit tests for RetryFetcher."""

import asyncio
from unittest.mock import AsyncMock, call, patch

import pytest

from relay.src.FetchOutcome import Failure, Success
from relay.src.fetchers import BaseFetcher, FetcherError, FetcherHTTPError
from relay.src.OracleRequest import OracleRequest
from relay.src.RetryFetcher import RetryFetcher

REQUEST = OracleRequest("0x00000000000000000000000000000000000000Aa", 1, 0)


class ScriptedFetcher(BaseFetcher):
    """Fetcher returning (or raising) scripted responses in order."""

    name = "scripted"

    def __init__(self, responses: list) -> None:
        super().__init__()
        self.responses = list(responses)
        self.calls: list[tuple[str, str]] = []

    async def fetch_quote(self, base: str, quote: str) -> str:
        self.calls.append((base, quote))
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, BaseException):
            raise response
        return response


class SlowFetcher(BaseFetcher):
    """Fetcher that never answers in time."""

    name = "slow"

    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    async def fetch_quote(self, base: str, quote: str) -> str:
        self.calls += 1
        await asyncio.sleep(10)
        return "1"


def fetch(retry_fetcher: RetryFetcher):
    return asyncio.run(retry_fetcher.fetch_with_retry(REQUEST))


class TestRetryFetcherInit:
    """Test RetryFetcher initialization."""

    def test_default_values(self) -> None:
        """Defaults match the relay's usual settings."""
        fetcher = RetryFetcher(ScriptedFetcher(["1"]))
        assert fetcher.max_retries == 5
        assert fetcher.retry_backoff == 2.0
        assert fetcher.pair == "eth/usdt"
        assert fetcher.scale_factor == 10**10

    def test_pair_lowercased(self) -> None:
        """Pair symbols are normalized to lowercase."""
        fetcher = RetryFetcher(ScriptedFetcher(["1"]), base="BTC", quote="USD")
        assert fetcher.pair == "btc/usd"

    def test_invalid_max_retries(self) -> None:
        """max_retries < 1 raises ValueError."""
        with pytest.raises(ValueError, match="max_retries must be at least 1"):
            RetryFetcher(ScriptedFetcher(["1"]), max_retries=0)

    def test_invalid_backoff(self) -> None:
        """Negative backoff raises ValueError."""
        with pytest.raises(ValueError, match="retry_backoff must be non-negative"):
            RetryFetcher(ScriptedFetcher(["1"]), retry_backoff=-1)


class TestRetryFetcherSuccess:
    """Test successful fetches."""

    def test_first_attempt(self) -> None:
        """A good quote on the first try is normalized."""
        source = ScriptedFetcher(["100.00000000"])
        outcome = fetch(RetryFetcher(source, retry_backoff=0))

        assert outcome == Success(value=100 * 10**10, attempts=1)
        assert outcome.ok
        assert source.calls == [("eth", "usdt")]

    def test_custom_scale_factor(self) -> None:
        """The configured scale factor is used."""
        outcome = fetch(RetryFetcher(ScriptedFetcher(["1.5"]), scale_factor=1000))
        assert outcome == Success(value=1500, attempts=1)

    def test_success_after_failures(self) -> None:
        """Transient failures are retried until a quote arrives."""
        source = ScriptedFetcher([FetcherError("down"), FetcherHTTPError(502, "bad"), "7"])
        outcome = fetch(RetryFetcher(source, max_retries=3, retry_backoff=0))

        assert outcome == Success(value=7 * 10**10, attempts=3)
        assert len(source.calls) == 3

    def test_malformed_quote_consumes_attempt(self) -> None:
        """An unparseable quote is a failed attempt, not a crash."""
        source = ScriptedFetcher(["not-a-number", "42.0"])
        outcome = fetch(RetryFetcher(source, max_retries=3, retry_backoff=0))

        assert outcome == Success(value=42 * 10**10, attempts=2)

    def test_out_of_range_quote_consumes_attempt(self) -> None:
        """Quotes too large to scale or to fit a uint256 are failed attempts."""
        source = ScriptedFetcher(["1E+999999", "1E+70", "42.0"])
        outcome = fetch(RetryFetcher(source, max_retries=3, retry_backoff=0))

        assert outcome == Success(value=42 * 10**10, attempts=3)

    def test_out_of_range_quote_exhausts_to_failure(self) -> None:
        """A source that keeps returning an overflowing quote yields Failure."""
        source = ScriptedFetcher(["1E+999999"])
        outcome = fetch(RetryFetcher(source, max_retries=2, retry_backoff=0))

        assert isinstance(outcome, Failure)
        assert outcome.attempts == 2
        assert "out of range" in outcome.reason


class TestRetryFetcherExhaustion:
    """Test the retry bound."""

    def test_exhausted_returns_failure(self) -> None:
        """Exactly max_retries failures yield Failure."""
        source = ScriptedFetcher([FetcherError("connection refused")])
        outcome = fetch(RetryFetcher(source, max_retries=3, retry_backoff=0))

        assert isinstance(outcome, Failure)
        assert not outcome.ok
        assert outcome.attempts == 3
        assert "exhausted 3 attempts" in outcome.reason
        assert "connection refused" in outcome.reason
        assert len(source.calls) == 3

    @pytest.mark.parametrize("max_retries", [1, 2, 5])
    def test_never_exceeds_max_retries(self, max_retries: int) -> None:
        """The fetcher is called at most max_retries times."""
        source = ScriptedFetcher(["garbage"])
        outcome = fetch(RetryFetcher(source, max_retries=max_retries, retry_backoff=0))

        assert isinstance(outcome, Failure)
        assert len(source.calls) == max_retries

    def test_last_attempt_success(self) -> None:
        """max_retries - 1 failures followed by a quote still succeeds."""
        source = ScriptedFetcher([FetcherError("x"), FetcherError("y"), "3"])
        outcome = fetch(RetryFetcher(source, max_retries=3, retry_backoff=0))
        assert outcome == Success(value=3 * 10**10, attempts=3)

    def test_timeout_counts_as_failure(self) -> None:
        """Attempts exceeding fetch_timeout fail and are retried."""
        source = SlowFetcher()
        outcome = fetch(
            RetryFetcher(source, max_retries=2, retry_backoff=0, fetch_timeout=0.01)
        )

        assert isinstance(outcome, Failure)
        assert "timeout" in outcome.reason
        assert source.calls == 2


class TestRetryFetcherBackoff:
    """Test the constant backoff."""

    def test_constant_backoff_between_attempts(self) -> None:
        """Backoff is the same after every failed attempt, none after the last."""
        source = ScriptedFetcher([FetcherError("down")])
        retry_fetcher = RetryFetcher(source, max_retries=4, retry_backoff=0.5)

        with patch("relay.src.RetryFetcher.asyncio.sleep", new_callable=AsyncMock) as sleep:
            outcome = fetch(retry_fetcher)

        assert isinstance(outcome, Failure)
        assert sleep.await_args_list == [call(0.5)] * 3

    def test_no_backoff_on_success(self) -> None:
        """No wait happens when the first attempt succeeds."""
        retry_fetcher = RetryFetcher(ScriptedFetcher(["1"]), retry_backoff=0.5)

        with patch("relay.src.RetryFetcher.asyncio.sleep", new_callable=AsyncMock) as sleep:
            fetch(retry_fetcher)

        sleep.assert_not_awaited()
