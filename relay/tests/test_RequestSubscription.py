"""Unit tests for RequestSubscription."""

import asyncio
from unittest.mock import MagicMock

import pytest

from relay.src.errors import SubscriptionError
from relay.src.OracleRequest import OracleRequest
from relay.src.RequestSubscription import RequestSubscription

CALLER = "0x00000000000000000000000000000000000000Aa"


def make_event(request_id: int, caller: str = CALLER) -> dict:
    return {"args": {"callerAddress": caller, "id": request_id}}


def make_ledger(head: int = 100, events: list | None = None) -> MagicMock:
    ledger = MagicMock()
    ledger.REQUEST_EVENT = "GetLatestEthPriceEvent"
    ledger.block_number.return_value = head
    ledger.get_request_events.return_value = events or []
    return ledger


class TestRequestSubscriptionPoll:
    """Test single polls."""

    def test_first_poll_starts_after_head(self) -> None:
        """Without a start block only requests after the current head are relayed."""
        ledger = make_ledger(head=100)
        subscription = RequestSubscription(ledger)
        subscription._on_request = MagicMock()

        assert asyncio.run(subscription.poll_once()) == 0
        assert subscription.next_block == 101
        ledger.get_request_events.assert_not_called()

    def test_poll_delivers_events_in_order(self) -> None:
        """Each event becomes a request with increasing arrival order."""
        ledger = make_ledger(head=105, events=[make_event(1), make_event(2)])
        subscription = RequestSubscription(ledger, start_block=101)
        received: list[OracleRequest] = []
        subscription._on_request = received.append

        assert asyncio.run(subscription.poll_once()) == 2

        ledger.get_request_events.assert_called_once_with(101, 105)
        assert [(r.request_id, r.arrival_order) for r in received] == [(1, 0), (2, 1)]
        assert subscription.next_block == 106

    def test_arrival_order_continues_across_polls(self) -> None:
        """Arrival numbers keep increasing over polls, duplicates included."""
        ledger = make_ledger(head=10, events=[make_event(7)])
        subscription = RequestSubscription(ledger, start_block=5)
        received: list[OracleRequest] = []
        subscription._on_request = received.append

        async def two_polls() -> None:
            await subscription.poll_once()
            ledger.block_number.return_value = 11
            await subscription.poll_once()

        asyncio.run(two_polls())

        assert [(r.request_id, r.arrival_order) for r in received] == [(7, 0), (7, 1)]

    def test_no_new_blocks(self) -> None:
        """A poll with no new blocks does not read events."""
        ledger = make_ledger(head=100)
        subscription = RequestSubscription(ledger, start_block=101)
        subscription._on_request = MagicMock()

        assert asyncio.run(subscription.poll_once()) == 0
        ledger.get_request_events.assert_not_called()
        assert subscription.next_block == 101

    def test_malformed_event_skipped(self, caplog) -> None:
        """Undecodable events are logged and skipped."""
        ledger = make_ledger(head=3, events=[{"args": {}}, make_event(8)])
        subscription = RequestSubscription(ledger, start_block=1)
        received: list[OracleRequest] = []
        subscription._on_request = received.append

        with caplog.at_level("ERROR"):
            assert asyncio.run(subscription.poll_once()) == 1

        assert [r.request_id for r in received] == [8]
        assert "Skipping undecodable request event" in caplog.text

    def test_failed_read_does_not_advance(self) -> None:
        """If reading events fails the same range is scanned again."""
        ledger = make_ledger(head=10)
        ledger.get_request_events.side_effect = ConnectionError("rpc down")
        subscription = RequestSubscription(ledger, start_block=5)
        subscription._on_request = MagicMock()

        with pytest.raises(ConnectionError):
            asyncio.run(subscription.poll_once())
        assert subscription.next_block == 5

    def test_long_gap_read_in_bounded_chunks(self) -> None:
        """A 1000-block gap is read in several queries, none wider than the bound."""
        ledger = make_ledger(head=1000)
        ledger.get_request_events.side_effect = lambda start, end: (
            [make_event(start)] if start == 1 or end == 1000 else []
        )
        subscription = RequestSubscription(ledger, start_block=1, max_block_range=300)
        received: list[OracleRequest] = []
        subscription._on_request = received.append

        assert asyncio.run(subscription.poll_once()) == 2

        ranges = [c.args for c in ledger.get_request_events.call_args_list]
        assert ranges == [(1, 300), (301, 600), (601, 900), (901, 1000)]
        assert all(end - start + 1 <= 300 for start, end in ranges)
        assert [r.request_id for r in received] == [1, 901]
        assert [r.arrival_order for r in received] == [0, 1]
        assert subscription.next_block == 1001

    def test_failed_chunk_keeps_earlier_progress(self) -> None:
        """Chunks read before a failure are not scanned again."""
        ledger = make_ledger(head=250)

        def get_request_events(start: int, end: int) -> list:
            if start > 100:
                raise ValueError("query returned more than 10000 results")
            return [make_event(3)]

        ledger.get_request_events.side_effect = get_request_events
        subscription = RequestSubscription(ledger, start_block=1, max_block_range=100)
        received: list[OracleRequest] = []
        subscription._on_request = received.append

        with pytest.raises(ValueError):
            asyncio.run(subscription.poll_once())

        assert [r.request_id for r in received] == [3]
        assert subscription.next_block == 101

    def test_invalid_max_block_range(self) -> None:
        """max_block_range < 1 raises ValueError."""
        with pytest.raises(ValueError, match="max_block_range must be at least 1"):
            RequestSubscription(make_ledger(), max_block_range=0)


class TestRequestSubscriptionLifecycle:
    """Test start, cancel and failure reporting."""

    def test_invalid_max_poll_failures(self) -> None:
        """max_poll_failures < 1 raises ValueError."""
        with pytest.raises(ValueError, match="max_poll_failures must be at least 1"):
            RequestSubscription(make_ledger(), max_poll_failures=0)

    def test_start_and_cancel(self) -> None:
        """A started subscription delivers events until cancelled."""
        ledger = make_ledger(head=2, events=[make_event(1)])
        subscription = RequestSubscription(ledger, poll_interval=0.001, start_block=1)
        received: list[OracleRequest] = []

        async def scenario() -> None:
            handle = subscription.start(received.append)
            assert handle is subscription
            assert subscription.active
            while not received:
                await asyncio.sleep(0.001)
            handle.cancel()
            await subscription.wait_closed()
            assert not subscription.active

        asyncio.run(asyncio.wait_for(scenario(), timeout=5))
        assert received[0].request_id == 1

    def test_double_start(self) -> None:
        """Starting twice raises RuntimeError."""
        subscription = RequestSubscription(make_ledger(), poll_interval=0.001)

        async def scenario() -> None:
            subscription.start(MagicMock())
            try:
                with pytest.raises(RuntimeError, match="already started"):
                    subscription.start(MagicMock())
            finally:
                subscription.cancel()
                await subscription.wait_closed()

        asyncio.run(scenario())

    def test_transient_failures_recovered(self) -> None:
        """Fewer than max_poll_failures consecutive errors are tolerated."""
        ledger = make_ledger(head=5, events=[make_event(3)])
        failures = [ConnectionError("a"), ConnectionError("b")]

        def block_number() -> int:
            if failures:
                raise failures.pop(0)
            return 5

        ledger.block_number.side_effect = block_number
        subscription = RequestSubscription(
            ledger, poll_interval=0.001, max_poll_failures=3, start_block=1
        )
        received: list[OracleRequest] = []
        on_error = MagicMock()

        async def scenario() -> None:
            subscription.start(received.append, on_error=on_error)
            while not received:
                await asyncio.sleep(0.001)
            subscription.cancel()
            await subscription.wait_closed()

        asyncio.run(asyncio.wait_for(scenario(), timeout=5))

        on_error.assert_not_called()
        assert subscription.error is None
        assert [r.request_id for r in received] == [3]

    def test_dead_subscription_reported(self, caplog) -> None:
        """Consecutive failures end the subscription and report SubscriptionError."""
        ledger = make_ledger()
        ledger.block_number.side_effect = ConnectionError("rpc down")
        subscription = RequestSubscription(ledger, poll_interval=0.001, max_poll_failures=3)
        on_error = MagicMock()

        async def scenario() -> None:
            subscription.start(MagicMock(), on_error=on_error)
            await subscription.wait_closed()

        with caplog.at_level("ERROR"):
            asyncio.run(asyncio.wait_for(scenario(), timeout=5))

        assert ledger.block_number.call_count == 3
        on_error.assert_called_once()
        error = on_error.call_args.args[0]
        assert isinstance(error, SubscriptionError)
        assert subscription.error is error
        assert isinstance(error.__cause__, ConnectionError)
        assert "Request subscription lost" in caplog.text
        assert not subscription.active
