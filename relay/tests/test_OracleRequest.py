"""Unit tests for OracleRequest."""

import dataclasses

import pytest

from relay.src.OracleRequest import OracleRequest

CALLER = "0x00000000000000000000000000000000000000Aa"


class TestOracleRequest:
    """Test request construction."""

    def test_from_event(self) -> None:
        """Decoded event args map to requester and request id."""
        event = {"args": {"callerAddress": CALLER, "id": 42}, "blockNumber": 10}
        request = OracleRequest.from_event(event, arrival_order=3)

        assert request.requester == CALLER
        assert request.request_id == 42
        assert request.arrival_order == 3

    def test_from_event_malformed(self) -> None:
        """Events without the expected args raise ValueError."""
        with pytest.raises(ValueError, match="Malformed request event"):
            OracleRequest.from_event({"args": {"id": 1}}, arrival_order=0)
        with pytest.raises(ValueError, match="Malformed request event"):
            OracleRequest.from_event({}, arrival_order=0)

    def test_immutable(self) -> None:
        """Requests cannot be modified."""
        request = OracleRequest(CALLER, 1, 0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            request.request_id = 2  # type: ignore[misc]

    def test_str(self) -> None:
        """String form names the id and requester."""
        assert str(OracleRequest(CALLER, 7, 0)) == f"request#7 from {CALLER} (arrival 0)"

    def test_equal_ids_different_arrival(self) -> None:
        """Duplicate deliveries are distinct requests."""
        assert OracleRequest(CALLER, 7, 0) != OracleRequest(CALLER, 7, 1)
