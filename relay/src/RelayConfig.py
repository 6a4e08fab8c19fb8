"""RelayConfig: everything the relay needs, collected in one place.

Built by the CLI from arguments and environment variables and passed to
Relay, which hands the relevant parts to each component.

Durations are stored in seconds; the CLI accepts the *_MS variants in
milliseconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .FixedPoint import VALUE_SCALE_FACTOR

# Oracle contract addresses for networks where a deployment is predictable.
DEFAULT_ORACLE_ADDRESS: dict[str, str | None] = {
    "sapphire": None,
    "sapphire-testnet": None,
    "sapphire-localnet": "0x5FbDB2315678afecb367f032d93F642f64180aa3",
    "localhost": "0x5FbDB2315678afecb367f032d93F642f64180aa3",
}


@dataclass
class RelayConfig:
    """Relay configuration.

    :ivar network: Network name (see ContractUtility.NETWORKS) or RPC URL.
    :ivar oracle_address: Address of the oracle contract.
    :ivar rpc_url: Optional RPC URL overriding the network default.
    :ivar abi_path: Optional compiled contract artifact to read the ABI from.
    :ivar private_key: Hex private key of the submitting account (local submitter).
    :ivar submitter: "local" (sign with private_key) or "appd" (ROFL appd signs).
    :ivar appd_url: Optional appd URL or socket path.
    :ivar source: Name of the quote fetcher.
    :ivar pair: Pair to quote, "base/quote".
    :ivar api_key: Optional API key for the quote source.
    :ivar start_block: First block to scan for requests (None: new requests only).
    """

    network: str = "sapphire-localnet"
    oracle_address: str | None = None
    rpc_url: str | None = None
    abi_path: str | None = None
    private_key: str | None = None
    submitter: str = "local"
    appd_url: str = ""
    source: str = "binance"
    pair: str = "eth/usdt"
    api_key: str | None = None
    start_block: int | None = None

    batch_size: int = 3
    tick_interval: float = 2.0
    max_retries: int = 5
    retry_backoff: float = 2.0
    value_scale_factor: int = VALUE_SCALE_FACTOR
    submit_retries: int = 3
    fetch_timeout: float = 10.0
    poll_interval: float = 2.0
    max_poll_failures: int = 5
    max_block_range: int = 100

    pair_base: str = field(init=False, default="")
    pair_quote: str = field(init=False, default="")

    def __post_init__(self) -> None:
        """Resolve defaults and validate values.

        :raises ValueError: On invalid values.
        """
        if self.oracle_address is None:
            self.oracle_address = DEFAULT_ORACLE_ADDRESS.get(self.network)
        if not self.oracle_address:
            raise ValueError(f"No oracle address configured for network {self.network}")

        if self.submitter not in ("local", "appd"):
            raise ValueError(f"submitter must be 'local' or 'appd', got {self.submitter!r}")

        self.pair_base, self.pair_quote = self.parse_pair(self.pair)

        for name in (
            "batch_size",
            "max_retries",
            "submit_retries",
            "max_poll_failures",
            "max_block_range",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")
        for name in ("tick_interval", "fetch_timeout", "poll_interval"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.retry_backoff < 0:
            raise ValueError("retry_backoff must be non-negative")
        if self.value_scale_factor < 1:
            raise ValueError("value_scale_factor must be positive")
        if self.start_block is not None and self.start_block < 0:
            raise ValueError("start_block must be non-negative")

    @staticmethod
    def parse_pair(pair: str) -> tuple[str, str]:
        """Split "base/quote" into lowercase symbols.

        :raises ValueError: If the format is invalid.

        .. code-block:: python

            >>> RelayConfig.parse_pair("ETH/USDT")
            ('eth', 'usdt')
        """
        parts = pair.lower().split("/")
        if len(parts) != 2 or not all(p.strip() for p in parts):
            raise ValueError(
                f"Invalid pair format '{pair}'. Expected 'base/quote' (e.g., 'eth/usdt')"
            )
        return parts[0].strip(), parts[1].strip()
