#!/usr/bin/env python3
"""Price Request Relay.

Watches the oracle contract for price requests, fetches the quote from an
off-chain API and writes the scaled result back on-chain, once per request.

Configure via CLI arguments or env vars (CLI args take precedence).
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from .src.errors import RelayError
from .src.fetchers import get_available_fetchers
from .src.Relay import Relay
from .src.RelayConfig import RelayConfig

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def _ms_to_seconds(value: str) -> float:
    """Convert a millisecond count to seconds."""
    return int(value) / 1000


def _env(name: str, default: str | None = None) -> str | None:
    """Read an env var as an argparse default.

    Defaults are kept as strings so argparse converts them with the
    argument's type and reports bad values as usage errors.
    """
    return os.environ.get(name) or default


def read_private_key(key: str | None, key_file: str | None) -> str | None:
    """Resolve the submitting account's private key.

    An explicit key wins over a key file.

    :param key: Hex private key, or None.
    :param key_file: Path to a file holding the hex private key, or None.
    :returns: Private key, or None if neither is given.
    """
    if key:
        return key.strip()
    if key_file:
        return Path(key_file).read_text(encoding="utf-8").strip()
    return None


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with environment defaults."""
    available_sources = get_available_fetchers()

    parser = argparse.ArgumentParser(
        description="Price Request Relay: answers on-chain price requests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Available price sources:
  {', '.join(available_sources)}

Examples:
  # Local dev chain with the well-known dev account
  python -m relay.main --network sapphire-localnet

  # Testnet, signing with a key file
  python -m relay.main --network sapphire-testnet \\
      --oracle-address 0x... --private-key-file ./oracle_private_key

  # Inside ROFL, signing through appd
  python -m relay.main --network sapphire --submitter appd --oracle-address 0x...

Environment variables (CLI args take precedence):
  NETWORK, RPC_URL, ORACLE_ADDRESS, ABI_PATH, PRIVATE_KEY, PRIVATE_KEY_FILE,
  SUBMITTER, APPD_URL, SOURCE, PAIR, API_KEY, START_BLOCK, BATCH_SIZE,
  TICK_INTERVAL_MS, MAX_RETRIES, RETRY_BACKOFF_MS, VALUE_SCALE_FACTOR,
  SUBMIT_RETRIES, FETCH_TIMEOUT, POLL_INTERVAL_MS, MAX_POLL_FAILURES,
  MAX_BLOCK_RANGE
""",
    )

    parser.add_argument(
        "--network",
        type=str,
        help="Network to connect to (sapphire, sapphire-testnet, sapphire-localnet, localhost)",
        default=os.environ.get("NETWORK") or "sapphire-localnet",
    )

    parser.add_argument(
        "--rpc-url",
        dest="rpc_url",
        type=str,
        help="RPC URL overriding the network default",
        default=os.environ.get("RPC_URL"),
    )

    parser.add_argument(
        "--oracle-address",
        dest="oracle_address",
        type=str,
        help="Address of the oracle contract",
        default=os.environ.get("ORACLE_ADDRESS"),
    )

    parser.add_argument(
        "--abi-path",
        dest="abi_path",
        type=str,
        help="Compiled oracle contract artifact (default: built-in ABI)",
        default=os.environ.get("ABI_PATH"),
    )

    parser.add_argument(
        "--private-key",
        dest="private_key",
        type=str,
        help="Hex private key of the submitting account",
        default=os.environ.get("PRIVATE_KEY"),
    )

    parser.add_argument(
        "--private-key-file",
        dest="private_key_file",
        type=str,
        help="File holding the hex private key of the submitting account",
        default=os.environ.get("PRIVATE_KEY_FILE"),
    )

    parser.add_argument(
        "--submitter",
        choices=["local", "appd"],
        help="Sign locally with the private key, or through the ROFL appd (default: local)",
        default=os.environ.get("SUBMITTER") or "local",
    )

    parser.add_argument(
        "--appd-url",
        dest="appd_url",
        type=str,
        help="ROFL appd URL or socket path (default: /run/rofl-appd.sock)",
        default=os.environ.get("APPD_URL") or "",
    )

    parser.add_argument(
        "--source",
        type=str,
        help=f"Price source. Available: {', '.join(available_sources)}",
        default=os.environ.get("SOURCE") or "binance",
    )

    parser.add_argument(
        "--pair",
        type=str,
        help="Pair to quote (default: eth/usdt)",
        default=os.environ.get("PAIR") or "eth/usdt",
    )

    parser.add_argument(
        "--api-key",
        dest="api_key",
        type=str,
        help="API key for the price source",
        default=os.environ.get("API_KEY"),
    )

    parser.add_argument(
        "--start-block",
        dest="start_block",
        type=int,
        help="First block to scan for requests (default: only new requests)",
        default=_env("START_BLOCK"),
    )

    parser.add_argument(
        "--batch-size",
        dest="batch_size",
        type=int,
        help="Requests processed per tick (default: 3)",
        default=_env("BATCH_SIZE", "3"),
    )

    parser.add_argument(
        "--tick-interval-ms",
        dest="tick_interval",
        type=_ms_to_seconds,
        help="Milliseconds between ticks (default: 2000)",
        default=_env("TICK_INTERVAL_MS", "2000"),
    )

    parser.add_argument(
        "--max-retries",
        dest="max_retries",
        type=int,
        help="Fetch attempts per request before submitting the sentinel (default: 5)",
        default=_env("MAX_RETRIES", "5"),
    )

    parser.add_argument(
        "--retry-backoff-ms",
        dest="retry_backoff",
        type=_ms_to_seconds,
        help="Milliseconds between fetch and submission attempts (default: 2000)",
        default=_env("RETRY_BACKOFF_MS", "2000"),
    )

    parser.add_argument(
        "--value-scale-factor",
        dest="value_scale_factor",
        type=int,
        help="Multiplier applied to quotes before submission (default: 10**10)",
        default=_env("VALUE_SCALE_FACTOR", str(10**10)),
    )

    parser.add_argument(
        "--submit-retries",
        dest="submit_retries",
        type=int,
        help="Attempts per result transaction before dropping it (default: 3)",
        default=_env("SUBMIT_RETRIES", "3"),
    )

    parser.add_argument(
        "--fetch-timeout",
        dest="fetch_timeout",
        type=float,
        help="Timeout for a single fetch attempt in seconds (default: 10.0)",
        default=_env("FETCH_TIMEOUT", "10.0"),
    )

    parser.add_argument(
        "--poll-interval-ms",
        dest="poll_interval",
        type=_ms_to_seconds,
        help="Milliseconds between request event polls (default: 2000)",
        default=_env("POLL_INTERVAL_MS", "2000"),
    )

    parser.add_argument(
        "--max-poll-failures",
        dest="max_poll_failures",
        type=int,
        help="Consecutive failed polls before giving up (default: 5)",
        default=_env("MAX_POLL_FAILURES", "5"),
    )

    parser.add_argument(
        "--max-block-range",
        dest="max_block_range",
        type=int,
        help="Most blocks read per request log query (default: 100)",
        default=_env("MAX_BLOCK_RANGE", "100"),
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    return parser


def main() -> None:
    """Main entry point for the relay CLI."""
    parser = build_parser()
    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    source = args.source.strip().lower()
    if source not in get_available_fetchers():
        parser.error(
            f"Unknown source: {source}. Available: {', '.join(get_available_fetchers())}"
        )

    try:
        private_key = read_private_key(args.private_key, args.private_key_file)
    except OSError as e:
        parser.error(f"Cannot read private key file: {e}")

    try:
        config = RelayConfig(
            network=args.network,
            oracle_address=args.oracle_address,
            rpc_url=args.rpc_url,
            abi_path=args.abi_path,
            private_key=private_key,
            submitter=args.submitter,
            appd_url=args.appd_url,
            source=source,
            pair=args.pair,
            api_key=args.api_key,
            start_block=args.start_block,
            batch_size=args.batch_size,
            tick_interval=args.tick_interval,
            max_retries=args.max_retries,
            retry_backoff=args.retry_backoff,
            value_scale_factor=args.value_scale_factor,
            submit_retries=args.submit_retries,
            fetch_timeout=args.fetch_timeout,
            poll_interval=args.poll_interval,
            max_poll_failures=args.max_poll_failures,
            max_block_range=args.max_block_range,
        )
    except ValueError as e:
        parser.error(str(e))

    logger.info("=" * 60)
    logger.info("Price Request Relay")
    logger.info("=" * 60)
    logger.info(f"Network:           {config.network}")
    logger.info(f"Oracle:            {config.oracle_address}")
    logger.info(f"Submitter:         {config.submitter}")
    logger.info(f"Source:            {config.source} ({config.pair_base}/{config.pair_quote})")
    logger.info(f"Batch Size:        {config.batch_size}")
    logger.info(f"Tick Interval:     {config.tick_interval}s")
    logger.info(f"Max Retries:       {config.max_retries}")
    logger.info(f"Retry Backoff:     {config.retry_backoff}s")
    logger.info(f"Scale Factor:      {config.value_scale_factor}")
    logger.info(f"Submit Retries:    {config.submit_retries}")
    logger.info(f"Poll Interval:     {config.poll_interval}s")
    logger.info(f"Max Block Range:   {config.max_block_range}")
    if config.api_key:
        logger.info(f"API Key:           set for {config.source}")
    logger.info("=" * 60)

    try:
        relay = Relay(config)
        asyncio.run(relay.run())
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except RelayError as e:
        logger.error(f"Relay failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)

    logger.info("Relay stopped")


if __name__ == "__main__":
    main()
