"""
Quote fetchers for external price APIs.

Usage:
    from relay.src.fetchers import get_fetcher, get_available_fetchers

    available = get_available_fetchers()
    # ['binance', 'bitstamp', 'coinbase', 'kraken']

    fetcher = get_fetcher("binance")
    quote = await fetcher.fetch_quote("eth", "usdt")
"""

from .base import (
    FETCHER_REGISTRY,
    BaseFetcher,
    FetcherError,
    FetcherHTTPError,
    get_available_fetchers,
    get_fetcher,
    register_fetcher,
)

# Import all fetcher implementations to trigger registration
from .binance import BinanceFetcher
from .bitstamp import BitstampFetcher
from .coinbase import CoinbaseFetcher
from .kraken import KrakenFetcher

__all__ = [
    "BaseFetcher",
    "FetcherError",
    "FetcherHTTPError",
    "register_fetcher",
    "get_fetcher",
    "get_available_fetchers",
    "FETCHER_REGISTRY",
    "BinanceFetcher",
    "BitstampFetcher",
    "CoinbaseFetcher",
    "KrakenFetcher",
]
