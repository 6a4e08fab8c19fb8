"""Kraken fetcher.

Endpoint: https://api.kraken.com/0/public/Ticker?pair={BASE}{QUOTE}
Rate Limit: High (no key required)
"""

import logging

from .base import BaseFetcher, FetcherError, register_fetcher

logger = logging.getLogger(__name__)


@register_fetcher
class KrakenFetcher(BaseFetcher):
    """Fetcher for Kraken public API."""

    name = "kraken"
    BASE_URL = "https://api.kraken.com/0/public"

    # Kraken uses non-standard ticker symbols
    SYMBOL_MAP = {
        "btc": "XBT",
    }

    async def fetch_quote(self, base: str, quote: str) -> str:
        """Fetch the last closed trade price from Kraken.

        :param base: Base currency (e.g., "btc", "eth").
        :param quote: Quote currency (e.g., "usd").
        :returns: Price string.
        :raises FetcherError: On transport, API or payload errors.
        """
        kraken_base = self.SYMBOL_MAP.get(base.lower(), base.upper())
        pair = f"{kraken_base}{quote.upper()}"

        data = await self._get_json(f"{self.BASE_URL}/Ticker", params={"pair": pair})
        if not isinstance(data, dict):
            raise FetcherError(f"[kraken] Unexpected response for {pair}: {data!r}")

        if data.get("error"):
            raise FetcherError(f"[kraken] API error for {pair}: {data['error']}")

        result = data.get("result") or {}
        if not isinstance(result, dict) or not result:
            raise FetcherError(f"[kraken] No result for {pair}")

        # Result is keyed by Kraken's own pair name, which may differ from ours.
        # 'c' is the last trade closed array: [price, lot volume]
        kraken_pair, pair_data = next(iter(result.items()))
        logger.debug(f"[kraken] {pair} resolved to {kraken_pair}")
        return self._extract(pair_data, "c", 0)
