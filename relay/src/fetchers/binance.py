"""Binance fetcher.

Endpoint: https://api.binance.com/api/v3/ticker/price?symbol={BASE}{QUOTE}
Rate Limit: High (no key required for public endpoints)

Binance lists most assets against USDT, so the relay's default pair is
eth/usdt.
"""

import logging

from .base import BaseFetcher, register_fetcher

logger = logging.getLogger(__name__)


@register_fetcher
class BinanceFetcher(BaseFetcher):
    """Fetcher for the Binance spot ticker API.

    No API key required.
    """

    name = "binance"
    BASE_URL = "https://api.binance.com/api/v3"

    async def fetch_quote(self, base: str, quote: str) -> str:
        """Fetch the last traded price from Binance.

        :param base: Base currency (e.g., "eth").
        :param quote: Quote currency (e.g., "usdt").
        :returns: Price string, e.g. "2412.53000000".
        :raises FetcherError: On transport or payload errors.
        """
        symbol = f"{base.upper()}{quote.upper()}"
        data = await self._get_json(
            f"{self.BASE_URL}/ticker/price", params={"symbol": symbol}
        )
        logger.debug(f"[binance] {symbol}: {data}")
        return self._extract(data, "price")
