"""Coinbase Exchange fetcher.

Endpoint: https://api.exchange.coinbase.com/products/{BASE}-{QUOTE}/ticker
Rate Limit: High (no key required)
"""

from .base import BaseFetcher, register_fetcher


@register_fetcher
class CoinbaseFetcher(BaseFetcher):
    """Fetcher for Coinbase Exchange API.

    No API key required for public ticker endpoint.
    """

    name = "coinbase"
    BASE_URL = "https://api.exchange.coinbase.com"

    async def fetch_quote(self, base: str, quote: str) -> str:
        """Fetch price from Coinbase Exchange.

        :param base: Base currency (e.g., "btc", "eth").
        :param quote: Quote currency (e.g., "usd").
        :returns: Price string.
        :raises FetcherError: On transport or payload errors.
        """
        symbol = f"{base.upper()}-{quote.upper()}"
        data = await self._get_json(f"{self.BASE_URL}/products/{symbol}/ticker")
        return self._extract(data, "price")
