"""Bitstamp fetcher.

Endpoint: https://www.bitstamp.net/api/v2/ticker/{base}{quote}/
Rate Limit: High (no key required)
"""

from .base import BaseFetcher, register_fetcher


@register_fetcher
class BitstampFetcher(BaseFetcher):
    """Fetcher for Bitstamp public API."""

    name = "bitstamp"
    BASE_URL = "https://www.bitstamp.net/api/v2"

    async def fetch_quote(self, base: str, quote: str) -> str:
        """Fetch the last price from Bitstamp.

        :param base: Base currency (e.g., "btc", "eth").
        :param quote: Quote currency (e.g., "usd").
        :returns: Price string.
        :raises FetcherError: On transport or payload errors.
        """
        pair = f"{base.lower()}{quote.lower()}"
        data = await self._get_json(f"{self.BASE_URL}/ticker/{pair}/")
        return self._extract(data, "last")
