"""Quote fetcher interface, HTTP helpers and the fetcher registry.

A fetcher turns a (base, quote) pair into the last traded price as the
decimal string the exchange sent. Strings are kept as-is so the relay can
scale them with Decimal arithmetic.

All fetchers share one httpx.AsyncClient.

.. code-block:: python

    @register_fetcher
    class MyFetcher(BaseFetcher):
        name = "myfetcher"

        async def fetch_quote(self, base: str, quote: str) -> str:
            data = await self._get_json(f"https://api.example.com/{base}/{quote}")
            return self._extract(data, "price")
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import httpx

logger = logging.getLogger(__name__)


class FetcherError(Exception):
    """A quote could not be obtained from the source."""

    pass


class FetcherHTTPError(FetcherError):
    """The source answered with a non-2xx status.

    :ivar status_code: HTTP status code of the response.
    """

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {message}")


class BaseFetcher(ABC):
    """Base class for quote sources.

    Subclasses set ``name`` and implement fetch_quote().

    :cvar name: Registry key of the source (e.g., "binance").
    :cvar DEFAULT_TIMEOUT: HTTP timeout used when none is given.
    :ivar api_key: Optional API key.
    :ivar timeout: HTTP timeout in seconds.
    """

    _shared_client: ClassVar[httpx.AsyncClient | None] = None

    name: ClassVar[str] = ""

    DEFAULT_TIMEOUT = 10.0

    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        self.api_key = api_key
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def get_shared_client(cls) -> httpx.AsyncClient:
        """Return the shared HTTP client, creating it if needed."""
        if cls._shared_client is None or cls._shared_client.is_closed:
            cls._shared_client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                follow_redirects=True,
            )
        return cls._shared_client

    @classmethod
    async def close_shared_client(cls) -> None:
        """Close the shared HTTP client, if open."""
        client, cls._shared_client = cls._shared_client, None
        if client is not None and not client.is_closed:
            await client.aclose()

    @abstractmethod
    async def fetch_quote(self, base: str, quote: str) -> str:
        """Fetch the last price of a pair.

        :param base: Base currency symbol (e.g., "eth").
        :param quote: Quote currency symbol (e.g., "usdt").
        :returns: Price as a decimal string, unmodified.
        :raises FetcherError: On transport, HTTP or payload errors.
        """

    async def _get_json(
        self,
        url: str,
        *,
        params: dict | None = None,
        headers: dict | None = None,
    ) -> Any:
        """GET a URL with the shared client and decode the JSON body.

        :raises FetcherHTTPError: On a non-2xx response.
        :raises FetcherError: On timeout, transport failure or invalid JSON.
        """
        try:
            response = await self.get_shared_client().get(
                url, params=params, headers=headers, timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise FetcherError(f"[{self.name}] Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise FetcherError(f"[{self.name}] Request failed: {e}") from e

        if not response.is_success:
            body = response.text[:200]
            logger.debug(f"[{self.name}] GET {url} returned {response.status_code}: {body}")
            raise FetcherHTTPError(response.status_code, body)

        try:
            return response.json()
        except ValueError as e:
            raise FetcherError(f"[{self.name}] Invalid JSON from {url}: {e}") from e

    def _extract(self, data: Any, *path: str | int) -> str:
        """Follow keys and indices into a JSON payload and return the leaf.

        JSON numbers are converted with str(), keeping the digits the decoder
        produced.

        :raises FetcherError: If the path is missing or the leaf is not a scalar.
        """
        node = data
        try:
            for key in path:
                node = node[key]
        except (KeyError, IndexError, TypeError) as e:
            raise FetcherError(f"[{self.name}] Missing {list(path)} in response: {e}") from e

        if isinstance(node, bool) or not isinstance(node, (str, int, float)):
            raise FetcherError(f"[{self.name}] Unexpected quote value: {node!r}")
        return str(node)


# Populated by @register_fetcher as the fetcher modules are imported
FETCHER_REGISTRY: dict[str, type[BaseFetcher]] = {}


def register_fetcher(cls: type[BaseFetcher]) -> type[BaseFetcher]:
    """Class decorator adding a fetcher to FETCHER_REGISTRY under its name.

    :raises ValueError: If the class has no name.
    """
    if not cls.name:
        raise ValueError(f"Fetcher {cls.__name__} must define a 'name' class variable")
    FETCHER_REGISTRY[cls.name] = cls
    return cls


def get_available_fetchers() -> list[str]:
    return sorted(FETCHER_REGISTRY)


def get_fetcher(
    name: str, api_key: str | None = None, timeout: float | None = None
) -> BaseFetcher:
    """Instantiate a registered fetcher.

    :param name: Registry key (e.g., "binance", "kraken").
    :param api_key: Optional API key.
    :param timeout: Optional HTTP timeout in seconds.
    :returns: Fetcher instance.
    :raises ValueError: If no fetcher is registered under name.
    """
    try:
        fetcher_cls = FETCHER_REGISTRY[name]
    except KeyError:
        available = ", ".join(get_available_fetchers())
        raise ValueError(f"Unknown fetcher '{name}'. Available: {available}") from None
    return fetcher_cls(api_key=api_key, timeout=timeout)
