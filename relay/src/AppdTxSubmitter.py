"""AppdTxSubmitter: submit transactions through the ROFL appd daemon.

Inside a ROFL enclave the relay holds no private key. The appd signs with
the app's own key and submits on its behalf via the sign-submit endpoint.
"""

import json
import logging
import time
from typing import Any

import cbor2
import httpx
from web3.types import TxParams

from .TxSubmitter import TxSubmitter

logger = logging.getLogger(__name__)

SIGN_SUBMIT_PATH = "/rofl/v1/tx/sign-submit"

# Retry schedule for appd requests: 1s, 1.5s, 2.25s, ... capped at 5s
MAX_RETRIES = 10
BACKOFF_BASE = 1.0
BACKOFF_MAX = 5.0


def _retry_delay(attempt: int) -> float:
    return min(BACKOFF_BASE * (1.5 ** attempt), BACKOFF_MAX)


def _strip_hex(value: Any) -> str:
    return str(value).removeprefix("0x").lower()


class AppdTxSubmitter(TxSubmitter):
    """Submitter that talks to the ROFL appd via Unix domain socket or HTTP.

    :cvar ROFL_SOCKET_PATH: Default Unix socket path for appd.
    :ivar url: Optional HTTP URL or socket path override.
    """

    ROFL_SOCKET_PATH = "/run/rofl-appd.sock"

    def __init__(self, url: str = "") -> None:
        """Initialize the appd submitter.

        :param url: Optional URL or socket path. Empty uses default socket.
        """
        self.url = url

    @property
    def base_url(self) -> str:
        if self.url.startswith("http"):
            return self.url.rstrip("/")
        return "http://localhost"

    def _build_transport(self) -> httpx.HTTPTransport | None:
        """Return a socket transport unless the appd is reached over HTTP."""
        if self.url.startswith("http"):
            return None
        socket_path = self.url or self.ROFL_SOCKET_PATH
        logger.debug(f"Using appd socket {socket_path}")
        return httpx.HTTPTransport(uds=socket_path)

    def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        """POST to the appd, retrying transport errors and 5xx responses.

        A 4xx means the appd understood the request and refused it, so it is
        not retried.

        :param path: API endpoint path.
        :param payload: JSON payload.
        :returns: Successful HTTP response.
        :raises RuntimeError: If the appd refuses or every attempt fails.
        """
        url = self.base_url + path
        logger.debug(f"POST {path} payload={json.dumps(payload)}")

        with httpx.Client(transport=self._build_transport()) as client:
            for attempt in range(MAX_RETRIES):
                try:
                    response = client.post(url, json=payload, timeout=None)
                except httpx.RequestError as e:
                    problem = str(e)
                else:
                    if response.is_success:
                        return response
                    if response.is_client_error:
                        raise RuntimeError(
                            f"appd POST {path} rejected: "
                            f"{response.status_code} {response.text[:200]}"
                        )
                    problem = f"{response.status_code} {response.reason_phrase}"

                logger.warning(
                    f"appd POST {path} failed: {problem} (attempt {attempt + 1}/{MAX_RETRIES})"
                )
                time.sleep(_retry_delay(attempt))

        raise RuntimeError(f"appd POST {path} failed after {MAX_RETRIES} attempts")

    @staticmethod
    def _sign_submit_request(tx: TxParams) -> dict[str, Any]:
        """Translate web3 transaction params into an appd sign-submit body."""
        return {
            "tx": {
                "kind": "eth",
                "data": {
                    "gas_limit": int(tx["gas"]),
                    "to": _strip_hex(tx["to"]) if tx.get("to") else "",
                    "value": str(tx.get("value", 0)),
                    "data": _strip_hex(tx["data"]),
                },
            },
            "encrypted": False,
        }

    def submit_tx(self, tx: TxParams) -> dict[str, Any]:
        """Have the appd sign and submit a transaction.

        :param tx: Transaction parameters including data, to, gas, value.
        :returns: appd result with its CBOR ``data`` field decoded.
        """
        result = self._post(SIGN_SUBMIT_PATH, self._sign_submit_request(tx)).json()
        if result.get("data"):
            result["data"] = cbor2.loads(bytes.fromhex(result["data"]))
        return result
