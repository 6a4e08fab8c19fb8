"""ContractUtility: Web3 initialization and oracle contract ABI loading."""

import json
import logging
import os
from pathlib import Path

from eth_account import Account
from eth_account.signers.local import LocalAccount
from sapphirepy import sapphire
from web3 import Web3
from web3.middleware import SignAndSendRawMiddlewareBuilder

logger = logging.getLogger(__name__)

NETWORKS = {
    "sapphire": "https://sapphire.oasis.io",
    "sapphire-testnet": "https://testnet.sapphire.oasis.io",
    "sapphire-localnet": "http://localhost:8545",
    "localhost": "http://localhost:8545",
}

# Well-known first account of hardhat/anvil/sapphire-localnet dev chains.
LOCALNET_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"

# Minimal ABI of the oracle contract: the request event and the result call.
ORACLE_ABI: list[dict] = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": False, "internalType": "address", "name": "callerAddress", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "id", "type": "uint256"},
        ],
        "name": "GetLatestEthPriceEvent",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": False, "internalType": "uint256", "name": "ethPrice", "type": "uint256"},
            {"indexed": False, "internalType": "address", "name": "callerAddress", "type": "address"},
        ],
        "name": "SetLatestEthPriceEvent",
        "type": "event",
    },
    {
        "inputs": [
            {"internalType": "uint256", "name": "_ethPrice", "type": "uint256"},
            {"internalType": "address", "name": "_callerAddress", "type": "address"},
            {"internalType": "uint256", "name": "_id", "type": "uint256"},
        ],
        "name": "setLatestEthPrice",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


def is_localnet(network_name: str) -> bool:
    return network_name in ("sapphire-localnet", "localhost")


class ContractUtility:
    """Utility for Web3 connection and contract ABI loading.

    :ivar network: Network RPC URL.
    :ivar w3: Configured Web3 instance.
    :ivar account: Local signing account, or None when signing is delegated.
    """

    def __init__(
        self,
        network_name: str,
        rpc_url: str | None = None,
        private_key: str | None = None,
    ) -> None:
        """Initialize the contract utility.

        :param network_name: Name of the network to connect to.
        :param rpc_url: Optional RPC URL overriding the network default.
        :param private_key: Optional hex private key of the submitting account.
            Localnets fall back to the well-known dev key.
        """
        self.network = rpc_url or os.environ.get("RPC_URL") or NETWORKS.get(network_name, network_name)

        self.w3 = Web3(Web3.HTTPProvider(self.network))

        if not private_key and is_localnet(network_name):
            private_key = LOCALNET_PRIVATE_KEY

        self.account: LocalAccount | None = None
        if private_key:
            self.account = Account.from_key(private_key.strip())
            self.w3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(self.account))
            self.w3.eth.default_account = self.account.address
            logger.info(f"Submitting from {self.account.address}")

        if network_name.startswith("sapphire"):
            self.w3 = sapphire.wrap(self.w3)

    @staticmethod
    def get_contract(artifact_path: str | Path | None = None) -> list:
        """Load the oracle contract ABI.

        Accepts Truffle artifacts (``abi`` at the top level, as in
        ``build/contracts/EthPriceOracle.json``) and Foundry artifacts. Without
        a path the built-in minimal ABI is returned.

        :param artifact_path: Optional path to a compiled contract artifact.
        :returns: Contract ABI.
        :raises ValueError: If the artifact has no ABI.
        """
        if artifact_path is None:
            return ORACLE_ABI

        with open(Path(artifact_path).resolve(), "r") as file:
            contract_data = json.load(file)

        abi = contract_data.get("abi") if isinstance(contract_data, dict) else contract_data
        if not isinstance(abi, list):
            raise ValueError(f"No ABI found in {artifact_path}")
        return abi
