import os
import sys
from collections import Counter
from typing import Any, Dict, List, Optional

import pytest
from web3 import Web3

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from jiblycoin_deploy.core.config import NetworkConfig, Settings  # noqa: E402
from jiblycoin_deploy.core.exceptions import (  # noqa: E402
    ArtifactNotFoundError,
    ContractCallFailedError,
    ContractDeploymentError,
    TransactionFailedError,
)
from jiblycoin_deploy.domain.models.deployment import DeployedContract  # noqa: E402
from jiblycoin_deploy.infrastructure.blockchain.selectors import (  # noqa: E402
    function_signature,
    selector_for,
)
from jiblycoin_deploy.infrastructure.blockchain.signer import Signer  # noqa: E402

# Hardhat account #0
DEPLOYER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
DEPLOYER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def fn(name: str, *input_types: str, outputs=()) -> Dict[str, Any]:
    """Minimal function ABI entry."""
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": f"arg{i}", "type": t} for i, t in enumerate(input_types)],
        "outputs": [{"name": "", "type": t} for t in outputs],
        "stateMutability": "nonpayable",
    }


def ctor(*input_types: str) -> Dict[str, Any]:
    return {
        "type": "constructor",
        "inputs": [{"name": f"arg{i}", "type": t} for i, t in enumerate(input_types)],
        "stateMutability": "nonpayable",
    }


SET_FACETS = {
    "type": "function",
    "name": "setFacets",
    "inputs": [
        {
            "name": "_facetCuts",
            "type": "tuple[]",
            "components": [
                {"name": "facetAddress", "type": "address"},
                {"name": "selectors", "type": "bytes4[]"},
            ],
        }
    ],
    "outputs": [],
    "stateMutability": "nonpayable",
}

NFT_ABI = [
    ctor("string", "string", "string", "address"),
    fn("name", outputs=("string",)),
    fn("symbol", outputs=("string",)),
    fn("ownerOf", "uint256", outputs=("address",)),
    {"type": "event", "name": "Transfer", "inputs": [], "anonymous": False},
]

DIAMOND_ABI = [
    ctor("address", "bytes"),
    SET_FACETS,
    fn("setFacet", "bytes4", "address"),
    fn("facetAddress", "bytes4", outputs=("address",)),
    {"type": "fallback", "stateMutability": "payable"},
]

FACET_ABIS = {
    "JiblycoinCoreFacet": [
        fn("initialize"),
        fn("transfer", "address", "uint256", outputs=("bool",)),
        fn("balanceOf", "address", outputs=("uint256",)),
    ],
    "JiblycoinGovernanceFacet": [
        fn("propose", "string", outputs=("uint256",)),
        fn("vote", "uint256", "bool"),
    ],
    "JiblycoinLoyaltyFacet": [
        fn("claimReward"),
        fn("points", "address", outputs=("uint256",)),
    ],
    "JiblycoinStakingFacet": [
        fn("initialize", "address"),
        fn("stake", "uint256"),
        fn("unstake", "uint256"),
        fn("setNFTContractAddress", "address"),
    ],
    "JiblycoinLockEligibilityFacet": [
        fn("isEligible", "address", outputs=("bool",)),
    ],
    "JiblycoinUpgradeFacet": [
        fn("scheduleUpgrade", "address"),
        fn("upgradeDelay", outputs=("uint256",)),
    ],
    "JiblycoinBurnFacet": [
        fn("burn", "uint256"),
    ],
    "JiblycoinBridgeFacet": [
        fn("bridgeOut", "uint256", "uint256"),
        fn("initiateTransfer", "address", "uint256"),
    ],
}

TOKEN_ABI = [
    {
        "type": "function",
        "name": "initialize",
        "inputs": [
            {"name": "name_", "type": "string"},
            {"name": "symbol_", "type": "string"},
        ],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    fn("name", outputs=("string",)),
]

PROXY_ABI = [ctor("address", "bytes")]
TRANSPARENT_PROXY_ABI = [ctor("address", "address", "bytes")]

DEFAULT_ABIS = {
    "JiblycoinNFT": NFT_ABI,
    "JiblycoinDiamond": DIAMOND_ABI,
    "JiblyCoin": TOKEN_ABI,
    "ERC1967Proxy": PROXY_ABI,
    "TransparentUpgradeableProxy": TRANSPARENT_PROXY_ABI,
    **FACET_ABIS,
}

NO_ROUTE = "Diamond: no route for selector"


class FakeChainClient:
    """
    In-memory stand-in for ContractClient.

    Contracts get CREATE-style addresses from a running nonce, the diamond's
    registry is kept per diamond address, and failures can be injected for the
    n-th call of any method (``deploy:<Name>`` for deployments).
    """

    def __init__(self, abis: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.abis = dict(DEFAULT_ABIS)
        self.abis.update(abis or {})
        self.network = NetworkConfig(
            name="hardhat", rpc_url="http://127.0.0.1:8545", chain_id=31337
        )
        self.chain_id = self.network.chain_id
        self.signer = Signer(DEPLOYER)

        self.nonce = 0
        self.block_number = 0
        self.deployments: List[tuple] = []
        self.transactions: List[tuple] = []
        self.constructor_args: Dict[str, tuple] = {}
        self.storage: Dict[str, Dict[str, Any]] = {}
        self.routes: Dict[str, Dict[str, str]] = {}
        self.raw_calls: List[tuple] = []

        self._failures: Dict[str, set] = {}
        self._calls: Counter = Counter()

    async def __aenter__(self) -> "FakeChainClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    def fail_on(self, method: str, call_number: int = 1) -> None:
        """Make the n-th call (1-based) of a method revert."""
        self._failures.setdefault(method, set()).add(call_number)

    def _should_fail(self, method: str) -> bool:
        self._calls[method] += 1
        return self._calls[method] in self._failures.get(method, set())

    def _mine(self) -> str:
        self.nonce += 1
        self.block_number += 1
        return "0x" + Web3.keccak(text=f"tx:{self.nonce}").hex().removeprefix("0x")

    async def deploy_contract(self, contract_name: str, *args: Any) -> DeployedContract:
        if contract_name not in self.abis:
            raise ArtifactNotFoundError(contract_name)
        if self._should_fail(f"deploy:{contract_name}"):
            raise ContractDeploymentError(contract_name, details={"reason": "reverted"})

        raw = Web3.keccak(text=f"{self.signer.address}:{self.nonce}")[-20:]
        address = Web3.to_checksum_address("0x" + bytes(raw).hex())
        tx_hash = self._mine()

        self.deployments.append((contract_name, args))
        self.constructor_args[address] = args
        self.storage[address] = {}
        return DeployedContract(
            name=contract_name,
            address=address,
            abi=self.abis[contract_name],
            tx_hash=tx_hash,
            block_number=self.block_number,
        )

    async def send_transaction(
        self, contract: DeployedContract, function_name: str, args: List[Any]
    ) -> Dict:
        if not contract.has_function(function_name):
            raise TransactionFailedError("not sent", details={"call": function_name})
        if self._should_fail(function_name):
            tx_hash = self._mine()
            raise TransactionFailedError(tx_hash, details={"call": f"{contract.name}.{function_name}"})

        registry = self.routes.setdefault(contract.address, {})
        if function_name == "setFacets":
            for facet_address, selectors in args[0]:
                for selector in selectors:
                    registry["0x" + selector.hex()] = facet_address
        elif function_name == "setFacet":
            selector, facet_address = args
            registry["0x" + selector.hex()] = facet_address
        elif function_name == "setNFTContractAddress":
            self.storage[contract.address]["nft"] = args[0]

        tx_hash = self._mine()
        self.transactions.append((contract.address, function_name, args))
        return {"status": 1, "transactionHash": tx_hash, "blockNumber": self.block_number}

    async def call_function(
        self, contract: DeployedContract, function_name: str, args: Optional[List[Any]] = None
    ) -> Any:
        args = args or []
        if function_name == "name":
            return self.constructor_args[contract.address][0]
        if function_name == "symbol":
            return self.constructor_args[contract.address][1]
        if function_name == "facetAddress":
            return self.routes.get(contract.address, {}).get("0x" + args[0].hex(), ZERO_ADDRESS)
        raise ContractCallFailedError(contract.address, function_name)

    async def raw_call(self, address: str, data: bytes) -> bytes:
        selector = "0x" + data[:4].hex()
        self.raw_calls.append((address, selector))
        if selector not in self.routes.get(address, {}):
            raise ContractCallFailedError(address, selector, details={"error": NO_ROUTE})
        return b""

    def encode_function_call(
        self, contract: DeployedContract, function_name: str, args: List[Any]
    ) -> bytes:
        entry = next(
            e for e in contract.abi if e.get("type") == "function" and e["name"] == function_name
        )
        selector = selector_for(function_signature(entry))
        return bytes.fromhex(selector[2:]) + repr(args).encode()

    async def is_contract(self, address: str) -> bool:
        return address in self.storage


def make_settings(**overrides) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    values = {"ENVIRONMENT": "development", "NETWORK": "hardhat", "PRIVATE_KEY": None}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def chain() -> FakeChainClient:
    """Fresh in-memory chain with every Jiblycoin artifact available."""
    return FakeChainClient()


@pytest.fixture
def deploy_settings() -> Settings:
    """Default deployment settings for the local network."""
    return make_settings()
