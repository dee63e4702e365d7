"""
Contract Client for deployment transactions.
Handles Web3 contract creation, contract calls and transactions.

Every transaction is sent and then awaited until mined before the method
returns, so at most one transaction from this client is ever in flight.
"""

from typing import Any, Dict, List, Optional

from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, Web3Exception
from web3.middleware import ExtraDataToPOAMiddleware
from web3.types import RPCEndpoint

from jiblycoin_deploy.core.config import NetworkConfig
from jiblycoin_deploy.core.exceptions import (
    ContractCallFailedError,
    ContractDeploymentError,
    InvalidArtifactError,
    RPCConnectionError,
    TransactionFailedError,
)
from jiblycoin_deploy.core.logging import (
    get_logger,
    log_blockchain_transaction,
    log_contract_deployment,
)
from jiblycoin_deploy.domain.models.deployment import DeployedContract
from jiblycoin_deploy.infrastructure.blockchain.artifacts import ArtifactLoader
from jiblycoin_deploy.infrastructure.blockchain.signer import Signer, resolve_signer

logger = get_logger(__name__)


def to_hex(value: Any) -> str:
    """Render bytes-like values as 0x-prefixed hex."""
    if isinstance(value, str):
        return value if value.startswith("0x") else "0x" + value
    encoded = bytes(value).hex()
    return "0x" + encoded


class ContractClient:
    """Client for deploying and interacting with contracts on one network."""

    def __init__(
        self,
        network: NetworkConfig,
        artifacts: ArtifactLoader,
        receipt_timeout: float = 600.0,
        default_gas_limit: int = 6_000_000,
        gas_buffer_percent: int = 20,
    ):
        """
        Initialize contract client.

        Args:
            network: Resolved network configuration
            artifacts: Loader for compiled contract artifacts
            receipt_timeout: Seconds to wait for a transaction to be mined
            default_gas_limit: Gas limit used when estimation is unavailable
            gas_buffer_percent: Headroom added on top of estimated gas
        """
        self.network = network
        self.artifacts = artifacts
        self.receipt_timeout = receipt_timeout
        self.default_gas_limit = default_gas_limit
        self.gas_buffer_percent = gas_buffer_percent

        self.w3: Optional[AsyncWeb3] = None
        self._signer: Optional[Signer] = None
        self._chain_id: Optional[int] = None

    async def __aenter__(self) -> "ContractClient":
        try:
            await self.connect()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def signer(self) -> Signer:
        if not self._signer:
            raise RPCConnectionError("Contract client is not connected")
        return self._signer

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            raise RPCConnectionError("Contract client is not connected")
        return self._chain_id

    async def connect(self) -> Signer:
        """
        Connect to the RPC endpoint and resolve the signer.

        Returns:
            Signer used for every transaction of this client
        """
        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self.network.rpc_url))
        if self.network.poa:
            self.w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        logger.info(f"Connecting to RPC: {self.network.rpc_url}", network=self.network.name)
        if not await self.w3.is_connected():
            logger.error("Failed to connect to Web3 provider")
            raise RPCConnectionError(
                f"Cannot connect to blockchain RPC at {self.network.rpc_url}",
                details={"network": self.network.name},
            )

        if self.network.fork_url:
            await self._reset_fork()

        self._chain_id = await self.w3.eth.chain_id
        if self._chain_id != self.network.chain_id:
            raise RPCConnectionError(
                f"RPC reports chain id {self._chain_id}, expected {self.network.chain_id}",
                details={"network": self.network.name},
            )

        self._signer = await resolve_signer(self.w3, self.network.private_key)
        logger.info(
            f"Deploying contracts with the account: {self._signer.address}",
            chain_id=self._chain_id,
        )
        return self._signer

    async def close(self) -> None:
        """Release the HTTP session held by the provider."""
        if self.w3 is not None:
            disconnect = getattr(self.w3.provider, "disconnect", None)
            if disconnect is not None:
                await disconnect()

    async def _reset_fork(self) -> None:
        """Reset the local node to a fork of the upstream chain."""
        params = {"forking": {"jsonRpcUrl": self.network.fork_url}}
        if self.network.fork_block_number is not None:
            params["forking"]["blockNumber"] = self.network.fork_block_number

        response = await self.w3.provider.make_request(RPCEndpoint("hardhat_reset"), [params])
        if response.get("error"):
            raise RPCConnectionError(
                "Failed to fork upstream chain",
                details={"error": response["error"], "block": self.network.fork_block_number},
            )
        logger.info(
            "Local node forked",
            block_number=self.network.fork_block_number,
        )

    async def deploy_contract(self, contract_name: str, *args: Any) -> DeployedContract:
        """
        Deploy a contract from its artifact and wait until it is mined.

        Args:
            contract_name: Artifact name
            *args: Constructor arguments

        Returns:
            DeployedContract with address, ABI and creation receipt data
        """
        artifact = self.artifacts.load(contract_name)
        if not artifact.is_deployable:
            raise InvalidArtifactError(
                contract_name, details={"error": "artifact has no creation bytecode"}
            )

        factory = self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        constructor = factory.constructor(*args)

        try:
            receipt = await self._transact(constructor, label=f"{contract_name}.constructor")
        except TransactionFailedError as e:
            raise ContractDeploymentError(contract_name, details=e.details) from e

        address = receipt.get("contractAddress")
        if not address:
            raise ContractDeploymentError(
                contract_name, details={"tx_hash": to_hex(receipt["transactionHash"])}
            )

        deployed = DeployedContract(
            name=contract_name,
            address=address,
            abi=artifact.abi,
            tx_hash=to_hex(receipt["transactionHash"]),
            block_number=receipt["blockNumber"],
        )
        log_contract_deployment(
            contract_name,
            deployed.address,
            tx_hash=deployed.tx_hash,
            block_number=deployed.block_number,
            network=self.network.name,
        )
        return deployed

    async def send_transaction(
        self,
        contract: DeployedContract,
        function_name: str,
        args: List[Any],
    ) -> Dict:
        """
        Send a transaction to the contract.

        Args:
            contract: Target contract
            function_name: Name of the contract function to call
            args: List of arguments for the function

        Returns:
            Transaction receipt
        """
        contract_function = getattr(self._contract(contract).functions, function_name)
        return await self._transact(
            contract_function(*args),
            label=f"{contract.name}.{function_name}",
            contract_address=contract.address,
        )

    async def call_function(
        self,
        contract: DeployedContract,
        function_name: str,
        args: Optional[List[Any]] = None,
    ) -> Any:
        """
        Call a read-only contract function.

        Args:
            contract: Target contract
            function_name: Name of the contract function to call
            args: List of arguments for the function

        Returns:
            Function return value
        """
        contract_function = getattr(self._contract(contract).functions, function_name)
        try:
            result = await contract_function(*(args or [])).call()
        except Web3Exception as e:
            raise ContractCallFailedError(
                contract.address, function_name, details={"error": str(e)}
            ) from e

        logger.debug(f"Called function: {function_name}({args}) = {result}")
        return result

    async def raw_call(self, address: str, data: bytes) -> bytes:
        """
        Execute an eth_call with raw calldata.

        Used to check which selectors a dispatcher actually routes.
        """
        try:
            return bytes(await self.w3.eth.call({"to": address, "data": to_hex(data)}))
        except Web3Exception as e:
            raise ContractCallFailedError(
                address, to_hex(data[:4]), details={"error": str(e)}
            ) from e

    def encode_function_call(
        self,
        contract: DeployedContract,
        function_name: str,
        args: List[Any],
    ) -> bytes:
        """ABI-encode a function call (selector followed by arguments)."""
        calldata = self._contract(contract).encode_abi(function_name, args=args)
        return bytes.fromhex(calldata[2:])

    async def is_contract(self, address: str) -> bool:
        """Check whether code is deployed at an address."""
        code = await self.w3.eth.get_code(AsyncWeb3.to_checksum_address(address))
        return len(code) > 0

    def _contract(self, contract: DeployedContract):
        return self.w3.eth.contract(address=contract.address, abi=contract.abi)

    async def _transact(
        self,
        call,
        label: str,
        contract_address: Optional[str] = None,
    ) -> Dict:
        """Build, sign, send and await a contract function or constructor call."""
        from_address = self.signer.address

        # Estimate gas if possible; a revert here means the call can never succeed
        try:
            estimated = await call.estimate_gas({"from": from_address})
            gas_limit = int(estimated * (100 + self.gas_buffer_percent) / 100)
        except ContractLogicError as e:
            raise TransactionFailedError(
                "not sent", details={"call": label, "reason": str(e)}
            ) from e
        except Web3Exception as e:
            logger.warning(f"Gas estimation failed: {e}, using default")
            gas_limit = self.default_gas_limit

        try:
            transaction = await call.build_transaction(
                {
                    "from": from_address,
                    "nonce": await self.w3.eth.get_transaction_count(from_address, "pending"),
                    "gas": gas_limit,
                    "gasPrice": await self.w3.eth.gas_price,
                    "chainId": self.chain_id,
                }
            )

            if self.signer.is_local:
                tx_hash = await self.w3.eth.send_raw_transaction(
                    self.signer.sign_transaction(transaction)
                )
            else:
                tx_hash = await self.w3.eth.send_transaction(transaction)

            logger.info(f"Transaction sent: {to_hex(tx_hash)}", call=label)
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout
            )
        except Web3Exception as e:
            raise TransactionFailedError(
                "unconfirmed", details={"call": label, "reason": str(e)}
            ) from e

        tx_hash_hex = to_hex(receipt["transactionHash"])
        if receipt.get("status") != 1:
            raise TransactionFailedError(
                tx_hash_hex,
                details={"call": label, "block_number": receipt.get("blockNumber")},
            )

        log_blockchain_transaction(
            tx_hash_hex,
            chain_id=self.chain_id,
            contract_address=contract_address,
            method=label,
            block_number=receipt["blockNumber"],
            gas_used=receipt.get("gasUsed"),
        )
        return dict(receipt)
