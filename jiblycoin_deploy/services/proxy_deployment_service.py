"""
Proxy Deployment Service.
Deploys the JiblyCoin token behind an upgradeable ERC-1967 proxy.
"""

from typing import Optional

from web3 import Web3

from jiblycoin_deploy.core.config import Settings, get_settings
from jiblycoin_deploy.core.exceptions import ContractDeploymentError
from jiblycoin_deploy.core.logging import get_logger
from jiblycoin_deploy.domain.models.deployment import (
    DeployedContract,
    ProxyDeploymentResult,
    ProxyKind,
)
from jiblycoin_deploy.domain.models.token import TokenInitParams
from jiblycoin_deploy.domain.repositories.deployment_repository import DeploymentRepository

logger = get_logger(__name__)

PROXY_CONTRACTS = {
    ProxyKind.UUPS: "ERC1967Proxy",
    ProxyKind.TRANSPARENT: "TransparentUpgradeableProxy",
}


class ProxyDeploymentService:
    """Service deploying an implementation and an initialized proxy in front of it."""

    def __init__(
        self,
        client,
        config: Optional[Settings] = None,
        repository: Optional[DeploymentRepository] = None,
    ):
        self.client = client
        self.config = config or get_settings()
        self.repository = repository

    def default_params(self) -> TokenInitParams:
        """Initializer bundle with the documented launch values."""
        return TokenInitParams(locker=self.config.LOCKER_ADDRESS)

    async def deploy(self, params: Optional[TokenInitParams] = None) -> ProxyDeploymentResult:
        """
        Deploy the token implementation and its proxy.

        The proxy constructor runs the initializer through delegatecall, so the
        token is initialized in the same transaction that creates the proxy.

        Args:
            params: Initializer arguments (documented defaults when None)

        Returns:
            ProxyDeploymentResult with implementation and proxy addresses
        """
        params = params or self.default_params()
        kind = ProxyKind(self.config.PROXY_KIND)
        admin = self.client.signer.address

        logger.info(f"Getting contract factory for {self.config.TOKEN_CONTRACT_NAME}...")
        implementation = await self.client.deploy_contract(self.config.TOKEN_CONTRACT_NAME)

        init_data = self.client.encode_function_call(
            implementation, self.config.TOKEN_INITIALIZER, params.to_initializer_args()
        )

        logger.info(f"Deploying {self.config.TOKEN_CONTRACT_NAME} as an upgradeable proxy...")
        if kind == ProxyKind.UUPS:
            proxy_args = (implementation.address, init_data)
        else:
            proxy_args = (implementation.address, admin, init_data)
        proxy = await self.client.deploy_contract(PROXY_CONTRACTS[kind], *proxy_args)

        await self._check_proxy(proxy)

        # Interact with the token through the proxy address
        token = DeployedContract(
            name=proxy.name,
            address=proxy.address,
            abi=implementation.abi,
            tx_hash=proxy.tx_hash,
            block_number=proxy.block_number,
        )

        result = ProxyDeploymentResult(
            network=self.client.network.name,
            chain_id=self.client.chain_id,
            deployer=admin,
            kind=kind,
            implementation=implementation,
            proxy=token,
            initializer=self.config.TOKEN_INITIALIZER,
        )
        if self.repository:
            self.repository.save(result)

        logger.info(f"{self.config.TOKEN_CONTRACT_NAME} deployed at: {token.address}")
        return result

    async def _check_proxy(self, proxy: DeployedContract) -> None:
        if not Web3.is_checksum_address(proxy.address):
            raise ContractDeploymentError(
                proxy.name, details={"error": "invalid address", "address": proxy.address}
            )
        if not await self.client.is_contract(proxy.address):
            raise ContractDeploymentError(
                proxy.name, details={"error": "no code at proxy address", "address": proxy.address}
            )
