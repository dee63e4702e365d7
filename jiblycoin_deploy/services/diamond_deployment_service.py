"""
Diamond Deployment Service.
Deploys the NFT collection, the diamond and its facets, then wires them together.

Steps:
1. Deploy the NFT contract (used later by the staking facet)
2. Deploy the diamond
3. Deploy every facet (no constructor arguments)
4. Extract each facet's selectors, skipping initializers
5. Register the facet cuts on the diamond and check initializers stay unrouted
6. Record the NFT address in the staking facet

Each step waits for its transaction to be mined. A failure aborts the run and
leaves whatever was already mined in place; nothing is rolled back or retried.
"""

from typing import Dict, List, Optional

from jiblycoin_deploy.core.config import Settings, get_settings
from jiblycoin_deploy.core.exceptions import (
    CrossReferenceWiringError,
    DeploymentException,
    SelectorCollisionError,
)
from jiblycoin_deploy.core.logging import get_logger, log_facet_cut
from jiblycoin_deploy.domain.models.deployment import (
    DeployedContract,
    DiamondConstructor,
    DiamondDeploymentResult,
    FacetCut,
    RegistrationMode,
)
from jiblycoin_deploy.domain.repositories.deployment_repository import DeploymentRepository
from jiblycoin_deploy.infrastructure.blockchain.selectors import (
    InitializerFilter,
    find_selector_collisions,
    get_initializer_selectors,
    get_selectors,
)
from jiblycoin_deploy.services.facet_registrar import FacetRegistrar

logger = get_logger(__name__)


class DiamondDeploymentService:
    """Service running the full diamond deployment and facet wiring procedure."""

    def __init__(
        self,
        client,
        config: Optional[Settings] = None,
        repository: Optional[DeploymentRepository] = None,
    ):
        """
        Initialize diamond deployment service.

        Args:
            client: Connected contract client
            config: Deployment settings (process settings when None)
            repository: Where to record the result (skipped when None)
        """
        self.client = client
        self.config = config or get_settings()
        self.repository = repository
        self.initializer_filter = InitializerFilter.from_settings(self.config)
        self.registrar = FacetRegistrar(
            client,
            batch_method=self.config.BATCH_REGISTRATION_METHOD,
            selector_method=self.config.SELECTOR_REGISTRATION_METHOD,
        )

    async def deploy(self) -> DiamondDeploymentResult:
        """
        Run the complete deployment.

        Returns:
            DiamondDeploymentResult describing every deployed contract and route
        """
        admin = self.client.signer.address
        mode = RegistrationMode(self.config.REGISTRATION_MODE)

        nft = await self.deploy_nft(admin)
        diamond = await self.deploy_diamond(admin)
        facets = await self.deploy_facets(self.config.FACET_NAMES)

        cuts = self.build_facet_cuts(facets)
        self.check_selector_collisions(cuts)

        registered = await self.registrar.register(diamond, cuts, mode)
        if self.config.VERIFY_REGISTRATION:
            await self.registrar.verify(
                diamond, cuts, unrouted=self.initializer_selectors(facets)
            )

        nft_consumer_wired = await self.wire_nft_consumer(facets, nft)

        result = DiamondDeploymentResult(
            network=self.client.network.name,
            chain_id=self.client.chain_id,
            deployer=admin,
            nft=nft,
            diamond=diamond,
            facets=facets,
            cuts=cuts,
            registration_mode=mode,
            registered_selectors=registered,
            nft_consumer_wired=nft_consumer_wired,
        )
        if self.repository:
            self.repository.save(result)

        logger.info("Deployment and facet wiring complete!", diamond=diamond.address)
        return result

    async def deploy_nft(self, admin: str) -> DeployedContract:
        """Deploy the NFT collection with its fixed constructor arguments."""
        return await self.client.deploy_contract(
            self.config.NFT_CONTRACT_NAME,
            self.config.NFT_NAME,
            self.config.NFT_SYMBOL,
            self.config.NFT_BASE_URI,
            admin,
        )

    async def deploy_diamond(self, admin: str) -> DeployedContract:
        """
        Deploy the diamond.

        With ``admin_calldata`` the constructor is ``(address _admin, bytes _initCalldata)``
        and receives the deployer plus empty calldata; with ``none`` it takes no arguments.
        """
        constructor = DiamondConstructor(self.config.DIAMOND_CONSTRUCTOR)
        if constructor == DiamondConstructor.ADMIN_CALLDATA:
            args = (admin, b"")
        else:
            args = ()
        return await self.client.deploy_contract(self.config.DIAMOND_CONTRACT_NAME, *args)

    async def deploy_facets(self, facet_names: List[str]) -> Dict[str, DeployedContract]:
        """Deploy each facet in order; returns facets keyed by name."""
        deployed: Dict[str, DeployedContract] = {}
        for name in facet_names:
            facet = await self.client.deploy_contract(name)
            logger.info(f"{name} deployed at: {facet.address}")
            deployed[name] = facet
        return deployed

    def build_facet_cuts(self, facets: Dict[str, DeployedContract]) -> List[FacetCut]:
        """Build one facet cut per deployed facet, in deployment order."""
        cuts = []
        for name, facet in facets.items():
            selectors = get_selectors(facet.abi, self.initializer_filter)
            log_facet_cut(name, facet.address, selectors)
            cuts.append(
                FacetCut(facet_name=name, facet_address=facet.address, selectors=selectors)
            )
        return cuts

    def initializer_selectors(self, facets: Dict[str, DeployedContract]) -> List[str]:
        """Selectors left out of every cut, which the diamond must not route."""
        selectors: List[str] = []
        for facet in facets.values():
            for selector in get_initializer_selectors(facet.abi, self.initializer_filter):
                if selector not in selectors:
                    selectors.append(selector)
        return selectors

    def check_selector_collisions(self, cuts: List[FacetCut]) -> None:
        """
        Report selectors claimed by several facets.

        Raises:
            SelectorCollisionError: If STRICT_SELECTOR_COLLISIONS is enabled
        """
        collisions = find_selector_collisions(cuts)
        if not collisions:
            return
        if self.config.STRICT_SELECTOR_COLLISIONS:
            raise SelectorCollisionError(collisions)
        for selector, facet_names in collisions.items():
            logger.warning(
                f"Selector {selector} is claimed by several facets, {facet_names[-1]} wins",
                selector=selector,
                facets=facet_names,
            )

    async def wire_nft_consumer(
        self, facets: Dict[str, DeployedContract], nft: DeployedContract
    ) -> bool:
        """
        Record the NFT address in the facet that checks NFT ownership.

        Returns:
            True if the facet was deployed and wired, False if it is not part of this run

        Raises:
            CrossReferenceWiringError: If the setter transaction fails
        """
        facet_name = self.config.NFT_CONSUMER_FACET
        consumer = facets.get(facet_name)
        if consumer is None:
            logger.info(f"{facet_name} not deployed, skipping NFT wiring")
            return False

        try:
            await self.client.send_transaction(
                consumer, self.config.NFT_SETTER_METHOD, [nft.address]
            )
        except DeploymentException as e:
            raise CrossReferenceWiringError(
                facet_name,
                details={
                    "nft_address": nft.address,
                    "facet_address": consumer.address,
                    "facets_wired": True,
                    "cause": e.message,
                },
            ) from e

        logger.info(f"NFT contract address set in {facet_name} to: {nft.address}")
        return True
