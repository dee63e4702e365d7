"""
Facet Registrar.
Installs selector -> facet routes into the diamond, batched or one selector at a time.
"""

from typing import Dict, List, Sequence

from web3 import Web3

from jiblycoin_deploy.core.exceptions import (
    ContractCallFailedError,
    DeploymentException,
    FacetRegistrationError,
)
from jiblycoin_deploy.core.logging import get_logger
from jiblycoin_deploy.domain.models.deployment import (
    DeployedContract,
    FacetCut,
    RegistrationMode,
)

logger = get_logger(__name__)

LOUPE_METHOD = "facetAddress"


class FacetRegistrar:
    """Wires facet cuts into a diamond through its registration methods."""

    def __init__(
        self,
        client,
        batch_method: str = "setFacets",
        selector_method: str = "setFacet",
    ):
        """
        Initialize facet registrar.

        Args:
            client: Connected contract client
            batch_method: Diamond method taking ``(address,bytes4[])[]``
            selector_method: Diamond method taking ``(bytes4,address)``
        """
        self.client = client
        self.batch_method = batch_method
        self.selector_method = selector_method

    async def register(
        self,
        diamond: DeployedContract,
        cuts: Sequence[FacetCut],
        mode: RegistrationMode = RegistrationMode.BATCHED,
        start_index: int = 0,
    ) -> List[str]:
        """
        Register facet cuts on the diamond.

        Args:
            diamond: Deployed dispatcher
            cuts: Facet cuts in registration order
            mode: Batched (one atomic transaction) or per-selector
            start_index: Per-selector only; position in the flattened
                selector list to resume from after a partial failure

        Returns:
            Selectors registered by this call, in order

        Raises:
            FacetRegistrationError: If a registration transaction fails
        """
        if RegistrationMode(mode) == RegistrationMode.BATCHED:
            if start_index:
                raise FacetRegistrationError(
                    "start_index only applies to per-selector registration"
                )
            return await self._register_batched(diamond, cuts)
        return await self._register_per_selector(diamond, cuts, start_index)

    async def _register_batched(
        self, diamond: DeployedContract, cuts: Sequence[FacetCut]
    ) -> List[str]:
        payload = [cut.to_abi_tuple() for cut in cuts]
        selectors = [selector for cut in cuts for selector in cut.selectors]

        try:
            await self.client.send_transaction(diamond, self.batch_method, [payload])
        except DeploymentException as e:
            raise FacetRegistrationError(
                "Batched facet registration failed; no selectors were registered",
                details={
                    "mode": RegistrationMode.BATCHED.value,
                    "registered": [],
                    "cause": e.message,
                    **e.details,
                },
            ) from e

        logger.info("Facets wired to diamond.", diamond=diamond.address, selectors=len(selectors))
        return selectors

    async def _register_per_selector(
        self,
        diamond: DeployedContract,
        cuts: Sequence[FacetCut],
        start_index: int,
    ) -> List[str]:
        routes = [
            (selector, cut.facet_address) for cut in cuts for selector in cut.selectors
        ]
        registered: List[str] = []

        for index in range(start_index, len(routes)):
            selector, facet_address = routes[index]
            try:
                await self.client.send_transaction(
                    diamond,
                    self.selector_method,
                    [bytes.fromhex(selector[2:]), Web3.to_checksum_address(facet_address)],
                )
            except DeploymentException as e:
                # Earlier routes stay installed; the operator resumes from here
                raise FacetRegistrationError(
                    f"Registration of selector {selector} failed after "
                    f"{len(registered)} of {len(routes) - start_index} succeeded",
                    details={
                        "mode": RegistrationMode.PER_SELECTOR.value,
                        "registered": registered,
                        "failed_selector": selector,
                        "resume_index": index,
                        "cause": e.message,
                    },
                ) from e

            registered.append(selector)
            logger.info(f"Selector {selector} -> {facet_address}")

        logger.info("Facets wired to diamond.", diamond=diamond.address, selectors=len(registered))
        return registered

    async def verify(
        self,
        diamond: DeployedContract,
        cuts: Sequence[FacetCut],
        unrouted: Sequence[str] = (),
    ) -> Dict[str, str]:
        """
        Check the diamond's routing table against the submitted cuts.

        Registered routes are read back through the ``facetAddress(bytes4)``
        loupe when the diamond exposes it. Every selector in ``unrouted`` is
        then called through the diamond and must revert.

        Args:
            diamond: Deployed dispatcher
            cuts: Facet cuts that were registered
            unrouted: Selectors that must not reach any facet (initializers)

        Returns:
            Verified routes as selector -> facet address (empty without a loupe)

        Raises:
            FacetRegistrationError: If a route points elsewhere or an
                unrouted selector is reachable
        """
        expected: Dict[str, str] = {}
        for cut in cuts:
            for selector in cut.selectors:
                # last registration wins
                expected[selector] = Web3.to_checksum_address(cut.facet_address)

        verified: Dict[str, str] = {}
        if diamond.has_function(LOUPE_METHOD):
            verified = await self._verify_routes(diamond, expected)
        else:
            logger.info("Diamond exposes no loupe, skipping route verification")

        reachable = []
        for selector in unrouted:
            if selector in expected:
                continue
            try:
                await self.client.raw_call(diamond.address, bytes.fromhex(selector[2:]))
            except ContractCallFailedError:
                continue
            reachable.append(selector)

        if reachable:
            raise FacetRegistrationError(
                "Initializer selectors are reachable through the diamond",
                details={"reachable": reachable},
            )
        return verified

    async def _verify_routes(
        self, diamond: DeployedContract, expected: Dict[str, str]
    ) -> Dict[str, str]:
        mismatches: Dict[str, str] = {}
        for selector, facet_address in expected.items():
            try:
                actual = await self.client.call_function(
                    diamond, LOUPE_METHOD, [bytes.fromhex(selector[2:])]
                )
            except ContractCallFailedError as e:
                raise FacetRegistrationError(
                    f"Could not read route for {selector}",
                    details={"selector": selector, "cause": e.message},
                ) from e
            if Web3.to_checksum_address(actual) != facet_address:
                mismatches[selector] = actual

        if mismatches:
            raise FacetRegistrationError(
                "Diamond routes do not match submitted facet cuts",
                details={"mismatches": mismatches},
            )
        return expected
