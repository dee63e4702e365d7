"""
Models for deployed contracts, facet cuts and deployment results.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator
from web3 import Web3


class DiamondConstructor(str, Enum):
    """Constructor shape of the dispatcher contract."""

    ADMIN_CALLDATA = "admin_calldata"
    NONE = "none"


class RegistrationMode(str, Enum):
    """How facet cuts are submitted to the dispatcher."""

    BATCHED = "batched"
    PER_SELECTOR = "per_selector"


class InitializerMatch(str, Enum):
    """Rule used to keep initializer entry points out of the dispatcher."""

    SUBSTRING = "substring"
    PREFIX = "prefix"
    DENYLIST = "denylist"


class ProxyKind(str, Enum):
    """Upgradeable proxy flavour."""

    UUPS = "uups"
    TRANSPARENT = "transparent"


class DeployedContract(BaseModel):
    """A mined contract together with the interface used to talk to it."""

    name: str = Field(..., description="Artifact name")
    address: str = Field(..., description="Checksummed contract address")
    abi: List[Dict[str, Any]] = Field(default_factory=list, description="Contract ABI")
    tx_hash: Optional[str] = Field(default=None, description="Creation transaction hash")
    block_number: Optional[int] = Field(default=None, description="Creation block")

    @field_validator("address")
    @classmethod
    def validate_address(cls, v):
        if not Web3.is_address(v):
            raise ValueError(f"Invalid contract address: {v}")
        return Web3.to_checksum_address(v)

    def has_function(self, function_name: str) -> bool:
        """Check whether the ABI declares a function with this name."""
        return any(
            entry.get("type") == "function" and entry.get("name") == function_name
            for entry in self.abi
        )


class FacetCut(BaseModel):
    """Registration record routing a set of selectors to one facet."""

    facet_name: str = Field(..., description="Facet artifact name")
    facet_address: str = Field(..., description="Facet address")
    selectors: List[str] = Field(default_factory=list, description="0x-prefixed 4-byte selectors")

    @field_validator("selectors")
    @classmethod
    def validate_selectors(cls, v):
        for selector in v:
            if not (selector.startswith("0x") and len(selector) == 10):
                raise ValueError(f"Selector must be 4 bytes of hex: {selector}")
        return v

    def to_abi_tuple(self) -> Tuple[str, List[bytes]]:
        """Encode as the (address, bytes4[]) tuple taken by setFacets."""
        return (
            Web3.to_checksum_address(self.facet_address),
            [bytes.fromhex(selector[2:]) for selector in self.selectors],
        )


class DiamondDeploymentResult(BaseModel):
    """Everything a diamond deployment run produced."""

    network: str = Field(..., description="Network name")
    chain_id: int = Field(..., description="Chain id")
    deployer: str = Field(..., description="Signer address")
    nft: DeployedContract = Field(..., description="Auxiliary NFT contract")
    diamond: DeployedContract = Field(..., description="Dispatcher contract")
    facets: Dict[str, DeployedContract] = Field(default_factory=dict, description="Facets by name")
    cuts: List[FacetCut] = Field(default_factory=list, description="Submitted facet cuts")
    registration_mode: RegistrationMode = Field(..., description="Registration variant used")
    registered_selectors: List[str] = Field(default_factory=list, description="Selectors wired")
    nft_consumer_wired: bool = Field(default=False, description="NFT address recorded in facet")
    completed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Completion time"
    )

    def contracts(self) -> Dict[str, DeployedContract]:
        """All deployed contracts keyed by name, in deployment order."""
        deployed = {self.nft.name: self.nft, self.diamond.name: self.diamond}
        deployed.update(self.facets)
        return deployed


class ProxyDeploymentResult(BaseModel):
    """Output of an upgradeable token proxy deployment."""

    network: str = Field(..., description="Network name")
    chain_id: int = Field(..., description="Chain id")
    deployer: str = Field(..., description="Signer address")
    kind: ProxyKind = Field(..., description="Proxy flavour")
    implementation: DeployedContract = Field(..., description="Logic contract")
    proxy: DeployedContract = Field(..., description="Proxy contract")
    initializer: str = Field(..., description="Initializer function name")
    completed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Completion time"
    )

    def contracts(self) -> Dict[str, DeployedContract]:
        return {self.implementation.name: self.implementation, self.proxy.name: self.proxy}
