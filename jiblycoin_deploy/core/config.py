"""
Configuration management for the Jiblycoin deployment tooling.
Handles environment variables, network selection and deployment parameters.
"""

from functools import lru_cache
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from jiblycoin_deploy.core.exceptions import ConfigurationError

LOCAL_NETWORK = "hardhat"

DEFAULT_FACET_NAMES = [
    "JiblycoinCoreFacet",
    "JiblycoinGovernanceFacet",
    "JiblycoinLoyaltyFacet",
    "JiblycoinStakingFacet",
    "JiblycoinLockEligibilityFacet",
    "JiblycoinUpgradeFacet",
    "JiblycoinBurnFacet",
    "JiblycoinBridgeFacet",
]


class NetworkConfig(BaseModel):
    """Resolved settings for the network a deployment runs against."""

    name: str = Field(..., description="Network name")
    rpc_url: str = Field(..., description="JSON-RPC endpoint")
    chain_id: int = Field(..., description="Expected chain id")
    private_key: Optional[str] = Field(default=None, description="Signer key")
    poa: bool = Field(default=False, description="Chain uses POA extra data")
    fork_url: Optional[str] = Field(default=None, description="Upstream RPC to fork")
    fork_block_number: Optional[int] = Field(default=None, description="Fork block")

    @property
    def is_local(self) -> bool:
        return self.name == LOCAL_NETWORK


class Settings(BaseSettings):
    """Deployment settings loaded from environment variables."""

    # Environment
    ENVIRONMENT: str = "development"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Network selection
    NETWORK: str = LOCAL_NETWORK

    # RPC endpoints
    LOCAL_RPC_URL: str = "http://127.0.0.1:8545"
    BSC_TESTNET_RPC: Optional[str] = None
    BSC_MAINNET_RPC: Optional[str] = None
    ETHEREUM_RPC: Optional[str] = None

    # Forking (local network only, active when BSC_MAINNET_RPC is set)
    FORK_BLOCK_NUMBER: int = 5000

    # Private key for signing (from .env)
    PRIVATE_KEY: Optional[str] = None

    # Transaction handling
    # Receipts are awaited for at most TX_RECEIPT_TIMEOUT seconds, never indefinitely
    TX_RECEIPT_TIMEOUT: float = 600.0
    DEFAULT_GAS_LIMIT: int = 6_000_000
    GAS_BUFFER_PERCENT: int = 20

    # Paths
    ARTIFACTS_DIR: str = "artifacts"
    DEPLOYMENTS_DIR: str = "deployments"

    # Auxiliary NFT contract
    NFT_CONTRACT_NAME: str = "JiblycoinNFT"
    NFT_NAME: str = "Jiblycoin NFT"
    NFT_SYMBOL: str = "JBNFT"
    NFT_BASE_URI: str = "https://base-uri.com/"
    NFT_CONSUMER_FACET: str = "JiblycoinStakingFacet"
    NFT_SETTER_METHOD: str = "setNFTContractAddress"

    # Diamond
    DIAMOND_CONTRACT_NAME: str = "JiblycoinDiamond"
    DIAMOND_CONSTRUCTOR: str = "admin_calldata"
    FACET_NAMES: Annotated[List[str], NoDecode] = list(DEFAULT_FACET_NAMES)
    REGISTRATION_MODE: str = "batched"
    BATCH_REGISTRATION_METHOD: str = "setFacets"
    SELECTOR_REGISTRATION_METHOD: str = "setFacet"
    VERIFY_REGISTRATION: bool = True
    STRICT_SELECTOR_COLLISIONS: bool = False

    # Initializer exclusion
    INITIALIZER_MATCH: str = "substring"
    INITIALIZER_PREFIX: str = "init"
    INITIALIZER_DENYLIST: Annotated[List[str], NoDecode] = ["initialize", "init"]

    # Upgradeable token proxy
    TOKEN_CONTRACT_NAME: str = "JiblyCoin"
    TOKEN_INITIALIZER: str = "initialize"
    PROXY_KIND: str = "uups"
    LOCKER_ADDRESS: str = "0x1E885Cf6B4bdb0161632493328066a79d04527cb"

    @field_validator("FACET_NAMES", "INITIALIZER_DENYLIST", mode="before")
    @classmethod
    def parse_name_list(cls, v):
        """Parse comma separated names from string or list."""
        if isinstance(v, str):
            return [name.strip() for name in v.split(",") if name.strip()]
        return v

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of {allowed_envs}")
        return v

    @field_validator("DIAMOND_CONSTRUCTOR")
    @classmethod
    def validate_diamond_constructor(cls, v):
        allowed = ["admin_calldata", "none"]
        if v not in allowed:
            raise ValueError(f"DIAMOND_CONSTRUCTOR must be one of {allowed}")
        return v

    @field_validator("REGISTRATION_MODE")
    @classmethod
    def validate_registration_mode(cls, v):
        allowed = ["batched", "per_selector"]
        if v not in allowed:
            raise ValueError(f"REGISTRATION_MODE must be one of {allowed}")
        return v

    @field_validator("INITIALIZER_MATCH")
    @classmethod
    def validate_initializer_match(cls, v):
        allowed = ["substring", "prefix", "denylist"]
        if v not in allowed:
            raise ValueError(f"INITIALIZER_MATCH must be one of {allowed}")
        return v

    @field_validator("PROXY_KIND")
    @classmethod
    def validate_proxy_kind(cls, v):
        allowed = ["uups", "transparent"]
        if v not in allowed:
            raise ValueError(f"PROXY_KIND must be one of {allowed}")
        return v

    def get_networks(self) -> Dict[str, Dict[str, Any]]:
        """Get the table of supported networks."""
        return {
            "hardhat": {
                "rpc_url": self.LOCAL_RPC_URL,
                "chain_id": 31337,
                "poa": False,
            },
            "bscTestnet": {
                "rpc_url": self.BSC_TESTNET_RPC
                or "https://data-seed-prebsc-1-s1.binance.org:8545/",
                "chain_id": 97,
                "poa": True,
            },
            "bscMainnet": {
                "rpc_url": self.BSC_MAINNET_RPC or "https://bsc-dataseed.binance.org/",
                "chain_id": 56,
                "poa": True,
            },
            "ethereumMainnet": {
                "rpc_url": self.ETHEREUM_RPC
                or "https://mainnet.infura.io/v3/YOUR_INFURA_PROJECT_ID",
                "chain_id": 1,
                "poa": False,
            },
        }

    def get_network_config(self, network: Optional[str] = None) -> NetworkConfig:
        """
        Resolve the configuration for a network.

        Args:
            network: Network name (defaults to NETWORK)

        Returns:
            NetworkConfig: Explicit configuration handed to the deployment services
        """
        name = network or self.NETWORK
        networks = self.get_networks()
        if name not in networks:
            raise ConfigurationError(
                f"Unknown network: {name}",
                details={"supported": sorted(networks)},
            )

        entry = networks[name]
        fork_url = None
        fork_block_number = None
        if name == LOCAL_NETWORK and self.BSC_MAINNET_RPC:
            fork_url = self.BSC_MAINNET_RPC
            fork_block_number = self.FORK_BLOCK_NUMBER

        return NetworkConfig(
            name=name,
            rpc_url=entry["rpc_url"],
            chain_id=entry["chain_id"],
            private_key=self.PRIVATE_KEY,
            poa=entry["poa"],
            fork_url=fork_url,
            fork_block_number=fork_block_number,
        )

    def validate_for_deployment(self, network: Optional[str] = None) -> NetworkConfig:
        """
        Validate settings at startup before any transaction is sent.

        Raises:
            ConfigurationError: If the selected network cannot be deployed to
        """
        config = self.get_network_config(network)

        if not config.is_local and not config.private_key:
            raise ConfigurationError(
                f"PRIVATE_KEY is required for network {config.name}"
            )
        if config.private_key and not _is_hex_key(config.private_key):
            raise ConfigurationError("PRIVATE_KEY must be 32 bytes of hex")
        if "YOUR_INFURA_PROJECT_ID" in config.rpc_url:
            raise ConfigurationError(
                "ETHEREUM_RPC is not configured", details={"network": config.name}
            )
        if not self.FACET_NAMES:
            raise ConfigurationError("FACET_NAMES must not be empty")

        return config

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


def _is_hex_key(key: str) -> bool:
    body = key[2:] if key.startswith("0x") else key
    if len(body) != 64:
        return False
    try:
        int(body, 16)
    except ValueError:
        return False
    return True


@lru_cache()
def get_settings() -> Settings:
    """Load settings on first use and reuse them for the rest of the process."""
    return Settings()
