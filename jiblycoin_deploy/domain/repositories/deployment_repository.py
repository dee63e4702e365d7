"""
Deployment repository.
Records deployed contract addresses per network as JSON files.
"""

import json
from pathlib import Path
from typing import Any, Dict, Union

from jiblycoin_deploy.core.logging import get_logger
from jiblycoin_deploy.domain.models.deployment import (
    DiamondDeploymentResult,
    ProxyDeploymentResult,
)

logger = get_logger(__name__)


class DeploymentRepository:
    """File-backed record of what a run deployed, one JSON file per network."""

    def __init__(self, deployments_dir: str):
        self.deployments_dir = Path(deployments_dir)

    def path_for(self, network: str) -> Path:
        return self.deployments_dir / f"{network}.json"

    def save(self, result: Union[DiamondDeploymentResult, ProxyDeploymentResult]) -> Path:
        """
        Record a deployment run.

        Contracts are merged into the network's file by name, so a proxy run
        and a diamond run on the same network both stay visible. A rerun
        overwrites the previous addresses of the same names.

        Args:
            result: Completed deployment result

        Returns:
            Path of the written file
        """
        path = self.path_for(result.network)
        record = self.load(result.network)

        record["network"] = result.network
        record["chainId"] = result.chain_id
        record["deployer"] = result.deployer
        record["updatedAt"] = result.completed_at.isoformat()
        contracts = record.setdefault("contracts", {})
        for name, deployed in result.contracts().items():
            contracts[name] = {
                "address": deployed.address,
                "txHash": deployed.tx_hash,
                "blockNumber": deployed.block_number,
            }

        if isinstance(result, DiamondDeploymentResult):
            record["diamond"] = {
                "address": result.diamond.address,
                "registrationMode": result.registration_mode.value,
                "facets": {
                    cut.facet_name: {"address": cut.facet_address, "selectors": cut.selectors}
                    for cut in result.cuts
                },
                "nftConsumerWired": result.nft_consumer_wired,
            }
        else:
            record["proxy"] = {
                "address": result.proxy.address,
                "implementation": result.implementation.address,
                "kind": result.kind.value,
            }

        self.deployments_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(record, indent=2), encoding="utf-8")
        logger.info(f"Wrote {path}")
        return path

    def load(self, network: str) -> Dict[str, Any]:
        """Load the recorded deployments for a network, or an empty record."""
        path = self.path_for(network)
        if not path.exists():
            return {}
        return json.loads(path.read_text(encoding="utf-8"))
