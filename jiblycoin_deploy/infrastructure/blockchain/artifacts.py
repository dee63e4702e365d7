"""
Hardhat artifact loader.
Resolves compiled contract artifacts (ABI and bytecode) by contract name.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from jiblycoin_deploy.core.exceptions import ArtifactNotFoundError, InvalidArtifactError
from jiblycoin_deploy.core.logging import get_logger

logger = get_logger(__name__)


class ContractArtifact(BaseModel):
    """Compiled contract artifact."""

    contract_name: str = Field(..., description="Contract name")
    abi: List[Dict[str, Any]] = Field(..., description="Contract ABI")
    bytecode: str = Field(default="0x", description="Creation bytecode")
    source_name: Optional[str] = Field(default=None, description="Source file")

    @property
    def is_deployable(self) -> bool:
        return len(self.bytecode) > 2


class ArtifactLoader:
    """Loads artifacts from a Hardhat ``artifacts/`` tree."""

    def __init__(self, artifacts_dir: str):
        self.artifacts_dir = Path(artifacts_dir)
        self._cache: Dict[str, ContractArtifact] = {}

    def load(self, contract_name: str) -> ContractArtifact:
        """
        Load the artifact for a contract.

        Args:
            contract_name: Contract name, e.g. ``JiblycoinCoreFacet``

        Returns:
            ContractArtifact with ABI and creation bytecode

        Raises:
            ArtifactNotFoundError: If no artifact file exists for the name
            InvalidArtifactError: If the file has no ABI
        """
        if contract_name in self._cache:
            return self._cache[contract_name]

        path = self._find(contract_name)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise InvalidArtifactError(
                contract_name, details={"path": str(path), "error": str(e)}
            ) from e

        abi = data.get("abi")
        if abi is None:
            raise InvalidArtifactError(
                contract_name, details={"path": str(path), "error": "missing abi"}
            )

        artifact = ContractArtifact(
            contract_name=data.get("contractName", contract_name),
            abi=abi,
            bytecode=data.get("bytecode") or "0x",
            source_name=data.get("sourceName"),
        )
        self._cache[contract_name] = artifact
        logger.debug(f"Loaded artifact {contract_name} from {path}")
        return artifact

    def _find(self, contract_name: str) -> Path:
        if not self.artifacts_dir.is_dir():
            raise ArtifactNotFoundError(
                contract_name,
                details={
                    "artifacts_dir": str(self.artifacts_dir),
                    "hint": "Run `npx hardhat compile` first",
                },
            )

        # artifacts/contracts/<Source>.sol/<Name>.json, skipping <Name>.dbg.json
        # project sources win over same-named dependency artifacts
        matches = sorted(
            (
                p for p in self.artifacts_dir.rglob(f"{contract_name}.json")
                if "build-info" not in p.parts
            ),
            key=lambda p: (p.relative_to(self.artifacts_dir).parts[0] != "contracts", str(p)),
        )
        if not matches:
            raise ArtifactNotFoundError(
                contract_name, details={"artifacts_dir": str(self.artifacts_dir)}
            )
        if len(matches) > 1:
            logger.warning(
                f"Multiple artifacts named {contract_name}, using {matches[0]}",
                candidates=[str(p) for p in matches],
            )
        return matches[0]
