"""
Jiblycoin Deploy - command line entry point.
Deploys the Jiblycoin diamond with its facets, or the upgradeable token proxy.

Usage:
    jiblycoin-deploy                       # diamond on the configured NETWORK
    jiblycoin-deploy diamond --network bscTestnet
    jiblycoin-deploy proxy --network hardhat
"""

import argparse
import asyncio
import sys
from typing import List, Optional, Union

from pydantic import ValidationError

from jiblycoin_deploy.core.config import Settings, get_settings
from jiblycoin_deploy.core.exceptions import (
    ConfigurationError,
    DeploymentException,
    get_exception_exit_code,
)
from jiblycoin_deploy.core.logging import get_logger, log_error, setup_logging
from jiblycoin_deploy.domain.models.deployment import (
    DiamondDeploymentResult,
    ProxyDeploymentResult,
)
from jiblycoin_deploy.domain.repositories.deployment_repository import DeploymentRepository
from jiblycoin_deploy.infrastructure.blockchain.artifacts import ArtifactLoader
from jiblycoin_deploy.infrastructure.blockchain.contract_client import ContractClient
from jiblycoin_deploy.services.diamond_deployment_service import DiamondDeploymentService
from jiblycoin_deploy.services.proxy_deployment_service import ProxyDeploymentService

logger = get_logger(__name__)

COMMANDS = ("diamond", "proxy")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="jiblycoin-deploy",
        description="Deploy the Jiblycoin diamond and facets, or the upgradeable token proxy.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="diamond",
        choices=COMMANDS,
        help="What to deploy (default: diamond)",
    )
    parser.add_argument(
        "--network",
        default=None,
        help="Network name from the configuration (default: NETWORK setting)",
    )
    parser.add_argument(
        "--no-record",
        action="store_true",
        help="Do not write the deployments JSON file",
    )
    return parser.parse_args(argv)


def build_client(config: Settings, network: Optional[str] = None) -> ContractClient:
    """Validate settings and build a contract client for the selected network."""
    network_config = config.validate_for_deployment(network)
    return ContractClient(
        network_config,
        ArtifactLoader(config.ARTIFACTS_DIR),
        receipt_timeout=config.TX_RECEIPT_TIMEOUT,
        default_gas_limit=config.DEFAULT_GAS_LIMIT,
        gas_buffer_percent=config.GAS_BUFFER_PERCENT,
    )


async def run(
    command: str,
    config: Optional[Settings] = None,
    network: Optional[str] = None,
    record: bool = True,
) -> Union[DiamondDeploymentResult, ProxyDeploymentResult]:
    """
    Run one deployment procedure end to end.

    Args:
        command: ``diamond`` or ``proxy``
        config: Deployment settings (process settings when None)
        network: Optional override of the configured network
        record: Write the deployments JSON file on success
    """
    config = config or get_settings()
    repository = DeploymentRepository(config.DEPLOYMENTS_DIR) if record else None
    async with build_client(config, network) as client:
        if command == "proxy":
            service = ProxyDeploymentService(client, config, repository)
        else:
            service = DiamondDeploymentService(client, config, repository)
        return await service.deploy()


def main(argv: Optional[List[str]] = None) -> int:
    """Process entry point; returns the exit status."""
    args = parse_args(argv)

    try:
        config = get_settings()
    except ValidationError as e:
        setup_logging()
        error = ConfigurationError(
            "Invalid settings",
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        )
        log_error(error, context={"command": args.command, "network": args.network})
        return get_exception_exit_code(error)

    setup_logging(config.LOG_LEVEL, config.ENVIRONMENT)
    context = {"command": args.command, "network": args.network or config.NETWORK}

    try:
        asyncio.run(run(args.command, config, args.network, record=not args.no_record))
    except DeploymentException as e:
        log_error(e, context=context)
        return get_exception_exit_code(e)
    except Exception as e:
        log_error(e, context=context)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
