"""
Logging configuration for the Jiblycoin deployment tooling.
Provides structured logging for contract deployment and facet wiring operations.
"""

import logging
import sys
from typing import Any, Dict, List

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(log_level: str = "INFO", environment: str = "development") -> None:
    """
    Configure structured logging for the deployment run.
    Sets up different log formats for development and production environments.

    Args:
        log_level: Standard library level name
        environment: ENVIRONMENT setting; production logs JSON
    """

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _get_processor(environment),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # web3 and its HTTP stack are chatty at INFO
    logging.getLogger("web3").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _get_processor(environment: str):
    """
    Get the appropriate processor based on environment.

    Returns:
        Processor function for structlog
    """
    if environment == "production":
        return structlog.processors.JSONRenderer()
    else:
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        structlog.stdlib.BoundLogger: Configured logger instance
    """
    return structlog.get_logger(name)


# Specialized logging functions for deployment operations

def log_contract_deployment(
    contract_name: str,
    address: str,
    tx_hash: str = None,
    block_number: int = None,
    **kwargs
) -> None:
    """
    Log a mined contract deployment.

    Args:
        contract_name: Artifact name of the deployed contract
        address: Address the contract was deployed to
        tx_hash: Creation transaction hash
        block_number: Block the creation was mined in
        **kwargs: Additional context
    """
    logger = get_logger("contract.deployment")
    logger.info(
        f"{contract_name} deployed to: {address}",
        contract_name=contract_name,
        address=address,
        tx_hash=tx_hash,
        block_number=block_number,
        **kwargs
    )


def log_blockchain_transaction(
    tx_hash: str,
    chain_id: int = None,
    contract_address: str = None,
    method: str = None,
    block_number: int = None,
    **kwargs
) -> None:
    """
    Log blockchain transaction details.

    Args:
        tx_hash: Transaction hash
        chain_id: Blockchain chain ID
        contract_address: Smart contract address
        method: Contract method called
        block_number: Block the transaction was mined in
        **kwargs: Additional transaction context
    """
    logger = get_logger("blockchain.transaction")
    logger.info(
        "Blockchain transaction",
        tx_hash=tx_hash,
        chain_id=chain_id,
        contract_address=contract_address,
        method=method,
        block_number=block_number,
        **kwargs
    )


def log_facet_cut(
    facet_name: str,
    facet_address: str,
    selectors: List[str],
    **kwargs
) -> None:
    """
    Log the selectors extracted for a facet.

    Args:
        facet_name: Facet artifact name
        facet_address: Deployed facet address
        selectors: 0x-prefixed selectors that will route to the facet
        **kwargs: Additional context
    """
    logger = get_logger("facet.cut")
    logger.info(
        f"Facet {facet_name} selectors: {selectors}",
        facet_name=facet_name,
        facet_address=facet_address,
        selector_count=len(selectors),
        **kwargs
    )


def log_error(error: Exception, context: Dict[str, Any] = None) -> None:
    """
    Log an error with context.

    Args:
        error: Exception instance
        context: Additional context information
    """
    logger = get_logger("error")
    logger.error(
        "Deployment error",
        error=str(error),
        error_type=type(error).__name__,
        error_code=getattr(error, "error_code", None),
        details=getattr(error, "details", None),
        context=context or {},
        exc_info=error
    )
