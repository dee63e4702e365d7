"""
Custom exceptions for the Jiblycoin deployment tooling.
Provides structured error handling for contract deployment and facet wiring.
"""

from typing import Any, Dict, Optional


class DeploymentException(Exception):
    """Base exception for the deployment tooling."""

    def __init__(
        self,
        message: str,
        error_code: str = "DEPLOYMENT_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# Configuration & Artifacts
class ConfigurationError(DeploymentException):
    """Raised when deployment settings are missing or invalid."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIG_ERROR", details)


class ArtifactNotFoundError(DeploymentException):
    """Raised when no compiled artifact exists for a contract name."""

    def __init__(self, contract_name: str, details: Optional[Dict[str, Any]] = None):
        message = f"Artifact not found: {contract_name}"
        super().__init__(message, "ARTIFACT_NOT_FOUND", details)


class InvalidArtifactError(DeploymentException):
    """Raised when an artifact lacks its ABI or bytecode."""

    def __init__(self, contract_name: str, details: Optional[Dict[str, Any]] = None):
        message = f"Invalid artifact: {contract_name}"
        super().__init__(message, "INVALID_ARTIFACT", details)


# Network
class RPCConnectionError(DeploymentException):
    """Raised when the JSON-RPC endpoint cannot be reached or is on the wrong chain."""

    def __init__(self, message: str = "Cannot connect to blockchain RPC", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "RPC_CONNECTION_ERROR", details)


class InvalidAddressError(DeploymentException):
    """Raised when an invalid address is provided or returned."""

    def __init__(self, address: str, details: Optional[Dict[str, Any]] = None):
        message = f"Invalid address: {address}"
        super().__init__(message, "INVALID_ADDRESS", details)


# Blockchain Operations
class ContractDeploymentError(DeploymentException):
    """Raised when a contract creation transaction reverts or is not mined."""

    def __init__(self, contract_name: str, details: Optional[Dict[str, Any]] = None):
        message = f"Contract deployment failed: {contract_name}"
        super().__init__(message, "CONTRACT_DEPLOYMENT_FAILED", details)


class TransactionFailedError(DeploymentException):
    """Raised when a blockchain transaction fails."""

    def __init__(self, tx_hash: str, details: Optional[Dict[str, Any]] = None):
        message = f"Transaction failed: {tx_hash}"
        super().__init__(message, "TRANSACTION_FAILED", details)


class ContractCallFailedError(DeploymentException):
    """Raised when a read-only contract call fails."""

    def __init__(self, contract_address: str, method: str, details: Optional[Dict[str, Any]] = None):
        message = f"Contract call failed: {contract_address}.{method}"
        super().__init__(message, "CONTRACT_CALL_FAILED", details)


# Facet wiring
class FacetRegistrationError(DeploymentException):
    """Raised when wiring facets into the diamond fails."""

    def __init__(self, message: str = "Facet registration failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "FACET_REGISTRATION_FAILED", details)


class SelectorCollisionError(DeploymentException):
    """Raised when two facets expose the same selector and collisions are not allowed."""

    def __init__(self, collisions: Dict[str, Any], details: Optional[Dict[str, Any]] = None):
        message = f"Selector collision across facets: {', '.join(sorted(collisions))}"
        super().__init__(message, "SELECTOR_COLLISION", {"collisions": collisions, **(details or {})})


class CrossReferenceWiringError(DeploymentException):
    """Raised when the NFT address cannot be recorded in its consumer facet."""

    def __init__(self, facet_name: str, details: Optional[Dict[str, Any]] = None):
        message = f"Cross-reference wiring failed: {facet_name}"
        super().__init__(message, "CROSS_REFERENCE_FAILED", details)


def get_exception_exit_code(exc: DeploymentException) -> int:
    """
    Get the process exit status for a DeploymentException.

    Args:
        exc: DeploymentException instance

    Returns:
        int: Non-zero exit status
    """
    exit_codes = {
        # Operator setup problems
        "CONFIG_ERROR": 2,
        "ARTIFACT_NOT_FOUND": 2,
        "INVALID_ARTIFACT": 2,

        # Chain-side failures
        "RPC_CONNECTION_ERROR": 1,
        "INVALID_ADDRESS": 1,
        "SELECTOR_COLLISION": 1,
        "CONTRACT_DEPLOYMENT_FAILED": 1,
        "TRANSACTION_FAILED": 1,
        "CONTRACT_CALL_FAILED": 1,
        "FACET_REGISTRATION_FAILED": 1,
        "CROSS_REFERENCE_FAILED": 1,
    }

    return exit_codes.get(exc.error_code, 1)
