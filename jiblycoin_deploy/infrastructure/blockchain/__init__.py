"""
Blockchain infrastructure module.
Provides artifact loading, signer resolution, selector extraction and the web3 contract client.
"""

from .artifacts import ArtifactLoader, ContractArtifact
from .contract_client import ContractClient
from .selectors import (
    InitializerFilter,
    find_selector_collisions,
    function_signature,
    get_initializer_selectors,
    get_selectors,
    selector_for,
)
from .signer import Signer, resolve_signer, signer_from_private_key

__all__ = [
    "ArtifactLoader",
    "ContractArtifact",
    "ContractClient",
    "InitializerFilter",
    "find_selector_collisions",
    "function_signature",
    "get_initializer_selectors",
    "get_selectors",
    "selector_for",
    "Signer",
    "resolve_signer",
    "signer_from_private_key",
]
