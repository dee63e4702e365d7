"""
Function selector extraction for diamond facets.

Selectors are the first four bytes of keccak256 over a function's canonical
signature. Initializer entry points are filtered out before a facet is wired
into the diamond, since they must never be reachable through the dispatcher.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from web3 import Web3

from jiblycoin_deploy.domain.models.deployment import FacetCut, InitializerMatch

DEFAULT_INITIALIZER_PREFIX = "init"
DEFAULT_INITIALIZER_DENYLIST = ("initialize", "init")


def _canonical_type(param: Dict[str, Any]) -> str:
    abi_type = param["type"]
    if abi_type.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components", []))
        return f"({inner}){abi_type[len('tuple'):]}"
    return abi_type


def function_signature(abi_entry: Dict[str, Any]) -> str:
    """Canonical signature of a function ABI entry, e.g. ``transfer(address,uint256)``."""
    types = ",".join(_canonical_type(p) for p in abi_entry.get("inputs", []))
    return f"{abi_entry['name']}({types})"


def selector_for(signature: str) -> str:
    """Return 0x-prefixed selector hex for a function signature."""
    return "0x" + Web3.keccak(text=signature)[:4].hex().removeprefix("0x")


class InitializerFilter:
    """Decides which entry points are setup-only and must stay unrouted."""

    def __init__(
        self,
        match: InitializerMatch = InitializerMatch.SUBSTRING,
        prefix: str = DEFAULT_INITIALIZER_PREFIX,
        denylist: Optional[Iterable[str]] = None,
    ):
        self.match = InitializerMatch(match)
        self.prefix = prefix
        self.denylist = frozenset(
            DEFAULT_INITIALIZER_DENYLIST if denylist is None else denylist
        )

    def is_initializer(self, function_name: str) -> bool:
        if self.match == InitializerMatch.SUBSTRING:
            return "init" in function_name
        if self.match == InitializerMatch.PREFIX:
            return function_name.startswith(self.prefix)
        return function_name in self.denylist

    @classmethod
    def from_settings(cls, settings) -> "InitializerFilter":
        return cls(
            match=InitializerMatch(settings.INITIALIZER_MATCH),
            prefix=settings.INITIALIZER_PREFIX,
            denylist=settings.INITIALIZER_DENYLIST,
        )


def get_selectors(
    abi: Sequence[Dict[str, Any]],
    initializer_filter: Optional[InitializerFilter] = None,
) -> List[str]:
    """
    Extract the selectors to register for a facet.

    Args:
        abi: Facet ABI, in declaration order
        initializer_filter: Rule for skipping initializers (substring "init" by default)

    Returns:
        0x-prefixed selectors in ABI order
    """
    initializer_filter = initializer_filter or InitializerFilter()
    selectors = []
    for entry in abi:
        if entry.get("type") != "function":
            continue
        if initializer_filter.is_initializer(entry["name"]):
            continue
        selectors.append(selector_for(function_signature(entry)))
    return selectors


def get_initializer_selectors(
    abi: Sequence[Dict[str, Any]],
    initializer_filter: Optional[InitializerFilter] = None,
) -> List[str]:
    """Selectors of the entry points the filter keeps out of the dispatcher."""
    initializer_filter = initializer_filter or InitializerFilter()
    return [
        selector_for(function_signature(entry))
        for entry in abi
        if entry.get("type") == "function" and initializer_filter.is_initializer(entry["name"])
    ]


def find_selector_collisions(cuts: Sequence[FacetCut]) -> Dict[str, List[str]]:
    """
    Find selectors claimed by more than one facet.

    The dispatcher keeps the last registration for a selector, so any entry
    here means an earlier facet silently loses that route.

    Returns:
        Mapping of selector to the facet names claiming it, in cut order
    """
    owners: Dict[str, List[str]] = {}
    for cut in cuts:
        for selector in cut.selectors:
            owners.setdefault(selector, []).append(cut.facet_name)
    return {selector: names for selector, names in owners.items() if len(names) > 1}
