"""Cross-family routing matrix.

Each (from_family, to_family) pair maps to how many legs the route takes
and which family's hub network it passes through. Bridge legs between
families without an on-chain adapter become OFFCHAIN_SWAP steps.
"""

from dataclasses import dataclass
from typing import Optional

from routerex.chains import Family


@dataclass(frozen=True)
class HubRoute:
    via_hub: Optional[Family]
    steps: int
    supported: bool = True


# Hub network per family; TRON has none
HUB_NETWORKS: dict[Family, Optional[str]] = {
    Family.EVM: "base",
    Family.SOLANA: "solana",
    Family.TON: "ton",
    Family.TRON: None,
}

# Tokens used to carry value between families, in preference order
BRIDGE_TOKENS: dict[Family, list[str]] = {
    Family.EVM: ["usdc", "usdt"],
    Family.SOLANA: ["usdc", "usdt"],
    Family.TON: ["usdt"],
    Family.TRON: ["usdt"],
}

_ROUTES = {
    (Family.SOLANA, Family.EVM): HubRoute(via_hub=Family.EVM, steps=2),
    (Family.TON, Family.EVM): HubRoute(via_hub=Family.EVM, steps=2),
    (Family.TRON, Family.EVM): HubRoute(via_hub=None, steps=1),
    (Family.TRON, Family.TON): HubRoute(via_hub=Family.EVM, steps=3),
    (Family.SOLANA, Family.TON): HubRoute(via_hub=Family.EVM, steps=3),
    (Family.SOLANA, Family.TRON): HubRoute(via_hub=Family.EVM, steps=3),
}

ROUTING_MATRIX: dict[tuple[Family, Family], HubRoute] = dict(_ROUTES)
for (_src, _dst), _route in _ROUTES.items():
    ROUTING_MATRIX[(_dst, _src)] = _route

# Family pairs with a real on-chain bridge adapter
ONCHAIN_BRIDGES = frozenset({
    (Family.EVM, Family.EVM),
    (Family.EVM, Family.SOLANA),
    (Family.SOLANA, Family.EVM),
})


def get_hub_route(
    from_family: Family,
    to_family: Family,
    disabled: Optional[set] = None,
) -> Optional[HubRoute]:
    """Look up the matrix entry, honouring disabled pairs."""
    route = ROUTING_MATRIX.get((from_family, to_family))
    if route is None:
        return None
    if disabled and (from_family.value, to_family.value) in disabled:
        return HubRoute(via_hub=route.via_hub, steps=route.steps, supported=False)
    return route


def has_onchain_bridge(from_family: Family, to_family: Family) -> bool:
    return (from_family, to_family) in ONCHAIN_BRIDGES


def pick_bridge_token(from_family: Family, to_family: Family, via_hub: Optional[Family] = None) -> Optional[str]:
    """First bridge token of the source family also carried by the destination (and hub)."""
    allowed = set(BRIDGE_TOKENS.get(to_family, []))
    if via_hub is not None:
        allowed &= set(BRIDGE_TOKENS.get(via_hub, []))
    for token_id in BRIDGE_TOKENS.get(from_family, []):
        if token_id in allowed:
            return token_id
    return None


def hub_network(family: Family, evm_hub: str = "base") -> Optional[str]:
    if family == Family.EVM:
        return evm_hub
    return HUB_NETWORKS.get(family)
