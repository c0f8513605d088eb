"""Token registry and base-unit arithmetic.

Decimals used in any amount arithmetic come from this registry, never
from provider responses. Per-chain decimal overrides are applied before
the token default (USDT and USDC use 18 decimals on BNB Chain).
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_DOWN, localcontext
from typing import Optional, Union

from routerex.chains import Family

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Native token markers for non-EVM families
SOLANA_NATIVE_MINT = "So11111111111111111111111111111111111111112"
TON_NATIVE = "TON"
TRON_NATIVE = "TRX"

STABLECOINS = frozenset({"USDT", "USDC", "DAI"})


@dataclass
class TokenInfo:
    """Token metadata.

    A `None` address means the token is native on that chain. Addresses
    are keyed by chain id as a string, or by lowercase family name for
    chainless networks.
    """

    id: str
    symbol: str
    name: str
    decimals: int
    addresses: dict[str, Optional[str]] = field(default_factory=dict)
    chain_decimals: dict[str, int] = field(default_factory=dict)

    def is_native_on(self, key: str) -> bool:
        return key in self.addresses and self.addresses[key] is None


TOKENS: dict[str, TokenInfo] = {
    "eth": TokenInfo(
        id="eth", symbol="ETH", name="Ether", decimals=18,
        addresses={
            "1": None, "10": None, "42161": None, "8453": None, "324": None,
            "59144": None, "534352": None, "81457": None, "57073": None,
            "60808": None, "2741": None, "480": None, "747474": None,
        },
    ),
    "weth": TokenInfo(
        id="weth", symbol="WETH", name="Wrapped Ether", decimals=18,
        addresses={
            "1": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
            "10": "0x4200000000000000000000000000000000000006",
            "8453": "0x4200000000000000000000000000000000000006",
            "42161": "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
        },
    ),
    "usdc": TokenInfo(
        id="usdc", symbol="USDC", name="USD Coin", decimals=6,
        addresses={
            "1": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
            "10": "0x7F5c764cBc14f9669B88837ca1490cCa17c31607",
            "42161": "0xFF970A61A04b1cA14834A43f5dE4533eBDDB5CC8",
            "8453": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
            "137": "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
            "43114": "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E",
            "56": "0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d",
            "101": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
            "607": "EQC61IQRl0_la95t27xhIpjxZt32vl1QQVF2UgTNuvD18W-4",
        },
        chain_decimals={"56": 18},
    ),
    "usdt": TokenInfo(
        id="usdt", symbol="USDT", name="Tether USD", decimals=6,
        addresses={
            "1": "0xdAC17F958D2ee523a2206206994597C13D831ec7",
            "10": "0x94b008aA00579c1307B0EF2c499aD98a8ce58e58",
            "42161": "0xFd086bC7CD5C481DCC9C85ebE478A1C0b69FCbb9",
            "8453": "0xfde4C96c8593536E31F229EA8f37b2ADa2699bb2",
            "137": "0xc2132D05D31c914a87C6611C10748AEb04B58e8F",
            "43114": "0x9702230A8Ea53601f5cD2dc00fDBc13d4dF4A8c7",
            "56": "0x55d398326f99059fF775485246999027B3197955",
            "101": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
            "607": "EQCxE6mUtQJKFnGfaROTKOt1lZbDiiX1kCixRv7Nw2Id_sDs",
            "tron": "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t",
        },
        chain_decimals={"56": 18},
    ),
    "dai": TokenInfo(
        id="dai", symbol="DAI", name="Dai Stablecoin", decimals=18,
        addresses={
            "1": "0x6B175474E89094C44Da98b954EedeAC495271d0F",
            "8453": "0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb",
        },
    ),
    "bnb": TokenInfo(
        id="bnb", symbol="BNB", name="BNB", decimals=18,
        addresses={"56": None, "204": None},
    ),
    "matic": TokenInfo(
        id="matic", symbol="MATIC", name="Polygon", decimals=18,
        addresses={"137": None},
    ),
    "avax": TokenInfo(
        id="avax", symbol="AVAX", name="Avalanche", decimals=18,
        addresses={"43114": None},
    ),
    "sol": TokenInfo(
        id="sol", symbol="SOL", name="Solana", decimals=9,
        addresses={"101": None},
    ),
    "ton": TokenInfo(
        id="ton", symbol="TON", name="Toncoin", decimals=9,
        addresses={"607": None},
    ),
    "trx": TokenInfo(
        id="trx", symbol="TRX", name="TRON", decimals=6,
        addresses={"tron": None},
    ),
}

# Wrapped native used where a provider refuses native tokens
WRAPPED_NATIVE: dict[int, str] = {
    1: "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    10: "0x4200000000000000000000000000000000000006",
    8453: "0x4200000000000000000000000000000000000006",
    42161: "0x82aF49447D8a07e3bd95BD0d56f35241523fBab1",
    56: "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c",
    137: "0x0d500B1d8E8eF31E21C99d1Db9A6444d3ADf1270",
    43114: "0xB31f66AA3C1e785363F0875A1B74E27b85FD66c7",
}

_NATIVE_MARKERS = {
    Family.EVM: ZERO_ADDRESS,
    Family.SOLANA: SOLANA_NATIVE_MINT,
    Family.TON: TON_NATIVE,
    Family.TRON: TRON_NATIVE,
}


def registry_key(chain_id: Optional[int], family: Family) -> str:
    """Address-map key for a chain id, or the family name when chainless."""
    if chain_id is not None:
        return str(chain_id)
    return family.value.lower()


def get_token(token_id: str) -> Optional[TokenInfo]:
    """Get token by id or symbol (case-insensitive)."""
    if not token_id:
        return None
    key = token_id.strip().lower()
    if key in TOKENS:
        return TOKENS[key]
    for token in TOKENS.values():
        if token.symbol.lower() == key:
            return token
    return None


def is_native(token_id: str, chain_id: Optional[int], family: Family) -> bool:
    """Check whether a token is the native asset of a chain."""
    token = get_token(token_id)
    if token is None:
        return False
    return token.is_native_on(registry_key(chain_id, family))


def resolve_address(token_id: str, chain_id: Optional[int], family: Family) -> Optional[str]:
    """Resolve a token to the address representation its family expects.

    Native tokens resolve to the zero address on EVM and to the family's
    own native marker elsewhere. Returns None when the token is unknown,
    not deployed on the chain, or mapped to the zero address on a
    non-EVM family.
    """
    if family == Family.UNSUPPORTED:
        return None

    token = get_token(token_id)
    if token is None:
        return None

    key = registry_key(chain_id, family)
    if key not in token.addresses:
        return None

    address = token.addresses[key]
    if address is None:
        return _NATIVE_MARKERS[family]

    if family != Family.EVM and address.lower() == ZERO_ADDRESS:
        logger.error(f"Refusing EVM zero address for {token.id} on {family.value} chain {key}")
        return None

    return address


def decimals_for(token_id: str, chain_id: Optional[int], family: Family = Family.EVM) -> int:
    """Get decimals for a token on a chain, honouring per-chain overrides.

    Raises:
        ValueError: If the token is unknown
    """
    token = get_token(token_id)
    if token is None:
        raise ValueError(f"Unknown token: {token_id}")
    key = registry_key(chain_id, family)
    return token.chain_decimals.get(key, token.decimals)


def to_base_units(amount: Union[str, Decimal, int], decimals: int) -> str:
    """Convert a human-readable amount into an integer base-unit string.

    Digits beyond the token's precision are truncated.

    Raises:
        ValueError: If the amount is not a finite non-negative number
    """
    if decimals < 0:
        raise ValueError(f"Invalid decimals: {decimals}")
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}")
    if not value.is_finite() or value < 0:
        raise ValueError(f"Invalid amount: {amount!r}")

    with localcontext() as ctx:
        ctx.prec = 100
        scaled = (value * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN)
    return str(int(scaled))


def from_base_units(amount: Union[str, int], decimals: int) -> str:
    """Convert an integer base-unit amount into a human-readable string.

    Trailing fractional zeros are stripped, so 10**18 at 18 decimals
    renders as "1".
    """
    if decimals < 0:
        raise ValueError(f"Invalid decimals: {decimals}")
    try:
        value = int(str(amount).strip())
    except ValueError:
        raise ValueError(f"Invalid base amount: {amount!r}")
    if value < 0:
        raise ValueError(f"Invalid base amount: {amount!r}")

    digits = str(value)
    if decimals == 0:
        return digits

    digits = digits.rjust(decimals + 1, "0")
    whole, frac = digits[:-decimals], digits[-decimals:].rstrip("0")
    return f"{whole}.{frac}" if frac else whole


def is_stablecoin(token_id: str) -> bool:
    token = get_token(token_id)
    return token is not None and token.symbol.upper() in STABLECOINS
