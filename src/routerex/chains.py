"""Network registry and blockchain family classification.

Every network the engine can quote on is listed here with its family,
chain id and native token. Unknown network ids classify as UNSUPPORTED;
they are never assumed to be EVM.
"""

import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Family(str, Enum):
    """Blockchain execution environment class."""

    EVM = "EVM"
    SOLANA = "SOLANA"
    TON = "TON"
    TRON = "TRON"
    UNSUPPORTED = "UNSUPPORTED"


@dataclass
class ChainConfig:
    """Configuration for a network."""

    key: str
    name: str
    family: Family
    native_symbol: str
    chain_id: Optional[int] = None  # None for chainless families (TRON)
    rpc_url: Optional[str] = None
    explorer_url: Optional[str] = None

    @property
    def registry_key(self) -> str:
        """Key used to look up token addresses for this network."""
        if self.chain_id is not None:
            return str(self.chain_id)
        return self.family.value.lower()


def _rpc(env_name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(f"{env_name}_RPC_URL", default)


# ======================
# Network Configurations
# ======================

CHAINS: dict[str, ChainConfig] = {
    # EVM - hub candidates
    "ethereum": ChainConfig(
        key="ethereum", name="Ethereum", family=Family.EVM, native_symbol="ETH", chain_id=1,
        rpc_url=_rpc("ETHEREUM", "https://eth.llamarpc.com"), explorer_url="https://etherscan.io",
    ),
    "base": ChainConfig(
        key="base", name="Base", family=Family.EVM, native_symbol="ETH", chain_id=8453,
        rpc_url=_rpc("BASE", "https://mainnet.base.org"), explorer_url="https://basescan.org",
    ),
    "arbitrum": ChainConfig(
        key="arbitrum", name="Arbitrum One", family=Family.EVM, native_symbol="ETH", chain_id=42161,
        rpc_url=_rpc("ARBITRUM", "https://arb1.arbitrum.io/rpc"), explorer_url="https://arbiscan.io",
    ),
    "optimism": ChainConfig(
        key="optimism", name="Optimism", family=Family.EVM, native_symbol="ETH", chain_id=10,
        rpc_url=_rpc("OPTIMISM", "https://mainnet.optimism.io"),
        explorer_url="https://optimistic.etherscan.io",
    ),
    "bnb": ChainConfig(
        key="bnb", name="BNB Chain", family=Family.EVM, native_symbol="BNB", chain_id=56,
        rpc_url=_rpc("BNB", "https://bsc-dataseed.binance.org"), explorer_url="https://bscscan.com",
    ),
    "polygon": ChainConfig(
        key="polygon", name="Polygon", family=Family.EVM, native_symbol="MATIC", chain_id=137,
        rpc_url=_rpc("POLYGON", "https://polygon-rpc.com"), explorer_url="https://polygonscan.com",
    ),
    "avalanche": ChainConfig(
        key="avalanche", name="Avalanche C-Chain", family=Family.EVM, native_symbol="AVAX",
        chain_id=43114, rpc_url=_rpc("AVALANCHE", "https://api.avax.network/ext/bc/C/rpc"),
        explorer_url="https://snowtrace.io",
    ),

    # Non-EVM
    "solana": ChainConfig(
        key="solana", name="Solana", family=Family.SOLANA, native_symbol="SOL", chain_id=101,
        explorer_url="https://solscan.io",
    ),
    "ton": ChainConfig(
        key="ton", name="TON", family=Family.TON, native_symbol="TON", chain_id=607,
        explorer_url="https://tonviewer.com",
    ),
    "tron": ChainConfig(
        key="tron", name="TRON", family=Family.TRON, native_symbol="TRX", chain_id=None,
        explorer_url="https://tronscan.org",
    ),
}

# Secondary EVM networks: (key, name, chain id, native symbol)
_SECONDARY_EVM = [
    ("celo", "Celo", 42220, "CELO"),
    ("zksync", "zkSync Era", 324, "ETH"),
    ("linea", "Linea", 59144, "ETH"),
    ("scroll", "Scroll", 534352, "ETH"),
    ("blast", "Blast", 81457, "ETH"),
    ("gnosis", "Gnosis", 100, "XDAI"),
    ("opbnb", "opBNB", 204, "BNB"),
    ("mantle", "Mantle", 5000, "MNT"),
    ("cronos", "Cronos", 25, "CRO"),
    ("rootstock", "Rootstock", 30, "RBTC"),
    ("sonic", "Sonic", 146, "S"),
    ("core", "Core", 1116, "CORE"),
    ("ronin", "Ronin", 2020, "RON"),
    ("pulsechain", "PulseChain", 369, "PLS"),
    ("berachain", "Berachain", 80094, "BERA"),
    ("ink", "Ink", 57073, "ETH"),
    ("bob", "BOB", 60808, "ETH"),
    ("abstract", "Abstract", 2741, "ETH"),
    ("katana", "Katana", 747474, "ETH"),
    ("plasma", "Plasma", 9745, "XPL"),
    ("plume", "Plume", 98866, "PLUME"),
    ("immutable-zkevm", "Immutable zkEVM", 13371, "IMX"),
    ("world-chain", "World Chain", 480, "ETH"),
]

for _key, _name, _chain_id, _symbol in _SECONDARY_EVM:
    CHAINS[_key] = ChainConfig(
        key=_key,
        name=_name,
        family=Family.EVM,
        native_symbol=_symbol,
        chain_id=_chain_id,
        rpc_url=_rpc(_key.upper().replace("-", "_")),
    )

# Aliases accepted from clients
NETWORK_ALIASES = {
    "eth": "ethereum",
    "mainnet": "ethereum",
    "bsc": "bnb",
    "binance": "bnb",
    "matic": "polygon",
    "avax": "avalanche",
    "arb": "arbitrum",
    "op": "optimism",
    "bera": "berachain",
    "sol": "solana",
    "trx": "tron",
}

# Chain ids accepted as EVM
EVM_CHAIN_IDS = frozenset({
    1, 10, 25, 30, 56, 100, 137, 146, 204, 324, 369, 480, 1116, 2020, 2345, 2741,
    42161, 43114, 5000, 534352, 57073, 59144, 60808, 80094, 81457, 8453, 9745,
    98866, 10143, 13371, 747474, 42220,
})


def get_chain(network_id: str) -> Optional[ChainConfig]:
    """Get network configuration by id or alias."""
    if not network_id:
        return None
    key = network_id.strip().lower()
    key = NETWORK_ALIASES.get(key, key)
    return CHAINS.get(key)


def get_chain_by_id(chain_id: int) -> Optional[ChainConfig]:
    """Find a network by numeric chain id."""
    for chain in CHAINS.values():
        if chain.chain_id == chain_id:
            return chain
    return None


def get_all_chains() -> list[ChainConfig]:
    """Get all network configurations."""
    return list(CHAINS.values())


def family_of(network_id: str) -> Family:
    """Classify a network id into its family.

    Unknown networks are UNSUPPORTED, and an EVM entry whose chain id is
    not on the EVM allow-list is UNSUPPORTED as well.
    """
    chain = get_chain(network_id)
    if chain is None:
        return Family.UNSUPPORTED
    if chain.family == Family.EVM and chain.chain_id not in EVM_CHAIN_IDS:
        return Family.UNSUPPORTED
    return chain.family


# ======================
# Address Formats
# ======================

ADDRESS_PATTERNS = {
    Family.EVM: re.compile(r"^0x[a-fA-F0-9]{40}$"),
    Family.SOLANA: re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$"),
    Family.TON: re.compile(r"^(?:[EUk0]Q[A-Za-z0-9_-]{46}|-?\d+:[0-9a-fA-F]{64})$"),
    Family.TRON: re.compile(r"^T[1-9A-HJ-NP-Za-km-z]{33}$"),
}


def is_valid_address(family: Family, address: Optional[str]) -> bool:
    """Check that an address has the shape its family expects."""
    if not address:
        return False
    pattern = ADDRESS_PATTERNS.get(family)
    if pattern is None:
        return False
    return bool(pattern.match(address))
