"""Provider adapters for quote aggregation.

Providers:
- Relay, LI.FI: cross-chain EVM aggregators
- 0x: same-chain EVM DEX aggregator
- Stargate, Hop, Across, Synapse, cBridge, deBridge, Bungee: EVM bridges
- Jupiter: Solana DEX aggregator
- STON.fi: TON DEX
- SunSwap: TRON DEX
- ChangeNOW: off-chain exchange for cross-family legs
"""

from routerex.routing.base import (
    Failed,
    Ok,
    ProviderAdapter,
    ProviderError,
    ProviderOutcome,
    QuoteInput,
    QuoteResult,
    Skip,
)
from routerex.routing.factory import create_changenow_client, create_provider_registry
from routerex.routing.registry import ProviderRegistry

__all__ = [
    "Failed",
    "Ok",
    "ProviderAdapter",
    "ProviderError",
    "ProviderOutcome",
    "QuoteInput",
    "QuoteResult",
    "Skip",
    "ProviderRegistry",
    "create_changenow_client",
    "create_provider_registry",
]
