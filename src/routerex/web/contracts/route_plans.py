"""Route plan contracts for multi-leg, cross-family swaps."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from routerex.chains import Family


class StepKind(str, Enum):
    """What a single route step does."""

    SWAP = "SWAP"
    BRIDGE = "BRIDGE"
    OFFCHAIN_SWAP = "OFFCHAIN_SWAP"
    TRANSFER = "TRANSFER"
    APPROVE = "APPROVE"
    WRAP = "WRAP"
    UNWRAP = "UNWRAP"


class WalletContext(BaseModel):
    """Connected wallet per family."""

    evm: Optional[str] = None
    solana: Optional[str] = None
    ton: Optional[str] = None
    tron: Optional[str] = None

    def address_for(self, family: Family) -> Optional[str]:
        return getattr(self, family.value.lower(), None)

    def missing(self, families: list[Family]) -> list[Family]:
        """Families from `families` with no connected wallet."""
        return [f for f in families if not self.address_for(f)]


class StepEndpoint(BaseModel):
    """One side of a route step."""

    network_id: str = Field(..., alias="networkId")
    chain_id: Optional[int] = Field(None, alias="chainId")
    family: Family
    token_id: str = Field(..., alias="tokenId")
    token_address: str = Field(..., alias="tokenAddress", description="Resolved address, mint or jetton")

    class Config:
        populate_by_name = True


class RouteStep(BaseModel):
    """One leg of a route plan."""

    id: str
    kind: StepKind
    from_: StepEndpoint = Field(..., alias="from")
    to: StepEndpoint
    amount_in_base: Optional[str] = Field(None, alias="amountInBase", description="None when upstream is unpriced")
    estimated_out_base: Optional[str] = Field(None, alias="estimatedOutBase")
    provider: Optional[str] = None
    requires_wallet: list[Family] = Field(default_factory=list, alias="requiresWallet")
    quote: Optional[dict[str, Any]] = Field(None, description="Provider quote payload")

    class Config:
        populate_by_name = True


class RoutePlan(BaseModel):
    """An ordered, validated list of route steps."""

    id: str
    steps: list[RouteStep]
    total_estimated_out_base: Optional[str] = Field(None, alias="totalEstimatedOutBase")
    requires_wallets: list[Family] = Field(default_factory=list, alias="requiresWallets")
    warnings: list[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class RoutePlanRequest(BaseModel):
    """Request for a route plan."""

    from_network_id: str = Field(..., alias="fromNetworkId")
    to_network_id: str = Field(..., alias="toNetworkId")
    from_token_id: str = Field(..., alias="fromTokenId")
    to_token_id: str = Field(..., alias="toTokenId")
    amount: str = Field(..., description="Human-readable amount")
    wallets: WalletContext = Field(default_factory=WalletContext)

    class Config:
        populate_by_name = True


class RoutePlanResponse(BaseModel):
    """Route plan outcome."""

    ok: bool
    plan: Optional[RoutePlan] = None
    error: Optional[str] = None
    error_code: Optional[str] = Field(None, alias="errorCode")
    debug: Optional[dict[str, Any]] = None

    class Config:
        populate_by_name = True
