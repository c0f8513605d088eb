"""Quote request and response contracts.

Wire format is camelCase; Python attributes are snake_case.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class QuoteRequest(BaseModel):
    """Request for a swap quote."""

    amount: str = Field(..., description="Human-readable amount, e.g. '1.5'")
    from_token_id: str = Field(..., alias="fromTokenId", description="Source token id (eth, usdc, ...)")
    to_token_id: str = Field(..., alias="toTokenId", description="Destination token id")
    from_network_id: str = Field(..., alias="fromNetworkId", description="Source network id (ethereum, base, ...)")
    to_network_id: str = Field(..., alias="toNetworkId", description="Destination network id")
    user_address: Optional[str] = Field(
        None, alias="userAddress", description="Connected wallet; omitted means indicative quote"
    )
    slippage_bps: Optional[int] = Field(None, alias="slippageBps", ge=0, le=5000)
    request_id: Optional[str] = Field(None, alias="requestId", description="Client idempotency id")

    class Config:
        populate_by_name = True


class QuoteResponse(BaseModel):
    """Quote outcome. `ok=False` responses carry error, errorCode and debug."""

    ok: bool = Field(..., description="Whether a quote was produced")
    provider: Optional[str] = Field(None, description="Winning provider id")
    from_network_id: Optional[str] = Field(None, alias="fromNetworkId")
    to_network_id: Optional[str] = Field(None, alias="toNetworkId")
    from_chain_id: Optional[int] = Field(None, alias="fromChainId")
    to_chain_id: Optional[int] = Field(None, alias="toChainId")
    from_token_id: Optional[str] = Field(None, alias="fromTokenId")
    to_token_id: Optional[str] = Field(None, alias="toTokenId")
    from_token: Optional[str] = Field(None, alias="fromToken", description="Resolved source address")
    to_token: Optional[str] = Field(None, alias="toToken", description="Resolved destination address")
    in_amount: Optional[str] = Field(None, alias="inAmount", description="Human-readable input")
    in_amount_base: Optional[str] = Field(None, alias="inAmountBase")
    out_amount: Optional[str] = Field(None, alias="outAmount", description="Human-readable output")
    out_amount_base: Optional[str] = Field(None, alias="outAmountBase")
    is_indicative: bool = Field(default=False, alias="isIndicative")
    is_suspicious: bool = Field(default=False, alias="isSuspicious")
    estimated_gas_usd: Optional[str] = Field(None, alias="estimatedGasUSD")
    provider_fee_usd: Optional[str] = Field(None, alias="providerFeeUSD")
    bridge_fee_usd: Optional[str] = Field(None, alias="bridgeFeeUSD")
    total_fee_usd: Optional[str] = Field(None, alias="totalFeeUSD")
    estimated_time: Optional[int] = Field(None, alias="estimatedTime", description="Seconds")
    route: Optional[dict[str, Any]] = Field(None, description="Raw provider payload")
    warnings: list[str] = Field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[str] = Field(None, alias="errorCode")
    debug: Optional[dict[str, Any]] = None
    request_id: Optional[str] = Field(None, alias="requestId")

    class Config:
        populate_by_name = True
