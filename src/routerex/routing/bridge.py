"""Shared behaviour for EVM bridge adapters.

Bridge APIs disagree on field names even across versions, so responses
are read through alias lists.
"""

import logging
from typing import Optional

from routerex.chains import EVM_CHAIN_IDS, Family
from routerex.routing.base import (
    FeeBreakdown,
    FeeType,
    HttpQuoteAdapter,
    ProviderOutcome,
    QuoteInput,
    QuoteStep,
    first_present,
    parse_base_amount,
    parse_decimal,
    parse_int,
)

logger = logging.getLogger(__name__)

OUTPUT_ALIASES = (
    "minAmountOut", "amountOut", "outputAmount", "destinationAmount", "toAmount", "receiveAmount",
)
FEE_AMOUNT_ALIASES = ("feeAmount", "fee", "relayFee", "bridgeFee", "protocolFee")
FEE_USD_ALIASES = ("feeUSD", "feeUsd", "totalFeeUsd")
GAS_USD_ALIASES = ("gasUSD", "gasUsd")
ETA_ALIASES = ("estimatedTime", "eta", "estimatedDuration")
GAS_ALIASES = ("estimatedGas", "gasEstimate", "gasLimit")


class BridgeAdapter(HttpQuoteAdapter):
    """EVM-to-EVM bridge quoted through a single endpoint."""

    method = "GET"
    endpoint = ""
    supports_native = True
    supported_chain_ids: Optional[frozenset] = None
    slippage_param: Optional[str] = "slippage"

    def build_request(self, quote_input: QuoteInput) -> dict:
        """Translate the canonical input into this provider's parameters."""
        raise NotImplementedError

    def chain_supported(self, chain_id: Optional[int]) -> bool:
        allowed = self.supported_chain_ids or EVM_CHAIN_IDS
        return chain_id in allowed

    def unsupported_reason(self, quote_input: QuoteInput) -> Optional[str]:
        if quote_input.from_family != Family.EVM or quote_input.to_family != Family.EVM:
            return "non-EVM chain pair"
        if not (self.chain_supported(quote_input.from_chain_id) and self.chain_supported(quote_input.to_chain_id)):
            return f"chain pair {quote_input.from_chain_id}->{quote_input.to_chain_id} not supported"
        if quote_input.from_chain_id == quote_input.to_chain_id:
            return "same-chain swap"
        if not self.supports_native and (quote_input.from_native or quote_input.to_native):
            return "native token unsupported, use wrapped native"
        return None

    async def _quote(self, quote_input: QuoteInput, timeout: float) -> ProviderOutcome:
        reason = self.unsupported_reason(quote_input)
        if reason:
            return self.skip(reason)

        payload = self.build_request(quote_input)
        if quote_input.slippage_bps is not None and self.slippage_param:
            payload[self.slippage_param] = quote_input.slippage_bps / 10000

        if self.method == "POST":
            data = await self._request("POST", self.endpoint, timeout, json=payload)
        else:
            data = await self._request("GET", self.endpoint, timeout, params=payload)
        return self.parse_response(quote_input, data)

    def parse_response(self, quote_input: QuoteInput, data) -> ProviderOutcome:
        body = data
        if isinstance(data, dict) and isinstance(data.get("data"), dict):
            body = data["data"]

        fees = []
        fee_amount = parse_base_amount(first_present(body, *FEE_AMOUNT_ALIASES))
        fee_usd = parse_decimal(first_present(body, *FEE_USD_ALIASES))
        if fee_amount is not None or fee_usd is not None:
            fees.append(FeeBreakdown(
                type=FeeType.BRIDGE, amount=fee_amount, token=quote_input.from_token, usd=fee_usd,
            ))
        gas_usd = parse_decimal(first_present(body, *GAS_USD_ALIASES))
        if gas_usd is not None:
            fees.append(FeeBreakdown(type=FeeType.GAS, usd=gas_usd))

        eta = parse_int(first_present(body, *ETA_ALIASES))
        return self.result(
            quote_input,
            first_present(body, *OUTPUT_ALIASES),
            fees=fees,
            steps=[QuoteStep(
                provider=self.name,
                tool=self.name,
                from_chain_id=quote_input.from_chain_id,
                to_chain_id=quote_input.to_chain_id,
                estimated_time_seconds=eta,
            )],
            estimated_time_seconds=eta,
            estimated_gas=parse_int(first_present(body, *GAS_ALIASES)),
            raw=data if isinstance(data, dict) else {"data": data},
        )
