"""0x swap API adapter (same-chain only).

0x does not accept the zero address for native tokens; the chain's
wrapped native token is substituted, and chains without one are skipped.
"""

import logging

from routerex.chains import Family
from routerex.routing.base import (
    FeeBreakdown,
    FeeType,
    HttpQuoteAdapter,
    ProviderOutcome,
    QuoteInput,
    QuoteStep,
    first_present,
    parse_base_amount,
    parse_int,
)
from routerex.tokens import WRAPPED_NATIVE

logger = logging.getLogger(__name__)

ZEROX_QUOTE_URL = "https://api.0x.org/swap/v1/quote"


class ZeroXAdapter(HttpQuoteAdapter):
    """0x quote adapter."""

    priority = 3
    timeout = 3.0

    @property
    def name(self) -> str:
        return "zerox"

    def _get_headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["0x-api-key"] = self.api_key
        return headers

    async def _quote(self, quote_input: QuoteInput, timeout: float) -> ProviderOutcome:
        if quote_input.from_family != Family.EVM or quote_input.to_family != Family.EVM:
            return self.skip("non-EVM chain pair")
        if not quote_input.same_chain:
            return self.skip("cross-chain swaps not supported")

        wrapped = WRAPPED_NATIVE.get(quote_input.from_chain_id)
        sell_token = quote_input.from_token
        buy_token = quote_input.to_token
        if quote_input.from_native or quote_input.to_native:
            if not wrapped:
                return self.skip(f"no wrapped native on chain {quote_input.from_chain_id}")
            if quote_input.from_native:
                sell_token = wrapped
            if quote_input.to_native:
                buy_token = wrapped
        if sell_token.lower() == buy_token.lower():
            return self.skip("wrap/unwrap only")

        params = {
            "sellToken": sell_token,
            "buyToken": buy_token,
            "sellAmount": quote_input.amount,
            "chainId": str(quote_input.from_chain_id),
        }
        if quote_input.user_address:
            params["takerAddress"] = quote_input.user_address
        if quote_input.slippage_bps is not None:
            params["slippagePercentage"] = str(quote_input.slippage_bps / 10000)

        data = await self._request("GET", ZEROX_QUOTE_URL, timeout, params=params)

        fees = []
        protocol_fee = parse_base_amount(data.get("protocolFee"))
        if protocol_fee:
            fees.append(FeeBreakdown(type=FeeType.PROTOCOL, amount=protocol_fee))
        gas = parse_int(first_present(data, "estimatedGas", "gas"))

        return self.result(
            quote_input,
            data.get("buyAmount"),
            fees=fees,
            steps=[QuoteStep(
                provider=self.name,
                tool=self.name,
                from_chain_id=quote_input.from_chain_id,
                to_chain_id=quote_input.to_chain_id,
            )],
            estimated_gas=gas,
            raw=data,
        )
