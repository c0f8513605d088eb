"""LI.FI aggregator adapter.

LI.FI rejects the zero address as `fromAddress`, so the placeholder EOA
is sent for indicative quotes.
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
    parse_decimal,
    parse_int,
)
from routerex.tokens import ZERO_ADDRESS

logger = logging.getLogger(__name__)

LIFI_QUOTE_URL = "https://li.quest/v1/quote"

LIFI_SUPPORTED_CHAIN_IDS = frozenset({
    1, 10, 25, 56, 100, 137, 324, 42161, 43114, 5000, 534352, 59144, 81457, 8453, 13371,
})


class LiFiAdapter(HttpQuoteAdapter):
    """LI.FI quote adapter (GET query)."""

    priority = 2
    timeout = 3.0

    @property
    def name(self) -> str:
        return "lifi"

    async def _quote(self, quote_input: QuoteInput, timeout: float) -> ProviderOutcome:
        if quote_input.from_family != Family.EVM or quote_input.to_family != Family.EVM:
            return self.skip("non-EVM chain pair")
        if (
            quote_input.from_chain_id not in LIFI_SUPPORTED_CHAIN_IDS
            or quote_input.to_chain_id not in LIFI_SUPPORTED_CHAIN_IDS
        ):
            return self.skip(f"chain pair {quote_input.from_chain_id}->{quote_input.to_chain_id} not supported")

        from_address = quote_input.user_address
        if not from_address or from_address.lower() == ZERO_ADDRESS:
            from_address = self.placeholder

        params = {
            "fromChain": str(quote_input.from_chain_id),
            "toChain": str(quote_input.to_chain_id),
            "fromToken": quote_input.from_token,
            "toToken": quote_input.to_token,
            "fromAmount": quote_input.amount,
            "fromAddress": from_address,
        }
        if quote_input.slippage_bps is not None:
            params["slippage"] = str(quote_input.slippage_bps / 10000)

        data = await self._request("GET", LIFI_QUOTE_URL, timeout, params=params)

        to_amount = first_present(data, "toAmount", "estimate.toAmount")
        if to_amount is None:
            actions = data.get("actions") if isinstance(data, dict) else None
            if isinstance(actions, list) and actions:
                to_amount = first_present(actions[-1], "toAmount", "estimate.toAmount")

        duration = parse_int(first_present(data, "estimate.executionDuration"))
        return self.result(
            quote_input,
            to_amount,
            fees=self._parse_fees(data),
            steps=[QuoteStep(
                provider=self.name,
                tool=first_present(data, "tool", "toolDetails.name"),
                from_chain_id=quote_input.from_chain_id,
                to_chain_id=quote_input.to_chain_id,
                estimated_time_seconds=duration,
            )],
            estimated_time_seconds=duration,
            raw=data,
        )

    def _parse_fees(self, data: dict) -> list[FeeBreakdown]:
        fees = []
        estimate = data.get("estimate") or {}
        for cost in estimate.get("gasCosts") or []:
            fees.append(FeeBreakdown(
                type=FeeType.GAS,
                amount=parse_base_amount(cost.get("amount")),
                token=first_present(cost, "token.address"),
                usd=parse_decimal(cost.get("amountUSD")),
            ))
        for cost in estimate.get("feeCosts") or []:
            fees.append(FeeBreakdown(
                type=FeeType.PROTOCOL,
                amount=parse_base_amount(cost.get("amount")),
                token=first_present(cost, "token.address"),
                usd=parse_decimal(cost.get("amountUSD")),
            ))
        return fees
