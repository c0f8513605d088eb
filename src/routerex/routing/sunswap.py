"""SunSwap DEX integration for TRON."""

import logging
from typing import Optional

import httpx

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
)
from routerex.tokens import TRON_NATIVE

logger = logging.getLogger(__name__)

SUNSWAP_API = "https://api.sunswap.com"


class SunSwapAdapter(HttpQuoteAdapter):
    """SunSwap quotes for TRC20/TRX swaps."""

    priority = 13

    def __init__(self, client: Optional[httpx.AsyncClient] = None, base_url: str = SUNSWAP_API, **kwargs):
        super().__init__(client=client, **kwargs)
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "sunswap"

    def _get_headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["TRON-PRO-API-KEY"] = self.api_key
        return headers

    async def _quote(self, quote_input: QuoteInput, timeout: float) -> ProviderOutcome:
        if quote_input.from_family != Family.TRON or quote_input.to_family != Family.TRON:
            return self.skip("not a TRON swap")

        token_in = TRON_NATIVE if quote_input.from_token.lower() == "native" else quote_input.from_token
        token_out = TRON_NATIVE if quote_input.to_token.lower() == "native" else quote_input.to_token

        data = await self._request(
            "GET",
            f"{self.base_url}/v2/quote",
            timeout,
            params={"tokenIn": token_in, "tokenOut": token_out, "amountIn": quote_input.amount},
        )

        fees = []
        fee = parse_base_amount(data.get("fee"))
        if fee:
            fees.append(FeeBreakdown(type=FeeType.PROTOCOL, amount=fee, token=token_out))

        return self.result(
            quote_input,
            first_present(data, "amountOut", "outputAmount", "amount"),
            fees=fees,
            steps=[QuoteStep(
                provider=self.name,
                tool=self.name,
                estimated_time_seconds=3,
            )],
            estimated_time_seconds=3,
            raw=data,
        )
