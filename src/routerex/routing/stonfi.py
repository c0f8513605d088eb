"""STON.fi DEX integration for TON.

Uses STON.fi API for swaps on TON network.
API docs: https://docs.ston.fi/
"""

import json
import logging
from typing import Optional

import httpx

from routerex.chains import Family
from routerex.errors import ErrorCode
from routerex.routing.base import (
    Failed,
    FeeBreakdown,
    FeeType,
    HttpQuoteAdapter,
    ProviderOutcome,
    QuoteInput,
    QuoteStep,
    first_present,
    parse_base_amount,
)
from routerex.tokens import TON_NATIVE

logger = logging.getLogger(__name__)

STONFI_API = "https://api.ston.fi"


class StonfiAdapter(HttpQuoteAdapter):
    """STON.fi AMM quotes. Routes are fetched first, then the best is quoted."""

    priority = 12

    def __init__(self, client: Optional[httpx.AsyncClient] = None, base_url: str = STONFI_API, **kwargs):
        super().__init__(client=client, **kwargs)
        self.base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        return "stonfi"

    @staticmethod
    def _token(address: str) -> str:
        if address == TON_NATIVE or address.lower() == "native":
            return TON_NATIVE
        return address

    async def _quote(self, quote_input: QuoteInput, timeout: float) -> ProviderOutcome:
        if quote_input.from_family != Family.TON or quote_input.to_family != Family.TON:
            return self.skip("not a TON swap")

        offer = self._token(quote_input.from_token)
        ask = self._token(quote_input.to_token)

        routes_data = await self._request(
            "GET", f"{self.base_url}/v1/swap/routes", timeout, params={"offer": offer, "ask": ask},
        )
        routes = routes_data if isinstance(routes_data, list) else (routes_data or {}).get("routes") or []
        if not routes:
            return Failed(self.error("No routes found", ErrorCode.NO_ROUTE))
        best_route = routes[0]

        data = await self._request(
            "GET",
            f"{self.base_url}/v1/swap/quote",
            timeout,
            params={
                "offer": offer,
                "ask": ask,
                "amount": quote_input.amount,
                "route": json.dumps(best_route),
            },
        )

        fees = []
        fee = parse_base_amount(data.get("fee"))
        if fee:
            fees.append(FeeBreakdown(type=FeeType.PROTOCOL, amount=fee, token=ask))

        return self.result(
            quote_input,
            first_present(data, "askAmount", "amountOut", "amount"),
            fees=fees,
            steps=[QuoteStep(
                provider=self.name,
                tool=self.name,
                from_chain_id=quote_input.from_chain_id,
                to_chain_id=quote_input.to_chain_id,
                estimated_time_seconds=5,
            )],
            estimated_time_seconds=5,
            raw={"quote": data, "route": best_route},
        )
