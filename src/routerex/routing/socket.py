"""Socket (Bungee) aggregator adapter.

Socket returns several bridge routes per request; the one with the
highest output is kept.
"""

import logging
from typing import Optional

import httpx

from routerex.errors import ErrorCode
from routerex.routing.base import (
    FeeBreakdown,
    FeeType,
    Failed,
    ProviderOutcome,
    QuoteInput,
    QuoteStep,
    first_present,
    parse_base_amount,
    parse_decimal,
    parse_int,
)
from routerex.routing.bridge import BridgeAdapter

logger = logging.getLogger(__name__)

SOCKET_QUOTE_URL = "https://api.socket.tech/v2/quote"


class SocketAdapter(BridgeAdapter):
    """Socket quote adapter. Requires an API key."""

    priority = 10
    endpoint = SOCKET_QUOTE_URL
    slippage_param = "slippageTolerance"

    def __init__(self, client: Optional[httpx.AsyncClient] = None, provider_name: str = "socket", **kwargs):
        super().__init__(client=client, **kwargs)
        self._name = provider_name

    @property
    def name(self) -> str:
        return self._name

    def _get_headers(self) -> dict:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.api_key:
            if self.api_key.startswith("sktsec_"):
                headers["Authorization"] = f"Bearer {self.api_key}"
            else:
                headers["X-API-Key"] = self.api_key
        return headers

    def build_request(self, quote_input: QuoteInput) -> dict:
        return {
            "fromChainId": str(quote_input.from_chain_id),
            "toChainId": str(quote_input.to_chain_id),
            "fromTokenAddress": quote_input.from_token,
            "toTokenAddress": quote_input.to_token,
            "fromAmount": quote_input.amount,
            "recipient": quote_input.user_address or self.placeholder,
        }

    async def _quote(self, quote_input: QuoteInput, timeout: float) -> ProviderOutcome:
        reason = self.unsupported_reason(quote_input)
        if reason:
            return self.skip(reason)
        if not self.api_key:
            return Failed(self.error(
                "Socket API requires an API key (SOCKET_API_KEY)",
                ErrorCode.API_KEY_REQUIRED,
                url=self.endpoint,
            ))
        return await super()._quote(quote_input, timeout)

    def parse_response(self, quote_input: QuoteInput, data) -> ProviderOutcome:
        routes = first_present(data, "routes", "result.routes") or []
        if not routes:
            return Failed(self.error("No routes available", ErrorCode.NO_ROUTE, url=self.endpoint))

        best = max(routes, key=lambda r: int(parse_base_amount(r.get("toAmount")) or 0))
        route = best.get("route") or {}
        bridge_name = str(route.get("bridgeName") or route.get("bridge") or self.name).lower()
        eta = parse_int(best.get("estimatedTime"))

        fees = []
        fee_amount = parse_base_amount(best.get("feeAmount"))
        if fee_amount:
            fees.append(FeeBreakdown(
                type=FeeType.BRIDGE,
                amount=fee_amount,
                token=quote_input.from_token,
                usd=parse_decimal(best.get("feeUSD")),
            ))
        gas_usd = parse_decimal(best.get("gasUSD"))
        if gas_usd is not None:
            fees.append(FeeBreakdown(type=FeeType.GAS, usd=gas_usd))

        steps = [
            QuoteStep(
                provider=bridge_name,
                tool=bridge_name,
                from_chain_id=step.get("fromChainId") or quote_input.from_chain_id,
                to_chain_id=step.get("toChainId") or quote_input.to_chain_id,
                estimated_time_seconds=parse_int(step.get("estimatedTime")) or eta,
            )
            for step in route.get("steps") or []
        ] or [QuoteStep(
            provider=self.name,
            tool=bridge_name,
            from_chain_id=quote_input.from_chain_id,
            to_chain_id=quote_input.to_chain_id,
            estimated_time_seconds=eta,
        )]

        return self.result(
            quote_input,
            first_present(best, "toAmount", "outputAmount", "destinationAmount"),
            fees=fees,
            steps=steps,
            estimated_time_seconds=eta,
            estimated_gas=parse_int(best.get("gasLimit")),
            raw=best,
        )


def create_bungee_adapter(client: Optional[httpx.AsyncClient] = None, **kwargs) -> SocketAdapter:
    """Bungee is Socket's consumer brand; it shares the Socket API."""
    return SocketAdapter(client=client, provider_name="bungee", **kwargs)
