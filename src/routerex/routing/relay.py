"""Relay bridge/swap adapter.

Relay only returns execution-ready quotes for a real EOA, so requests
carrying the placeholder user are skipped. Pairs Relay rejects with
INVALID_INPUT_CURRENCY are negative-cached.
"""

import json
import logging
from typing import Optional

import httpx

from routerex.chains import Family
from routerex.errors import ErrorCode
from routerex.quoting.cache import CacheStore
from routerex.routing.base import (
    FeeBreakdown,
    FeeType,
    Failed,
    HttpQuoteAdapter,
    ProviderOutcome,
    ProviderRequestError,
    QuoteInput,
    QuoteStep,
    first_present,
    parse_decimal,
)

logger = logging.getLogger(__name__)

RELAY_QUOTE_URL = "https://api.relay.link/quote/v2"


def parse_relay_error_code(text: str) -> Optional[str]:
    """Extract Relay's error code from a JSON or plain-text error body."""
    try:
        body = json.loads(text)
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = body.get("errorCode") or body.get("code")
        if not code and isinstance(body.get("error"), dict):
            code = body["error"].get("code")
        if code:
            return str(code)
    if "INVALID_INPUT_CURRENCY" in text or "Invalid input or output currency" in text:
        return ErrorCode.INVALID_INPUT_CURRENCY.value
    return None


class RelayAdapter(HttpQuoteAdapter):
    """Relay quote adapter (POST body)."""

    priority = 1
    timeout = 3.0

    def __init__(self, client: Optional[httpx.AsyncClient] = None, cache: Optional[CacheStore] = None, **kwargs):
        super().__init__(client=client, **kwargs)
        self.cache = cache or CacheStore()

    @property
    def name(self) -> str:
        return "relay"

    def _get_headers(self) -> dict:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.api_key:
            headers["X-Relay-Auth"] = self.api_key
        return headers

    def _pair(self, quote_input: QuoteInput) -> tuple:
        return (
            quote_input.from_chain_id,
            quote_input.to_chain_id,
            quote_input.from_token,
            quote_input.to_token,
        )

    async def _quote(self, quote_input: QuoteInput, timeout: float) -> ProviderOutcome:
        if quote_input.from_family != Family.EVM or quote_input.to_family != Family.EVM:
            return self.skip("non-EVM chain pair")

        user = quote_input.user_address
        if not user or user.lower() == self.placeholder.lower():
            return self.skip("requires a connected wallet")

        if self.cache.is_negative(self.name, *self._pair(quote_input)):
            return Failed(self.error("Pair not supported by Relay (negative cached)", ErrorCode.INVALID_INPUT_CURRENCY))

        body = {
            "user": user,
            "originChainId": quote_input.from_chain_id,
            "destinationChainId": quote_input.to_chain_id,
            "originCurrency": quote_input.from_token,
            "destinationCurrency": quote_input.to_token,
            "amount": quote_input.amount,
            "tradeType": "EXACT_INPUT",
        }

        try:
            data = await self._request("POST", RELAY_QUOTE_URL, timeout, json=body)
        except ProviderRequestError as e:
            if e.error.http_status is not None:
                code = parse_relay_error_code(e.error.message)
                if code == ErrorCode.INVALID_INPUT_CURRENCY.value:
                    self.cache.mark_negative(self.name, *self._pair(quote_input))
                    e.error.code = ErrorCode.INVALID_INPUT_CURRENCY
            raise

        return self.result(
            quote_input,
            first_present(data, "destinationAmount", "quote.destinationAmount", "quote.outputAmount"),
            fees=self._parse_fees(data),
            steps=[QuoteStep(
                provider=self.name,
                tool=self.name,
                from_chain_id=quote_input.from_chain_id,
                to_chain_id=quote_input.to_chain_id,
            )],
            reported_total_fee_usd=parse_decimal(first_present(data, "fees.totalUSD")),
            raw=data,
        )

    def _parse_fees(self, data: dict) -> list[FeeBreakdown]:
        fees = []
        for key, fee_type in (("gasUSD", FeeType.GAS), ("providerUSD", FeeType.PROTOCOL), ("bridgeUSD", FeeType.BRIDGE)):
            usd = parse_decimal(first_present(data, f"fees.{key}"))
            if usd:
                fees.append(FeeBreakdown(type=fee_type, usd=usd))
        return fees
