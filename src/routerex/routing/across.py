"""Across Protocol bridge adapter."""

from routerex.routing.base import QuoteInput
from routerex.routing.bridge import BridgeAdapter

ACROSS_QUOTE_URL = "https://api.across.to/v1/quote"


class AcrossAdapter(BridgeAdapter):
    priority = 6
    endpoint = ACROSS_QUOTE_URL
    supported_chain_ids = frozenset({1, 10, 137, 324, 8453, 42161, 59144, 81457, 534352, 480, 57073})

    @property
    def name(self) -> str:
        return "across"

    def build_request(self, quote_input: QuoteInput) -> dict:
        return {
            "originChainId": str(quote_input.from_chain_id),
            "destinationChainId": str(quote_input.to_chain_id),
            "originToken": quote_input.from_token,
            "destinationToken": quote_input.to_token,
            "amount": quote_input.amount,
            "recipient": quote_input.user_address or self.placeholder,
        }
