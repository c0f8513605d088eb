"""Hop Protocol bridge adapter."""

from routerex.routing.base import QuoteInput
from routerex.routing.bridge import BridgeAdapter

HOP_QUOTE_URL = "https://api.hop.exchange/v1/quote"


class HopAdapter(BridgeAdapter):
    priority = 5
    endpoint = HOP_QUOTE_URL
    supported_chain_ids = frozenset({1, 10, 100, 137, 8453, 42161, 59144})

    @property
    def name(self) -> str:
        return "hop"

    def build_request(self, quote_input: QuoteInput) -> dict:
        return {
            "sourceChainId": str(quote_input.from_chain_id),
            "destinationChainId": str(quote_input.to_chain_id),
            "sourceToken": quote_input.from_token,
            "destinationToken": quote_input.to_token,
            "amount": quote_input.amount,
            "recipient": quote_input.user_address or self.placeholder,
        }
