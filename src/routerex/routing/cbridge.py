"""Celer cBridge adapter."""

from routerex.routing.base import QuoteInput
from routerex.routing.bridge import BridgeAdapter

CBRIDGE_QUOTE_URL = "https://api.cbridge.celer.network/v1/quote"


class CBridgeAdapter(BridgeAdapter):
    priority = 8
    endpoint = CBRIDGE_QUOTE_URL

    @property
    def name(self) -> str:
        return "cbridge"

    def build_request(self, quote_input: QuoteInput) -> dict:
        return {
            "srcChainId": str(quote_input.from_chain_id),
            "dstChainId": str(quote_input.to_chain_id),
            "srcToken": quote_input.from_token,
            "dstToken": quote_input.to_token,
            "amount": quote_input.amount,
            "sender": quote_input.user_address or self.placeholder,
        }
