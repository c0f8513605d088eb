"""Stargate bridge adapter (ERC20 transfers only)."""

from routerex.routing.base import QuoteInput
from routerex.routing.bridge import BridgeAdapter

STARGATE_QUOTE_URL = "https://api.stargate.finance/v1/quote"


class StargateAdapter(BridgeAdapter):
    """Stargate quotes. Native tokens are skipped rather than failed."""

    priority = 4
    timeout = 4.5
    endpoint = STARGATE_QUOTE_URL
    supports_native = False

    @property
    def name(self) -> str:
        return "stargate"

    def build_request(self, quote_input: QuoteInput) -> dict:
        return {
            "srcChainId": str(quote_input.from_chain_id),
            "dstChainId": str(quote_input.to_chain_id),
            "srcTokenAddress": quote_input.from_token,
            "dstTokenAddress": quote_input.to_token,
            "amount": quote_input.amount,
            "userAddress": quote_input.user_address or self.placeholder,
        }
