"""deBridge adapter scaffold.

The quote response format has not been confirmed, so every request
reports UNSUPPORTED_PROVIDER_RESPONSE. Disabled unless ENABLE_DEBRIDGE.
"""

from routerex.errors import ErrorCode
from routerex.routing.base import Failed, ProviderOutcome, QuoteInput
from routerex.routing.bridge import BridgeAdapter

DEBRIDGE_QUOTE_URL = "https://api.debridge.finance/api/v2/quote"


class DebridgeAdapter(BridgeAdapter):
    priority = 9
    endpoint = DEBRIDGE_QUOTE_URL

    @property
    def name(self) -> str:
        return "debridge"

    def build_request(self, quote_input: QuoteInput) -> dict:
        return {
            "srcChainId": str(quote_input.from_chain_id),
            "dstChainId": str(quote_input.to_chain_id),
            "srcChainTokenIn": quote_input.from_token,
            "dstChainTokenOut": quote_input.to_token,
            "srcChainTokenInAmount": quote_input.amount,
        }

    async def _quote(self, quote_input: QuoteInput, timeout: float) -> ProviderOutcome:
        reason = self.unsupported_reason(quote_input)
        if reason:
            return self.skip(reason)
        # TODO: parse the v2 quote once the response schema is confirmed against live traffic
        return Failed(self.error(
            "deBridge quote parsing not implemented",
            ErrorCode.UNSUPPORTED_PROVIDER_RESPONSE,
            url=self.endpoint,
            request=self.build_request(quote_input),
        ))
