"""Synapse bridge adapter (POST body)."""

from routerex.routing.base import QuoteInput
from routerex.routing.bridge import BridgeAdapter

SYNAPSE_BRIDGE_URL = "https://api.synapseprotocol.com/bridge"


class SynapseAdapter(BridgeAdapter):
    priority = 7
    method = "POST"
    endpoint = SYNAPSE_BRIDGE_URL
    slippage_param = None

    @property
    def name(self) -> str:
        return "synapse"

    def build_request(self, quote_input: QuoteInput) -> dict:
        return {
            "originChainId": quote_input.from_chain_id,
            "destinationChainId": quote_input.to_chain_id,
            "originToken": quote_input.from_token,
            "destinationToken": quote_input.to_token,
            "amount": quote_input.amount,
            "recipient": quote_input.user_address or self.placeholder,
        }
