"""Jupiter DEX aggregator integration for Solana.

Uses Jupiter Aggregator API for swaps on Solana.
API docs: https://station.jup.ag/docs/apis/swap-api
"""

import logging
from typing import Optional

from routerex.chains import Family
from routerex.errors import ErrorCode
from routerex.routing.base import (
    FeeBreakdown,
    FeeType,
    HttpQuoteAdapter,
    ProviderError,
    ProviderOutcome,
    ProviderRequestError,
    QuoteInput,
    QuoteStep,
    parse_base_amount,
)

logger = logging.getLogger(__name__)

# Jupiter API endpoints
JUPITER_API_V6 = "https://quote-api.jup.ag/v6"


class JupiterAdapter(HttpQuoteAdapter):
    """Jupiter aggregator for same-chain Solana swaps.

    Jupiter aggregates liquidity from Raydium, Orca and other Solana DEXes.
    Native SOL is quoted as the wrapped SOL mint.
    """

    priority = 11

    @property
    def name(self) -> str:
        return "jupiter"

    def _get_headers(self) -> dict:
        """Get API headers."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _quote(self, quote_input: QuoteInput, timeout: float) -> ProviderOutcome:
        if quote_input.from_family != Family.SOLANA or quote_input.to_family != Family.SOLANA:
            return self.skip("not a Solana swap")

        slippage_bps = quote_input.slippage_bps if quote_input.slippage_bps is not None else 50
        data = await self._request(
            "GET",
            f"{JUPITER_API_V6}/quote",
            timeout,
            params={
                "inputMint": quote_input.from_token,
                "outputMint": quote_input.to_token,
                "amount": quote_input.amount,
                "slippageBps": str(slippage_bps),
                "onlyDirectRoutes": "false",
            },
        )

        fees = []
        platform_fee = parse_base_amount((data.get("platformFee") or {}).get("amount"))
        if platform_fee:
            fees.append(FeeBreakdown(type=FeeType.PROTOCOL, amount=platform_fee, token=quote_input.to_token))

        labels = [
            (step.get("swapInfo") or {}).get("label", "Unknown")
            for step in data.get("routePlan") or []
        ]
        return self.result(
            quote_input,
            data.get("outAmount"),
            fees=fees,
            steps=[QuoteStep(
                provider=self.name,
                tool=" > ".join(labels) or self.name,
                from_chain_id=quote_input.from_chain_id,
                to_chain_id=quote_input.to_chain_id,
                estimated_time_seconds=1,
            )],
            estimated_time_seconds=1,
            raw=data,
        )

    async def build_swap_transaction(
        self,
        quote_response: dict,
        user_public_key: str,
        timeout: Optional[float] = None,
    ) -> dict:
        """Request a serialized swap transaction for the user to sign.

        Args:
            quote_response: Raw Jupiter quote response
            user_public_key: Wallet that will sign and pay fees

        Returns:
            Dict with swap_transaction and last_valid_block_height

        Raises:
            ProviderRequestError: If Jupiter refuses or returns no transaction
        """
        data = await self._request(
            "POST",
            f"{JUPITER_API_V6}/swap",
            timeout or self.timeout,
            json={
                "quoteResponse": quote_response,
                "userPublicKey": user_public_key,
                "wrapAndUnwrapSol": True,
                "dynamicComputeUnitLimit": True,
                "prioritizationFeeLamports": "auto",
            },
        )
        transaction = data.get("swapTransaction")
        if not transaction:
            raise ProviderRequestError(ProviderError(
                provider=self.name,
                message="Jupiter returned no swap transaction",
                code=ErrorCode.INVALID_RESPONSE,
            ))
        return {
            "swap_transaction": transaction,
            "last_valid_block_height": data.get("lastValidBlockHeight"),
        }
