"""Unsigned transaction payloads per family.

Nothing here signs or broadcasts: each payload is handed to the client
wallet for the step's source family.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from routerex.chains import Family
from routerex.routing.base import ProviderRequestError, first_present
from routerex.routing.changenow import ChangeNowClient, ChangeNowError, resolve_changenow_asset
from routerex.routing.jupiter import JupiterAdapter
from routerex.tokens import decimals_for, from_base_units, get_token
from routerex.web.contracts.route_plans import RouteStep, StepKind, WalletContext

logger = logging.getLogger(__name__)

TRC20_TRANSFER_SELECTOR = "transfer(address,uint256)"


class TransactionBuildError(Exception):
    """A step's payload could not be built."""


@dataclass
class BuiltTransaction:
    unsigned_tx: dict
    requires_signature: bool = True
    exchange_id: Optional[str] = None


def provider_payload(step: RouteStep) -> dict:
    """Raw provider response carried by the step's quote."""
    quote = step.quote or {}
    route = quote.get("route")
    return route if isinstance(route, dict) else quote


class TransactionBuilder:
    """Build one unsigned payload per route step."""

    def __init__(
        self,
        jupiter: Optional[JupiterAdapter] = None,
        changenow: Optional[ChangeNowClient] = None,
    ):
        self.jupiter = jupiter
        self.changenow = changenow

    async def build(self, step: RouteStep, wallets: WalletContext) -> BuiltTransaction:
        """Build the payload for a step.

        Raises:
            TransactionBuildError: If the payload cannot be produced
        """
        if step.kind == StepKind.OFFCHAIN_SWAP:
            return await self.build_offchain(step, wallets)

        family = step.from_.family
        if family == Family.EVM:
            return self.build_evm(step)
        if family == Family.SOLANA:
            return await self.build_solana(step, wallets)
        if family == Family.TON:
            return self.build_ton(step)
        if family == Family.TRON:
            return self.build_tron(step, wallets)
        raise TransactionBuildError(f"Unsupported family: {family.value}")

    def build_evm(self, step: RouteStep) -> BuiltTransaction:
        """EVM call. Providers nest it under tx, transactionRequest or not at all."""
        if not step.quote:
            raise TransactionBuildError("Quote missing for EVM step")
        payload = provider_payload(step)
        tx = first_present(payload, "tx", "transactionRequest", "steps.0.items.0.data")
        if not isinstance(tx, dict):
            tx = payload

        to = tx.get("to")
        if not to:
            raise TransactionBuildError(f"No transaction target in {step.provider} quote")

        unsigned = {
            "to": to,
            "data": tx.get("data") or "0x",
            "value": str(tx.get("value") or "0"),
            "chainId": step.from_.chain_id,
        }
        gas_limit = tx.get("gasLimit") or tx.get("gas")
        if gas_limit:
            unsigned["gasLimit"] = str(gas_limit)
        if tx.get("gasPrice"):
            unsigned["gasPrice"] = str(tx["gasPrice"])
        return BuiltTransaction(unsigned_tx=unsigned)

    async def build_solana(self, step: RouteStep, wallets: WalletContext) -> BuiltTransaction:
        payload = provider_payload(step)
        serialized = first_present(payload, "swapTransaction", "transaction")
        if not serialized:
            if self.jupiter is None or not payload:
                raise TransactionBuildError("No serialized Solana transaction available")
            owner = wallets.solana
            if not owner:
                raise TransactionBuildError("Solana wallet required to build swap transaction")
            try:
                built = await self.jupiter.build_swap_transaction(payload, owner)
            except ProviderRequestError as e:
                raise TransactionBuildError(f"Jupiter swap build failed: {e.error.message}") from e
            serialized = built["swap_transaction"]
        return BuiltTransaction(unsigned_tx={"type": "solana_transaction", "serialized": serialized})

    def build_ton(self, step: RouteStep) -> BuiltTransaction:
        payload = provider_payload(step)
        to = first_present(payload, "route.router_address", "route.routerAddress", "quote.router_address")
        unsigned = {
            "type": "ton_transaction",
            "to": to or step.to.token_address,
            "amount": step.amount_in_base,
        }
        body = first_present(payload, "quote.payload", "payload")
        if body:
            unsigned["payload"] = body
        return BuiltTransaction(unsigned_tx=unsigned)

    def build_tron(self, step: RouteStep, wallets: WalletContext) -> BuiltTransaction:
        if not wallets.tron:
            raise TransactionBuildError("TRON wallet required")
        return BuiltTransaction(unsigned_tx={
            "type": "tron_transaction",
            "contract_address": step.to.token_address,
            "function_selector": TRC20_TRANSFER_SELECTOR,
            "parameter": step.amount_in_base,
            "owner_address": wallets.tron,
        })

    async def build_offchain(self, step: RouteStep, wallets: WalletContext) -> BuiltTransaction:
        """Create the exchange and return deposit instructions. No signature."""
        if self.changenow is None or not self.changenow.is_configured:
            raise TransactionBuildError("Off-chain swap is unimplemented without a ChangeNOW API key")
        if not step.amount_in_base:
            raise TransactionBuildError("Off-chain swap amount unknown")

        token = get_token(step.from_.token_id)
        from_asset = resolve_changenow_asset(step.from_.network_id, token.symbol)
        to_asset = resolve_changenow_asset(step.to.network_id, token.symbol)
        if from_asset is None or to_asset is None:
            raise TransactionBuildError(f"ChangeNOW does not list {token.symbol} on this network pair")

        payout = wallets.address_for(step.to.family)
        if not payout:
            raise TransactionBuildError(f"{step.to.family.value} wallet required for payout")

        amount = from_base_units(
            step.amount_in_base, decimals_for(token.id, step.from_.chain_id, step.from_.family),
        )
        try:
            exchange = await self.changenow.create_transaction(
                from_ticker=from_asset.ticker,
                to_ticker=to_asset.ticker,
                amount=amount,
                to_address=payout,
                from_network=from_asset.network,
                to_network=to_asset.network,
                refund_address=wallets.address_for(step.from_.family),
            )
        except ChangeNowError as e:
            raise TransactionBuildError(str(e)) from e

        return BuiltTransaction(
            unsigned_tx={
                "type": "offchain_deposit",
                "deposit_address": exchange.payin_address,
                "memo": exchange.payin_extra_id,
                "network": from_asset.network,
                "amount": amount,
            },
            requires_signature=False,
            exchange_id=exchange.id,
        )
