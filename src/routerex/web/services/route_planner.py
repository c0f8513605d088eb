"""Hub route planner.

Same-family requests are a single quote. Cross-family requests are
assembled from up to four legs through the routing matrix, each leg
quoted on its own with the previous leg's output threaded in.
"""

import logging
import random
import string
import time
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional

from routerex.chains import Family, family_of, get_chain
from routerex.config import Settings, get_settings
from routerex.errors import ErrorCode
from routerex.routing.changenow import ChangeNowClient, ChangeNowError, resolve_changenow_asset
from routerex.routing.hubs import get_hub_route, has_onchain_bridge, hub_network, pick_bridge_token
from routerex.tokens import decimals_for, from_base_units, get_token, resolve_address, to_base_units
from routerex.web.contracts.quotes import QuoteRequest, QuoteResponse
from routerex.web.contracts.route_plans import (
    RoutePlan,
    RoutePlanRequest,
    RoutePlanResponse,
    RouteStep,
    StepEndpoint,
    StepKind,
    WalletContext,
)
from routerex.web.services.quote_service import QuoteService

logger = logging.getLogger(__name__)

OFFCHAIN_PROVIDER = "offchain"
CHANGENOW_PROVIDER = "changenow"


def generate_id(prefix: str) -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


class PlanAborted(Exception):
    """A leg could not be built; the plan is abandoned."""

    def __init__(self, code: ErrorCode, message: str, debug: Optional[dict] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.debug = debug or {}


@dataclass
class _Cursor:
    """Where value sits between legs. amount is human-readable, None once unpriced."""

    network_id: str
    family: Family
    token_id: str
    amount: Optional[str]


@dataclass
class _PlanState:
    wallets: WalletContext
    steps: list[RouteStep] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    attempted: list[dict] = field(default_factory=list)
    missing_adapters: list[str] = field(default_factory=list)
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))

    def next_step_id(self) -> str:
        return f"step-{self.timestamp}-{len(self.steps)}"


class RoutePlanService:
    """Build route plans across families."""

    def __init__(
        self,
        quote_service: QuoteService,
        changenow: Optional[ChangeNowClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.quote_service = quote_service
        self.changenow = changenow
        self.settings = settings or get_settings()

    async def build_plan(self, request: RoutePlanRequest) -> RoutePlanResponse:
        """Build a route plan. Never returns partial plans.

        Args:
            request: Route plan request

        Returns:
            RoutePlanResponse with the plan, or ok=False with errorCode and debug
        """
        try:
            return await self._plan(request)
        except Exception as e:
            logger.exception(f"Route plan request failed: {e}")
            return _failure(
                ErrorCode.API_ERROR,
                str(e) if self.settings.debug else "Internal error",
                {"error": str(e), "type": type(e).__name__} if self.settings.debug else None,
            )

    async def _plan(self, request: RoutePlanRequest) -> RoutePlanResponse:
        try:
            amount = Decimal(request.amount.strip())
        except (InvalidOperation, AttributeError):
            amount = Decimal(0)
        if not amount.is_finite() or amount <= 0:
            return _failure(ErrorCode.INVALID_AMOUNT, "Invalid amount", {
                "attemptedLegs": [{"step": "validation", "reason": "Invalid amount"}],
            })

        from_family = family_of(request.from_network_id)
        to_family = family_of(request.to_network_id)
        allowed = self.settings.allowed_families
        if Family.UNSUPPORTED in (from_family, to_family) or not {from_family.value, to_family.value} <= set(allowed):
            return _failure(ErrorCode.UNSUPPORTED_NETWORK, "Unsupported network family", {
                "fromFamily": from_family.value,
                "toFamily": to_family.value,
                "attemptedLegs": [{"step": "family_check", "reason": f"Unsupported: {from_family.value} or {to_family.value}"}],
            })

        for token_id, code in (
            (request.from_token_id, ErrorCode.INVALID_FROM_TOKEN),
            (request.to_token_id, ErrorCode.INVALID_TO_TOKEN),
        ):
            if get_token(token_id) is None:
                return _failure(code, f"Token {token_id} not found in registry", {
                    "attemptedLegs": [{"step": "token_validation", "reason": "Token not in registry"}],
                })

        state = _PlanState(wallets=request.wallets)
        try:
            if from_family == to_family:
                await self._build_direct(request, from_family, state)
            else:
                await self._build_hub_route(request, from_family, to_family, state)
        except PlanAborted as e:
            logger.info(f"Route plan aborted ({e.code.value}): {e.message}")
            debug = {
                "fromFamily": from_family.value,
                "toFamily": to_family.value,
                "attemptedLegs": state.attempted,
                "missingAdapters": state.missing_adapters,
            }
            debug.update(e.debug)
            return _failure(e.code, e.message, debug)

        required = _unique([f for step in state.steps for f in step.requires_wallet])
        missing = request.wallets.missing(required)
        if missing:
            return _failure(
                ErrorCode.WALLET_MISSING_FOR_ROUTE,
                f"Missing required wallets: {', '.join(f.value for f in missing)}",
                {"required": [f.value for f in required], "missing": [f.value for f in missing]},
            )

        last = state.steps[-1]
        plan = RoutePlan(
            id=generate_id("plan"),
            steps=state.steps,
            total_estimated_out_base=last.estimated_out_base,
            requires_wallets=required,
            warnings=state.warnings,
        )
        logger.info(
            f"Route plan {plan.id}: {request.from_network_id}/{request.from_token_id} -> "
            f"{request.to_network_id}/{request.to_token_id}, {len(plan.steps)} steps, wallets={[f.value for f in required]}"
        )
        return RoutePlanResponse(ok=True, plan=plan)

    # ======================
    # Direct
    # ======================

    async def _build_direct(self, request: RoutePlanRequest, family: Family, state: _PlanState) -> None:
        state.attempted.append({"step": "direct", "reason": "Same family route"})
        source = _Cursor(request.from_network_id, family, request.from_token_id, request.amount)
        kind = StepKind.SWAP if get_chain(request.from_network_id).key == get_chain(request.to_network_id).key else StepKind.BRIDGE
        await self._quoted_leg(state, kind, source, request.to_network_id, family, request.to_token_id, leg="direct")

    # ======================
    # Hub route
    # ======================

    async def _build_hub_route(
        self,
        request: RoutePlanRequest,
        from_family: Family,
        to_family: Family,
        state: _PlanState,
    ) -> None:
        route = get_hub_route(from_family, to_family, self.settings.disabled_hub_routes)
        if route is None or not route.supported:
            state.attempted.append({"step": "hub_lookup", "reason": f"No hub route {from_family.value} -> {to_family.value}"})
            raise PlanAborted(ErrorCode.NO_ROUTE, "No route found")
        state.attempted.append({
            "step": "hub_route",
            "reason": f"{route.steps}-step route via {route.via_hub.value if route.via_hub else 'direct'}",
        })

        via_hub = route.via_hub if route.steps == 3 else None
        bridge_token = pick_bridge_token(from_family, to_family, via_hub)
        if bridge_token is None:
            state.attempted.append({"step": "bridge_token", "reason": "No common bridge token"})
            raise PlanAborted(ErrorCode.NO_ROUTE, "No route found")

        cursor = _Cursor(request.from_network_id, from_family, request.from_token_id, request.amount)

        # 1. source token -> bridge token on the source network
        if request.from_token_id.lower() != bridge_token:
            cursor = await self._quoted_leg(
                state, StepKind.SWAP, cursor, cursor.network_id, from_family, bridge_token, leg="source_swap",
            )

        # 2./3. bridge hops
        hops = [(request.to_network_id, to_family)]
        if route.steps == 3:
            hub = hub_network(via_hub, self.settings.evm_hub_network)
            hops.insert(0, (hub, via_hub))
        for index, (network_id, family) in enumerate(hops):
            if has_onchain_bridge(cursor.family, family):
                try:
                    cursor = await self._quoted_leg(
                        state, StepKind.BRIDGE, cursor, network_id, family, bridge_token, leg=f"bridge_{index + 1}",
                    )
                    continue
                except PlanAborted:
                    state.warnings.append(
                        f"Direct bridge {cursor.family.value} -> {family.value} not available, using off-chain swap"
                    )
            cursor = await self._offchain_leg(state, cursor, network_id, family, bridge_token)

        # 4. bridge token -> destination token on the destination network
        if request.to_token_id.lower() != bridge_token:
            await self._quoted_leg(
                state, StepKind.SWAP, cursor, request.to_network_id, to_family, request.to_token_id, leg="destination_swap",
            )

    # ======================
    # Legs
    # ======================

    async def _quoted_leg(
        self,
        state: _PlanState,
        kind: StepKind,
        source: _Cursor,
        to_network_id: str,
        to_family: Family,
        to_token_id: str,
        leg: str,
    ) -> _Cursor:
        """Append a leg priced through the quote service."""
        from_endpoint = _endpoint(source.network_id, source.family, source.token_id)
        to_endpoint = _endpoint(to_network_id, to_family, to_token_id)

        if source.amount is None:
            state.steps.append(RouteStep(
                id=state.next_step_id(),
                kind=kind,
                from_=from_endpoint,
                to=to_endpoint,
                requires_wallet=[source.family],
            ))
            state.warnings.append(f"Step {len(state.steps)} not quoted: input amount depends on an unpriced off-chain swap")
            return _Cursor(to_network_id, to_family, to_token_id, None)

        quote = await self.quote_service.get_quote(QuoteRequest(
            amount=source.amount,
            from_token_id=source.token_id,
            to_token_id=to_token_id,
            from_network_id=source.network_id,
            to_network_id=to_network_id,
            user_address=state.wallets.address_for(source.family),
        ))
        if not quote.ok:
            self._abort_leg(state, leg, source, to_network_id, to_family, quote)

        state.steps.append(RouteStep(
            id=state.next_step_id(),
            kind=kind,
            from_=from_endpoint,
            to=to_endpoint,
            amount_in_base=quote.in_amount_base,
            estimated_out_base=quote.out_amount_base,
            provider=quote.provider,
            requires_wallet=[source.family],
            quote=quote.model_dump(by_alias=True, exclude_none=True),
        ))
        for warning in quote.warnings:
            state.warnings.append(f"Step {len(state.steps)}: {warning}")
        return _Cursor(to_network_id, to_family, to_token_id, quote.out_amount)

    def _abort_leg(
        self,
        state: _PlanState,
        leg: str,
        source: _Cursor,
        to_network_id: str,
        to_family: Family,
        quote: QuoteResponse,
    ) -> None:
        state.attempted.append({"step": leg, "reason": f"{quote.error_code}: {quote.error}"})
        compatible = (quote.debug or {}).get("compatibleProviders")
        if quote.error_code == ErrorCode.NO_ROUTE.value and compatible == []:
            kind = "SWAP" if source.network_id == to_network_id else "BRIDGE"
            label = source.family.value if kind == "SWAP" else f"{source.family.value}_{to_family.value}"
            state.missing_adapters.append(f"{label}_{kind}")
            raise PlanAborted(ErrorCode.ADAPTER_MISSING, f"No adapter for {leg} leg", {"leg": leg})
        raise PlanAborted(ErrorCode.NO_ROUTE, "No route found", {"leg": leg, "legErrorCode": quote.error_code})

    async def _offchain_leg(
        self,
        state: _PlanState,
        source: _Cursor,
        to_network_id: str,
        to_family: Family,
        token_id: str,
    ) -> _Cursor:
        """Append a cross-family leg with no on-chain bridge adapter."""
        from_endpoint = _endpoint(source.network_id, source.family, source.token_id)
        to_endpoint = _endpoint(to_network_id, to_family, token_id)
        families = _unique([source.family, to_family])
        token = get_token(token_id)
        step = RouteStep(
            id=state.next_step_id(),
            kind=StepKind.OFFCHAIN_SWAP,
            from_=from_endpoint,
            to=to_endpoint,
            provider=OFFCHAIN_PROVIDER,
            requires_wallet=families,
        )
        if source.amount is not None:
            step.amount_in_base = to_base_units(
                source.amount, decimals_for(token_id, from_endpoint.chain_id, source.family),
            )

        from_asset = resolve_changenow_asset(source.network_id, token.symbol)
        to_asset = resolve_changenow_asset(to_network_id, token.symbol)
        if (
            source.amount is not None
            and self.changenow is not None
            and self.changenow.is_configured
            and from_asset is not None
            and to_asset is not None
        ):
            try:
                estimate = await self.changenow.get_estimate(
                    from_ticker=from_asset.ticker,
                    to_ticker=to_asset.ticker,
                    amount=source.amount,
                    from_network=from_asset.network,
                    to_network=to_asset.network,
                )
            except ChangeNowError as e:
                state.attempted.append({"step": "offchain_estimate", "reason": str(e)})
                raise PlanAborted(ErrorCode.NO_ROUTE, "Off-chain swap estimate failed")

            if estimate.min_amount and Decimal(source.amount) < Decimal(estimate.min_amount):
                raise PlanAborted(
                    ErrorCode.AMOUNT_TOO_LOW,
                    f"Amount below ChangeNOW minimum of {estimate.min_amount} {token.symbol}",
                    {"minAmount": estimate.min_amount},
                )

            to_decimals = decimals_for(token_id, to_endpoint.chain_id, to_family)
            step.provider = CHANGENOW_PROVIDER
            step.estimated_out_base = to_base_units(estimate.estimated_amount, to_decimals)
            step.quote = {
                "provider": CHANGENOW_PROVIDER,
                "fromCurrency": from_asset.ticker,
                "fromNetwork": from_asset.network,
                "toCurrency": to_asset.ticker,
                "toNetwork": to_asset.network,
                "estimatedAmount": estimate.estimated_amount,
                "minAmount": estimate.min_amount,
                "rateId": estimate.rate_id,
            }
            state.steps.append(step)
            state.warnings.append(
                f"{source.family.value} -> {to_family.value} uses an off-chain exchange; funds are deposited to ChangeNOW"
            )
            return _Cursor(to_network_id, to_family, token_id, from_base_units(step.estimated_out_base, to_decimals))

        state.steps.append(step)
        state.warnings.append(
            f"Cross-family bridge {source.family.value} -> {to_family.value} requires an off-chain swap "
            f"(no adapter configured); output not estimated"
        )
        state.missing_adapters.append(f"{source.family.value}_{to_family.value}_BRIDGE")
        return _Cursor(to_network_id, to_family, token_id, None)


def _endpoint(network_id: str, family: Family, token_id: str) -> StepEndpoint:
    chain = get_chain(network_id)
    token = get_token(token_id)
    address = resolve_address(token.id, chain.chain_id, family) if token else None
    if address is None:
        raise PlanAborted(
            ErrorCode.NO_ROUTE,
            f"Token {token_id} not available on {network_id}",
            {"networkId": network_id, "tokenId": token_id},
        )
    return StepEndpoint(
        network_id=chain.key,
        chain_id=chain.chain_id,
        family=family,
        token_id=token.id,
        token_address=address,
    )


def _unique(families: list[Family]) -> list[Family]:
    return list(dict.fromkeys(families))


def _failure(code: ErrorCode, message: str, debug: Optional[dict] = None) -> RoutePlanResponse:
    return RoutePlanResponse(ok=False, error=message, error_code=code.value, debug=debug)
