"""Tests for the hub route planner."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from routerex.chains import Family, get_chain
from routerex.config import Settings
from routerex.errors import ErrorCode
from routerex.routing.changenow import ChangeNowClient, ChangeNowError, ChangeNowQuote
from routerex.tokens import decimals_for, to_base_units
from routerex.web.contracts.quotes import QuoteResponse
from routerex.web.contracts.route_plans import RoutePlanRequest, StepKind, WalletContext
from routerex.web.services.route_planner import CHANGENOW_PROVIDER, OFFCHAIN_PROVIDER, RoutePlanService, generate_id
from conftest import EVM_USER, SOLANA_USER, TON_USER, TRON_USER

ALL_WALLETS = WalletContext(evm=EVM_USER, solana=SOLANA_USER, ton=TON_USER, tron=TRON_USER)


def echo_quote(request) -> QuoteResponse:
    """1:1 quote in the request's own units."""
    from_chain = get_chain(request.from_network_id)
    to_chain = get_chain(request.to_network_id)
    from_decimals = decimals_for(request.from_token_id, from_chain.chain_id, from_chain.family)
    to_decimals = decimals_for(request.to_token_id, to_chain.chain_id, to_chain.family)
    return QuoteResponse(
        ok=True,
        provider="stub",
        in_amount=request.amount,
        in_amount_base=to_base_units(request.amount, from_decimals),
        out_amount=request.amount,
        out_amount_base=to_base_units(request.amount, to_decimals),
    )


def no_route(compatible: list) -> QuoteResponse:
    return QuoteResponse(
        ok=False,
        error="No route found",
        error_code=ErrorCode.NO_ROUTE.value,
        debug={"compatibleProviders": compatible},
    )


def plan_request(from_network, from_token, to_network, to_token, amount="5", wallets=ALL_WALLETS) -> RoutePlanRequest:
    return RoutePlanRequest(
        from_network_id=from_network,
        from_token_id=from_token,
        to_network_id=to_network,
        to_token_id=to_token,
        amount=amount,
        wallets=wallets,
    )


@pytest.fixture
def quotes():
    """Quote service double answering 1:1."""
    service = MagicMock()
    service.get_quote = AsyncMock(side_effect=echo_quote)
    return service


@pytest.fixture
def changenow():
    """Configured ChangeNOW double."""
    client = MagicMock()
    client.is_configured = True
    client.get_estimate = AsyncMock(return_value=ChangeNowQuote(estimated_amount="4.9", min_amount="1"))
    return client


class TestDirectRoutes:
    """Tests for same-family plans."""

    @pytest.mark.asyncio
    async def test_same_chain_swap(self, quotes, settings):
        """Test a same-chain request is one SWAP step."""
        planner = RoutePlanService(quote_service=quotes, settings=settings)

        response = await planner.build_plan(plan_request("ethereum", "eth", "ethereum", "usdc", amount="1"))

        assert response.ok is True
        plan = response.plan
        assert [s.kind for s in plan.steps] == [StepKind.SWAP]
        assert plan.requires_wallets == [Family.EVM]
        assert plan.total_estimated_out_base == "1000000"
        assert plan.id.startswith("plan-")

    @pytest.mark.asyncio
    async def test_same_family_cross_chain(self, quotes, settings):
        """Test EVM to EVM across chains is one BRIDGE step."""
        planner = RoutePlanService(quote_service=quotes, settings=settings)

        response = await planner.build_plan(plan_request("ethereum", "usdc", "base", "usdc"))

        assert [s.kind for s in response.plan.steps] == [StepKind.BRIDGE]
        step = response.plan.steps[0]
        assert step.from_.chain_id == 1
        assert step.to.chain_id == 8453
        assert step.provider == "stub"


class TestHubRoutes:
    """Tests for cross-family plans."""

    @pytest.mark.asyncio
    async def test_solana_to_evm(self, quotes, settings):
        """Test SOL to ETH swaps, bridges USDC, then swaps."""
        planner = RoutePlanService(quote_service=quotes, settings=settings)

        response = await planner.build_plan(plan_request("solana", "sol", "ethereum", "eth"))

        assert response.ok is True
        steps = response.plan.steps
        assert [s.kind for s in steps] == [StepKind.SWAP, StepKind.BRIDGE, StepKind.SWAP]
        assert steps[0].to.token_id == "usdc"
        assert steps[1].from_.family == Family.SOLANA
        assert steps[1].to.family == Family.EVM
        assert steps[2].to.token_id == "eth"
        assert response.plan.requires_wallets == [Family.SOLANA, Family.EVM]
        assert len({s.id for s in steps}) == 3
        assert quotes.get_quote.await_count == 3

    @pytest.mark.asyncio
    async def test_bridge_token_source_skips_swap(self, quotes, settings):
        """Test no source swap when the source is already the bridge token."""
        planner = RoutePlanService(quote_service=quotes, settings=settings)

        response = await planner.build_plan(plan_request("solana", "usdc", "ethereum", "eth"))

        assert [s.kind for s in response.plan.steps] == [StepKind.BRIDGE, StepKind.SWAP]

    @pytest.mark.asyncio
    async def test_leg_amounts_are_threaded(self, settings):
        """Test each leg is quoted with the previous leg's output."""
        def halving(request):
            response = echo_quote(request)
            half = str(float(request.amount) / 2)
            to_chain = get_chain(request.to_network_id)
            response.out_amount = half
            response.out_amount_base = to_base_units(
                half, decimals_for(request.to_token_id, to_chain.chain_id, to_chain.family),
            )
            return response

        quotes = MagicMock()
        quotes.get_quote = AsyncMock(side_effect=halving)
        planner = RoutePlanService(quote_service=quotes, settings=settings)

        await planner.build_plan(plan_request("solana", "sol", "ethereum", "eth", amount="8"))

        amounts = [call.args[0].amount for call in quotes.get_quote.await_args_list]
        assert amounts == ["8", "4.0", "2.0"]

    @pytest.mark.asyncio
    async def test_offchain_leg_without_changenow(self, quotes, settings):
        """Test a TON to EVM bridge without ChangeNOW is unpriced."""
        planner = RoutePlanService(quote_service=quotes, settings=settings)

        response = await planner.build_plan(plan_request("ton", "ton", "ethereum", "eth"))

        assert response.ok is True
        steps = response.plan.steps
        assert [s.kind for s in steps] == [StepKind.SWAP, StepKind.OFFCHAIN_SWAP, StepKind.SWAP]
        assert steps[1].provider == OFFCHAIN_PROVIDER
        assert steps[1].amount_in_base == "5000000"
        assert steps[1].estimated_out_base is None
        assert steps[1].requires_wallet == [Family.TON, Family.EVM]
        assert steps[2].amount_in_base is None
        assert response.plan.total_estimated_out_base is None
        assert any("off-chain" in w for w in response.plan.warnings)
        assert any("not quoted" in w for w in response.plan.warnings)
        assert quotes.get_quote.await_count == 1

    @pytest.mark.asyncio
    async def test_offchain_leg_with_changenow(self, quotes, changenow, settings):
        """Test ChangeNOW prices the off-chain leg and later legs are quoted."""
        planner = RoutePlanService(quote_service=quotes, changenow=changenow, settings=settings)

        response = await planner.build_plan(plan_request("ton", "ton", "ethereum", "eth"))

        steps = response.plan.steps
        assert steps[1].provider == CHANGENOW_PROVIDER
        assert steps[1].estimated_out_base == "4900000"
        assert steps[1].quote["toCurrency"] == "usdt"
        assert steps[2].amount_in_base == "4900000"
        assert response.plan.total_estimated_out_base is not None
        changenow.get_estimate.assert_awaited_once()
        assert changenow.get_estimate.await_args.kwargs["from_network"] == "ton"

    @pytest.mark.asyncio
    async def test_changenow_minimum(self, quotes, changenow, settings):
        """Test amounts below the exchange minimum are refused."""
        changenow.get_estimate.return_value = ChangeNowQuote(estimated_amount="4.9", min_amount="50")
        planner = RoutePlanService(quote_service=quotes, changenow=changenow, settings=settings)

        response = await planner.build_plan(plan_request("ton", "ton", "ethereum", "eth"))

        assert response.ok is False
        assert response.error_code == ErrorCode.AMOUNT_TOO_LOW.value
        assert response.debug["minAmount"] == "50"

    @pytest.mark.asyncio
    async def test_changenow_failure(self, quotes, changenow, settings):
        """Test an exchange estimate failure aborts the plan."""
        changenow.get_estimate.side_effect = ChangeNowError("pair unavailable")
        planner = RoutePlanService(quote_service=quotes, changenow=changenow, settings=settings)

        response = await planner.build_plan(plan_request("ton", "ton", "ethereum", "eth"))

        assert response.error_code == ErrorCode.NO_ROUTE.value

    @pytest.mark.asyncio
    async def test_tron_to_ton_three_step(self, quotes, settings):
        """Test TRON to TON passes through the EVM hub."""
        planner = RoutePlanService(quote_service=quotes, settings=settings)

        response = await planner.build_plan(plan_request("tron", "trx", "ton", "ton"))

        steps = response.plan.steps
        assert [s.kind for s in steps] == [
            StepKind.SWAP, StepKind.OFFCHAIN_SWAP, StepKind.OFFCHAIN_SWAP, StepKind.SWAP,
        ]
        assert steps[1].to.network_id == "base"
        assert steps[2].from_.network_id == "base"
        assert response.plan.requires_wallets == [Family.TRON, Family.EVM, Family.TON]

    @pytest.mark.asyncio
    async def test_failed_bridge_falls_back_offchain(self, settings):
        """Test an on-chain bridge with no quote becomes an off-chain leg."""
        def bridge_down(request):
            if get_chain(request.from_network_id).family != get_chain(request.to_network_id).family:
                return no_route(["lifi"])
            return echo_quote(request)

        quotes = MagicMock()
        quotes.get_quote = AsyncMock(side_effect=bridge_down)
        planner = RoutePlanService(quote_service=quotes, settings=settings)

        response = await planner.build_plan(plan_request("solana", "sol", "ethereum", "eth"))

        assert response.ok is True
        assert [s.kind for s in response.plan.steps] == [StepKind.SWAP, StepKind.OFFCHAIN_SWAP, StepKind.SWAP]
        assert "Direct bridge SOLANA -> EVM not available, using off-chain swap" in response.plan.warnings

    @pytest.mark.asyncio
    async def test_solana_to_tron_offchain(self, quotes, settings):
        """Test Solana to TRON bridges to the EVM hub and ends in an unpriced off-chain leg."""
        planner = RoutePlanService(quote_service=quotes, settings=settings)

        response = await planner.build_plan(plan_request("solana", "sol", "tron", "usdt"))

        assert response.ok is True
        steps = response.plan.steps
        assert [s.kind for s in steps] == [StepKind.SWAP, StepKind.BRIDGE, StepKind.OFFCHAIN_SWAP]
        assert steps[1].to.network_id == "base"
        assert steps[2].from_.network_id == "base"
        assert steps[2].to.network_id == "tron"
        assert steps[2].provider == OFFCHAIN_PROVIDER
        assert steps[2].estimated_out_base is None
        assert response.plan.total_estimated_out_base is None
        assert response.plan.requires_wallets == [Family.SOLANA, Family.EVM, Family.TRON]
        assert any("off-chain" in w for w in response.plan.warnings)


class TestPlanFailures:
    """Tests for refused plans."""

    @pytest.mark.asyncio
    async def test_missing_wallet(self, quotes, settings):
        """Test every family on the route needs a wallet."""
        planner = RoutePlanService(quote_service=quotes, settings=settings)

        response = await planner.build_plan(
            plan_request("solana", "sol", "ethereum", "eth", wallets=WalletContext(evm=EVM_USER)),
        )

        assert response.ok is False
        assert response.error_code == ErrorCode.WALLET_MISSING_FOR_ROUTE.value
        assert response.debug["missing"] == ["SOLANA"]
        assert response.plan is None

    @pytest.mark.asyncio
    async def test_swap_leg_without_adapter(self, settings):
        """Test a swap leg no provider handles reports ADAPTER_MISSING."""
        quotes = MagicMock()
        quotes.get_quote = AsyncMock(return_value=no_route([]))
        planner = RoutePlanService(quote_service=quotes, settings=settings)

        response = await planner.build_plan(plan_request("solana", "sol", "ethereum", "eth"))

        assert response.error_code == ErrorCode.ADAPTER_MISSING.value
        assert response.debug["missingAdapters"] == ["SOLANA_SWAP"]
        assert response.debug["attemptedLegs"][-1]["step"] == "source_swap"

    @pytest.mark.asyncio
    async def test_swap_leg_no_route(self, settings):
        """Test a failed swap leg aborts the whole plan."""
        quotes = MagicMock()
        quotes.get_quote = AsyncMock(return_value=no_route(["jupiter"]))
        planner = RoutePlanService(quote_service=quotes, settings=settings)

        response = await planner.build_plan(plan_request("solana", "sol", "ethereum", "eth"))

        assert response.ok is False
        assert response.error_code == ErrorCode.NO_ROUTE.value
        assert response.debug["legErrorCode"] == ErrorCode.NO_ROUTE.value

    @pytest.mark.asyncio
    async def test_disabled_hub_route(self, quotes):
        """Test configured-off family pairs have no route."""
        planner = RoutePlanService(
            quote_service=quotes, settings=Settings(debug=False, hub_routes_disabled="TRON:TON"),
        )

        response = await planner.build_plan(plan_request("tron", "trx", "ton", "ton"))

        assert response.error_code == ErrorCode.NO_ROUTE.value
        quotes.get_quote.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_input_errors(self, quotes, settings):
        """Test amount, network and token validation."""
        planner = RoutePlanService(quote_service=quotes, settings=settings)

        bad_amount = await planner.build_plan(plan_request("solana", "sol", "ethereum", "eth", amount="0"))
        bad_network = await planner.build_plan(plan_request("bitcoin", "btc", "ethereum", "eth"))
        bad_token = await planner.build_plan(plan_request("solana", "nope", "ethereum", "eth"))

        assert bad_amount.error_code == ErrorCode.INVALID_AMOUNT.value
        assert bad_network.error_code == ErrorCode.UNSUPPORTED_NETWORK.value
        assert bad_token.error_code == ErrorCode.INVALID_FROM_TOKEN.value

    def test_generate_id(self):
        """Test ids carry a prefix, timestamp and random suffix."""
        prefix, timestamp, suffix = generate_id("exec").split("-")

        assert prefix == "exec"
        assert timestamp.isdigit()
        assert len(suffix) == 6

    @pytest.mark.asyncio
    async def test_changenow_html_body(self, quotes, settings):
        """Test an exchange answering with HTML is a failed leg, not a crash."""
        changenow = ChangeNowClient(
            api_key="cn-key",
            client=httpx.AsyncClient(transport=httpx.MockTransport(
                lambda request: httpx.Response(200, text="<html>maintenance</html>"),
            )),
        )
        planner = RoutePlanService(quote_service=quotes, changenow=changenow, settings=settings)

        response = await planner.build_plan(plan_request("ton", "usdt", "ethereum", "usdt"))

        assert response.ok is False
        assert response.error_code == ErrorCode.NO_ROUTE.value
        assert "invalid JSON" in response.debug["attemptedLegs"][-1]["reason"]

    @pytest.mark.asyncio
    async def test_unexpected_error(self, settings):
        """Test unexpected failures become API_ERROR without detail."""
        quotes = MagicMock()
        quotes.get_quote = AsyncMock(side_effect=RuntimeError("quote service exploded"))
        planner = RoutePlanService(quote_service=quotes, settings=settings)

        response = await planner.build_plan(plan_request("solana", "sol", "ethereum", "eth"))

        assert response.ok is False
        assert response.error_code == ErrorCode.API_ERROR.value
        assert response.error == "Internal error"
        assert response.debug is None
