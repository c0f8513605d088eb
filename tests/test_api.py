"""Tests for the FastAPI endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from routerex.api.app import create_app
from routerex.execution.builder import TransactionBuilder
from routerex.execution.confirmations import TxStatus
from routerex.execution.store import ExecutionStore
from routerex.quoting.cache import CacheStore
from routerex.web.dependencies import get_execution_service, get_quote_service, get_route_plan_service
from routerex.web.services.execution_service import ExecutionService
from routerex.web.services.quote_service import QuoteService
from routerex.web.services.route_planner import RoutePlanService
from conftest import EVM_USER, StaticAdapter, StubPrices
from test_execution import two_step_plan

QUOTE_BODY = {
    "amount": "100",
    "fromTokenId": "usdc",
    "toTokenId": "usdc",
    "fromNetworkId": "ethereum",
    "toNetworkId": "base",
}


@pytest.fixture
def checker():
    double = MagicMock()
    double.check = AsyncMock(return_value=TxStatus.CONFIRMED)
    return double


@pytest.fixture
def test_app(make_registry, settings, checker):
    """Application with services over static adapters."""
    registry = make_registry(StaticAdapter("stub", priority=1, to_amount="99900000"))
    quotes = QuoteService(registry=registry, cache=CacheStore(), prices=StubPrices(), settings=settings)
    route_plans = RoutePlanService(quote_service=quotes, settings=settings)
    executions = ExecutionService(builder=TransactionBuilder(), checker=checker, store=ExecutionStore())

    app = create_app()
    app.dependency_overrides[get_quote_service] = lambda: quotes
    app.dependency_overrides[get_route_plan_service] = lambda: route_plans
    app.dependency_overrides[get_execution_service] = lambda: executions
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(test_app):
    """Create async test client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, client):
        """Test basic health check."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "routerex"

    @pytest.mark.asyncio
    async def test_detailed_health(self, client):
        """Test detailed health check."""
        response = await client.get("/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert "environment" in data["config"]
        assert data["config"]["api_keys"]["changenow"] == "(not set)"
        assert "relay" in {p["id"] for p in data["providers"]}


class TestQuoteEndpoint:
    """Tests for POST /quote."""

    @pytest.mark.asyncio
    async def test_quote_success(self, client):
        """Test a successful quote uses camelCase fields."""
        response = await client.post("/quote", json={**QUOTE_BODY, "userAddress": EVM_USER})

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["provider"] == "stub"
        assert data["outAmountBase"] == "99900000"
        assert data["outAmount"] == "99.9"
        assert data["isIndicative"] is False

    @pytest.mark.asyncio
    async def test_invalid_amount(self, client):
        """Test bad amounts return 400."""
        response = await client.post("/quote", json={**QUOTE_BODY, "amount": "0"})

        assert response.status_code == 400
        assert response.json()["errorCode"] == "INVALID_AMOUNT"

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        """Test unknown tokens return 400."""
        response = await client.post("/quote", json={**QUOTE_BODY, "toTokenId": "doge"})

        assert response.status_code == 400
        assert response.json()["errorCode"] == "INVALID_TO_TOKEN"

    @pytest.mark.asyncio
    async def test_internal_error(self, test_app, client, settings):
        """Test unexpected failures return 500."""
        registry = MagicMock()
        registry.enabled_providers.side_effect = RuntimeError("registry exploded")
        broken = QuoteService(registry=registry, cache=CacheStore(), prices=StubPrices(), settings=settings)
        test_app.dependency_overrides[get_quote_service] = lambda: broken

        response = await client.post("/quote", json=QUOTE_BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "Internal error"

    @pytest.mark.asyncio
    async def test_missing_field(self, client):
        """Test schema violations are rejected by validation."""
        body = dict(QUOTE_BODY)
        del body["fromTokenId"]

        response = await client.post("/quote", json=body)

        assert response.status_code == 422


class TestRoutePlanEndpoint:
    """Tests for POST /route-plan."""

    @pytest.mark.asyncio
    async def test_plan(self, client):
        """Test an EVM cross-chain plan is one bridge step."""
        response = await client.post("/route-plan", json={**QUOTE_BODY, "wallets": {"evm": EVM_USER}})

        assert response.status_code == 200
        plan = response.json()["plan"]
        assert plan["steps"][0]["kind"] == "BRIDGE"
        assert plan["steps"][0]["from"]["networkId"] == "ethereum"
        assert plan["requiresWallets"] == ["EVM"]

    @pytest.mark.asyncio
    async def test_plan_invalid_amount(self, client):
        """Test bad input returns 400."""
        response = await client.post("/route-plan", json={**QUOTE_BODY, "amount": "-1"})

        assert response.status_code == 400
        assert response.json()["errorCode"] == "INVALID_AMOUNT"


class TestExecutionEndpoints:
    """Tests for the execution lifecycle endpoints."""

    @pytest.mark.asyncio
    async def test_execute_and_track(self, client):
        """Test execute, submit and poll through the API."""
        body = {
            "plan": two_step_plan().model_dump(by_alias=True, mode="json"),
            "wallets": {"evm": EVM_USER},
        }

        created = await client.post("/execute", json=body)
        assert created.status_code == 200
        execution = created.json()["execution"]
        assert execution["status"] == "SIGN_REQUIRED"
        assert execution["steps"][0]["unsignedTx"]["chainId"] == 1
        execution_id = execution["id"]

        submitted = await client.post(
            f"/execution/{execution_id}/steps/step-1-0/submitted", json={"txHash": "0xbridge"},
        )
        assert submitted.status_code == 200

        polled = await client.get("/execution/status", params={"id": execution_id})
        assert polled.status_code == 200
        assert polled.json()["execution"]["currentStepIndex"] == 1

    @pytest.mark.asyncio
    async def test_execute_missing_wallet(self, client):
        """Test executing without wallets returns 400."""
        body = {"plan": two_step_plan().model_dump(by_alias=True, mode="json")}

        response = await client.post("/execute", json=body)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_execution(self, client):
        """Test unknown executions return 404."""
        response = await client.get("/execution/status", params={"id": "exec-missing"})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_out_of_order_submission(self, client):
        """Test submitting a step that is not active returns 409."""
        body = {
            "plan": two_step_plan().model_dump(by_alias=True, mode="json"),
            "wallets": {"evm": EVM_USER},
        }
        execution_id = (await client.post("/execute", json=body)).json()["execution"]["id"]

        response = await client.post(
            f"/execution/{execution_id}/steps/step-1-1/submitted", json={"txHash": "0xswap"},
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_exchange_status_unknown_provider(self, client):
        """Test unknown exchange providers return 400."""
        response = await client.get("/status", params={"provider": "sideshift", "txId": "abc"})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_exchange_status_unconfigured(self, client):
        """Test ChangeNOW lookups without a key report the problem in the body."""
        response = await client.get("/status", params={"provider": "changenow", "txId": "abc"})

        assert response.status_code == 200
        assert response.json()["ok"] is False


class TestChainEndpoints:
    """Tests for network listing."""

    @pytest.mark.asyncio
    async def test_list_chains(self, client):
        """Test networks from every allowed family are listed."""
        response = await client.get("/chains")

        assert response.status_code == 200
        data = response.json()
        ids = {c["id"] for c in data["chains"]}
        assert {"ethereum", "base", "solana", "ton", "tron"} <= ids
        assert data["total"] == len(data["chains"])

    @pytest.mark.asyncio
    async def test_get_chain(self, client):
        """Test a single network with its hub flag."""
        response = await client.get("/chains/base")

        assert response.status_code == 200
        data = response.json()
        assert data["chainId"] == 8453
        assert data["hub"] is True

    @pytest.mark.asyncio
    async def test_unknown_chain(self, client):
        """Test unknown networks return 404."""
        response = await client.get("/chains/nowhere")

        assert response.status_code == 404


class TestInternalErrors:
    """Tests for unexpected failures at the HTTP boundary."""

    @pytest.mark.asyncio
    async def test_route_plan_internal_error(self, test_app, client, settings):
        """Test a crashing quote leg returns a 500 with an API_ERROR body."""
        quotes = MagicMock()
        quotes.get_quote = AsyncMock(side_effect=RuntimeError("quote service exploded"))
        test_app.dependency_overrides[get_route_plan_service] = lambda: RoutePlanService(
            quote_service=quotes, settings=settings,
        )

        response = await client.post("/route-plan", json={**QUOTE_BODY, "wallets": {"evm": EVM_USER}})

        assert response.status_code == 500
        assert response.json()["errorCode"] == "API_ERROR"
        assert response.json()["error"] == "Internal error"

    @pytest.mark.asyncio
    async def test_execution_status_internal_error(self, test_app, client, checker):
        """Test a crashing confirmation lookup returns 500."""
        body = {
            "plan": two_step_plan().model_dump(by_alias=True, mode="json"),
            "wallets": {"evm": EVM_USER},
        }
        execution_id = (await client.post("/execute", json=body)).json()["execution"]["id"]
        await client.post(f"/execution/{execution_id}/steps/step-1-0/submitted", json={"txHash": "0xbridge"})
        checker.check.side_effect = RuntimeError("rpc exploded")

        response = await client.get("/execution/status", params={"id": execution_id})

        assert response.status_code == 500
