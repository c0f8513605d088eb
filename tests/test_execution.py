"""Tests for execution payloads, confirmations and the step lifecycle."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from routerex.chains import Family
from routerex.config import Settings
from routerex.errors import ErrorCode
from routerex.execution.builder import TransactionBuildError, TransactionBuilder
from routerex.execution.confirmations import ConfirmationChecker, TxStatus
from routerex.execution.store import (
    Execution,
    ExecutionStep,
    ExecutionStore,
    InvalidTransition,
    can_transition,
)
from routerex.routing.changenow import ChangeNowClient, ChangeNowStatus, ChangeNowTransaction
from routerex.web.contracts.executions import ExecuteRequest, StepStatus
from routerex.web.contracts.route_plans import RoutePlan, RouteStep, StepEndpoint, StepKind, WalletContext
from routerex.web.services.execution_service import ExecutionService
from conftest import EVM_USER, SOLANA_USER, TRON_USER

ETH_USDC = StepEndpoint(
    network_id="ethereum", chain_id=1, family=Family.EVM, token_id="usdc",
    token_address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
)
BASE_USDC = StepEndpoint(
    network_id="base", chain_id=8453, family=Family.EVM, token_id="usdc",
    token_address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
)
BASE_ETH = StepEndpoint(
    network_id="base", chain_id=8453, family=Family.EVM, token_id="eth",
    token_address="0x0000000000000000000000000000000000000000",
)
BASE_USDT = StepEndpoint(
    network_id="base", chain_id=8453, family=Family.EVM, token_id="usdt",
    token_address="0xfde4C96c8593536E31F229EA8f37b2ADa2699bb2",
)
TRON_USDT = StepEndpoint(
    network_id="tron", chain_id=None, family=Family.TRON, token_id="usdt",
    token_address="TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t",
)
SOL_SOL = StepEndpoint(
    network_id="solana", chain_id=101, family=Family.SOLANA, token_id="sol",
    token_address="So11111111111111111111111111111111111111112",
)
SOL_USDC = StepEndpoint(
    network_id="solana", chain_id=101, family=Family.SOLANA, token_id="usdc",
    token_address="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
)
TON_TON = StepEndpoint(network_id="ton", chain_id=607, family=Family.TON, token_id="ton", token_address="TON")
TON_USDT = StepEndpoint(
    network_id="ton", chain_id=607, family=Family.TON, token_id="usdt",
    token_address="EQCxE6mUtQJKFnGfaROTKOt1lZbDiiX1kCixRv7Nw2Id_sDs",
)

EVM_TX = {"tx": {"to": "0x1111111254EEB25477B68fb85Ed929f73A960582", "data": "0xdeadbeef", "value": "0"}}


def make_step(step_id, kind, source, target, quote=None, amount_in_base="5000000", provider="lifi") -> RouteStep:
    return RouteStep(
        id=step_id,
        kind=kind,
        from_=source,
        to=target,
        amount_in_base=amount_in_base,
        estimated_out_base="4990000",
        provider=provider,
        requires_wallet=[source.family],
        quote=quote,
    )


def two_step_plan() -> RoutePlan:
    return RoutePlan(
        id="plan-1",
        steps=[
            make_step("step-1-0", StepKind.BRIDGE, ETH_USDC, BASE_USDC, quote={"route": EVM_TX}),
            make_step("step-1-1", StepKind.SWAP, BASE_USDC, BASE_ETH, quote={"route": EVM_TX}),
        ],
        requires_wallets=[Family.EVM],
    )


def offchain_plan() -> RoutePlan:
    return RoutePlan(
        id="plan-2",
        steps=[make_step("step-2-0", StepKind.OFFCHAIN_SWAP, TRON_USDT, BASE_USDT, provider="changenow")],
        requires_wallets=[Family.TRON, Family.EVM],
    )


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def changenow():
    """Configured ChangeNOW double."""
    client = MagicMock()
    client.is_configured = True
    client.create_transaction = AsyncMock(return_value=ChangeNowTransaction(
        id="cn-123", payin_address="TDepositAddress", payout_address=EVM_USER, from_amount="5",
    ))
    client.get_status = AsyncMock(return_value=ChangeNowStatus(id="cn-123", status="waiting"))
    return client


@pytest.fixture
def checker():
    """Confirmation checker double."""
    double = MagicMock()
    double.check = AsyncMock(return_value=TxStatus.CONFIRMED)
    return double


class TestStepStateMachine:
    """Tests for step transitions."""

    def test_forward_only(self):
        """Test steps only move forward."""
        assert can_transition(StepStatus.PENDING, StepStatus.SUBMITTED)
        assert can_transition(StepStatus.SIGN_REQUIRED, StepStatus.SUBMITTED)
        assert not can_transition(StepStatus.CONFIRMED, StepStatus.SUBMITTED)
        assert not can_transition(StepStatus.SUBMITTED, StepStatus.SUBMITTED)

    def test_failed_from_any_open_state(self):
        """Test FAILED is reachable until a terminal state."""
        assert can_transition(StepStatus.SUBMITTED, StepStatus.FAILED)
        assert not can_transition(StepStatus.COMPLETED, StepStatus.FAILED)
        assert not can_transition(StepStatus.FAILED, StepStatus.COMPLETED)

    def test_transition_raises(self):
        """Test an illegal transition raises and keeps the state."""
        step = ExecutionStep(step_id="s", index=0, status=StepStatus.CONFIRMED)

        with pytest.raises(InvalidTransition):
            step.transition(StepStatus.PENDING)
        assert step.status == StepStatus.CONFIRMED

    def test_execution_status_derived(self):
        """Test the execution status follows its steps."""
        plan = two_step_plan()
        steps = [
            ExecutionStep(step_id="a", index=0, status=StepStatus.COMPLETED),
            ExecutionStep(step_id="b", index=1, status=StepStatus.SIGN_REQUIRED),
        ]
        execution = Execution(id="exec-1", plan=plan, steps=steps, current_step_index=1)

        assert execution.status == StepStatus.SIGN_REQUIRED
        steps[1].status = StepStatus.COMPLETED
        assert execution.status == StepStatus.COMPLETED
        steps[1].status = StepStatus.FAILED
        assert execution.status == StepStatus.FAILED
        assert Execution(id="e", plan=plan, steps=[]).status == StepStatus.PENDING

    def test_store(self):
        """Test saving, lookup and reset."""
        store = ExecutionStore()
        execution = Execution(id="exec-1", plan=two_step_plan(), steps=[])
        store.save(execution)

        assert store.get("exec-1") is execution
        assert len(store) == 1
        store.reset()
        assert store.get("exec-1") is None


class TestTransactionBuilder:
    """Tests for unsigned payload construction."""

    @pytest.mark.asyncio
    async def test_evm_payload(self):
        """Test the provider call is extracted with the source chain id."""
        step = make_step("s", StepKind.SWAP, BASE_USDC, BASE_ETH, quote={"route": {
            "transactionRequest": {"to": "0xRouter", "data": "0xabc", "value": 7, "gasLimit": 210000},
        }})

        built = await TransactionBuilder().build(step, WalletContext(evm=EVM_USER))

        assert built.unsigned_tx == {
            "to": "0xRouter", "data": "0xabc", "value": "7", "chainId": 8453, "gasLimit": "210000",
        }
        assert built.requires_signature is True

    @pytest.mark.asyncio
    async def test_evm_without_target(self):
        """Test a quote without a call target cannot be built."""
        step = make_step("s", StepKind.SWAP, BASE_USDC, BASE_ETH, quote={"route": {"toAmount": "1"}})

        with pytest.raises(TransactionBuildError):
            await TransactionBuilder().build(step, WalletContext(evm=EVM_USER))

    @pytest.mark.asyncio
    async def test_solana_serialized(self):
        """Test a serialized transaction in the quote is passed through."""
        step = make_step("s", StepKind.SWAP, SOL_SOL, SOL_USDC, quote={"route": {"swapTransaction": "AQAB"}})

        built = await TransactionBuilder().build(step, WalletContext(solana=SOLANA_USER))

        assert built.unsigned_tx == {"type": "solana_transaction", "serialized": "AQAB"}

    @pytest.mark.asyncio
    async def test_solana_via_jupiter(self):
        """Test Jupiter builds the swap for the Solana wallet."""
        jupiter = MagicMock()
        jupiter.build_swap_transaction = AsyncMock(return_value={"swap_transaction": "AQID"})
        route = {"outAmount": "150000000", "routePlan": []}
        step = make_step("s", StepKind.SWAP, SOL_SOL, SOL_USDC, quote={"route": route})

        built = await TransactionBuilder(jupiter=jupiter).build(step, WalletContext(solana=SOLANA_USER))

        assert built.unsigned_tx["serialized"] == "AQID"
        jupiter.build_swap_transaction.assert_awaited_once_with(route, SOLANA_USER)

    @pytest.mark.asyncio
    async def test_ton_payload(self):
        """Test TON swaps target the router from the STON.fi route."""
        quote = {"route": {"quote": {"askAmount": "1"}, "route": {"router_address": "EQRouter"}}}
        step = make_step("s", StepKind.SWAP, TON_TON, TON_USDT, quote=quote, amount_in_base="1000000000")

        built = await TransactionBuilder().build(step, WalletContext())

        assert built.unsigned_tx == {"type": "ton_transaction", "to": "EQRouter", "amount": "1000000000"}

    @pytest.mark.asyncio
    async def test_tron_requires_wallet(self):
        """Test TRON payloads need the owner address."""
        step = make_step("s", StepKind.SWAP, TRON_USDT, TRON_USDT)

        with pytest.raises(TransactionBuildError):
            await TransactionBuilder().build(step, WalletContext())

        built = await TransactionBuilder().build(step, WalletContext(tron=TRON_USER))
        assert built.unsigned_tx["owner_address"] == TRON_USER

    @pytest.mark.asyncio
    async def test_offchain_deposit(self, changenow):
        """Test an off-chain step creates an exchange and returns deposit instructions."""
        step = offchain_plan().steps[0]

        built = await TransactionBuilder(changenow=changenow).build(
            step, WalletContext(evm=EVM_USER, tron=TRON_USER),
        )

        assert built.requires_signature is False
        assert built.exchange_id == "cn-123"
        assert built.unsigned_tx["deposit_address"] == "TDepositAddress"
        assert built.unsigned_tx["amount"] == "5"
        kwargs = changenow.create_transaction.await_args.kwargs
        assert kwargs["to_address"] == EVM_USER
        assert kwargs["refund_address"] == TRON_USER
        assert kwargs["from_network"] == "trx"

    @pytest.mark.asyncio
    async def test_offchain_without_changenow(self):
        """Test off-chain steps need ChangeNOW."""
        with pytest.raises(TransactionBuildError):
            await TransactionBuilder().build(offchain_plan().steps[0], WalletContext(evm=EVM_USER, tron=TRON_USER))


class TestConfirmationChecker:
    """Tests for per-family confirmation lookups."""

    @pytest.mark.asyncio
    async def test_evm_receipt(self):
        """Test a successful receipt confirms."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"status": "0x1"}})

        checker = ConfirmationChecker(settings=Settings(), client=mock_client(handler))

        assert await checker.is_confirmed("0xhash", Family.EVM, 1) is True
        assert json.loads(seen[0].content)["method"] == "eth_getTransactionReceipt"

    @pytest.mark.asyncio
    async def test_evm_reverted_or_pending(self):
        """Test a reverted receipt fails and a missing one stays pending."""
        reverted = ConfirmationChecker(
            settings=Settings(), client=mock_client(lambda r: httpx.Response(200, json={"result": {"status": "0x0"}})),
        )
        pending = ConfirmationChecker(
            settings=Settings(), client=mock_client(lambda r: httpx.Response(200, json={"result": None})),
        )

        assert await reverted.check("0xhash", Family.EVM, 1) == TxStatus.FAILED
        assert await reverted.is_confirmed("0xhash", Family.EVM, 1) is False
        assert await pending.check("0xhash", Family.EVM, 1) == TxStatus.PENDING

    @pytest.mark.asyncio
    async def test_evm_unknown_chain(self):
        """Test chains without an RPC endpoint never confirm."""
        checker = ConfirmationChecker(settings=Settings(), client=mock_client(lambda r: httpx.Response(500)))

        assert await checker.is_confirmed("0xhash", Family.EVM, 999999) is False

    @pytest.mark.asyncio
    async def test_solana_finalized(self):
        """Test a finalized signature without error confirms."""
        payload = {"result": {"value": [{"err": None, "confirmationStatus": "finalized"}]}}
        checker = ConfirmationChecker(settings=Settings(), client=mock_client(lambda r: httpx.Response(200, json=payload)))

        assert await checker.is_confirmed("sig", Family.SOLANA) is True

    @pytest.mark.asyncio
    async def test_solana_error(self):
        """Test a signature with an instruction error fails."""
        payload = {"result": {"value": [{"err": {"InstructionError": [0, "Custom"]}, "confirmationStatus": "finalized"}]}}
        checker = ConfirmationChecker(settings=Settings(), client=mock_client(lambda r: httpx.Response(200, json=payload)))

        assert await checker.check("sig", Family.SOLANA) == TxStatus.FAILED

    @pytest.mark.asyncio
    async def test_solana_processed_is_pending(self):
        """Test a signature not yet confirmed stays pending."""
        payload = {"result": {"value": [{"err": None, "confirmationStatus": "processed"}]}}
        checker = ConfirmationChecker(settings=Settings(), client=mock_client(lambda r: httpx.Response(200, json=payload)))

        assert await checker.check("sig", Family.SOLANA) == TxStatus.PENDING

    @pytest.mark.asyncio
    async def test_ton_aborted(self):
        """Test an aborted TON transaction fails."""
        payload = {"success": False, "aborted": True}
        checker = ConfirmationChecker(settings=Settings(), client=mock_client(lambda r: httpx.Response(200, json=payload)))

        assert await checker.check("abc", Family.TON) == TxStatus.FAILED

    @pytest.mark.asyncio
    async def test_tron_reverted(self):
        """Test a non-SUCCESS contract result fails and a missing one stays pending."""
        reverted = {"data": [{"ret": [{"contractRet": "REVERT"}]}]}
        unpacked = {"data": [{"ret": []}]}
        failed = ConfirmationChecker(settings=Settings(), client=mock_client(lambda r: httpx.Response(200, json=reverted)))
        pending = ConfirmationChecker(settings=Settings(), client=mock_client(lambda r: httpx.Response(200, json=unpacked)))

        assert await failed.check("abc", Family.TRON) == TxStatus.FAILED
        assert await pending.check("abc", Family.TRON) == TxStatus.PENDING

    @pytest.mark.asyncio
    async def test_ton(self):
        """Test TonAPI lookups with the bearer key."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True, "aborted": False})

        checker = ConfirmationChecker(settings=Settings(ton_api_key="ton-key"), client=mock_client(handler))

        assert await checker.is_confirmed("abc", Family.TON) is True
        assert seen[0].headers["Authorization"] == "Bearer ton-key"
        assert seen[0].url.path == "/v2/blockchain/transactions/abc"

    @pytest.mark.asyncio
    async def test_tron(self):
        """Test TronGrid contract results."""
        payload = {"data": [{"ret": [{"contractRet": "SUCCESS"}]}]}
        checker = ConfirmationChecker(settings=Settings(), client=mock_client(lambda r: httpx.Response(200, json=payload)))

        assert await checker.is_confirmed("abc", Family.TRON) is True

    @pytest.mark.asyncio
    async def test_transport_error(self):
        """Test network failures count as pending."""
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        checker = ConfirmationChecker(settings=Settings(), client=mock_client(handler))

        assert await checker.check("abc", Family.TRON) == TxStatus.PENDING


class TestExecutionService:
    """Tests for the execution lifecycle."""

    @pytest.mark.asyncio
    async def test_create_execution(self, checker):
        """Test every step gets an unsigned payload."""
        service = ExecutionService(builder=TransactionBuilder(), checker=checker, store=ExecutionStore())

        response = await service.create_execution(ExecuteRequest(plan=two_step_plan(), wallets=WalletContext(evm=EVM_USER)))

        assert response.ok is True
        execution = response.execution
        assert execution.id.startswith("exec-")
        assert execution.plan_id == "plan-1"
        assert execution.status == StepStatus.SIGN_REQUIRED
        assert [s.status for s in execution.steps] == [StepStatus.SIGN_REQUIRED, StepStatus.SIGN_REQUIRED]
        assert execution.steps[0].unsigned_tx["chainId"] == 1

    @pytest.mark.asyncio
    async def test_create_rejects_empty_plan(self, checker):
        """Test an empty plan cannot be executed."""
        service = ExecutionService(builder=TransactionBuilder(), checker=checker, store=ExecutionStore())

        response = await service.create_execution(ExecuteRequest(plan=RoutePlan(id="p", steps=[])))

        assert response.error_code == ErrorCode.INVALID_INPUT.value

    @pytest.mark.asyncio
    async def test_create_requires_wallets(self, checker):
        """Test missing wallets are refused."""
        service = ExecutionService(builder=TransactionBuilder(), checker=checker, store=ExecutionStore())

        response = await service.create_execution(ExecuteRequest(plan=two_step_plan()))

        assert response.error_code == ErrorCode.WALLET_MISSING_FOR_ROUTE.value

    @pytest.mark.asyncio
    async def test_build_failure_isolated(self, checker):
        """Test a step that cannot be built fails alone."""
        plan = two_step_plan()
        plan.steps[1].quote = None
        service = ExecutionService(builder=TransactionBuilder(), checker=checker, store=ExecutionStore())

        response = await service.create_execution(ExecuteRequest(plan=plan, wallets=WalletContext(evm=EVM_USER)))

        steps = response.execution.steps
        assert steps[0].status == StepStatus.SIGN_REQUIRED
        assert steps[1].status == StepStatus.FAILED
        assert steps[1].error
        assert response.execution.status == StepStatus.FAILED

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, checker):
        """Test submit, confirm and advance through a bridge and a swap."""
        service = ExecutionService(builder=TransactionBuilder(), checker=checker, store=ExecutionStore())
        created = await service.create_execution(
            ExecuteRequest(plan=two_step_plan(), wallets=WalletContext(evm=EVM_USER)),
        )
        execution_id = created.execution.id

        early = service.mark_submitted(execution_id, "step-1-1", "0xswap")
        assert early.error_code == ErrorCode.INVALID_STEP_TRANSITION.value

        submitted = service.mark_submitted(execution_id, "step-1-0", "0xbridge")
        assert submitted.execution.steps[0].status == StepStatus.SUBMITTED
        assert submitted.execution.steps[0].tx_hash == "0xbridge"

        polled = await service.poll(execution_id)
        assert polled.execution.steps[0].status == StepStatus.CONFIRMED
        assert polled.execution.current_step_index == 1
        checker.check.assert_awaited_with("0xbridge", Family.EVM, 1)

        second = service.mark_submitted(execution_id, "step-1-1", "0xswap")
        assert second.execution.steps[0].status == StepStatus.COMPLETED
        assert second.execution.steps[1].status == StepStatus.SUBMITTED

        done = await service.poll(execution_id)
        assert done.execution.steps[1].status == StepStatus.COMPLETED
        assert done.execution.status == StepStatus.COMPLETED
        assert done.execution.current_step_index == 2

        again = service.mark_submitted(execution_id, "step-1-0", "0xbridge")
        assert again.error_code == ErrorCode.INVALID_STEP_TRANSITION.value

    @pytest.mark.asyncio
    async def test_poll_unconfirmed(self, checker):
        """Test unconfirmed steps stay submitted."""
        checker.check.return_value = TxStatus.PENDING
        service = ExecutionService(builder=TransactionBuilder(), checker=checker, store=ExecutionStore())
        created = await service.create_execution(
            ExecuteRequest(plan=two_step_plan(), wallets=WalletContext(evm=EVM_USER)),
        )
        service.mark_submitted(created.execution.id, "step-1-0", "0xbridge")

        polled = await service.poll(created.execution.id)

        assert polled.execution.steps[0].status == StepStatus.SUBMITTED
        assert polled.execution.current_step_index == 0

    @pytest.mark.asyncio
    async def test_poll_reverted(self, checker):
        """Test a transaction that failed on chain fails its step."""
        checker.check.return_value = TxStatus.FAILED
        service = ExecutionService(builder=TransactionBuilder(), checker=checker, store=ExecutionStore())
        created = await service.create_execution(
            ExecuteRequest(plan=two_step_plan(), wallets=WalletContext(evm=EVM_USER)),
        )
        service.mark_submitted(created.execution.id, "step-1-0", "0xbridge")

        polled = await service.poll(created.execution.id)

        assert polled.ok is True
        assert polled.execution.steps[0].status == StepStatus.FAILED
        assert polled.execution.steps[0].error == "Transaction failed on chain"
        assert polled.execution.status == StepStatus.FAILED
        assert polled.execution.current_step_index == 0


    @pytest.mark.asyncio
    async def test_unknown_execution(self, checker):
        """Test lookups of unknown executions."""
        service = ExecutionService(builder=TransactionBuilder(), checker=checker, store=ExecutionStore())

        assert service.get_execution("nope").error_code == ErrorCode.EXECUTION_NOT_FOUND.value
        assert (await service.poll("nope")).error_code == ErrorCode.EXECUTION_NOT_FOUND.value
        assert service.mark_submitted("nope", "s", "0x").error_code == ErrorCode.EXECUTION_NOT_FOUND.value

    @pytest.mark.asyncio
    async def test_offchain_lifecycle(self, checker, changenow):
        """Test off-chain steps complete from the exchange status."""
        service = ExecutionService(
            builder=TransactionBuilder(changenow=changenow),
            checker=checker,
            changenow=changenow,
            store=ExecutionStore(),
        )
        created = await service.create_execution(
            ExecuteRequest(plan=offchain_plan(), wallets=WalletContext(evm=EVM_USER, tron=TRON_USER)),
        )
        step = created.execution.steps[0]
        assert step.status == StepStatus.PENDING
        assert step.exchange_id == "cn-123"

        service.mark_submitted(created.execution.id, step.step_id, "tron-deposit-hash")
        waiting = await service.poll(created.execution.id)
        assert waiting.execution.steps[0].status == StepStatus.SUBMITTED

        changenow.get_status.return_value = ChangeNowStatus(id="cn-123", status="finished")
        finished = await service.poll(created.execution.id)

        assert finished.execution.status == StepStatus.COMPLETED
        checker.check.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_offchain_failure(self, checker, changenow):
        """Test a failed exchange fails the step."""
        changenow.get_status.return_value = ChangeNowStatus(id="cn-123", status="refunded")
        service = ExecutionService(
            builder=TransactionBuilder(changenow=changenow),
            checker=checker,
            changenow=changenow,
            store=ExecutionStore(),
        )
        created = await service.create_execution(
            ExecuteRequest(plan=offchain_plan(), wallets=WalletContext(evm=EVM_USER, tron=TRON_USER)),
        )
        service.mark_submitted(created.execution.id, "step-2-0", "tron-deposit-hash")

        polled = await service.poll(created.execution.id)

        assert polled.execution.steps[0].status == StepStatus.FAILED
        assert polled.execution.status == StepStatus.FAILED

    @pytest.mark.asyncio
    async def test_exchange_status(self, checker, changenow):
        """Test the exchange status proxy."""
        changenow.get_status.return_value = ChangeNowStatus(id="cn-123", status="finished", to_amount="4.9")
        service = ExecutionService(
            builder=TransactionBuilder(), checker=checker, changenow=changenow, store=ExecutionStore(),
        )

        status = await service.get_exchange_status("changenow", "cn-123")
        unknown = await service.get_exchange_status("sideshift", "x")

        assert status.ok is True
        assert status.is_finished is True
        assert status.to_amount == "4.9"
        assert unknown.ok is False

    @pytest.mark.asyncio
    async def test_exchange_html_body_keeps_step_submitted(self, checker, changenow):
        """Test an unreadable exchange status leaves the step waiting."""
        unreachable = ChangeNowClient(api_key="cn-key", client=mock_client(
            lambda request: httpx.Response(200, text="<html>maintenance</html>"),
        ))
        service = ExecutionService(
            builder=TransactionBuilder(changenow=changenow),
            checker=checker,
            changenow=unreachable,
            store=ExecutionStore(),
        )
        created = await service.create_execution(
            ExecuteRequest(plan=offchain_plan(), wallets=WalletContext(evm=EVM_USER, tron=TRON_USER)),
        )
        service.mark_submitted(created.execution.id, "step-2-0", "tron-deposit-hash")

        polled = await service.poll(created.execution.id)

        assert polled.ok is True
        assert polled.execution.steps[0].status == StepStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_unexpected_errors(self, checker):
        """Test unexpected failures become API_ERROR without detail."""
        checker.check.side_effect = RuntimeError("rpc exploded")
        quiet = Settings(debug=False)
        service = ExecutionService(builder=TransactionBuilder(), checker=checker, store=ExecutionStore(), settings=quiet)
        created = await service.create_execution(
            ExecuteRequest(plan=two_step_plan(), wallets=WalletContext(evm=EVM_USER)),
        )
        service.mark_submitted(created.execution.id, "step-1-0", "0xbridge")

        polled = await service.poll(created.execution.id)

        assert polled.ok is False
        assert polled.error_code == ErrorCode.API_ERROR.value
        assert polled.error == "Internal error"

        builder = MagicMock()
        builder.build = AsyncMock(side_effect=RuntimeError("builder exploded"))
        broken = ExecutionService(builder=builder, checker=checker, store=ExecutionStore(), settings=quiet)

        response = await broken.create_execution(
            ExecuteRequest(plan=two_step_plan(), wallets=WalletContext(evm=EVM_USER)),
        )

        assert response.error_code == ErrorCode.API_ERROR.value
