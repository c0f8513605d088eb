"""Execution orchestrator.

Turns a finalized route plan into unsigned payloads and tracks the
confirmation lifecycle of each step. Polling is caller-driven.
"""

import logging
from typing import Optional

from routerex.config import Settings, get_settings
from routerex.errors import ErrorCode
from routerex.execution.builder import TransactionBuildError, TransactionBuilder
from routerex.execution.confirmations import ConfirmationChecker, TxStatus
from routerex.execution.store import (
    Execution,
    ExecutionStep,
    ExecutionStore,
    InvalidTransition,
    get_execution_store,
)
from routerex.routing.changenow import ChangeNowClient, ChangeNowError
from routerex.web.contracts.executions import (
    ExchangeStatusResponse,
    ExecuteRequest,
    ExecutionResponse,
    StepStatus,
)
from routerex.web.contracts.route_plans import StepKind
from routerex.web.services.route_planner import generate_id

logger = logging.getLogger(__name__)


class ExecutionService:
    """Create, advance and poll executions."""

    def __init__(
        self,
        builder: TransactionBuilder,
        checker: ConfirmationChecker,
        changenow: Optional[ChangeNowClient] = None,
        store: Optional[ExecutionStore] = None,
        settings: Optional[Settings] = None,
    ):
        self.builder = builder
        self.checker = checker
        self.changenow = changenow
        self.store = store or get_execution_store()
        self.settings = settings or get_settings()

    async def create_execution(self, request: ExecuteRequest) -> ExecutionResponse:
        """Build payloads for every step of a plan.

        A step whose payload cannot be built is FAILED on its own; the
        remaining steps are still built.
        """
        try:
            return await self._create(request)
        except Exception as e:
            return self._internal_error("Execution create", e)

    async def _create(self, request: ExecuteRequest) -> ExecutionResponse:
        plan = request.plan
        if not plan.steps:
            return _failure(ErrorCode.INVALID_INPUT, "Plan has no steps")

        missing = request.wallets.missing(plan.requires_wallets)
        if missing:
            return _failure(
                ErrorCode.WALLET_MISSING_FOR_ROUTE,
                f"Missing required wallets: {', '.join(f.value for f in missing)}",
            )

        steps = []
        for index, route_step in enumerate(plan.steps):
            try:
                built = await self.builder.build(route_step, request.wallets)
            except TransactionBuildError as e:
                logger.warning(f"Plan {plan.id} step {route_step.id} build failed: {e}")
                steps.append(ExecutionStep(
                    step_id=route_step.id, index=index, status=StepStatus.FAILED, error=str(e),
                ))
                continue
            steps.append(ExecutionStep(
                step_id=route_step.id,
                index=index,
                status=StepStatus.SIGN_REQUIRED if built.requires_signature else StepStatus.PENDING,
                unsigned_tx=built.unsigned_tx,
                exchange_id=built.exchange_id,
            ))

        execution = Execution(id=generate_id("exec"), plan=plan, steps=steps)
        self.store.save(execution)
        logger.info(f"Execution {execution.id} created for plan {plan.id}: {execution.status.value}")
        return ExecutionResponse(ok=True, execution=execution.to_model())

    def get_execution(self, execution_id: str) -> ExecutionResponse:
        execution = self.store.get(execution_id)
        if execution is None:
            return _not_found(execution_id)
        return ExecutionResponse(ok=True, execution=execution.to_model())

    def mark_submitted(self, execution_id: str, step_id: str, tx_hash: str) -> ExecutionResponse:
        """Record that the active step's transaction was broadcast."""
        execution = self.store.get(execution_id)
        if execution is None:
            return _not_found(execution_id)
        step = execution.get_step(step_id)
        if step is None:
            return _failure(ErrorCode.INVALID_INPUT, f"Unknown step {step_id}")
        if step.index != execution.current_step_index:
            return _failure(ErrorCode.INVALID_STEP_TRANSITION, f"Step {step_id} is not the active step")

        try:
            step.transition(StepStatus.SUBMITTED)
        except InvalidTransition as e:
            return _failure(ErrorCode.INVALID_STEP_TRANSITION, str(e))
        step.tx_hash = tx_hash

        # Spending the bridged funds proves the previous bridge landed
        if step.index > 0:
            previous = execution.steps[step.index - 1]
            if previous.status == StepStatus.CONFIRMED:
                previous.transition(StepStatus.COMPLETED)

        self.store.save(execution)
        logger.info(f"Execution {execution_id} step {step_id} submitted: {tx_hash}")
        return ExecutionResponse(ok=True, execution=execution.to_model())

    async def poll(self, execution_id: str) -> ExecutionResponse:
        """Re-check confirmation of submitted steps."""
        try:
            return await self._poll(execution_id)
        except Exception as e:
            return self._internal_error(f"Execution {execution_id} poll", e)

    async def _poll(self, execution_id: str) -> ExecutionResponse:
        execution = self.store.get(execution_id)
        if execution is None:
            return _not_found(execution_id)

        for step in execution.steps:
            if step.status != StepStatus.SUBMITTED or not step.tx_hash:
                continue
            route_step = execution.plan_step(step)

            if route_step.kind == StepKind.OFFCHAIN_SWAP and step.exchange_id:
                await self._poll_exchange(execution, step)
                continue

            tx_status = await self.checker.check(
                step.tx_hash, route_step.from_.family, route_step.from_.chain_id,
            )
            if tx_status == TxStatus.FAILED:
                step.transition(StepStatus.FAILED, error="Transaction failed on chain")
                logger.warning(f"Execution {execution.id} step {step.step_id} failed on chain: {step.tx_hash}")
                continue
            if tx_status != TxStatus.CONFIRMED:
                continue
            step.transition(StepStatus.CONFIRMED)
            is_last = step.index == len(execution.steps) - 1
            if route_step.kind != StepKind.BRIDGE or is_last:
                step.transition(StepStatus.COMPLETED)
            self._advance(execution, step)

        self.store.save(execution)
        return ExecutionResponse(ok=True, execution=execution.to_model())

    async def _poll_exchange(self, execution: Execution, step: ExecutionStep) -> None:
        if self.changenow is None:
            return
        try:
            status = await self.changenow.get_status(step.exchange_id)
        except ChangeNowError as e:
            logger.warning(f"ChangeNOW status check failed for {step.exchange_id}: {e}")
            return
        if status.is_finished:
            step.transition(StepStatus.CONFIRMED)
            step.transition(StepStatus.COMPLETED)
            self._advance(execution, step)
        elif status.is_failed:
            step.transition(StepStatus.FAILED, error=f"Exchange {status.status}")

    def _internal_error(self, action: str, error: Exception) -> ExecutionResponse:
        logger.exception(f"{action} failed: {error}")
        return _failure(ErrorCode.API_ERROR, str(error) if self.settings.debug else "Internal error")

    @staticmethod
    def _advance(execution: Execution, step: ExecutionStep) -> None:
        if step.index == execution.current_step_index:
            execution.current_step_index += 1
            logger.info(f"Execution {execution.id} advanced to step {execution.current_step_index}")

    async def get_exchange_status(self, provider: str, tx_id: str) -> ExchangeStatusResponse:
        """Proxy an off-chain exchange status lookup."""
        if provider.lower() != "changenow":
            return ExchangeStatusResponse(ok=False, provider=provider, tx_id=tx_id, error=f"Unknown provider: {provider}")
        if self.changenow is None or not self.changenow.is_configured:
            return ExchangeStatusResponse(
                ok=False, provider=provider, tx_id=tx_id, error="ChangeNOW API key not configured",
            )
        try:
            status = await self.changenow.get_status(tx_id)
        except ChangeNowError as e:
            return ExchangeStatusResponse(ok=False, provider=provider, tx_id=tx_id, error=str(e))
        return ExchangeStatusResponse(
            ok=True,
            provider="changenow",
            tx_id=status.id,
            status=status.status,
            is_finished=status.is_finished,
            is_failed=status.is_failed,
            payin_address=status.payin_address,
            payout_address=status.payout_address,
            from_amount=status.from_amount,
            to_amount=status.to_amount,
        )


def _failure(code: ErrorCode, message: str) -> ExecutionResponse:
    return ExecutionResponse(ok=False, error=message, error_code=code.value)


def _not_found(execution_id: str) -> ExecutionResponse:
    return _failure(ErrorCode.EXECUTION_NOT_FOUND, f"Execution {execution_id} not found")
