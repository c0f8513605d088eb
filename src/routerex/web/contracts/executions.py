"""Execution contracts: plan realization and step lifecycle."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from routerex.web.contracts.route_plans import RoutePlan, WalletContext


class StepStatus(str, Enum):
    """Lifecycle of one execution step."""

    PENDING = "PENDING"
    SIGN_REQUIRED = "SIGN_REQUIRED"
    SUBMITTED = "SUBMITTED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ExecuteRequest(BaseModel):
    """Request to start executing a route plan."""

    plan: RoutePlan
    wallets: WalletContext = Field(default_factory=WalletContext)


class StepSubmittedRequest(BaseModel):
    """Client report that a step's transaction was broadcast."""

    tx_hash: str = Field(..., alias="txHash", min_length=1)

    class Config:
        populate_by_name = True


class ExecutionStepModel(BaseModel):
    step_id: str = Field(..., alias="stepId")
    step_index: int = Field(..., alias="stepIndex")
    status: StepStatus
    tx_hash: Optional[str] = Field(None, alias="txHash")
    unsigned_tx: Optional[dict[str, Any]] = Field(None, alias="unsignedTx")
    error: Optional[str] = None
    exchange_id: Optional[str] = Field(None, alias="exchangeId", description="Off-chain exchange id")

    class Config:
        populate_by_name = True


class ExecutionModel(BaseModel):
    id: str
    plan_id: str = Field(..., alias="planId")
    status: StepStatus
    current_step_index: int = Field(..., alias="currentStepIndex")
    steps: list[ExecutionStepModel]
    created_at: float = Field(..., alias="createdAt")
    updated_at: float = Field(..., alias="updatedAt")

    class Config:
        populate_by_name = True


class ExecutionResponse(BaseModel):
    ok: bool
    execution: Optional[ExecutionModel] = None
    error: Optional[str] = None
    error_code: Optional[str] = Field(None, alias="errorCode")

    class Config:
        populate_by_name = True


class ExchangeStatusResponse(BaseModel):
    """Status of an off-chain exchange."""

    ok: bool
    provider: str
    tx_id: str = Field(..., alias="txId")
    status: Optional[str] = None
    is_finished: bool = Field(default=False, alias="isFinished")
    is_failed: bool = Field(default=False, alias="isFailed")
    payin_address: Optional[str] = Field(None, alias="payinAddress")
    payout_address: Optional[str] = Field(None, alias="payoutAddress")
    from_amount: Optional[str] = Field(None, alias="fromAmount")
    to_amount: Optional[str] = Field(None, alias="toAmount")
    error: Optional[str] = None

    class Config:
        populate_by_name = True
