"""In-memory execution records and the step state machine."""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from routerex.web.contracts.executions import ExecutionModel, ExecutionStepModel, StepStatus
from routerex.web.contracts.route_plans import RoutePlan, RouteStep

logger = logging.getLogger(__name__)

# Forward order; FAILED sits outside it
_ORDER = {
    StepStatus.PENDING: 0,
    StepStatus.SIGN_REQUIRED: 1,
    StepStatus.SUBMITTED: 2,
    StepStatus.CONFIRMED: 3,
    StepStatus.COMPLETED: 4,
}

TERMINAL_STATUSES = frozenset({StepStatus.COMPLETED, StepStatus.FAILED})


class InvalidTransition(ValueError):
    """A step was asked to move backwards or out of a terminal state."""


def can_transition(current: StepStatus, new: StepStatus) -> bool:
    if current in TERMINAL_STATUSES:
        return False
    if new == StepStatus.FAILED:
        return True
    return _ORDER[new] > _ORDER[current]


@dataclass
class ExecutionStep:
    step_id: str
    index: int
    status: StepStatus
    unsigned_tx: Optional[dict] = None
    tx_hash: Optional[str] = None
    error: Optional[str] = None
    exchange_id: Optional[str] = None

    def transition(self, new: StepStatus, error: Optional[str] = None) -> None:
        """Move to `new`.

        Raises:
            InvalidTransition: If the move is not forward
        """
        if not can_transition(self.status, new):
            raise InvalidTransition(f"Step {self.step_id}: {self.status.value} -> {new.value} not allowed")
        logger.debug(f"Step {self.step_id}: {self.status.value} -> {new.value}")
        self.status = new
        if error:
            self.error = error

    def to_model(self) -> ExecutionStepModel:
        return ExecutionStepModel(
            step_id=self.step_id,
            step_index=self.index,
            status=self.status,
            tx_hash=self.tx_hash,
            unsigned_tx=self.unsigned_tx,
            error=self.error,
            exchange_id=self.exchange_id,
        )


@dataclass
class Execution:
    """A route plan being realized step by step."""

    id: str
    plan: RoutePlan
    steps: list[ExecutionStep]
    current_step_index: int = 0
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    @property
    def status(self) -> StepStatus:
        """Derived from step states, never stored."""
        if self.steps and all(s.status == StepStatus.COMPLETED for s in self.steps):
            return StepStatus.COMPLETED
        if any(s.status == StepStatus.FAILED for s in self.steps):
            return StepStatus.FAILED
        if not self.steps:
            return StepStatus.PENDING
        if self.current_step_index >= len(self.steps):
            return StepStatus.CONFIRMED
        return self.steps[self.current_step_index].status

    def get_step(self, step_id: str) -> Optional[ExecutionStep]:
        for step in self.steps:
            if step.step_id == step_id:
                return step
        return None

    def plan_step(self, step: ExecutionStep) -> RouteStep:
        return self.plan.steps[step.index]

    def touch(self) -> None:
        self.updated_at = time.time()

    def to_model(self) -> ExecutionModel:
        return ExecutionModel(
            id=self.id,
            plan_id=self.plan.id,
            status=self.status,
            current_step_index=self.current_step_index,
            steps=[s.to_model() for s in self.steps],
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ExecutionStore:
    """Process-wide execution records."""

    def __init__(self):
        self._executions: dict[str, Execution] = {}

    def save(self, execution: Execution) -> None:
        execution.touch()
        self._executions[execution.id] = execution

    def get(self, execution_id: str) -> Optional[Execution]:
        return self._executions.get(execution_id)

    def all_executions(self) -> list[Execution]:
        return sorted(self._executions.values(), key=lambda e: e.created_at)

    def reset(self) -> None:
        self._executions.clear()

    def __len__(self) -> int:
        return len(self._executions)


_execution_store: Optional[ExecutionStore] = None


def get_execution_store() -> ExecutionStore:
    global _execution_store
    if _execution_store is None:
        _execution_store = ExecutionStore()
    return _execution_store
