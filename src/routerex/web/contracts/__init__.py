"""Request and response contracts for the web layer."""

from routerex.web.contracts.chains import ChainInfo, ChainListResponse
from routerex.web.contracts.executions import (
    ExchangeStatusResponse,
    ExecuteRequest,
    ExecutionModel,
    ExecutionResponse,
    StepStatus,
    StepSubmittedRequest,
)
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

__all__ = [
    # Quote contracts
    "QuoteRequest",
    "QuoteResponse",
    # Route plan contracts
    "RoutePlan",
    "RoutePlanRequest",
    "RoutePlanResponse",
    "RouteStep",
    "StepEndpoint",
    "StepKind",
    "WalletContext",
    # Execution contracts
    "ExchangeStatusResponse",
    "ExecuteRequest",
    "ExecutionModel",
    "ExecutionResponse",
    "StepStatus",
    "StepSubmittedRequest",
    # Chain contracts
    "ChainInfo",
    "ChainListResponse",
]
