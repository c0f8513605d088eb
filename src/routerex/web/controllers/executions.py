"""Execution API endpoints.

Payloads returned here are unsigned; clients sign and broadcast them,
then report the transaction hash back.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from routerex.errors import ErrorCode
from routerex.web.contracts.executions import (
    ExchangeStatusResponse,
    ExecuteRequest,
    ExecutionResponse,
    StepSubmittedRequest,
)
from routerex.web.dependencies import get_execution_service
from routerex.web.services.execution_service import ExecutionService

router = APIRouter(tags=["executions"])


def _raise_for(result: ExecutionResponse) -> ExecutionResponse:
    if result.ok:
        return result
    if result.error_code == ErrorCode.EXECUTION_NOT_FOUND.value:
        raise HTTPException(status_code=404, detail=result.error)
    if result.error_code == ErrorCode.INVALID_STEP_TRANSITION.value:
        raise HTTPException(status_code=409, detail=result.error)
    if result.error_code == ErrorCode.API_ERROR.value:
        raise HTTPException(status_code=500, detail=result.error)
    raise HTTPException(status_code=400, detail=result.error)


@router.post("/execute", response_model=ExecutionResponse, response_model_by_alias=True)
async def create_execution(
    request: ExecuteRequest,
    service: ExecutionService = Depends(get_execution_service),
) -> ExecutionResponse:
    """Build unsigned payloads for every step of a route plan."""
    return _raise_for(await service.create_execution(request))


@router.post(
    "/execution/{execution_id}/steps/{step_id}/submitted",
    response_model=ExecutionResponse,
    response_model_by_alias=True,
)
async def step_submitted(
    execution_id: str,
    step_id: str,
    request: StepSubmittedRequest,
    service: ExecutionService = Depends(get_execution_service),
) -> ExecutionResponse:
    """Record the hash of a signed and broadcast step."""
    return _raise_for(service.mark_submitted(execution_id, step_id, request.tx_hash))


@router.get("/execution/status", response_model=ExecutionResponse, response_model_by_alias=True)
async def execution_status(
    execution_id: str = Query(..., alias="id"),
    service: ExecutionService = Depends(get_execution_service),
) -> ExecutionResponse:
    """Poll chain confirmations and return the execution."""
    return _raise_for(await service.poll(execution_id))


@router.get("/status", response_model=ExchangeStatusResponse, response_model_by_alias=True)
async def exchange_status(
    provider: str = Query(...),
    tx_id: str = Query(..., alias="txId"),
    service: ExecutionService = Depends(get_execution_service),
) -> ExchangeStatusResponse:
    """Status of an off-chain exchange (ChangeNOW)."""
    result = await service.get_exchange_status(provider, tx_id)
    if not result.ok and result.error and result.error.startswith("Unknown provider"):
        raise HTTPException(status_code=400, detail=result.error)
    return result
