"""Quote API endpoint."""

from fastapi import APIRouter, Depends, Response

from routerex.errors import ErrorCode
from routerex.web.contracts.quotes import QuoteRequest, QuoteResponse
from routerex.web.dependencies import get_quote_service
from routerex.web.services.quote_service import QuoteService

router = APIRouter(tags=["quotes"])

INPUT_ERRORS = frozenset({
    ErrorCode.INVALID_AMOUNT.value,
    ErrorCode.UNSUPPORTED_NETWORK.value,
    ErrorCode.INVALID_FROM_TOKEN.value,
    ErrorCode.INVALID_TO_TOKEN.value,
})

SERVER_ERRORS = frozenset({
    ErrorCode.API_ERROR.value,
    ErrorCode.TOKEN_ADDRESS_MAPPING_BUG.value,
    ErrorCode.TOKEN_DECIMALS_MISMATCH.value,
})


def status_for(error_code: str) -> int:
    if error_code in INPUT_ERRORS:
        return 400
    if error_code in SERVER_ERRORS:
        return 500
    return 200


@router.post("/quote", response_model=QuoteResponse, response_model_by_alias=True)
async def get_quote(
    request: QuoteRequest,
    response: Response,
    service: QuoteService = Depends(get_quote_service),
) -> QuoteResponse:
    """Get the best quote across all enabled providers.

    Provider failures are reported in the body; only bad input and
    internal errors change the HTTP status.
    """
    result = await service.get_quote(request)
    if not result.ok:
        response.status_code = status_for(result.error_code)
    return result
