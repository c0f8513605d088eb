"""Route plan API endpoint."""

from fastapi import APIRouter, Depends, Response

from routerex.web.contracts.route_plans import RoutePlanRequest, RoutePlanResponse
from routerex.web.controllers.quotes import status_for
from routerex.web.dependencies import get_route_plan_service
from routerex.web.services.route_planner import RoutePlanService

router = APIRouter(tags=["route-plans"])


@router.post("/route-plan", response_model=RoutePlanResponse, response_model_by_alias=True)
async def build_route_plan(
    request: RoutePlanRequest,
    response: Response,
    service: RoutePlanService = Depends(get_route_plan_service),
) -> RoutePlanResponse:
    """Build a multi-leg plan, crossing families through hub networks."""
    result = await service.build_plan(request)
    if not result.ok:
        response.status_code = status_for(result.error_code)
    return result
