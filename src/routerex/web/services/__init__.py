"""Business logic behind the web controllers."""

from routerex.web.services.execution_service import ExecutionService
from routerex.web.services.quote_service import QuoteService
from routerex.web.services.route_planner import RoutePlanService

__all__ = [
    "ExecutionService",
    "QuoteService",
    "RoutePlanService",
]
