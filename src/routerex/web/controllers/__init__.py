"""HTTP controllers for the web API."""

from routerex.web.controllers.chains import router as chains_router
from routerex.web.controllers.executions import router as executions_router
from routerex.web.controllers.quotes import router as quotes_router
from routerex.web.controllers.route_plans import router as route_plans_router

__all__ = [
    "chains_router",
    "executions_router",
    "quotes_router",
    "route_plans_router",
]
