"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from routerex.config import get_settings
from routerex.web.dependencies import shutdown_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    yield
    await shutdown_services()
    logger.info("HTTP clients closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Routerex API",
        description="Cross-chain quote aggregation and route planning",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from routerex.api.routes import health
    from routerex.web.controllers import chains_router, executions_router, quotes_router, route_plans_router

    app.include_router(health.router, tags=["Health"])
    app.include_router(quotes_router)
    app.include_router(route_plans_router)
    app.include_router(executions_router)
    app.include_router(chains_router)

    return app
