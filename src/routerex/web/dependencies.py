"""Process-wide service wiring for the HTTP layer.

Controllers resolve services through these accessors with `Depends`, so
tests can swap them via `app.dependency_overrides`.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from routerex.config import get_settings
from routerex.execution.builder import TransactionBuilder
from routerex.execution.confirmations import ConfirmationChecker
from routerex.quoting.cache import get_cache_store
from routerex.quoting.prices import PriceClient
from routerex.routing.changenow import ChangeNowClient
from routerex.routing.factory import create_changenow_client, create_provider_registry
from routerex.routing.jupiter import JupiterAdapter
from routerex.routing.registry import ProviderRegistry
from routerex.web.services.execution_service import ExecutionService
from routerex.web.services.quote_service import QuoteService
from routerex.web.services.route_planner import RoutePlanService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    registry: ProviderRegistry
    changenow: ChangeNowClient
    prices: PriceClient
    checker: ConfirmationChecker
    quotes: QuoteService
    route_plans: RoutePlanService
    executions: ExecutionService

    async def close(self) -> None:
        await self.registry.close()
        await self.changenow.close()
        await self.prices.close()
        await self.checker.close()


def build_services() -> Services:
    settings = get_settings()
    cache = get_cache_store()
    registry = create_provider_registry(settings=settings, cache=cache)
    changenow = create_changenow_client(settings=settings)
    prices = PriceClient(url=settings.price_api_url, timeout=settings.price_api_timeout_seconds)
    checker = ConfirmationChecker(settings=settings)

    jupiter_entry = registry.get("jupiter")
    jupiter = jupiter_entry.adapter if jupiter_entry and isinstance(jupiter_entry.adapter, JupiterAdapter) else None

    quotes = QuoteService(registry=registry, cache=cache, prices=prices, settings=settings)
    route_plans = RoutePlanService(quote_service=quotes, changenow=changenow, settings=settings)
    executions = ExecutionService(
        builder=TransactionBuilder(jupiter=jupiter, changenow=changenow),
        checker=checker,
        changenow=changenow,
        settings=settings,
    )
    logger.info("Services initialized")
    return Services(
        registry=registry,
        changenow=changenow,
        prices=prices,
        checker=checker,
        quotes=quotes,
        route_plans=route_plans,
        executions=executions,
    )


_services: Optional[Services] = None


def get_services() -> Services:
    global _services
    if _services is None:
        _services = build_services()
    return _services


async def shutdown_services() -> None:
    global _services
    if _services is not None:
        await _services.close()
        _services = None


def get_quote_service() -> QuoteService:
    return get_services().quotes


def get_route_plan_service() -> RoutePlanService:
    return get_services().route_plans


def get_execution_service() -> ExecutionService:
    return get_services().executions
