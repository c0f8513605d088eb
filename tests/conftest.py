"""Pytest configuration and fixtures."""

import asyncio
import os
from typing import Optional

import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["CHANGENOW_API_KEY"] = ""

from routerex.config import Settings
from routerex.execution.store import get_execution_store
from routerex.quoting.cache import CacheStore, get_cache_store
from routerex.routing.base import Ok, ProviderAdapter, ProviderOutcome, QuoteInput, QuoteResult
from routerex.routing.registry import ProviderRegistry

EVM_USER = "0x2222222222222222222222222222222222222222"
SOLANA_USER = "7EcDhSYGxXyscszYEp35KHN8vvw3svAuLKTzXwCFLtV"
TON_USER = "EQBvW8Z5huBkMJYdnfAEM5JqTNkuWX3diqYENkWsIL0XggGG"
TRON_USER = "TLyqzVGLV1srkB7dToTAEqgDSfPtXRJZYH"


class StaticAdapter(ProviderAdapter):
    """Adapter returning a canned outcome, counting calls."""

    def __init__(
        self,
        name: str = "static",
        priority: int = 10,
        to_amount: Optional[str] = None,
        outcome: Optional[ProviderOutcome] = None,
        delay: float = 0.0,
        timeout: float = 1.0,
    ):
        self._name = name
        self.priority = priority
        self.to_amount = to_amount
        self.outcome = outcome
        self.delay = delay
        self.timeout = timeout
        self.calls: list[QuoteInput] = []

    @property
    def name(self) -> str:
        return self._name

    async def _quote(self, quote_input: QuoteInput, timeout: float) -> ProviderOutcome:
        self.calls.append(quote_input)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.outcome is not None:
            return self.outcome
        return Ok(QuoteResult(
            provider=self.name,
            from_amount=quote_input.amount,
            to_amount=self.to_amount,
            raw={"provider": self.name},
        ))


class StubPrices:
    """Price client double returning fixed prices."""

    def __init__(self, prices: Optional[dict] = None):
        self.prices = prices or {}
        self.requested: list[list[str]] = []

    async def get_prices(self, token_ids: list[str]) -> dict:
        self.requested.append(token_ids)
        return dict(self.prices)

    async def close(self) -> None:
        pass


@pytest.fixture(autouse=True)
def reset_state():
    """Clear process-wide caches and executions between tests."""
    get_cache_store().reset()
    get_execution_store().reset()
    yield
    get_cache_store().reset()
    get_execution_store().reset()


@pytest.fixture
def settings() -> Settings:
    """Settings with debug detail disabled."""
    return Settings(debug=False, debug_quotes=False, changenow_api_key="")


@pytest.fixture
def cache() -> CacheStore:
    return CacheStore()


@pytest.fixture
def make_adapter():
    """Factory for StaticAdapter instances."""
    return StaticAdapter


@pytest.fixture
def make_registry():
    """Build a registry from adapters."""

    def _make(*adapters: ProviderAdapter) -> ProviderRegistry:
        registry = ProviderRegistry()
        for adapter in adapters:
            registry.register(adapter, timeout=adapter.timeout)
        return registry

    return _make
