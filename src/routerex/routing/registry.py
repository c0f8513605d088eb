"""Provider registry: enable flags, fixed priorities and dispatch by id."""

import logging
from dataclasses import dataclass
from typing import Optional

from routerex.errors import ErrorCode
from routerex.routing.base import Failed, ProviderAdapter, ProviderError, ProviderOutcome, QuoteInput

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass
class ProviderEntry:
    """A registered adapter with its dispatch settings."""

    adapter: ProviderAdapter
    enabled: bool
    priority: int
    timeout: float

    @property
    def name(self) -> str:
        return self.adapter.name


class ProviderRegistry:
    """Registry of quote providers. Lower priority number = more trusted."""

    def __init__(self, default_timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.default_timeout = default_timeout
        self._entries: dict[str, ProviderEntry] = {}

    def register(
        self,
        adapter: ProviderAdapter,
        enabled: bool = True,
        priority: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> ProviderEntry:
        entry = ProviderEntry(
            adapter=adapter,
            enabled=enabled,
            priority=adapter.priority if priority is None else priority,
            timeout=timeout or adapter.timeout or self.default_timeout,
        )
        self._entries[adapter.name] = entry
        logger.debug(f"Registered provider {adapter.name} (priority={entry.priority}, enabled={enabled})")
        return entry

    def get(self, provider_id: str) -> Optional[ProviderEntry]:
        return self._entries.get(provider_id)

    def set_enabled(self, provider_id: str, enabled: bool) -> None:
        entry = self._entries.get(provider_id)
        if entry is None:
            raise KeyError(f"Unknown provider: {provider_id}")
        entry.enabled = enabled

    def all_providers(self) -> list[ProviderEntry]:
        return sorted(self._entries.values(), key=lambda e: (e.priority, e.name))

    def enabled_providers(self) -> list[ProviderEntry]:
        """Enabled providers sorted by ascending priority."""
        return [e for e in self.all_providers() if e.enabled]

    def priority_of(self, provider_id: str) -> int:
        entry = self._entries.get(provider_id)
        return entry.priority if entry else 1000

    async def quote_from_provider(
        self,
        provider_id: str,
        quote_input: QuoteInput,
        timeout: Optional[float] = None,
    ) -> ProviderOutcome:
        """Quote from one provider by id.

        Unknown or disabled providers yield PROVIDER_DISABLED.
        """
        entry = self._entries.get(provider_id)
        if entry is None or not entry.enabled:
            return Failed(ProviderError(
                provider=provider_id,
                message=f"Provider {provider_id} is not enabled",
                code=ErrorCode.PROVIDER_DISABLED,
            ))
        return await entry.adapter.quote(quote_input, timeout or entry.timeout)

    async def close(self) -> None:
        for entry in self._entries.values():
            await entry.adapter.close()

    def __contains__(self, provider_id: str) -> bool:
        return provider_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
