"""Factory wiring provider adapters from settings."""

import logging
from typing import Optional

import httpx

from routerex.config import Settings, get_settings
from routerex.quoting.cache import CacheStore, get_cache_store
from routerex.routing.across import AcrossAdapter
from routerex.routing.cbridge import CBridgeAdapter
from routerex.routing.changenow import ChangeNowClient
from routerex.routing.debridge import DebridgeAdapter
from routerex.routing.hop import HopAdapter
from routerex.routing.jupiter import JupiterAdapter
from routerex.routing.lifi import LiFiAdapter
from routerex.routing.registry import ProviderRegistry
from routerex.routing.relay import RelayAdapter
from routerex.routing.socket import SocketAdapter, create_bungee_adapter
from routerex.routing.stargate import StargateAdapter
from routerex.routing.stonfi import StonfiAdapter
from routerex.routing.sunswap import SunSwapAdapter
from routerex.routing.synapse import SynapseAdapter
from routerex.routing.zerox import ZeroXAdapter

logger = logging.getLogger(__name__)


def create_provider_registry(
    settings: Optional[Settings] = None,
    cache: Optional[CacheStore] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> ProviderRegistry:
    """Create the provider registry.

    Args:
        settings: Settings to read switches, keys and timeouts from
        cache: Cache store used for provider negative caching
        client: Shared HTTP client (each adapter creates its own if None)

    Returns:
        Registry with every known provider registered
    """
    settings = settings or get_settings()
    cache = cache or get_cache_store()
    placeholder = settings.placeholder_eoa
    extra_timeout = settings.extra_provider_timeout_seconds

    registry = ProviderRegistry(default_timeout=settings.provider_timeout_seconds)

    # Primary aggregators
    registry.register(
        RelayAdapter(client=client, cache=cache, api_key=settings.relay_api_key, placeholder=placeholder),
        enabled=settings.enable_relay,
        timeout=settings.relay_timeout_seconds,
    )
    registry.register(
        LiFiAdapter(client=client, placeholder=placeholder),
        enabled=settings.enable_lifi,
        timeout=settings.lifi_timeout_seconds,
    )
    registry.register(
        ZeroXAdapter(client=client, api_key=settings.zerox_api_key, placeholder=placeholder),
        enabled=settings.enable_zerox,
        timeout=settings.zerox_timeout_seconds,
    )

    # Bridges (disabled by default)
    registry.register(
        StargateAdapter(client=client, placeholder=placeholder),
        enabled=settings.enable_stargate,
        timeout=settings.stargate_timeout_seconds,
    )
    for adapter, enabled in (
        (HopAdapter(client=client, placeholder=placeholder), settings.enable_hop),
        (AcrossAdapter(client=client, placeholder=placeholder), settings.enable_across),
        (SynapseAdapter(client=client, placeholder=placeholder), settings.enable_synapse),
        (CBridgeAdapter(client=client, placeholder=placeholder), settings.enable_cbridge),
        (DebridgeAdapter(client=client, placeholder=placeholder), settings.enable_debridge),
        (create_bungee_adapter(client=client, api_key=settings.socket_api_key, placeholder=placeholder),
         settings.enable_bungee),
        (SocketAdapter(client=client, api_key=settings.socket_api_key, placeholder=placeholder),
         settings.enable_socket),
    ):
        registry.register(adapter, enabled=enabled, timeout=extra_timeout)

    # Non-EVM DEXes
    registry.register(
        JupiterAdapter(client=client, api_key=settings.jupiter_api_key, placeholder=placeholder),
        enabled=settings.enable_jupiter,
    )
    registry.register(
        StonfiAdapter(client=client, base_url=settings.stonfi_api_url, placeholder=placeholder),
        enabled=settings.enable_stonfi,
    )
    registry.register(
        SunSwapAdapter(client=client, api_key=settings.trongrid_api_key, placeholder=placeholder),
        enabled=settings.enable_sunswap,
    )

    enabled = [e.name for e in registry.enabled_providers()]
    logger.info(f"Provider registry ready: {len(registry)} providers, enabled={enabled}")
    return registry


def create_changenow_client(
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> ChangeNowClient:
    """Create the ChangeNOW client from settings."""
    settings = settings or get_settings()
    return ChangeNowClient(
        api_key=settings.changenow_api_key,
        client=client,
        timeout=settings.changenow_timeout_seconds,
    )
