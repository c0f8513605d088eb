"""Application configuration using pydantic-settings.

Quote thresholds, cache lifetimes and provider switches all live here so
they can be tuned per deployment without code changes.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Echo internal error detail to clients")
    debug_quotes: bool = Field(default=False, description="Include per-provider errors in no-route responses")

    # ======================
    # Caches
    # ======================
    quote_cache_ttl_seconds: float = Field(default=5.0, description="Lifetime of successful quotes")
    no_route_cache_ttl_seconds: float = Field(default=30.0, description="Lifetime of no-route results")
    negative_cache_ttl_seconds: float = Field(
        default=600.0, description="Lifetime of known-unsupported provider/pair entries"
    )

    # ======================
    # Provider Timeouts
    # ======================
    provider_timeout_seconds: float = Field(default=10.0, description="Default provider timeout")
    relay_timeout_seconds: float = Field(default=3.0, description="Relay quote timeout")
    lifi_timeout_seconds: float = Field(default=3.0, description="LI.FI quote timeout")
    zerox_timeout_seconds: float = Field(default=3.0, description="0x quote timeout")
    stargate_timeout_seconds: float = Field(default=4.5, description="Stargate quote timeout")
    extra_provider_timeout_seconds: float = Field(
        default=2.5, description="Timeout for secondary bridge adapters"
    )
    changenow_timeout_seconds: float = Field(default=10.0, description="ChangeNOW request timeout")
    price_api_timeout_seconds: float = Field(default=5.0, description="Spot price lookup timeout")
    rpc_timeout_seconds: float = Field(default=10.0, description="Confirmation RPC timeout")

    # ======================
    # Quote Sanity
    # ======================
    sanity_min_ratio: Decimal = Field(
        default=Decimal("0.005"), description="Lowest accepted out/in ratio for same-symbol swaps"
    )
    sanity_max_ratio: Decimal = Field(
        default=Decimal("1.01"), description="Highest accepted out/in ratio for same-symbol swaps"
    )
    stablecoin_min_ratio: Decimal = Field(
        default=Decimal("0.995"), description="Stablecoin ratio below which a quote is flagged"
    )
    decimals_mismatch_ratio: Decimal = Field(
        default=Decimal("1e10"), description="Magnitude gap treated as a provider decimals bug"
    )

    # ======================
    # Price Fallback
    # ======================
    price_api_url: str = Field(
        default="http://localhost:3000/api/token-price", description="Spot price service URL"
    )
    same_symbol_fallback_multiplier: Decimal = Field(
        default=Decimal("0.995"), description="Assumed bridge cost for same-asset estimates"
    )
    partial_price_fallback_multiplier: Decimal = Field(
        default=Decimal("0.9"), description="Discount applied when only one price is known"
    )

    # ======================
    # Quoting
    # ======================
    placeholder_eoa: str = Field(
        default="0x1111111111111111111111111111111111111111",
        description="Address used for indicative quotes without a wallet",
    )
    default_slippage_bps: int = Field(default=50, description="Default slippage in basis points")
    quote_families: str = Field(
        default="EVM,SOLANA,TON,TRON", description="Comma-separated families accepted for quoting"
    )

    # ======================
    # Hub Routing
    # ======================
    evm_hub_network: str = Field(default="base", description="EVM network used as bridging hub")
    hub_routes_disabled: str = Field(
        default="", description="Comma-separated FROM:TO family pairs to refuse, e.g. TRON:TON"
    )

    # ======================
    # Provider Switches
    # ======================
    enable_relay: bool = Field(default=True)
    enable_lifi: bool = Field(default=True)
    enable_zerox: bool = Field(default=True)
    enable_jupiter: bool = Field(default=True)
    enable_stonfi: bool = Field(default=True)
    enable_sunswap: bool = Field(default=True)
    enable_stargate: bool = Field(default=False)
    enable_hop: bool = Field(default=False)
    enable_across: bool = Field(default=False)
    enable_synapse: bool = Field(default=False)
    enable_cbridge: bool = Field(default=False)
    enable_debridge: bool = Field(default=False)
    enable_bungee: bool = Field(default=False)
    enable_socket: bool = Field(default=False)

    # ======================
    # API Keys
    # ======================
    relay_api_key: str = Field(default="", description="Relay X-Relay-Auth key")
    zerox_api_key: str = Field(default="", description="0x API key")
    socket_api_key: str = Field(default="", description="Socket/Bungee API key")
    changenow_api_key: str = Field(default="", description="ChangeNOW API key")
    jupiter_api_key: Optional[str] = Field(default=None, description="Jupiter API key")
    ton_api_key: str = Field(default="", description="TonAPI bearer token")
    trongrid_api_key: str = Field(default="", description="TronGrid API key")

    # ======================
    # Chain Endpoints
    # ======================
    solana_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com", description="Solana RPC URL"
    )
    tonapi_url: str = Field(default="https://tonapi.io", description="TonAPI base URL")
    trongrid_url: str = Field(default="https://api.trongrid.io", description="TronGrid base URL")
    stonfi_api_url: str = Field(default="https://api.ston.fi", description="STON.fi API base URL")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def allowed_families(self) -> list[str]:
        """Families accepted by the quote endpoint."""
        return [f.strip().upper() for f in self.quote_families.split(",") if f.strip()]

    @property
    def disabled_hub_routes(self) -> set[tuple[str, str]]:
        """Parse disabled hub routes into (from_family, to_family) pairs."""
        pairs = set()
        for item in self.hub_routes_disabled.split(","):
            if ":" not in item:
                continue
            src, dst = item.split(":", 1)
            pairs.add((src.strip().upper(), dst.strip().upper()))
        return pairs

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "caches": {
                "quote_ttl": self.quote_cache_ttl_seconds,
                "no_route_ttl": self.no_route_cache_ttl_seconds,
                "negative_ttl": self.negative_cache_ttl_seconds,
            },
            "sanity": {
                "min_ratio": str(self.sanity_min_ratio),
                "max_ratio": str(self.sanity_max_ratio),
                "stablecoin_min_ratio": str(self.stablecoin_min_ratio),
                "decimals_mismatch_ratio": str(self.decimals_mismatch_ratio),
            },
            "price_api": self._redact_url(self.price_api_url),
            "families": self.allowed_families,
            "hub": {
                "evm_hub_network": self.evm_hub_network,
                "disabled": sorted(f"{a}:{b}" for a, b in self.disabled_hub_routes),
            },
            "api_keys": {
                "relay": "***" if self.relay_api_key else "(not set)",
                "zerox": "***" if self.zerox_api_key else "(not set)",
                "socket": "***" if self.socket_api_key else "(not set)",
                "changenow": "***" if self.changenow_api_key else "(not set)",
                "jupiter": "***" if self.jupiter_api_key else "(not set)",
                "tonapi": "***" if self.ton_api_key else "(not set)",
                "trongrid": "***" if self.trongrid_api_key else "(not set)",
            },
            "rpc": {
                "solana": self._redact_url(self.solana_rpc_url),
                "tonapi": self.tonapi_url,
                "trongrid": self.trongrid_url,
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact credentials embedded in a URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
