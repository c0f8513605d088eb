"""Spot-price fallback for when no provider quote survives validation.

Prices come from an external token-price service returning
`{"ok": true, "prices": {"eth": 3120.5, ...}}`, keyed loosely by token
id or symbol.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from routerex.config import Settings, get_settings
from routerex.tokens import from_base_units, to_base_units

logger = logging.getLogger(__name__)

FALLBACK_PROVIDER = "price-fallback"

WARNING_MARKET = "Estimated rate based on market prices. Actual swap may differ due to fees and liquidity."
WARNING_SAME_ASSET = "Estimated rate (1:1 minus fees). Actual swap may differ due to fees and liquidity."
WARNING_PARTIAL = "Rough estimate - price data incomplete. Actual swap may differ significantly."


@dataclass
class FallbackEstimate:
    out_amount_base: str
    warning: str
    from_price: Optional[Decimal] = None
    to_price: Optional[Decimal] = None


class PriceClient:
    """Client for the spot-price service."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.url = url or settings.price_api_url
        self.timeout = timeout or settings.price_api_timeout_seconds
        self._http_client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def get_prices(self, token_ids: list[str]) -> dict:
        """Fetch USD prices. Returns an empty dict on any failure."""
        try:
            response = await self._get_client().get(
                self.url, params={"ids": ",".join(token_ids)}, timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            logger.warning(f"Price lookup failed: {e}")
            return {}

        if response.status_code != 200:
            logger.warning(f"Price API error: {response.status_code}")
            return {}

        try:
            data = response.json()
        except ValueError:
            logger.warning("Price API returned invalid JSON")
            return {}
        prices = data.get("prices") if isinstance(data, dict) else None
        return prices if isinstance(prices, dict) else {}

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


def lookup_price(prices: dict, token_id: str, symbol: str) -> Optional[Decimal]:
    """Find a positive price under the id or symbol spelling variants."""
    for key in (token_id.lower(), token_id, token_id.upper(), symbol.lower(), symbol.upper(), symbol):
        value = prices.get(key)
        if value is None:
            continue
        try:
            price = Decimal(str(value))
        except InvalidOperation:
            continue
        if price.is_finite() and price > 0:
            return price
    return None


def estimate_from_prices(
    prices: dict,
    from_token_id: str,
    from_symbol: str,
    to_token_id: str,
    to_symbol: str,
    amount_base: str,
    from_decimals: int,
    to_decimals: int,
    settings: Optional[Settings] = None,
) -> Optional[FallbackEstimate]:
    """Estimate an output amount from spot prices.

    Same-symbol pairs always use the fixed same-asset multiplier: two
    independently fetched prices for one asset are too noisy to divide.
    Different-symbol pairs use the price ratio. With only one side priced,
    a flat conservative discount is applied to the input amount.

    Returns:
        Estimate, or None when nothing can be inferred
    """
    settings = settings or get_settings()
    in_amount = Decimal(from_base_units(amount_base, from_decimals))
    from_price = lookup_price(prices, from_token_id, from_symbol)
    to_price = lookup_price(prices, to_token_id, to_symbol)
    same_symbol = from_symbol.strip().lower() == to_symbol.strip().lower()

    if same_symbol:
        out_amount = in_amount * settings.same_symbol_fallback_multiplier
        warning = WARNING_MARKET if (from_price and to_price) else WARNING_SAME_ASSET
    elif from_price and to_price:
        out_amount = in_amount * from_price / to_price
        warning = WARNING_MARKET
    elif from_price or to_price:
        out_amount = in_amount * settings.partial_price_fallback_multiplier
        warning = WARNING_PARTIAL
    else:
        return None

    out_base = to_base_units(out_amount, to_decimals)
    if int(out_base) <= 0:
        return None

    logger.info(
        f"Price fallback {from_symbol}->{to_symbol}: in={in_amount} out={out_amount} "
        f"(from_price={from_price}, to_price={to_price})"
    )
    return FallbackEstimate(
        out_amount_base=out_base,
        warning=warning,
        from_price=from_price,
        to_price=to_price,
    )
