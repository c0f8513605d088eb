"""ChangeNOW off-chain exchange client.

Covers family pairs that have no on-chain bridge adapter (TON and TRON
legs). Amounts are exchanged in human-readable units, not base units.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

CHANGENOW_API = "https://api.changenow.io/v2"

# Statuses that end an exchange
CHANGENOW_FINISHED = frozenset({"finished", "completed"})
CHANGENOW_FAILED = frozenset({"failed", "refunded", "expired"})


@dataclass
class ChangeNowAsset:
    ticker: str
    network: str


@dataclass
class ChangeNowQuote:
    estimated_amount: str
    min_amount: Optional[str] = None
    max_amount: Optional[str] = None
    rate_id: Optional[str] = None


@dataclass
class ChangeNowTransaction:
    id: str
    payin_address: str
    payout_address: str
    from_amount: str
    to_amount: Optional[str] = None
    payin_extra_id: Optional[str] = None


@dataclass
class ChangeNowStatus:
    id: str
    status: str
    payin_address: Optional[str] = None
    payout_address: Optional[str] = None
    from_amount: Optional[str] = None
    to_amount: Optional[str] = None

    @property
    def is_finished(self) -> bool:
        return self.status.lower() in CHANGENOW_FINISHED

    @property
    def is_failed(self) -> bool:
        return self.status.lower() in CHANGENOW_FAILED


class ChangeNowError(Exception):
    """ChangeNOW request failed."""


# network id -> token symbol -> ChangeNOW asset
_ASSETS = {
    "ethereum": {
        "ETH": ChangeNowAsset("eth", "eth"),
        "USDT": ChangeNowAsset("usdt", "eth"),
        "USDC": ChangeNowAsset("usdc", "eth"),
    },
    # Base settles through Ethereum listings
    "base": {
        "ETH": ChangeNowAsset("eth", "eth"),
        "USDT": ChangeNowAsset("usdt", "eth"),
    },
    "solana": {
        "SOL": ChangeNowAsset("sol", "sol"),
        "USDT": ChangeNowAsset("usdt", "sol"),
        "USDC": ChangeNowAsset("usdc", "sol"),
    },
    "ton": {
        "TON": ChangeNowAsset("ton", "ton"),
        "USDT": ChangeNowAsset("usdt", "ton"),
    },
    "tron": {
        "TRX": ChangeNowAsset("trx", "trx"),
        "USDT": ChangeNowAsset("usdt", "trx"),
    },
}

_NETWORK_ALIASES = {"eth": "ethereum", "trx": "tron"}


def resolve_changenow_asset(network_id: str, token_symbol: str) -> Optional[ChangeNowAsset]:
    """Map a network/token pair to ChangeNOW ticker and network codes."""
    network = network_id.lower()
    network = _NETWORK_ALIASES.get(network, network)
    return _ASSETS.get(network, {}).get(token_symbol.upper())


def supported_changenow_assets(network_id: str) -> list[str]:
    network = network_id.lower()
    network = _NETWORK_ALIASES.get(network, network)
    return list(_ASSETS.get(network, {}).keys())


class ChangeNowClient:
    """ChangeNOW v2 API client."""

    def __init__(
        self,
        api_key: str = "",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        base_url: str = CHANGENOW_API,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self._http_client = client

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    def _get_headers(self) -> dict:
        return {"Content-Type": "application/json"}

    @staticmethod
    def _error(response: httpx.Response) -> ChangeNowError:
        return ChangeNowError(f"ChangeNOW API error ({response.status_code}): {response.text[:200]}")

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            raise ChangeNowError(f"ChangeNOW returned invalid JSON: {response.text[:200]}") from e
        if not isinstance(data, dict):
            raise ChangeNowError("ChangeNOW returned an unexpected response shape")
        return data

    async def _get(self, path: str, params: dict) -> httpx.Response:
        try:
            return await self._get_client().get(
                f"{self.base_url}{path}", params=params, headers=self._get_headers(), timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise ChangeNowError(f"ChangeNOW request failed: {e}") from e

    async def get_estimate(
        self,
        from_ticker: str,
        to_ticker: str,
        amount: str,
        from_network: str,
        to_network: str,
    ) -> ChangeNowQuote:
        """Estimate the payout for a standard-flow exchange.

        If either network is "base" and the request fails, it is retried
        with Ethereum in its place.

        Raises:
            ChangeNowError: If no estimate could be obtained
        """
        if not self.api_key:
            raise ChangeNowError("ChangeNOW API key not configured")

        params = {
            "fromCurrency": from_ticker,
            "toCurrency": to_ticker,
            "fromAmount": amount,
            "fromNetwork": from_network,
            "toNetwork": to_network,
            "flow": "standard",
            "api_key": self.api_key,
        }
        response = await self._get("/exchange/estimated", params)

        if response.status_code != 200 and "base" in (from_network, to_network):
            logger.info("ChangeNOW estimate failed on base, retrying with eth")
            params["fromNetwork"] = "eth" if from_network == "base" else from_network
            params["toNetwork"] = "eth" if to_network == "base" else to_network
            response = await self._get("/exchange/estimated", params)

        if response.status_code != 200:
            raise self._error(response)

        data = self._json(response)
        return ChangeNowQuote(
            estimated_amount=str(data.get("toAmount") or data.get("estimatedAmount") or "0"),
            min_amount=_str_or_none(data.get("minAmount")),
            max_amount=_str_or_none(data.get("maxAmount")),
            rate_id=_str_or_none(data.get("rateId") or data.get("id")),
        )

    async def create_transaction(
        self,
        from_ticker: str,
        to_ticker: str,
        amount: str,
        to_address: str,
        from_network: str,
        to_network: str,
        refund_address: Optional[str] = None,
    ) -> ChangeNowTransaction:
        """Create an exchange and obtain its deposit (payin) address.

        Raises:
            ChangeNowError: On any API failure
        """
        if not self.api_key:
            raise ChangeNowError("ChangeNOW API key not configured")

        body = {
            "fromCurrency": from_ticker,
            "toCurrency": to_ticker,
            "fromAmount": amount,
            "fromNetwork": from_network,
            "toNetwork": to_network,
            "address": to_address,
            "flow": "standard",
        }
        if refund_address:
            body["refundAddress"] = refund_address

        try:
            response = await self._get_client().post(
                f"{self.base_url}/exchange",
                params={"api_key": self.api_key},
                json=body,
                headers=self._get_headers(),
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise ChangeNowError(f"ChangeNOW request failed: {e}") from e

        if response.status_code != 200:
            raise self._error(response)

        data = self._json(response)
        logger.info(f"ChangeNOW exchange created: {data.get('id')}")
        return ChangeNowTransaction(
            id=str(data.get("id") or data.get("transactionId") or ""),
            payin_address=data.get("payinAddress") or data.get("address") or "",
            payout_address=data.get("payoutAddress") or data.get("address") or to_address,
            from_amount=str(data.get("fromAmount") or amount),
            to_amount=_str_or_none(data.get("toAmount") or data.get("estimatedAmount")),
            payin_extra_id=_str_or_none(data.get("payinExtraId")),
        )

    async def get_status(self, exchange_id: str) -> ChangeNowStatus:
        """Get exchange status.

        Raises:
            ChangeNowError: On any API failure
        """
        if not self.api_key:
            raise ChangeNowError("ChangeNOW API key not configured")

        response = await self._get("/exchange/by-id", {"id": exchange_id, "api_key": self.api_key})
        if response.status_code != 200:
            raise self._error(response)

        data = self._json(response)
        return ChangeNowStatus(
            id=str(data.get("id") or data.get("transactionId") or exchange_id),
            status=str(data.get("status") or data.get("state") or "unknown"),
            payin_address=data.get("payinAddress") or data.get("payin_address"),
            payout_address=data.get("payoutAddress") or data.get("payout_address"),
            from_amount=_str_or_none(data.get("fromAmount") or data.get("from_amount")),
            to_amount=_str_or_none(data.get("toAmount") or data.get("to_amount")),
        )

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


def _str_or_none(value) -> Optional[str]:
    return None if value is None else str(value)
