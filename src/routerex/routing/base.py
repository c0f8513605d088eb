"""Provider adapter interface and canonical quote types.

Every upstream bridge or DEX API is wrapped in a ProviderAdapter that
turns a canonical QuoteInput into the provider's request shape and the
provider's response back into a QuoteResult. Adapters never raise to
their caller: they return Ok, Skip or Failed.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, Union

import httpx

from routerex.chains import Family
from routerex.errors import ErrorCode
from routerex.tokens import ZERO_ADDRESS

logger = logging.getLogger(__name__)

MAX_ERROR_TEXT = 500


class FeeType(str, Enum):
    """Fee categories reported by providers."""

    GAS = "gas"
    PROTOCOL = "protocol"
    BRIDGE = "bridge"


@dataclass
class FeeBreakdown:
    """A single typed fee."""

    type: FeeType
    amount: Optional[str] = None  # base units of `token`
    token: Optional[str] = None
    usd: Optional[Decimal] = None


@dataclass
class QuoteStep:
    """A hop inside a provider's route."""

    provider: str
    tool: Optional[str] = None
    from_chain_id: Optional[int] = None
    to_chain_id: Optional[int] = None
    estimated_time_seconds: Optional[int] = None


@dataclass
class QuoteInput:
    """Canonical, fully-resolved quote request passed to adapters.

    Token fields hold family-correct addresses: the zero address for EVM
    native tokens, the family's native marker elsewhere.
    """

    from_chain_id: Optional[int]
    to_chain_id: Optional[int]
    from_token: str
    to_token: str
    amount: str  # base units
    from_family: Family = Family.EVM
    to_family: Family = Family.EVM
    from_token_id: str = ""
    to_token_id: str = ""
    user_address: Optional[str] = None
    slippage_bps: Optional[int] = None

    @property
    def same_chain(self) -> bool:
        return self.from_family == self.to_family and self.from_chain_id == self.to_chain_id

    @property
    def from_native(self) -> bool:
        return self.from_family == Family.EVM and self.from_token.lower() == ZERO_ADDRESS

    @property
    def to_native(self) -> bool:
        return self.to_family == Family.EVM and self.to_token.lower() == ZERO_ADDRESS


@dataclass
class QuoteResult:
    """Canonical quote returned by a provider."""

    provider: str
    from_amount: str
    to_amount: str
    fees: list[FeeBreakdown] = field(default_factory=list)
    steps: list[QuoteStep] = field(default_factory=list)
    is_indicative: bool = False
    latency_ms: Optional[int] = None
    estimated_time_seconds: Optional[int] = None
    estimated_gas: Optional[int] = None
    reported_total_fee_usd: Optional[Decimal] = None
    raw: dict = field(default_factory=dict)

    def fee_usd(self, fee_type: FeeType) -> Optional[Decimal]:
        """Sum USD values of fees of one type, None if none are priced."""
        values = [f.usd for f in self.fees if f.type == fee_type and f.usd is not None]
        if not values:
            return None
        return sum(values, Decimal("0"))

    @property
    def total_fee_usd(self) -> Optional[Decimal]:
        if self.reported_total_fee_usd is not None:
            return self.reported_total_fee_usd
        values = [f.usd for f in self.fees if f.usd is not None]
        if not values:
            return None
        return sum(values, Decimal("0"))


@dataclass
class ProviderError:
    """Provider failure captured as data."""

    provider: str
    message: str
    code: Optional[ErrorCode] = None
    http_status: Optional[int] = None
    url: Optional[str] = None
    request: Optional[dict] = None

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "message": self.message,
            "code": self.code.value if self.code else None,
            "httpStatus": self.http_status,
            "url": self.url,
        }


@dataclass(frozen=True)
class Ok:
    result: QuoteResult


@dataclass(frozen=True)
class Skip:
    """Provider does not handle this input. Not an error."""

    provider: str
    reason: str = ""


@dataclass(frozen=True)
class Failed:
    error: ProviderError


ProviderOutcome = Union[Ok, Skip, Failed]


class ProviderRequestError(Exception):
    """Raised inside an adapter to abort with a classified error."""

    def __init__(self, error: ProviderError):
        super().__init__(error.message)
        self.error = error


# ======================
# Response helpers
# ======================

def first_present(data: Any, *keys: str) -> Any:
    """Return the first non-empty value among dotted key paths."""
    for key in keys:
        value = data
        for part in key.split("."):
            if isinstance(value, dict):
                value = value.get(part)
            elif isinstance(value, list) and part.lstrip("-").isdigit():
                index = int(part)
                value = value[index] if -len(value) <= index < len(value) else None
            else:
                value = None
            if value is None:
                break
        if value not in (None, "", [], {}):
            return value
    return None


def parse_base_amount(value: Any) -> Optional[str]:
    """Normalize a base-unit amount to a positive integer string."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = int(Decimal(str(value)))
    except (InvalidOperation, ValueError):
        return None
    if amount <= 0:
        return None
    return str(amount)


def parse_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def parse_int(value: Any) -> Optional[int]:
    number = parse_decimal(value)
    return int(number) if number is not None else None


def classify_status(status_code: int) -> ErrorCode:
    """Map an upstream HTTP status to an error code."""
    if status_code == 400:
        return ErrorCode.INVALID_INPUT
    if status_code == 404:
        return ErrorCode.NO_ROUTE
    if status_code == 429:
        return ErrorCode.RATE_LIMIT
    return ErrorCode.API_ERROR


def truncate(text: str, limit: int = MAX_ERROR_TEXT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def is_indicative_user(address: Optional[str], placeholder: str) -> bool:
    """A quote is indicative when no real user address backs it."""
    if not address:
        return True
    lowered = address.lower()
    return lowered == placeholder.lower() or lowered == ZERO_ADDRESS


# ======================
# Adapter interface
# ======================

class ProviderAdapter(ABC):
    """Base class for quote providers."""

    priority: int = 100
    timeout: float = 10.0

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier."""
        pass

    @abstractmethod
    async def _quote(self, quote_input: QuoteInput, timeout: float) -> ProviderOutcome:
        """Provider-specific quote implementation."""
        pass

    async def quote(self, quote_input: QuoteInput, timeout: Optional[float] = None) -> ProviderOutcome:
        """Get a quote. Never raises.

        Args:
            quote_input: Resolved quote request
            timeout: Seconds allowed for the upstream call

        Returns:
            Ok with a QuoteResult, Skip when the input is not handled,
            Failed with a classified ProviderError otherwise
        """
        timeout = timeout or self.timeout
        started = time.monotonic()
        try:
            outcome = await self._quote(quote_input, timeout)
        except ProviderRequestError as e:
            outcome = Failed(e.error)
        except Exception as e:
            logger.exception(f"{self.name} adapter crashed")
            outcome = Failed(self.error(str(e), ErrorCode.API_ERROR))

        if isinstance(outcome, Ok):
            outcome.result.latency_ms = int((time.monotonic() - started) * 1000)
        elif isinstance(outcome, Failed):
            logger.warning(
                f"{self.name} quote failed: {outcome.error.code.value if outcome.error.code else '-'} "
                f"{outcome.error.message}"
            )
        else:
            logger.debug(f"{self.name} skipped: {outcome.reason}")
        return outcome

    def error(self, message: str, code: Optional[ErrorCode] = None, **kwargs) -> ProviderError:
        return ProviderError(provider=self.name, message=message, code=code, **kwargs)

    def skip(self, reason: str) -> Skip:
        return Skip(provider=self.name, reason=reason)

    def result(
        self,
        quote_input: QuoteInput,
        to_amount: Any,
        placeholder: str,
        **kwargs,
    ) -> ProviderOutcome:
        """Build an Ok outcome, rejecting a missing or zero output."""
        amount = parse_base_amount(to_amount)
        if amount is None:
            return Failed(self.error("Response missing non-zero output amount", ErrorCode.INVALID_RESPONSE))
        return Ok(QuoteResult(
            provider=self.name,
            from_amount=quote_input.amount,
            to_amount=amount,
            is_indicative=is_indicative_user(quote_input.user_address, placeholder),
            **kwargs,
        ))

    async def close(self) -> None:
        pass


class HttpQuoteAdapter(ProviderAdapter):
    """Adapter backed by an HTTP JSON API."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        api_key: Optional[str] = None,
        placeholder: str = "0x1111111111111111111111111111111111111111",
        timeout: Optional[float] = None,
    ):
        self._http_client = client
        self.api_key = api_key
        self.placeholder = placeholder
        if timeout is not None:
            self.timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    def _get_headers(self) -> dict:
        return {"Accept": "application/json"}

    async def _request(
        self,
        method: str,
        url: str,
        timeout: float,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> Any:
        """Perform a request and return parsed JSON.

        Raises:
            ProviderRequestError: On timeout, transport failure, non-200
                status or an unparseable body
        """
        client = self._get_client()
        request_headers = self._get_headers()
        if headers:
            request_headers.update(headers)
        try:
            response = await client.request(
                method, url, params=params, json=json, headers=request_headers, timeout=timeout
            )
        except httpx.TimeoutException as e:
            raise ProviderRequestError(self.error(f"Timeout after {timeout}s: {e}", ErrorCode.TIMEOUT, url=url))
        except httpx.HTTPError as e:
            code = ErrorCode.TIMEOUT if "timeout" in str(e).lower() else ErrorCode.NETWORK_ERROR
            raise ProviderRequestError(self.error(str(e) or type(e).__name__, code, url=url))

        if response.status_code != 200:
            raise ProviderRequestError(self.status_error(response, url, params or json))

        try:
            return response.json()
        except ValueError:
            raise ProviderRequestError(self.error(
                f"Invalid JSON: {truncate(response.text)}", ErrorCode.INVALID_RESPONSE, url=url,
            ))

    def status_error(self, response: httpx.Response, url: str, request: Optional[dict] = None) -> ProviderError:
        return self.error(
            f"HTTP {response.status_code}: {truncate(response.text)}",
            classify_status(response.status_code),
            http_status=response.status_code,
            url=url,
            request=request,
        )

    def result(self, quote_input: QuoteInput, to_amount: Any, placeholder: Optional[str] = None, **kwargs):
        return super().result(quote_input, to_amount, placeholder or self.placeholder, **kwargs)

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
