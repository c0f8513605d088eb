"""Quote orchestrator.

Resolves a caller request against the asset registry, then coalesces,
caches and fans the request out to every enabled provider. Candidates
are validated in priority order; when none survives, an indicative
estimate is derived from spot prices.
"""

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from routerex.chains import ChainConfig, Family, family_of, get_chain, is_valid_address
from routerex.config import Settings, get_settings
from routerex.errors import ErrorCode
from routerex.quoting.cache import CacheStore, get_cache_store
from routerex.quoting.prices import FALLBACK_PROVIDER, PriceClient, estimate_from_prices
from routerex.quoting.sanity import SanityResult, check_decimals_mismatch, check_quote_sanity
from routerex.routing.base import (
    Failed,
    FeeType,
    Ok,
    ProviderError,
    ProviderOutcome,
    QuoteInput,
    QuoteResult,
    Skip,
)
from routerex.routing.registry import ProviderEntry, ProviderRegistry
from routerex.tokens import (
    ZERO_ADDRESS,
    TokenInfo,
    decimals_for,
    from_base_units,
    get_token,
    is_native,
    registry_key,
    resolve_address,
    to_base_units,
)
from routerex.utils.coalesce import RequestCoalescer, canonical_key
from routerex.web.contracts.quotes import QuoteRequest, QuoteResponse

logger = logging.getLogger(__name__)

# Registry regressions that once produced "cosmic" quote amounts
REQUIRED_CHAIN_DECIMALS = {
    ("usdt", 56): 18,
    ("usdc", 56): 18,
}

# Extra seconds allowed past a provider's own timeout before it is abandoned
TIMEOUT_GRACE_SECONDS = 0.5


@dataclass
class ResolvedQuote:
    """A quote request resolved against the registry."""

    request: QuoteRequest
    from_chain: ChainConfig
    to_chain: ChainConfig
    from_family: Family
    to_family: Family
    from_token: TokenInfo
    to_token: TokenInfo
    from_address: str
    to_address: str
    from_decimals: int
    to_decimals: int
    amount_base: str
    user_address: Optional[str]
    is_indicative: bool

    @property
    def same_symbol(self) -> bool:
        return self.from_token.symbol.lower() == self.to_token.symbol.lower()

    def cache_key(self) -> str:
        return canonical_key(
            fromChainId=self.from_chain.chain_id if self.from_chain.chain_id is not None else self.from_chain.key,
            toChainId=self.to_chain.chain_id if self.to_chain.chain_id is not None else self.to_chain.key,
            fromTokenId=self.from_token.id,
            toTokenId=self.to_token.id,
            amountBase=self.amount_base,
            userAddress=self.user_address,
            isIndicative=self.is_indicative,
        )

    def to_input(self, slippage_bps: Optional[int]) -> QuoteInput:
        return QuoteInput(
            from_chain_id=self.from_chain.chain_id,
            to_chain_id=self.to_chain.chain_id,
            from_token=self.from_address,
            to_token=self.to_address,
            amount=self.amount_base,
            from_family=self.from_family,
            to_family=self.to_family,
            from_token_id=self.from_token.id,
            to_token_id=self.to_token.id,
            user_address=self.user_address,
            slippage_bps=slippage_bps,
        )


class QuoteService:
    """Aggregate quotes across providers."""

    def __init__(
        self,
        registry: ProviderRegistry,
        cache: Optional[CacheStore] = None,
        coalescer: Optional[RequestCoalescer] = None,
        prices: Optional[PriceClient] = None,
        settings: Optional[Settings] = None,
    ):
        self.registry = registry
        self.settings = settings or get_settings()
        self.cache = cache or get_cache_store()
        self.coalescer = coalescer or RequestCoalescer("quotes")
        self.prices = prices or PriceClient()

    async def get_quote(self, request: QuoteRequest) -> QuoteResponse:
        """Get the best quote for a request. Never raises.

        Args:
            request: Quote request parameters

        Returns:
            QuoteResponse, with ok=False and an errorCode on failure
        """
        try:
            resolved = self.resolve(request)
            if isinstance(resolved, QuoteResponse):
                return resolved

            key = resolved.cache_key()
            cached = self.cache.quotes.get(key) or self.cache.no_route.get(key)
            if cached is not None:
                logger.debug(f"Quote cache hit: {key}")
                return cached.model_copy(update={"request_id": request.request_id})

            result = await self.coalescer.run(key, lambda: self._compute(resolved, key))
            return result.model_copy(update={"request_id": request.request_id})

        except Exception as e:
            logger.exception(f"Quote request failed: {e}")
            return QuoteResponse(
                ok=False,
                error=str(e) if self.settings.debug else "Internal error",
                error_code=ErrorCode.API_ERROR.value,
                debug={"error": str(e), "type": type(e).__name__} if self.settings.debug else None,
                request_id=request.request_id,
            )

    # ======================
    # Validation
    # ======================

    def resolve(self, request: QuoteRequest) -> Union[ResolvedQuote, QuoteResponse]:
        """Validate and resolve a request, or return the input error."""

        def fail(code: ErrorCode, message: str, debug: Optional[dict] = None) -> QuoteResponse:
            logger.info(f"Rejected quote request ({code.value}): {message}")
            return QuoteResponse(
                ok=False, error=message, error_code=code.value, debug=debug, request_id=request.request_id,
            )

        try:
            amount = Decimal(request.amount.strip())
        except (InvalidOperation, AttributeError):
            return fail(ErrorCode.INVALID_AMOUNT, "Invalid amount")
        if not amount.is_finite() or amount <= 0:
            return fail(ErrorCode.INVALID_AMOUNT, "Invalid amount")

        from_family = family_of(request.from_network_id)
        to_family = family_of(request.to_network_id)
        allowed = self.settings.allowed_families
        if (
            from_family == Family.UNSUPPORTED
            or to_family == Family.UNSUPPORTED
            or from_family.value not in allowed
            or to_family.value not in allowed
        ):
            return fail(ErrorCode.UNSUPPORTED_NETWORK, "Unsupported network", {
                "fromNetworkId": request.from_network_id,
                "toNetworkId": request.to_network_id,
                "fromFamily": from_family.value,
                "toFamily": to_family.value,
                "allowedFamilies": allowed,
            })
        from_chain = get_chain(request.from_network_id)
        to_chain = get_chain(request.to_network_id)

        sides = []
        for side, token_id, chain, family, code in (
            ("from", request.from_token_id, from_chain, from_family, ErrorCode.INVALID_FROM_TOKEN),
            ("to", request.to_token_id, to_chain, to_family, ErrorCode.INVALID_TO_TOKEN),
        ):
            token = get_token(token_id)
            if token is None:
                return fail(code, f"Token {token_id} not found in registry", {f"{side}TokenId": token_id})

            decimals = decimals_for(token.id, chain.chain_id, family)
            if decimals < 0 or decimals > 18:
                return fail(code, f"Invalid decimals for token {token.id}: {decimals}")

            required = REQUIRED_CHAIN_DECIMALS.get((token.id, chain.chain_id))
            if required is not None and decimals != required:
                return fail(
                    ErrorCode.TOKEN_DECIMALS_MISMATCH,
                    f"{token.symbol} on chain {chain.chain_id} must have {required} decimals, got {decimals}",
                )

            native = is_native(token.id, chain.chain_id, family)
            key = registry_key(chain.chain_id, family)
            if not native and key not in token.addresses:
                return fail(code, f"Token {token.id} is not available on {chain.key}", {
                    f"{side}TokenId": token.id,
                    f"{side}NetworkId": chain.key,
                })

            address = resolve_address(token.id, chain.chain_id, family)
            mapping_error = self._check_address_mapping(address, native, family)
            if mapping_error:
                return fail(ErrorCode.TOKEN_ADDRESS_MAPPING_BUG, mapping_error, {
                    "chainId": chain.chain_id,
                    "tokenSymbol": token.symbol,
                    "resolvedAddress": address,
                })
            sides.append((token, address, decimals))

        (from_token, from_address, from_decimals), (to_token, to_address, to_decimals) = sides

        amount_base = to_base_units(amount, from_decimals)
        if int(amount_base) <= 0:
            return fail(ErrorCode.INVALID_AMOUNT, f"Amount below the smallest unit of {from_token.symbol}")

        user_address = request.user_address if is_valid_address(from_family, request.user_address) else None
        if request.user_address and user_address is None:
            logger.debug(f"Ignoring malformed userAddress for {from_family.value}: {request.user_address}")
        is_indicative = user_address is None
        if is_indicative and from_family == Family.EVM:
            user_address = self.settings.placeholder_eoa

        return ResolvedQuote(
            request=request,
            from_chain=from_chain,
            to_chain=to_chain,
            from_family=from_family,
            to_family=to_family,
            from_token=from_token,
            to_token=to_token,
            from_address=from_address,
            to_address=to_address,
            from_decimals=from_decimals,
            to_decimals=to_decimals,
            amount_base=amount_base,
            user_address=user_address,
            is_indicative=is_indicative,
        )

    @staticmethod
    def _check_address_mapping(address: Optional[str], native: bool, family: Family) -> Optional[str]:
        """Native must be the zero address on EVM; nothing else may be."""
        if address is None:
            return "Token address could not be resolved"
        is_zero = address.lower() == ZERO_ADDRESS
        if family == Family.EVM:
            if native and not is_zero:
                return "Native token must use zero address"
            if not native and is_zero:
                return "Non-native token must not use zero address"
        elif is_zero:
            return f"{family.value} token must not use the EVM zero address"
        return None

    # ======================
    # Aggregation
    # ======================

    async def _compute(self, resolved: ResolvedQuote, key: str) -> QuoteResponse:
        response = await self._aggregate(resolved)
        if response.ok:
            self.cache.quotes.set(key, response)
        elif response.error_code == ErrorCode.NO_ROUTE.value:
            self.cache.no_route.set(key, response)
        return response

    async def _quote_one(self, entry: ProviderEntry, quote_input: QuoteInput) -> ProviderOutcome:
        """Query one provider inside its own timeout and fault boundary."""
        try:
            return await asyncio.wait_for(
                entry.adapter.quote(quote_input, entry.timeout),
                timeout=entry.timeout + TIMEOUT_GRACE_SECONDS,
            )
        except asyncio.TimeoutError:
            return Failed(ProviderError(
                provider=entry.name, message=f"Timed out after {entry.timeout}s", code=ErrorCode.TIMEOUT,
            ))
        except Exception as e:
            logger.exception(f"Provider {entry.name} raised")
            return Failed(ProviderError(provider=entry.name, message=str(e), code=ErrorCode.API_ERROR))

    async def _aggregate(self, resolved: ResolvedQuote) -> QuoteResponse:
        request = resolved.request
        slippage = request.slippage_bps if request.slippage_bps is not None else self.settings.default_slippage_bps
        quote_input = resolved.to_input(slippage)

        entries = self.registry.enabled_providers()
        outcomes = await asyncio.gather(*(self._quote_one(e, quote_input) for e in entries))

        successes: list[tuple[ProviderEntry, QuoteResult]] = []
        errors: list[ProviderError] = []
        compatible: list[str] = []
        for entry, outcome in zip(entries, outcomes):
            if isinstance(outcome, Skip):
                continue
            compatible.append(entry.name)
            if isinstance(outcome, Ok):
                successes.append((entry, outcome.result))
            elif isinstance(outcome, Failed):
                errors.append(outcome.error)

        logger.info(
            f"Quote {request.from_network_id}/{resolved.from_token.id} -> "
            f"{request.to_network_id}/{resolved.to_token.id} amount={request.amount}: "
            f"{len(successes)} ok, {len(errors)} failed, providers={compatible}"
        )

        successes.sort(key=lambda item: item[0].priority)
        last_rejection: Optional[SanityResult] = None
        rejected: list[dict] = []
        for entry, result in successes:
            check = self.validate_candidate(resolved, result)
            if check.valid:
                return self._build_response(resolved, result, suspicious=check.suspicious)
            last_rejection = check
            rejected.append({
                "provider": entry.name,
                "errorCode": (check.code or ErrorCode.SUSPICIOUS_QUOTE).value,
                "message": check.message,
            })
            logger.warning(f"Rejected {entry.name} quote: {check.code.value if check.code else ''} {check.message}")
            if resolved.same_symbol and check.code == ErrorCode.SUSPICIOUS_QUOTE_HIGH_OUTPUT:
                break

        if last_rejection is not None and not resolved.same_symbol:
            return self._rejection_response(resolved, last_rejection)

        fallback = await self._price_fallback(resolved)
        if fallback is not None:
            if rejected:
                fallback.debug = {"rejectedQuotes": rejected}
                fallback.warnings.extend(
                    f"Rejected {r['provider']} quote: {r['errorCode']}" for r in rejected
                )
            return fallback

        debug = {
            "fromChainId": resolved.from_chain.chain_id,
            "toChainId": resolved.to_chain.chain_id,
            "fromTokenId": resolved.from_token.id,
            "toTokenId": resolved.to_token.id,
            "amountBase": resolved.amount_base,
            "fromTokenDecimals": resolved.from_decimals,
            "toTokenDecimals": resolved.to_decimals,
            "compatibleProviders": compatible,
        }
        if rejected:
            debug["rejectedQuotes"] = rejected
        if self.settings.debug_quotes or self.settings.debug:
            debug["providerErrors"] = [e.to_dict() for e in errors]
        return QuoteResponse(
            ok=False,
            error="No route found",
            error_code=ErrorCode.NO_ROUTE.value,
            debug=debug,
        )

    def validate_candidate(self, resolved: ResolvedQuote, result: QuoteResult) -> SanityResult:
        """Run decimals and same-symbol sanity checks on one provider quote."""
        decimals = check_decimals_mismatch(
            provider=result.provider,
            out_amount_base=result.to_amount,
            to_symbol=resolved.to_token.symbol,
            to_decimals=resolved.to_decimals,
            from_symbol=resolved.from_token.symbol,
            in_amount_base=resolved.amount_base,
            from_decimals=resolved.from_decimals,
            settings=self.settings,
        )
        if not decimals.valid:
            return decimals
        return check_quote_sanity(
            provider=result.provider,
            from_symbol=resolved.from_token.symbol,
            to_symbol=resolved.to_token.symbol,
            in_amount_base=resolved.amount_base,
            out_amount_base=result.to_amount,
            from_decimals=resolved.from_decimals,
            to_decimals=resolved.to_decimals,
            settings=self.settings,
        )

    async def _price_fallback(self, resolved: ResolvedQuote) -> Optional[QuoteResponse]:
        prices = await self.prices.get_prices([resolved.from_token.id, resolved.to_token.id])
        estimate = estimate_from_prices(
            prices,
            from_token_id=resolved.from_token.id,
            from_symbol=resolved.from_token.symbol,
            to_token_id=resolved.to_token.id,
            to_symbol=resolved.to_token.symbol,
            amount_base=resolved.amount_base,
            from_decimals=resolved.from_decimals,
            to_decimals=resolved.to_decimals,
            settings=self.settings,
        )
        if estimate is None:
            logger.warning(f"Price fallback failed for {resolved.from_token.id}->{resolved.to_token.id}")
            return None
        response = self._base_response(resolved)
        response.provider = FALLBACK_PROVIDER
        response.out_amount_base = estimate.out_amount_base
        response.out_amount = from_base_units(estimate.out_amount_base, resolved.to_decimals)
        response.is_indicative = True
        response.warnings = [estimate.warning]
        return response

    # ======================
    # Response building
    # ======================

    def _base_response(self, resolved: ResolvedQuote) -> QuoteResponse:
        request = resolved.request
        return QuoteResponse(
            ok=True,
            from_network_id=resolved.from_chain.key,
            to_network_id=resolved.to_chain.key,
            from_chain_id=resolved.from_chain.chain_id,
            to_chain_id=resolved.to_chain.chain_id,
            from_token_id=resolved.from_token.id,
            to_token_id=resolved.to_token.id,
            from_token=resolved.from_address,
            to_token=resolved.to_address,
            in_amount=from_base_units(resolved.amount_base, resolved.from_decimals),
            in_amount_base=resolved.amount_base,
            is_indicative=resolved.is_indicative,
            request_id=request.request_id,
        )

    def _build_response(self, resolved: ResolvedQuote, result: QuoteResult, suspicious: bool = False) -> QuoteResponse:
        response = self._base_response(resolved)
        response.provider = result.provider
        response.out_amount_base = result.to_amount
        response.out_amount = from_base_units(result.to_amount, resolved.to_decimals)
        response.is_indicative = resolved.is_indicative or result.is_indicative
        response.is_suspicious = suspicious
        response.estimated_gas_usd = _usd(result.fee_usd(FeeType.GAS))
        response.provider_fee_usd = _usd(result.fee_usd(FeeType.PROTOCOL))
        response.bridge_fee_usd = _usd(result.fee_usd(FeeType.BRIDGE))
        response.total_fee_usd = _usd(result.total_fee_usd)
        response.estimated_time = result.estimated_time_seconds
        response.route = result.raw
        if suspicious:
            response.warnings.append("Output lower than expected for stablecoin swap")
        return response

    def _rejection_response(self, resolved: ResolvedQuote, check: SanityResult) -> QuoteResponse:
        return QuoteResponse(
            ok=False,
            error=check.message,
            error_code=(check.code or ErrorCode.SUSPICIOUS_QUOTE).value,
            debug=check.debug,
            request_id=resolved.request.request_id,
        )


def _usd(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)
