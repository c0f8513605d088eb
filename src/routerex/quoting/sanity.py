"""Quote integrity checks.

Providers occasionally return outputs scaled with the wrong decimals or
"magical" same-asset rates. These checks run on every candidate before
it can be selected.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from routerex.config import Settings, get_settings
from routerex.errors import ErrorCode
from routerex.tokens import STABLECOINS

logger = logging.getLogger(__name__)

# Assets whose decimals differ across chains (6 on most, 18 on BNB Chain)
DECIMALS_CHECKED_SYMBOLS = frozenset({"USDT", "USDC"})


@dataclass
class SanityResult:
    valid: bool
    suspicious: bool = False
    code: Optional[ErrorCode] = None
    message: Optional[str] = None
    debug: dict = field(default_factory=dict)


def _human(amount_base: str, decimals: int) -> Decimal:
    return Decimal(int(amount_base)).scaleb(-decimals)


def check_decimals_mismatch(
    provider: str,
    out_amount_base: str,
    to_symbol: str,
    to_decimals: int,
    from_symbol: str,
    in_amount_base: str,
    from_decimals: int,
    settings: Optional[Settings] = None,
) -> SanityResult:
    """Detect outputs scaled with another chain's decimals.

    Applies when a USD stablecoin is swapped into USDT or USDC: the output
    read with registry decimals must be within `decimals_mismatch_ratio`
    of the input value in either direction. A 6-vs-18 decimals bug puts it
    off by 10**12.
    """
    settings = settings or get_settings()
    to_symbol = to_symbol.upper()
    if to_symbol not in DECIMALS_CHECKED_SYMBOLS or from_symbol.upper() not in STABLECOINS:
        return SanityResult(valid=True)

    out_value = _human(out_amount_base, to_decimals)
    in_value = _human(in_amount_base, from_decimals)
    if out_value <= 0 or in_value <= 0:
        return SanityResult(valid=True)

    threshold = settings.decimals_mismatch_ratio
    ratio = out_value / in_value
    if ratio > threshold or ratio < 1 / threshold:
        debug = {
            "provider": provider,
            "tokenSymbol": to_symbol,
            "expectedDecimals": to_decimals,
            "outAmountBase": out_amount_base,
            "outAmount": str(out_value),
            "inAmount": str(in_value),
            "ratio": str(ratio),
        }
        logger.warning(f"Decimals mismatch suspected from {provider}: {debug}")
        return SanityResult(
            valid=False,
            code=ErrorCode.DECIMALS_MISMATCH_SUSPECTED,
            message=f"Decimals mismatch suspected - {to_symbol} output does not match {to_decimals} decimals",
            debug=debug,
        )
    return SanityResult(valid=True)


def check_quote_sanity(
    provider: str,
    from_symbol: str,
    to_symbol: str,
    in_amount_base: str,
    out_amount_base: str,
    from_decimals: int,
    to_decimals: int,
    settings: Optional[Settings] = None,
) -> SanityResult:
    """Bound-check same-symbol swaps against their input.

    Output must lie within [sanity_min_ratio, sanity_max_ratio] of the
    input. Stablecoins below `stablecoin_min_ratio` are accepted but
    flagged suspicious. Different-symbol swaps are not bounded here.
    """
    settings = settings or get_settings()
    if from_symbol.strip().lower() != to_symbol.strip().lower():
        return SanityResult(valid=True)

    in_amount = _human(in_amount_base, from_decimals)
    out_amount = _human(out_amount_base, to_decimals)
    debug = {
        "provider": provider,
        "fromTokenSymbol": from_symbol,
        "toTokenSymbol": to_symbol,
        "inAmount": str(in_amount),
        "outAmount": str(out_amount),
    }

    if out_amount == 0:
        return SanityResult(
            valid=False,
            code=ErrorCode.SUSPICIOUS_QUOTE,
            message="Quote output is zero - likely invalid",
            debug=debug,
        )
    if in_amount == 0:
        return SanityResult(valid=True)

    ratio = out_amount / in_amount
    debug["ratio"] = str(ratio)

    if ratio < settings.sanity_min_ratio:
        return SanityResult(
            valid=False,
            code=ErrorCode.SUSPICIOUS_QUOTE,
            message="Quote output is suspiciously low for same-token swap",
            debug=debug,
        )

    if ratio > settings.sanity_max_ratio:
        logger.error(f"Rejecting suspiciously high same-token quote: {debug}")
        return SanityResult(
            valid=False,
            code=ErrorCode.SUSPICIOUS_QUOTE_HIGH_OUTPUT,
            message="Quote output is suspiciously high for same-token swap",
            debug=debug,
        )

    if from_symbol.upper() in STABLECOINS and ratio < settings.stablecoin_min_ratio:
        debug["warning"] = "Output lower than expected for stablecoin swap"
        return SanityResult(valid=True, suspicious=True, debug=debug)

    return SanityResult(valid=True)
