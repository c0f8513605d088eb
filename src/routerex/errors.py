"""Error codes shared by quoting, routing and execution."""

from enum import Enum


class ErrorCode(str, Enum):
    """Classified error codes surfaced to callers."""

    # Input
    INVALID_AMOUNT = "INVALID_AMOUNT"
    UNSUPPORTED_NETWORK = "UNSUPPORTED_NETWORK"
    INVALID_FROM_TOKEN = "INVALID_FROM_TOKEN"
    INVALID_TO_TOKEN = "INVALID_TO_TOKEN"
    TOKEN_ADDRESS_MAPPING_BUG = "TOKEN_ADDRESS_MAPPING_BUG"
    TOKEN_DECIMALS_MISMATCH = "TOKEN_DECIMALS_MISMATCH"
    AMOUNT_TOO_LOW = "AMOUNT_TOO_LOW"

    # Quote integrity
    DECIMALS_MISMATCH_SUSPECTED = "DECIMALS_MISMATCH_SUSPECTED"
    SUSPICIOUS_QUOTE = "SUSPICIOUS_QUOTE"
    SUSPICIOUS_QUOTE_HIGH_OUTPUT = "SUSPICIOUS_QUOTE_HIGH_OUTPUT"

    # Routing
    NO_ROUTE = "NO_ROUTE"
    ADAPTER_MISSING = "ADAPTER_MISSING"
    WALLET_MISSING_FOR_ROUTE = "WALLET_MISSING_FOR_ROUTE"

    # Provider
    TIMEOUT = "TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_INPUT_CURRENCY = "INVALID_INPUT_CURRENCY"
    RATE_LIMIT = "RATE_LIMIT"
    API_ERROR = "API_ERROR"
    PROVIDER_DISABLED = "PROVIDER_DISABLED"
    API_KEY_REQUIRED = "API_KEY_REQUIRED"
    UNSUPPORTED_PROVIDER_RESPONSE = "UNSUPPORTED_PROVIDER_RESPONSE"

    # Execution
    EXECUTION_NOT_FOUND = "EXECUTION_NOT_FOUND"
    INVALID_STEP_TRANSITION = "INVALID_STEP_TRANSITION"
