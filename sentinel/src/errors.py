"""Exception hierarchy for the stablecoin sentinel.

Callers distinguish "asset does not exist" (UnsupportedStablecoinError)
from "asset exists but no usable price right now" (PriceDataError).
"""

from __future__ import annotations


class SentinelError(Exception):
    """Base exception for sentinel errors."""

    pass


class UnsupportedStablecoinError(SentinelError):
    """Raised when a symbol is not in the stablecoin registry.

    :ivar symbol: The rejected symbol, as requested.
    """

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Stablecoin {symbol} is not supported")


class PriceDataError(SentinelError):
    """Raised when no usable price data could be produced.

    :ivar cause: Underlying exception for wrapped failures, if any.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        self.cause = cause
        super().__init__(message)


class ConfigurationError(SentinelError):
    """Raised when configuration values are missing or inconsistent."""

    pass

