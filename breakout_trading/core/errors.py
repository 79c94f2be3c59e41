"""
Error taxonomy for the decision loop.

Each failure carries an ErrorKind so the controller can apply a per-kind
policy and tests can assert on the kind instead of on log text.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure kinds surfaced by a pass."""

    INSUFFICIENT_HISTORY = "insufficient_history"
    NO_ORACLE_DATA = "no_oracle_data"
    SUBMIT_ERROR = "submit_error"
    UNKNOWN_MARKET_ACCOUNT = "unknown_market_account"
    PROVIDER_ERROR = "provider_error"
    VENUE_ERROR = "venue_error"


class TradingError(Exception):
    """Base class for all expected failures of a pass."""

    kind: ErrorKind
    fatal = False


class InsufficientHistory(TradingError):
    """Price history shorter than the signal window."""

    kind = ErrorKind.INSUFFICIENT_HISTORY

    def __init__(self, available: int, required: int):
        super().__init__(f"Not enough data: {available} bars, need {required}")
        self.available = available
        self.required = required


class NoOracleData(TradingError):
    """No usable oracle price for a market."""

    kind = ErrorKind.NO_ORACLE_DATA

    def __init__(self, market_index: int):
        super().__init__(f"No oracle price for market {market_index}")
        self.market_index = market_index


class SubmitError(TradingError):
    """Order rejected by the venue or lost in transit."""

    kind = ErrorKind.SUBMIT_ERROR


class UnknownMarketAccount(TradingError):
    """Configured market the venue does not know about."""

    kind = ErrorKind.UNKNOWN_MARKET_ACCOUNT
    fatal = True

    def __init__(self, market_index: int):
        super().__init__(f"Market account not found for market index {market_index}")
        self.market_index = market_index


class ProviderError(TradingError):
    """Transport or payload failure from the price-history provider."""

    kind = ErrorKind.PROVIDER_ERROR


class VenueError(TradingError):
    """Venue state could not be read for one market (transport failure)."""

    kind = ErrorKind.VENUE_ERROR
