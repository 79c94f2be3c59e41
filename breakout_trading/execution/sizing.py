"""
Order sizing: quote notional -> base asset amount at the oracle price.
"""

import logging

from breakout_trading.core.config import VenueProtocolParams
from breakout_trading.core.errors import NoOracleData
from breakout_trading.data.venue import VenueSession

logger = logging.getLogger(__name__)


def notional_to_base(notional: int, price: int, protocol: VenueProtocolParams) -> int:
    """notional * quote_precision * base_precision // price, exact ints."""
    if not isinstance(notional, int) or isinstance(notional, bool):
        raise TypeError(f"notional must be a whole number of quote units, got {notional!r}")
    if price <= 0:
        raise ValueError(f"price must be > 0, got {price}")
    return notional * protocol.quote_precision * protocol.base_precision // int(price)


class OrderSizer:
    def __init__(self, venue: VenueSession, protocol: VenueProtocolParams):
        self.venue = venue
        self.protocol = protocol

    def to_base_amount(self, market_index: int, notional: int) -> int:
        """
        Size a quote-currency notional in base precision units.

        Raises:
            NoOracleData: no positive oracle price for the market
        """
        price = self.venue.get_oracle_price(market_index)
        if price is None or price <= 0:
            raise NoOracleData(market_index)
        amount = notional_to_base(notional, price, self.protocol)
        logger.debug("Market %d: %s quote at %s -> %d base", market_index, notional, price, amount)
        return amount
