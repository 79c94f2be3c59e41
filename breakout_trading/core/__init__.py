"""Core system components: config, errors, controller, scheduler."""

from breakout_trading.core.config import Config, MarketConfig, VenueProtocolParams
from breakout_trading.core.controller import PassReport, PositionController
from breakout_trading.core.scheduler import Scheduler

__all__ = [
    "Config",
    "MarketConfig",
    "VenueProtocolParams",
    "PassReport",
    "PositionController",
    "Scheduler",
]
