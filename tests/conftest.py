import pytest

from breakout_trading.core.config import MarketConfig, SignalConfig, VenueProtocolParams
from breakout_trading.core.controller import PacingPolicy, PositionController
from breakout_trading.execution.sizing import OrderSizer
from breakout_trading.risk.exposure import ExposureTracker
from breakout_trading.signals.engine import TrendSignal

from fakes import SleepRecorder


@pytest.fixture
def protocol():
    return VenueProtocolParams()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def markets():
    return [
        MarketConfig(0, "BTC", "1", 200),
        MarketConfig(1, "ETH", "1027", 200),
        MarketConfig(5, "SOL", "5426", 200),
    ]


@pytest.fixture
def make_controller(protocol, sleeper):
    def _make(venue, history):
        return PositionController(
            venue,
            ExposureTracker(venue),
            TrendSignal(SignalConfig(), history),
            OrderSizer(venue, protocol),
            PacingPolicy(1.0, sleeper),
        )

    return _make
