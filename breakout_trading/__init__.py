"""
Breakout Trading Bot for Hyperliquid

A long-only "new 20-day high" trend bot over a fixed list of perpetuals,
run as a daily batch pass.

Components:
- Exposure Tracker: Positions per market, rebuilt from venue truth each pass
- Trend Signal: Enter on a new window high, exit once momentum fades
- Order Sizer: Quote notional to base amount at the oracle price
- Position Controller: Sequential per-market loop with pacing
- Venue Session: Hyperliquid Info/Exchange wrapper
- Price History: CoinMarketCap daily quotes
"""

__version__ = "0.1.0"

from breakout_trading.core.config import Config
from breakout_trading.core.controller import PositionController

__all__ = [
    "Config",
    "PositionController",
]
