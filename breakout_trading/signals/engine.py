"""
Signal Engine

New N-day high breakout: enter long on a fresh window high, exit once the
window high has not been touched within the last few bars.
"""

from enum import Enum
import logging
from typing import Optional

import numpy as np
import pandas as pd

from breakout_trading.core.config import SignalConfig
from breakout_trading.core.errors import InsufficientHistory
from breakout_trading.data.history import PriceHistoryProvider

logger = logging.getLogger(__name__)


class SignalDecision(str, Enum):
    ENTER_LONG = "enter_long"
    EXIT_LONG = "exit_long"
    HOLD = "hold"


def evaluate_breakout(
    prices,
    is_holding: bool,
    window: int = 20,
    recent_window: int = 5,
) -> SignalDecision:
    """
    Decide from a chronological close series.

    1. window_high = max over the last `window` closes
    2. New high: latest close == window_high (exact, ties count)
    3. Recent high: window_high appears among the last `recent_window` closes
    4. New high & flat -> ENTER_LONG; no recent high & holding -> EXIT_LONG;
       otherwise HOLD (a new high while holding is a no-op)

    Args:
        prices: Close prices, oldest to newest
        is_holding: Whether a long is currently held
        window: Lookback length (bars)
        recent_window: Bars that must contain the window high while held

    Raises:
        InsufficientHistory: if fewer than `window` prices are given
    """
    closes = np.asarray(prices, dtype=float)
    if len(closes) < window:
        raise InsufficientHistory(len(closes), window)
    closes = closes[-window:]

    window_high = closes.max()
    is_new_high = closes[-1] == window_high
    # Same full-window high, not a recomputed short-window high
    recent_high = bool(np.any(closes[-recent_window:] == window_high))

    if is_new_high and not is_holding:
        return SignalDecision.ENTER_LONG
    if not recent_high and is_holding:
        return SignalDecision.EXIT_LONG
    return SignalDecision.HOLD


class TrendSignal:
    """Fetches daily history for a market and evaluates the breakout rule."""

    def __init__(self, config: SignalConfig, provider: PriceHistoryProvider):
        """
        Initialize signal.

        Args:
            config: Window parameters
            provider: Daily price history source
        """
        self.config = config
        self.provider = provider

    def decide(self, external_price_id: str, is_holding: bool, name: Optional[str] = None) -> SignalDecision:
        """
        Args:
            external_price_id: History provider id
            is_holding: Whether a long is currently open
            name: Asset name used in log lines (defaults to the id)

        Raises:
            InsufficientHistory: short series
            ProviderError: history could not be fetched
        """
        series: pd.Series = self.provider.get_daily_history(external_price_id, self.config.window)
        decision = evaluate_breakout(
            series.to_numpy(),
            is_holding,
            window=self.config.window,
            recent_window=self.config.recent_window,
        )

        window_high = float(series.iloc[-self.config.window:].max())
        as_of = series.index[-1]
        label = name or external_price_id
        if decision is SignalDecision.ENTER_LONG:
            logger.info("Buy signal: %s made a new %d-day high of %s (as of %s)",
                        label, self.config.window, window_high, as_of)
        elif decision is SignalDecision.EXIT_LONG:
            logger.info("Sell signal: %s is past %d days since its %d-day high of %s",
                        label, self.config.recent_window, self.config.window, window_high)
        else:
            logger.info("Hold: no action needed for %s", label)
        return decision
