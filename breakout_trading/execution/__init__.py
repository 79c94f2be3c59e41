"""Execution: order intents and notional sizing."""

from breakout_trading.execution.orders import Direction, OrderIntent

__all__ = ["Direction", "OrderIntent"]
