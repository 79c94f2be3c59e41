"""Utilities: Precision helpers."""

from breakout_trading.utils.precision import format_size, from_fixed, to_fixed

__all__ = [
    "format_size",
    "from_fixed",
    "to_fixed",
]
