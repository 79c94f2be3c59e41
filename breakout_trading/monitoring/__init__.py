"""Monitoring: logging setup."""

from breakout_trading.monitoring.logger import setup_logging

__all__ = ["setup_logging"]
