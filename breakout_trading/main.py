"""
Main entry point for the breakout trading bot.

Connect -> one pass over all configured markets -> teardown.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Callable

from dotenv import load_dotenv

from breakout_trading.core.config import Config
from breakout_trading.core.controller import PacingPolicy, PassReport, PositionController
from breakout_trading.core.scheduler import Scheduler
from breakout_trading.data.history import CoinMarketCapHistoryProvider
from breakout_trading.data.venue import HyperliquidVenueSession, VenueSession
from breakout_trading.execution.sizing import OrderSizer
from breakout_trading.monitoring.logger import setup_logging
from breakout_trading.risk.exposure import ExposureTracker
from breakout_trading.signals.engine import TrendSignal

logger = logging.getLogger(__name__)


class TrendBot:
    """
    Owns the venue session and the market list; drives one pass per run.
    """

    def __init__(
        self,
        config: Config,
        venue: VenueSession,
        controller: PositionController,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize bot.

        Args:
            config: Bot configuration
            venue: Venue session (not yet connected)
            controller: Per-market decision loop bound to the same session
            sleep: Sleep function used between connect attempts
        """
        self.config = config
        self.venue = venue
        self.controller = controller
        self.sleep = sleep

    @classmethod
    def from_config(cls, config: Config) -> "TrendBot":
        protocol = config.sizing.protocol
        venue = HyperliquidVenueSession(
            config.hyperliquid,
            protocol,
            expected_names={m.market_index: m.display_name for m in config.markets},
        )
        provider = CoinMarketCapHistoryProvider(config.history)
        controller = PositionController(
            venue,
            ExposureTracker(venue),
            TrendSignal(config.signal, provider),
            OrderSizer(venue, protocol),
            PacingPolicy(config.pacing.market_delay_sec),
        )
        return cls(config, venue, controller)

    def connect(self):
        """Retry until the venue session is ready. No attempt limit."""
        while not self.venue.connect():
            logger.info("Retrying venue connect in %ss...", self.config.pacing.connect_retry_sec)
            self.sleep(self.config.pacing.connect_retry_sec)

    def run_once(self) -> PassReport:
        logger.info("Running TrendBot pass over %d markets", len(self.config.markets))
        try:
            self.connect()
            report = self.controller.run_pass(self.config.markets)
            self._log_summary(report)
            return report
        finally:
            self.teardown()

    def teardown(self):
        logger.info("Tearing down TrendBot...")
        if self.venue.is_connected():
            self.venue.disconnect()
        logger.info("TrendBot successfully torn down.")

    @staticmethod
    def _log_summary(report: PassReport):
        n_orders = sum(1 for o in report.outcomes if o.submitted)
        n_errors = sum(1 for o in report.outcomes if o.error is not None)
        if report.aborted:
            logger.error("Pass aborted after %d markets", len(report.outcomes))
        logger.info("Pass complete: %d markets, %d orders, %d errors",
                    len(report.outcomes), n_orders, n_errors)


def main(argv=None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="New N-day high trend bot")
    parser.add_argument("--config", type=str, default="", help="Path to YAML config file")
    parser.add_argument("--dry-run", action="store_true", help="Log orders instead of placing them")
    parser.add_argument("--schedule", action="store_true", help="Stay up and run one pass per day")
    args = parser.parse_args(argv)

    # Load .env if present (before Config) to populate HL_* / CMC_* variables
    load_dotenv(dotenv_path=Path.cwd() / ".env")

    if args.config:
        config = Config.from_yaml(args.config)
    else:
        config = Config()
    if args.dry_run:
        config.hyperliquid.dry_run = True

    setup_logging(config.monitoring)

    errors = config.validate()
    if errors:
        logger.error("Configuration validation failed:")
        for err in errors:
            logger.error("  - %s", err)
        return 1

    bot = TrendBot.from_config(config)
    if args.schedule:
        scheduler = Scheduler(config.schedule, bot.run_once)
        try:
            scheduler.run_forever()
        except KeyboardInterrupt:
            scheduler.stop()
        return 0

    try:
        report = bot.run_once()
    except Exception:
        logger.exception("Error running TrendBot pass")
        return 1
    return 2 if report.aborted else 0


if __name__ == "__main__":
    sys.exit(main())
