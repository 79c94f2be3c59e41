"""
Scheduler: Triggers one pass per day at a fixed UTC time.

Passes run inline on the scheduler loop, so they never overlap.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from breakout_trading.core.config import ScheduleConfig

logger = logging.getLogger(__name__)


class Scheduler:
    """
    Daily pass scheduler.

    Triggers the callback at the configured UTC time of day (default
    00:00:00, the daily bar close).
    """

    def __init__(
        self,
        config: ScheduleConfig,
        callback: Callable[[], None],
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize scheduler.

        Args:
            config: Schedule settings
            callback: Function to call on each trigger
            sleep: Sleep function (injectable for tests)
        """
        self.config = config
        self.callback = callback
        self.sleep = sleep
        self.running = False

    def next_run_time(self, now: Optional[datetime] = None) -> datetime:
        """
        Calculate next trigger timestamp.

        Returns:
            Next run datetime (UTC), strictly after now
        """
        now = now or datetime.now(timezone.utc)
        hour, minute, second = (int(p) for p in self.config.run_at.split(":"))
        target = now.replace(hour=hour, minute=minute, second=second, microsecond=0)
        if now >= target:
            # Already past today's run, schedule tomorrow
            target += timedelta(days=1)
        return target

    def seconds_until_next_run(self, now: Optional[datetime] = None) -> float:
        now = now or datetime.now(timezone.utc)
        delta = (self.next_run_time(now) - now).total_seconds()
        return max(0.0, delta)

    def run_forever(self):
        """
        Run scheduler loop until stopped.

        Sleeps until the next trigger, then calls the callback inline.
        """
        self.running = True
        logger.info("Scheduler started, daily at %s UTC", self.config.run_at)

        while self.running:
            next_time = self.next_run_time()
            sleep_sec = (next_time - datetime.now(timezone.utc)).total_seconds()
            if sleep_sec > 0:
                logger.info("Next pass in %.0fs at %s", sleep_sec, next_time.isoformat())
                # Wake up every minute to check
                self.sleep(min(sleep_sec, 60))
                if sleep_sec > 60:
                    continue

            logger.info("Triggering pass at %s", datetime.now(timezone.utc).isoformat())
            try:
                self.callback()
            except Exception:
                logger.exception("Pass failed")

            # Sleep briefly to avoid double-trigger
            self.sleep(10)

    def stop(self):
        """Stop the scheduler loop."""
        logger.info("Scheduler stopping")
        self.running = False
