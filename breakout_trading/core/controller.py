"""
Position Controller

One pass over the configured markets:
refresh exposure -> decide -> size -> submit at most one order -> pace.
"""

from dataclasses import dataclass, field
import logging
import time
from typing import Callable, List, Optional, Sequence

from breakout_trading.core.config import MarketConfig
from breakout_trading.core.errors import ErrorKind, TradingError, UnknownMarketAccount, VenueError
from breakout_trading.data.venue import VenueSession
from breakout_trading.execution.orders import Direction, OrderIntent
from breakout_trading.execution.sizing import OrderSizer
from breakout_trading.risk.exposure import ExposureTracker, Holding
from breakout_trading.signals.engine import SignalDecision, TrendSignal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PacingPolicy:
    """Fixed delay between markets; sleep is injectable for tests."""

    delay_sec: float = 1.0
    sleep: Callable[[float], None] = time.sleep

    def wait(self) -> None:
        if self.delay_sec > 0:
            self.sleep(self.delay_sec)


@dataclass
class MarketOutcome:
    """What happened to one market in a pass."""

    market_index: int
    name: str
    decision: Optional[SignalDecision] = None
    intent: Optional[OrderIntent] = None
    order_id: Optional[str] = None
    error: Optional[ErrorKind] = None
    error_msg: Optional[str] = None

    @property
    def submitted(self) -> bool:
        return self.order_id is not None


@dataclass
class PassReport:
    outcomes: List[MarketOutcome] = field(default_factory=list)
    aborted: bool = False

    @property
    def intents(self) -> List[OrderIntent]:
        return [o.intent for o in self.outcomes if o.intent is not None]

    def errors(self, kind: ErrorKind) -> List[MarketOutcome]:
        return [o for o in self.outcomes if o.error is kind]


class PositionController:
    """
    Drives the per-market decision loop.

    Markets are processed strictly in order, one at a time. Per-market
    failures (venue transport errors included) are logged and isolated;
    a fatal error such as an unknown market account aborts the pass.
    """

    def __init__(
        self,
        venue: VenueSession,
        tracker: ExposureTracker,
        signal: TrendSignal,
        sizer: OrderSizer,
        pacing: Optional[PacingPolicy] = None,
    ):
        self.venue = venue
        self.tracker = tracker
        self.signal = signal
        self.sizer = sizer
        self.pacing = pacing or PacingPolicy()

    def run_pass(self, markets: Sequence[MarketConfig]) -> PassReport:
        """
        Evaluate every market once.

        Args:
            markets: Ordered market configuration

        Returns:
            PassReport with one outcome per evaluated market
        """
        report = PassReport()
        # Single full-universe refresh before any order in this pass
        self.tracker.refresh_all([m.market_index for m in markets])

        for market in markets:
            outcome = MarketOutcome(market.market_index, market.display_name)
            report.outcomes.append(outcome)
            try:
                self._run_market(market, outcome)
            except OSError as e:
                # Transport failure raised straight through a venue read
                outcome.error, outcome.error_msg = ErrorKind.VENUE_ERROR, str(e)
                logger.warning("%s: skipped (venue_error): %s", market.display_name, e)
            except TradingError as e:
                outcome.error, outcome.error_msg = e.kind, str(e)
                if e.fatal:
                    logger.error("Aborting pass: %s", e)
                    report.aborted = True
                    return report
                logger.warning("%s: skipped (%s): %s", market.display_name, e.kind.value, e)
            self.pacing.wait()

        return report

    def _run_market(self, market: MarketConfig, outcome: MarketOutcome) -> None:
        if self.venue.get_market_descriptor(market.market_index) is None:
            raise UnknownMarketAccount(market.market_index)
        failed: Optional[VenueError] = self.tracker.failed.get(market.market_index)
        if failed is not None:
            raise failed

        holding = self.tracker.get_holding(market.market_index)
        outcome.decision = self.signal.decide(
            market.external_price_id, holding.is_long, name=market.display_name
        )
        outcome.intent = self._intent_for(market, holding, outcome.decision)
        if outcome.intent is None:
            return

        outcome.order_id = self.venue.submit_order(outcome.intent)
        logger.info("%s: placed %s %d (order %s)", market.display_name,
                    outcome.intent.direction.value, outcome.intent.base_asset_amount, outcome.order_id)

    def _intent_for(
        self,
        market: MarketConfig,
        holding: Holding,
        decision: SignalDecision,
    ) -> Optional[OrderIntent]:
        if decision is SignalDecision.ENTER_LONG and not holding.is_long:
            amount = self.sizer.to_base_amount(market.market_index, market.target_notional)
            return OrderIntent(market.market_index, Direction.LONG, amount)
        if decision is SignalDecision.EXIT_LONG and holding.is_long:
            # Full close, independent of target_notional
            return OrderIntent(market.market_index, Direction.SHORT, holding.amount)
        return None
