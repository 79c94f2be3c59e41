"""
Exposure Tracker

Locally known open position per market, rebuilt from venue truth each pass.
A missing entry and a zero-size entry mean the same thing: flat.
"""

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Dict, Iterable, Optional

from breakout_trading.core.errors import VenueError
from breakout_trading.data.venue import Position, VenueSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExposureView:
    long_exposure: int = 0
    short_exposure: int = 0


class HoldingState(str, Enum):
    FLAT = "flat"
    LONG = "long"


@dataclass(frozen=True)
class Holding:
    """Single-unit position model: flat, or one long of a given size."""

    state: HoldingState
    amount: int = 0

    @classmethod
    def flat(cls) -> "Holding":
        return cls(HoldingState.FLAT)

    @classmethod
    def long(cls, amount: int) -> "Holding":
        if amount <= 0:
            raise ValueError(f"long holding needs a positive amount, got {amount}")
        return cls(HoldingState.LONG, amount)

    @property
    def is_long(self) -> bool:
        return self.state is HoldingState.LONG


def exposure_of(position: Optional[Position]) -> ExposureView:
    """Split a signed position into long/short magnitudes."""
    if position is None or position.base_asset_amount == 0:
        return ExposureView()
    amount = position.base_asset_amount
    if amount > 0:
        return ExposureView(long_exposure=amount)
    return ExposureView(short_exposure=-amount)


class ExposureTracker:
    """Mapping market_index -> nonzero Position, written only by refresh()."""

    def __init__(self, venue: VenueSession):
        self.venue = venue
        self.positions: Dict[int, Position] = {}
        # Markets whose last refresh_all read failed
        self.failed: Dict[int, VenueError] = {}

    def refresh(self, market_index: int) -> Optional[Position]:
        """
        Pull the venue position for one market.

        Returns:
            The stored position, or None if the market is flat
        """
        p = self.venue.get_position(market_index)
        if p is not None and p.base_asset_amount != 0:
            self.positions[market_index] = p
            return p
        self.positions.pop(market_index, None)
        return None

    def refresh_all(self, market_indices: Iterable[int]) -> None:
        """
        Refresh every market. A failed read drops that market's stored
        position and records the error in self.failed instead of raising.
        """
        logger.info("Updating exposure state")
        self.failed = {}
        for market_index in market_indices:
            try:
                self.refresh(market_index)
            except VenueError as e:
                self._mark_failed(market_index, e)
            except OSError as e:
                self._mark_failed(market_index, VenueError(f"position read failed: {e}"))

    def _mark_failed(self, market_index: int, error: VenueError) -> None:
        logger.warning("Exposure refresh failed for market %d: %s", market_index, error)
        self.positions.pop(market_index, None)
        self.failed[market_index] = error

    def get_exposure_view(self, market_index: int) -> ExposureView:
        return exposure_of(self.positions.get(market_index))

    def get_holding(self, market_index: int) -> Holding:
        view = self.get_exposure_view(market_index)
        if view.long_exposure > 0:
            return Holding.long(view.long_exposure)
        return Holding.flat()
