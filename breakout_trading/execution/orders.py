"""
Order data structures (Direction, OrderIntent).
"""

from dataclasses import dataclass
from enum import Enum


class Direction(str, Enum):
    LONG = "long"
    SHORT = "short"


@dataclass(frozen=True)
class OrderIntent:
    """
    At most one per market per pass.

    base_asset_amount is an unsigned magnitude in base precision units.
    """

    market_index: int
    direction: Direction
    base_asset_amount: int

    @property
    def is_buy(self) -> bool:
        return self.direction is Direction.LONG
