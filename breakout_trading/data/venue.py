"""
Venue Session

Positions, market descriptors and oracle prices from the Hyperliquid Info
endpoint; market orders through the Exchange endpoint.
Snapshots are cached for a short TTL so a full pass costs a handful of calls.
A failed snapshot read surfaces as VenueError; a missing oracle price as None.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from hyperliquid.exchange import Exchange
from hyperliquid.info import Info
from hyperliquid.utils.error import Error as HyperliquidError
import requests

from breakout_trading.core.config import HyperliquidConfig, VenueProtocolParams
from breakout_trading.core.errors import SubmitError, VenueError
from breakout_trading.execution.orders import OrderIntent
from breakout_trading.utils.precision import format_size, from_fixed, to_fixed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Position:
    """Signed position in base precision units (positive = long)."""

    market_index: int
    base_asset_amount: int


@dataclass(frozen=True)
class MarketDescriptor:
    market_index: int
    name: str
    sz_decimals: int = 0


class VenueSession(ABC):
    """Everything the decision loop needs from the venue."""

    @abstractmethod
    def connect(self) -> bool:
        """Try to bring the session up. Returns True once ready."""

    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    def get_position(self, market_index: int) -> Optional[Position]:
        """Open position, None if flat. Raises VenueError if state cannot be read."""

    @abstractmethod
    def get_market_descriptor(self, market_index: int) -> Optional[MarketDescriptor]:
        """None if the venue has no such market. Raises VenueError on read failure."""

    @abstractmethod
    def get_oracle_price(self, market_index: int) -> Optional[int]:
        """Oracle price in price precision units, None if unavailable."""

    @abstractmethod
    def submit_order(self, intent: OrderIntent) -> str:
        """
        Submit a market order.

        Returns:
            Venue order id

        Raises:
            SubmitError: on rejection or transport failure
        """

    @abstractmethod
    def disconnect(self) -> None:
        ...


class HyperliquidVenueSession(VenueSession):
    """
    Hyperliquid perps venue.

    Market index is the asset index in meta["universe"]. When expected_names
    is given, an index whose coin does not match is treated as unknown.
    """

    def __init__(
        self,
        config: HyperliquidConfig,
        protocol: VenueProtocolParams,
        info: Optional[Info] = None,
        exchange: Optional[Exchange] = None,
        expected_names: Optional[Dict[int, str]] = None,
        clock=time.monotonic,
    ):
        """
        Initialize venue session.

        Args:
            config: Hyperliquid settings
            protocol: Fixed-point scale constants
            info: Info client (created on connect if omitted)
            exchange: Exchange client (created on connect if omitted)
            expected_names: market_index -> configured coin name
            clock: Monotonic clock used for snapshot TTLs
        """
        self.config = config
        self.protocol = protocol
        self.info = info
        self.exchange = exchange
        self.expected_names = expected_names or {}
        self.clock = clock
        self._connected = False
        self._cache: Dict[str, Tuple[float, Any]] = {}

    # ------------------------
    # Session lifecycle
    # ------------------------

    def connect(self) -> bool:
        try:
            if self.info is None:
                self.info = Info(self.config.api_url, skip_ws=True)
            if self.exchange is None and not self.config.dry_run:
                from eth_account import Account

                wallet = Account.from_key(self.config.secret_key)
                self.exchange = Exchange(
                    wallet,
                    self.config.api_url,
                    account_address=self.config.address or None,
                )
            self._cache.clear()
            self._meta_and_ctxs()
        except Exception as e:
            logger.warning("Venue connect failed: %s", e)
            self._connected = False
            return False
        self._connected = True
        logger.info("Connected to Hyperliquid %s", self.config.network)
        return True

    def is_connected(self) -> bool:
        return self._connected

    def disconnect(self) -> None:
        self._cache.clear()
        self._connected = False
        logger.info("Venue session closed")

    # ------------------------
    # Reads
    # ------------------------

    def get_market_descriptor(self, market_index: int) -> Optional[MarketDescriptor]:
        meta, _ = self._meta_and_ctxs()
        universe: List[Dict[str, Any]] = meta.get("universe", [])
        if market_index < 0 or market_index >= len(universe):
            return None
        asset = universe[market_index]
        name = asset.get("name")
        if not name or asset.get("isDelisted"):
            return None
        expected = self.expected_names.get(market_index)
        if expected is not None and expected != name:
            logger.error("Market %d is %s on the venue, configured as %s", market_index, name, expected)
            return None
        return MarketDescriptor(market_index, name, int(asset.get("szDecimals", 0)))

    def get_position(self, market_index: int) -> Optional[Position]:
        name = self._coin_name(market_index)
        if name is None:
            return None
        state = self._cached("user_state", lambda: self.info.user_state(self.config.address))
        for ap in state.get("assetPositions", []):
            pos = ap.get("position", {})
            if pos.get("coin") == name:
                amount = to_fixed(pos.get("szi", "0"), self.protocol.base_precision)
                return Position(market_index, amount)
        return None

    def get_oracle_price(self, market_index: int) -> Optional[int]:
        try:
            _, ctxs = self._meta_and_ctxs()
        except VenueError as e:
            logger.warning("Oracle price unavailable for market %d: %s", market_index, e)
            return None
        if market_index < 0 or market_index >= len(ctxs):
            return None
        raw = (ctxs[market_index] or {}).get("oraclePx")
        if raw is None:
            return None
        try:
            price = to_fixed(raw, self.protocol.price_precision)
        except ValueError:
            logger.warning("Unparseable oracle price %r for market %d", raw, market_index)
            return None
        return price if price > 0 else None

    # ------------------------
    # Orders
    # ------------------------

    def submit_order(self, intent: OrderIntent) -> str:
        descriptor = self.get_market_descriptor(intent.market_index)
        if descriptor is None:
            raise SubmitError(f"Cannot route order for unknown market {intent.market_index}")
        size = from_fixed(intent.base_asset_amount, self.protocol.base_precision)
        sz = float(format_size(size, descriptor.sz_decimals))
        if sz <= 0:
            raise SubmitError(
                f"{descriptor.name}: {size} below lot size (szDecimals={descriptor.sz_decimals})"
            )

        side = "buy" if intent.is_buy else "sell"
        if self.config.dry_run:
            logger.info("Dry run: market %s %s sz=%s", side, descriptor.name, sz)
            return f"DRY-{descriptor.name}-{side}"

        try:
            resp = self.exchange.market_open(descriptor.name, intent.is_buy, sz, None, self.config.slippage)
        except Exception as e:
            raise SubmitError(f"{descriptor.name}: order request failed: {e}") from e
        # Positions change after a fill
        self._cache.pop("user_state", None)
        return self._order_id(descriptor.name, resp)

    @staticmethod
    def _order_id(name: str, resp: Any) -> str:
        if not isinstance(resp, dict) or resp.get("status") != "ok":
            raise SubmitError(f"{name}: order rejected: {resp}")
        statuses = resp.get("response", {}).get("data", {}).get("statuses", [])
        for st in statuses:
            if "error" in st:
                raise SubmitError(f"{name}: order rejected: {st['error']}")
            for key in ("filled", "resting"):
                if key in st:
                    return str(st[key].get("oid"))
        raise SubmitError(f"{name}: no order status in response: {resp}")

    # ------------------------
    # Helpers
    # ------------------------

    def _coin_name(self, market_index: int) -> Optional[str]:
        meta, _ = self._meta_and_ctxs()
        universe = meta.get("universe", [])
        if 0 <= market_index < len(universe):
            return universe[market_index].get("name")
        return None

    def _meta_and_ctxs(self) -> Tuple[Dict, List[Dict]]:
        resp = self._cached("meta_and_asset_ctxs", lambda: self.info.meta_and_asset_ctxs())
        # Official shape: [meta, assetCtxs]
        if isinstance(resp, list) and len(resp) >= 2:
            return resp[0] or {}, resp[1] or []
        raise VenueError("Unexpected response for metaAndAssetCtxs")

    def _cached(self, key: str, fetch):
        now = self.clock()
        hit = self._cache.get(key)
        if hit is not None and now - hit[0] < self.config.state_ttl_sec:
            return hit[1]
        try:
            value = fetch()
        except (HyperliquidError, requests.RequestException, OSError, ValueError) as e:
            raise VenueError(f"{key} request failed: {e}") from e
        self._cache[key] = (now, value)
        return value
