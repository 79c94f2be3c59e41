"""
Configuration management for the breakout trading bot.

Supports loading from YAML/dict and environment variable overrides.
Markets and venue precision constants are explicit, immutable values
handed to the controller at construction.
"""

import os
from dataclasses import dataclass, field, fields, is_dataclass
from typing import List, Literal


@dataclass(frozen=True)
class MarketConfig:
    """One configured perp market."""

    market_index: int  # Asset index on the venue
    display_name: str  # Venue coin name, e.g. "BTC"
    external_price_id: str  # CoinMarketCap id used for price history
    target_notional: int = 200  # USDC per entry


def default_markets() -> List[MarketConfig]:
    return [
        MarketConfig(0, "BTC", "1"),
        MarketConfig(1, "ETH", "1027"),
        MarketConfig(5, "SOL", "5426"),
    ]


@dataclass(frozen=True)
class VenueProtocolParams:
    """Fixed-point scale constants of the venue."""

    quote_precision: int = 10**6  # USDC units
    base_precision: int = 10**9  # Base asset units
    price_precision: int = 10**6  # Oracle price units


@dataclass
class SignalConfig:
    """New N-day high signal parameters."""

    window: int = 20  # Daily bars in the lookback window
    recent_window: int = 5  # Bars that must contain the window high while held


@dataclass
class SizingConfig:
    """Order sizing parameters."""

    protocol: VenueProtocolParams = field(default_factory=VenueProtocolParams)


@dataclass
class PacingConfig:
    """Rate limiting between markets and on connect."""

    market_delay_sec: float = 1.0
    connect_retry_sec: float = 1.0


@dataclass
class ScheduleConfig:
    """Daily trigger time (UTC) used with --schedule."""

    run_at: str = "00:00:00"


@dataclass
class HistoryConfig:
    """CoinMarketCap historical quotes endpoint."""

    base_url: str = "https://pro-api.coinmarketcap.com"
    api_key: str = ""  # From env
    timeout_sec: float = 10.0
    convert: str = "USD"


@dataclass
class MonitoringConfig:
    """Logging."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_dir: str = "logs"
    log_file: str = "breakout_trading.log"


@dataclass
class HyperliquidConfig:
    """Hyperliquid-specific settings."""

    network: Literal["testnet", "mainnet"] = "testnet"
    address: str = ""  # Main wallet address (from env)
    secret_key: str = ""  # API wallet private key (from env)
    slippage: float = 0.05  # Max slippage for market orders
    state_ttl_sec: float = 5.0  # Reuse venue snapshots within a pass
    dry_run: bool = False

    # API endpoint (auto-set by network)
    api_url: str = ""

    def __post_init__(self):
        """Set API URL based on network."""
        from hyperliquid.utils import constants

        if self.network == "testnet":
            self.api_url = constants.TESTNET_API_URL
        else:
            self.api_url = constants.MAINNET_API_URL


def _build(dc_type, data):
    if not is_dataclass(dc_type) or not isinstance(data, dict):
        return data
    kwargs = {}
    for f in fields(dc_type):
        if f.name not in data:
            continue
        val = data[f.name]
        if f.name == "markets":
            kwargs[f.name] = [
                m if isinstance(m, MarketConfig) else _build(MarketConfig, m)
                for m in val
            ]
        elif is_dataclass(f.default_factory):
            kwargs[f.name] = _build(f.default_factory, val)
        else:
            kwargs[f.name] = val
    return dc_type(**kwargs)


@dataclass
class Config:
    """
    Complete bot configuration.

    Environment variables (override config file):
    - HL_NETWORK: "testnet" or "mainnet"
    - HL_ADDRESS: Main wallet address
    - HL_SECRET_KEY: API wallet private key
    - CMC_PRO_API_KEY: CoinMarketCap API key
    """

    markets: List[MarketConfig] = field(default_factory=default_markets)
    signal: SignalConfig = field(default_factory=SignalConfig)
    sizing: SizingConfig = field(default_factory=SizingConfig)
    pacing: PacingConfig = field(default_factory=PacingConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    hyperliquid: HyperliquidConfig = field(default_factory=HyperliquidConfig)

    def __post_init__(self):
        """Load environment variable overrides."""
        if os.getenv("HL_NETWORK"):
            self.hyperliquid.network = os.getenv("HL_NETWORK", "testnet")

        if os.getenv("HL_ADDRESS"):
            self.hyperliquid.address = os.getenv("HL_ADDRESS", "")

        if os.getenv("HL_SECRET_KEY"):
            self.hyperliquid.secret_key = os.getenv("HL_SECRET_KEY", "")

        if os.getenv("CMC_PRO_API_KEY"):
            self.history.api_key = os.getenv("CMC_PRO_API_KEY", "")

        # Re-initialize to set API URL
        self.hyperliquid.__post_init__()

    @classmethod
    def from_yaml(cls, path: str) -> "Config":
        """Load config from YAML file."""
        import yaml

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Load config from dictionary."""
        return _build(cls, data)

    def validate(self) -> list[str]:
        """
        Validate configuration parameters.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.hyperliquid.address:
            errors.append("HL_ADDRESS environment variable required")

        if not self.hyperliquid.secret_key and not self.hyperliquid.dry_run:
            errors.append("HL_SECRET_KEY environment variable required")

        if not self.history.api_key:
            errors.append("CMC_PRO_API_KEY environment variable required")

        if not self.markets:
            errors.append("markets must not be empty")

        seen = set()
        for m in self.markets:
            if m.market_index in seen:
                errors.append(f"duplicate market_index {m.market_index}")
            seen.add(m.market_index)
            if not isinstance(m.target_notional, int) or isinstance(m.target_notional, bool):
                errors.append(f"{m.display_name}: target_notional must be a whole number of quote units")
            elif m.target_notional <= 0:
                errors.append(f"{m.display_name}: target_notional must be > 0")

        if self.signal.recent_window < 1 or self.signal.recent_window > self.signal.window:
            errors.append("signal.recent_window must be in [1, signal.window]")

        protocol = self.sizing.protocol
        if protocol.price_precision != protocol.quote_precision:
            errors.append("sizing.protocol.price_precision must equal quote_precision")

        if self.pacing.market_delay_sec < 0:
            errors.append("pacing.market_delay_sec must be >= 0")

        return errors
