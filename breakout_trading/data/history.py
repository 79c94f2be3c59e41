"""
Price History Provider

Pulls daily closing prices for the trend signal.
CoinMarketCap historical quotes endpoint, one request per market per pass.
"""

from abc import ABC, abstractmethod
import logging
from typing import Any, Dict, List, Optional

import pandas as pd
import requests

from breakout_trading.core.config import HistoryConfig
from breakout_trading.core.errors import ProviderError

logger = logging.getLogger(__name__)


def to_price_series(points: List[tuple]) -> pd.Series:
    """
    Build a chronological close series from (timestamp, price) pairs.

    Sorts ascending and keeps the last observation for duplicate timestamps.
    """
    if not points:
        return pd.Series([], index=pd.DatetimeIndex([], tz="UTC"), dtype=float, name="close")
    index = pd.to_datetime([p[0] for p in points], utc=True)
    series = pd.Series([float(p[1]) for p in points], index=index, name="close")
    series = series.sort_index(kind="mergesort")
    return series[~series.index.duplicated(keep="last")]


class PriceHistoryProvider(ABC):
    """Source of daily closes keyed by an external price id."""

    @abstractmethod
    def get_daily_history(self, external_price_id: str, window_length: int) -> pd.Series:
        """
        Fetch the most recent daily closes.

        Args:
            external_price_id: Provider-specific asset id
            window_length: Number of daily bars requested

        Returns:
            Close prices indexed by UTC timestamp, oldest to newest.
            May be shorter than requested.
        """
        raise NotImplementedError


class CoinMarketCapHistoryProvider(PriceHistoryProvider):
    """
    Fetches daily quotes from the CoinMarketCap v2 historical quotes API.

    Raises ProviderError on transport failures, HTTP errors, API error
    codes and payloads without a quotes list.
    """

    PATH = "/v2/cryptocurrency/quotes/historical"

    def __init__(self, config: HistoryConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def get_daily_history(self, external_price_id: str, window_length: int) -> pd.Series:
        payload = self._request(external_price_id, window_length)
        data = payload.get("data")
        # Keyed by id when the API is asked for several ids at once
        if isinstance(data, dict) and "quotes" not in data and external_price_id in data:
            data = data[external_price_id]
        if not isinstance(data, dict) or not isinstance(data.get("quotes"), list):
            raise ProviderError(f"Malformed history payload for id {external_price_id}")

        points = []
        for q in data["quotes"]:
            try:
                quote = q["quote"][self.config.convert]
                points.append((q.get("timestamp") or quote["timestamp"], float(quote["price"])))
            except (KeyError, TypeError, ValueError) as e:
                raise ProviderError(f"Malformed quote for id {external_price_id}: {e}") from e

        series = to_price_series(points)
        logger.debug("Fetched %d daily closes for %s (%s)", len(series), data.get("name", "?"), external_price_id)
        return series

    def _request(self, external_price_id: str, window_length: int) -> Dict[str, Any]:
        url = self.config.base_url.rstrip("/") + self.PATH
        params = {
            "id": external_price_id,
            "count": window_length,
            "interval": "1d",
            "convert": self.config.convert,
        }
        headers = {
            "X-CMC_PRO_API_KEY": self.config.api_key,
            "Accept": "application/json",
        }
        try:
            resp = self.session.get(url, params=params, headers=headers, timeout=self.config.timeout_sec)
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as e:
            raise ProviderError(f"History request failed for id {external_price_id}: {e}") from e
        except ValueError as e:
            raise ProviderError(f"Invalid JSON for id {external_price_id}: {e}") from e

        if not isinstance(payload, dict):
            raise ProviderError(f"Unexpected history response for id {external_price_id}")
        status = payload.get("status") or {}
        if status.get("error_code"):
            raise ProviderError(
                f"CoinMarketCap error {status.get('error_code')}: {status.get('error_message')}"
            )
        return payload
