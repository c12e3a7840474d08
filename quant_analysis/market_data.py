"""
Market Data Loader

Fetches OHLCV bars for one symbol from Yahoo Finance and hands them to the
engine in its normalized DataFrame shape.

    - Lazy yfinance import to avoid import overhead when bars come from files
    - Exponential-backoff retries on empty or failed downloads
    - Bars missing an open or close are dropped
    - Results cached per (symbol, range) for the lifetime of the client, so
      one user interaction fetches each series at most once
"""

from __future__ import annotations

import logging
import time
from typing import Dict, Optional, Tuple

import pandas as pd

from quant_analysis.config import DEFAULT_RANGE, RANGE_INTERVALS, get_interval
from quant_analysis.validation import normalize_bars

logger = logging.getLogger(__name__)


class MarketDataError(RuntimeError):
    """Raised when no usable bars could be fetched."""


class MarketDataClient:
    """
    Yahoo Finance bar source with retry logic and a per-session cache.

    Usage
    -----
    >>> client = MarketDataClient()
    >>> bars = client.fetch_bars("AAPL", "1y")
    """

    def __init__(self, max_retries: int = 3, timeout: int = 30, backoff: float = 1.0):
        """
        Initialize the client.

        Args:
            max_retries: Maximum attempts per fetch
            timeout: Request timeout in seconds
            backoff: Base wait in seconds, doubled after every failed attempt
        """
        self._yf = None
        self.max_retries = max_retries
        self.timeout = timeout
        self.backoff = backoff
        self._cache: Dict[Tuple[str, str], pd.DataFrame] = {}

    def _get_yf(self):
        """Lazy load yfinance to avoid import overhead."""
        if self._yf is None:
            import yfinance as yf
            self._yf = yf
        return self._yf

    def fetch_bars(self, symbol: str, range_name: str = DEFAULT_RANGE) -> pd.DataFrame:
        """
        Fetch bars for ``symbol`` over a chart range.

        Args:
            symbol: Ticker symbol
            range_name: One of RANGE_INTERVALS ('1d' ... 'max'); unknown ranges
                fall back to the default range

        Returns:
            Validated DataFrame with Open, High, Low, Close, Volume columns

        Raises:
            MarketDataError: When every attempt returns no usable data
        """
        if range_name not in RANGE_INTERVALS:
            logger.warning(f"Unknown range '{range_name}', using {DEFAULT_RANGE}")
            range_name = DEFAULT_RANGE

        key = (symbol.upper(), range_name)
        if key in self._cache:
            logger.debug(f"Cache hit for {key}")
            return self._cache[key]

        interval = get_interval(range_name)
        yf = self._get_yf()
        logger.info(f"Fetching {symbol} bars: range={range_name}, interval={interval}")

        raw = None
        for attempt in range(self.max_retries):
            try:
                raw = yf.Ticker(symbol).history(
                    period=range_name,
                    interval=interval,
                    auto_adjust=False,
                    timeout=self.timeout,
                )
                if raw is not None and len(raw) > 0:
                    break
                if attempt < self.max_retries - 1:
                    wait_time = self.backoff * 2 ** attempt
                    logger.warning(f"Empty data, retrying in {wait_time}s...")
                    time.sleep(wait_time)
            except Exception as e:
                if attempt < self.max_retries - 1:
                    wait_time = self.backoff * 2 ** attempt
                    logger.warning(f"Fetch failed: {e}, retrying in {wait_time}s...")
                    time.sleep(wait_time)
                else:
                    raise MarketDataError(f"Could not fetch {symbol}: {e}") from e

        df = self._normalize_dataframe(raw)
        if df is None or len(df) == 0:
            raise MarketDataError(f"No data returned for {symbol} ({range_name})")

        bars = normalize_bars(df)
        self._cache[key] = bars
        logger.info(f"Fetched {len(bars)} bars for {symbol}")
        return bars

    def clear_cache(self) -> None:
        self._cache.clear()

    @staticmethod
    def _normalize_dataframe(df: Optional[pd.DataFrame]) -> Optional[pd.DataFrame]:
        """Flatten columns, drop timezone, and drop bars without open/close."""
        if df is None or len(df) == 0:
            return None

        if isinstance(df.columns, pd.MultiIndex):
            df.columns = df.columns.get_level_values(0)

        if hasattr(df.index, "tz") and df.index.tz is not None:
            df.index = df.index.tz_localize(None)

        if not isinstance(df.index, pd.DatetimeIndex):
            df.index = pd.to_datetime(df.index)

        required = ["Open", "High", "Low", "Close", "Volume"]
        missing = [col for col in required if col not in df.columns]
        if missing:
            logger.warning(f"Missing required columns: {missing}")
            return None

        df = df[required].dropna(subset=["Open", "Close"])
        df = df.assign(Volume=df["Volume"].fillna(0.0))
        return df[~df.index.duplicated(keep="last")].sort_index()
