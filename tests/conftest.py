"""
Shared fixtures for the quant_analysis test suite.
"""

import numpy as np
import pandas as pd
import pytest

from quant_analysis.market_data import MarketDataClient


def make_bars(closes, opens=None, spread=1.0, start="2024-01-01"):
    """Build an OHLCV DataFrame with highs/lows ``spread`` away from the close."""
    closes = np.asarray(closes, dtype=float)
    if opens is None:
        opens = closes - 0.5
    opens = np.asarray(opens, dtype=float)
    return pd.DataFrame(
        {
            "Open": opens,
            "High": np.maximum(opens, closes) + spread,
            "Low": np.minimum(opens, closes) - spread,
            "Close": closes,
            "Volume": np.full(closes.size, 1_000.0),
        },
        index=pd.date_range(start, periods=closes.size, freq="D"),
    )


@pytest.fixture
def ramp_bars():
    """60 bars rising by exactly 1 per bar: close = 100 + i, open = close - 0.5."""
    closes = 100.0 + np.arange(60)
    df = make_bars(closes)
    # Highs/lows sit exactly 1 from the close
    df["High"] = closes + 1.0
    df["Low"] = closes - 1.0
    return df


@pytest.fixture
def zigzag_closes():
    """Triangle wave: troughs of 100 every 10 bars, peaks of 110 in between."""
    phase = np.arange(60) % 10
    return 100.0 + 2.0 * np.where(phase <= 5, phase, 10 - phase)


@pytest.fixture
def zigzag_bars(zigzag_closes):
    """Zig-zag closes; each bar opens half a point against its move."""
    direction = np.sign(np.diff(zigzag_closes, prepend=zigzag_closes[0] - 2.0))
    df = make_bars(zigzag_closes, opens=zigzag_closes - 0.5 * direction)
    df["High"] = zigzag_closes + 1.0
    df["Low"] = zigzag_closes - 1.0
    return df


@pytest.fixture
def random_walk_bars():
    rng = np.random.default_rng(11)
    closes = 50.0 * np.exp(np.cumsum(rng.normal(0.0005, 0.02, 250)))
    opens = np.concatenate([[closes[0]], closes[:-1]])
    return make_bars(closes, opens=opens, spread=0.4)


class FakeTicker:
    def __init__(self, module, symbol):
        self.module = module
        self.symbol = symbol

    def history(self, **kwargs):
        self.module.calls.append((self.symbol, kwargs))
        response = self.module.responses.pop(0) if self.module.responses else self.module.default
        if isinstance(response, Exception):
            raise response
        return response.copy()


class FakeYFinance:
    """Stands in for the yfinance module; replays queued responses."""

    def __init__(self, default=None, responses=None):
        self.default = default if default is not None else pd.DataFrame()
        self.responses = list(responses or [])
        self.calls = []

    def Ticker(self, symbol):
        return FakeTicker(self, symbol)


def build_yahoo_frame(n=30, tz="America/New_York"):
    """History frame shaped like ``yfinance.Ticker.history`` output."""
    closes = 100.0 + np.arange(n, dtype=float)
    index = pd.date_range("2024-01-01", periods=n, freq="D", tz=tz)
    return pd.DataFrame(
        {
            "Open": closes - 0.5,
            "High": closes + 1.0,
            "Low": closes - 1.0,
            "Close": closes,
            "Volume": np.full(n, 5_000.0),
            "Dividends": 0.0,
            "Stock Splits": 0.0,
        },
        index=index,
    )


@pytest.fixture
def yahoo_frame():
    return build_yahoo_frame


@pytest.fixture
def fake_client():
    """Factory for a MarketDataClient wired to a FakeYFinance, without backoff sleeps."""

    def factory(default=None, responses=None, **kwargs):
        client = MarketDataClient(backoff=0.0, **kwargs)
        client._yf = FakeYFinance(default=default, responses=responses)
        return client

    return factory
