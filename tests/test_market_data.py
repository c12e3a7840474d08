import numpy as np
import pandas as pd
import pytest

from quant_analysis.market_data import MarketDataError


class TestFetchBars:
    def test_normalised_frame(self, fake_client, yahoo_frame):
        bars = fake_client(default=yahoo_frame()).fetch_bars("aapl", "3mo")
        assert list(bars.columns) == ["Open", "High", "Low", "Close", "Volume"]
        assert bars.index.tz is None
        assert len(bars) == 30

    def test_range_selects_interval(self, fake_client, yahoo_frame):
        client = fake_client(default=yahoo_frame())
        client.fetch_bars("AAPL", "1y")
        _, kwargs = client._yf.calls[0]
        assert kwargs["period"] == "1y"
        assert kwargs["interval"] == "1wk"

    def test_unknown_range_uses_default(self, fake_client, yahoo_frame):
        client = fake_client(default=yahoo_frame())
        client.fetch_bars("AAPL", "2w")
        _, kwargs = client._yf.calls[0]
        assert kwargs["period"] == "1y"
        assert kwargs["interval"] == "1wk"

    def test_default_range_is_one_year(self, fake_client, yahoo_frame):
        client = fake_client(default=yahoo_frame())
        client.fetch_bars("AAPL")
        _, kwargs = client._yf.calls[0]
        assert kwargs["period"] == "1y"

    def test_bars_missing_open_or_close_are_dropped(self, fake_client, yahoo_frame):
        frame = yahoo_frame()
        frame.iloc[3, frame.columns.get_loc("Close")] = np.nan
        frame.iloc[7, frame.columns.get_loc("Open")] = np.nan
        frame.iloc[9, frame.columns.get_loc("Volume")] = np.nan
        bars = fake_client(default=frame).fetch_bars("AAPL")
        assert len(bars) == 28
        assert bars["Volume"].notna().all()

    def test_cached_per_symbol_and_range(self, fake_client, yahoo_frame):
        client = fake_client(default=yahoo_frame())
        client.fetch_bars("AAPL", "1y")
        client.fetch_bars("aapl", "1y")
        assert len(client._yf.calls) == 1
        client.fetch_bars("AAPL", "6mo")
        assert len(client._yf.calls) == 2
        client.clear_cache()
        client.fetch_bars("AAPL", "1y")
        assert len(client._yf.calls) == 3


class TestRetries:
    def test_empty_then_data(self, fake_client, yahoo_frame):
        client = fake_client(default=yahoo_frame(), responses=[pd.DataFrame()])
        bars = client.fetch_bars("MSFT")
        assert len(bars) == 30
        assert len(client._yf.calls) == 2

    def test_transient_error_then_data(self, fake_client, yahoo_frame):
        client = fake_client(default=yahoo_frame(), responses=[ConnectionError("reset")])
        assert len(client.fetch_bars("MSFT")) == 30

    def test_no_data_after_retries(self, fake_client):
        client = fake_client(max_retries=3)
        with pytest.raises(MarketDataError):
            client.fetch_bars("NOPE")
        assert len(client._yf.calls) == 3

    def test_persistent_error(self, fake_client):
        client = fake_client(responses=[ConnectionError("down")] * 2, max_retries=2)
        with pytest.raises(MarketDataError, match="down"):
            client.fetch_bars("NOPE")

    def test_missing_columns(self, fake_client, yahoo_frame):
        client = fake_client(default=yahoo_frame().drop(columns=["Volume"]))
        with pytest.raises(MarketDataError):
            client.fetch_bars("AAPL")
