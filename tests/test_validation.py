import numpy as np
import pandas as pd
import pytest

from quant_analysis.validation import (
    InputValidationError,
    OHLCVBar,
    bars_from_arrays,
    normalize_bars,
)


def bar_dicts(n=5):
    return [
        {"time": 1_700_000_000 + 86_400 * i, "open": 10.0 + i, "high": 11.0 + i,
         "low": 9.0 + i, "close": 10.5 + i, "volume": 100.0}
        for i in range(n)
    ]


class TestNormalizeBars:
    def test_mappings(self):
        df = normalize_bars(bar_dicts())
        assert list(df.columns) == ["Open", "High", "Low", "Close", "Volume"]
        assert len(df) == 5
        assert isinstance(df.index, pd.DatetimeIndex)
        assert df["Close"].iloc[-1] == 14.5

    def test_dataclass_bars(self):
        bars = [OHLCVBar(time=1_700_000_000 + 60 * i, open=1, high=2, low=0.5, close=1.5)
                for i in range(3)]
        df = normalize_bars(bars)
        assert df["Volume"].tolist() == [0.0, 0.0, 0.0]

    def test_dataframe_with_datetime_index(self, ramp_bars):
        df = normalize_bars(ramp_bars)
        assert df.index.equals(ramp_bars.index)
        assert df["Close"].tolist() == ramp_bars["Close"].tolist()

    def test_lowercase_columns_and_date_column(self):
        raw = pd.DataFrame({
            "date": ["2024-01-01", "2024-01-02"],
            "open": [1, 2], "high": [2, 3], "low": [0.5, 1.5], "close": [1.5, 2.5], "volume": [1, 1],
        })
        df = normalize_bars(raw)
        assert df.index[0] == pd.Timestamp("2024-01-01")

    def test_empty_series(self):
        with pytest.raises(InputValidationError) as excinfo:
            normalize_bars([])
        assert excinfo.value.field_name == "bars"

    def test_empty_dataframe(self):
        with pytest.raises(InputValidationError):
            normalize_bars(pd.DataFrame())

    def test_missing_field(self):
        bars = bar_dicts()
        del bars[2]["close"]
        with pytest.raises(InputValidationError) as excinfo:
            normalize_bars(bars)
        assert excinfo.value.field_name == "close"

    def test_missing_column(self, ramp_bars):
        with pytest.raises(InputValidationError) as excinfo:
            normalize_bars(ramp_bars.drop(columns=["Volume"]))
        assert excinfo.value.field_name == "volume"

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), "abc", None])
    def test_non_finite_values(self, bad):
        bars = bar_dicts()
        bars[1]["high"] = bad
        with pytest.raises(InputValidationError) as excinfo:
            normalize_bars(bars)
        assert excinfo.value.field_name == "high"

    def test_time_must_increase(self):
        bars = bar_dicts()
        bars[3]["time"] = bars[1]["time"]
        with pytest.raises(InputValidationError) as excinfo:
            normalize_bars(bars)
        assert excinfo.value.field_name == "time"

    def test_time_column_with_date_strings(self):
        bars = bar_dicts(3)
        for i, bar in enumerate(bars):
            bar["time"] = f"2024-03-0{i + 1}"
        df = normalize_bars(bars)
        assert df.index[0] == pd.Timestamp("2024-03-01")
        assert df.index[-1] == pd.Timestamp("2024-03-03")

    def test_unparseable_time(self):
        bars = bar_dicts(3)
        bars[1]["time"] = "yesterday-ish"
        with pytest.raises(InputValidationError) as excinfo:
            normalize_bars(bars)
        assert excinfo.value.field_name == "time"

    def test_not_a_mapping(self):
        with pytest.raises(InputValidationError):
            normalize_bars([(1, 2, 3, 4, 5, 6)])

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            normalize_bars([])

    def test_inverted_bar_is_only_logged(self, caplog):
        bars = bar_dicts(2)
        bars[0]["high"], bars[0]["low"] = 9.0, 11.0
        df = normalize_bars(bars)
        assert len(df) == 2
        assert "high below low" in caplog.text


class TestBarsFromArrays:
    def test_parallel_arrays(self):
        n = 4
        df = bars_from_arrays(
            time=np.arange(n) * 60 + 1_700_000_000,
            open=np.ones(n), high=np.ones(n) * 2, low=np.ones(n) * 0.5,
            close=np.ones(n) * 1.5, volume=np.zeros(n),
        )
        assert len(df) == n

    def test_length_mismatch(self):
        with pytest.raises(InputValidationError) as excinfo:
            bars_from_arrays([1, 2, 3], [1, 1, 1], [2, 2], [0, 0, 0], [1, 1, 1], [0, 0, 0])
        assert excinfo.value.field_name == "high"
