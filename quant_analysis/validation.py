"""
Input normalisation and validation.

The engine accepts bars in three shapes:

    - a pandas DataFrame with open/high/low/close/volume columns (any case)
      and either a DatetimeIndex or a ``time`` column in unix seconds
    - a sequence of ``OHLCVBar`` objects or mappings with lowercase keys
    - parallel arrays via ``bars_from_arrays``

All of them are normalised to one DataFrame indexed by timestamp with the
columns Open, High, Low, Close, Volume. Malformed input fails fast with an
``InputValidationError`` naming the offending field; short series are not
malformed.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, is_dataclass
from typing import Any, Iterable, List, Mapping, Sequence, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: List[str] = ["open", "high", "low", "close", "volume"]
COLUMN_NAMES = {name: name.capitalize() for name in REQUIRED_FIELDS}


class InputValidationError(ValueError):
    """Raised when a bar series is malformed."""

    def __init__(self, field_name: str, message: str):
        self.field_name = field_name
        super().__init__(f"{field_name}: {message}")


@dataclass(frozen=True)
class OHLCVBar:
    """One time-bucketed summary of trading activity."""
    time: int       # unix seconds
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


BarsInput = Union[pd.DataFrame, Sequence[OHLCVBar], Sequence[Mapping[str, Any]]]


def _frame_from_records(bars: Iterable[Any]) -> pd.DataFrame:
    records = []
    for position, bar in enumerate(bars):
        if is_dataclass(bar) and not isinstance(bar, type):
            bar = asdict(bar)
        if not isinstance(bar, Mapping):
            raise InputValidationError(
                f"bars[{position}]", f"expected a mapping or OHLCVBar, got {type(bar).__name__}"
            )
        lowered = {str(key).lower(): value for key, value in bar.items()}
        for name in ["time"] + REQUIRED_FIELDS:
            if name not in lowered:
                raise InputValidationError(name, f"missing from bar {position}")
        records.append({name: lowered[name] for name in ["time"] + REQUIRED_FIELDS})
    return pd.DataFrame.from_records(records, columns=["time"] + REQUIRED_FIELDS)


def _coerce_numeric(df: pd.DataFrame, column: str) -> pd.Series:
    values = pd.to_numeric(df[column], errors="coerce").astype(float)
    bad = ~np.isfinite(values.to_numpy())
    if bad.any():
        positions = np.flatnonzero(bad)[:5].tolist()
        raise InputValidationError(
            column, f"non-numeric or non-finite values at positions {positions}"
        )
    return values


def _time_index(raw: pd.Series) -> pd.DatetimeIndex:
    """Epoch seconds or date strings; anything unparseable is rejected."""
    if pd.api.types.is_datetime64_any_dtype(raw):
        return pd.DatetimeIndex(raw)
    seconds = pd.to_numeric(raw, errors="coerce")
    if seconds.notna().all():
        return pd.DatetimeIndex(pd.to_datetime(seconds, unit="s"))
    parsed = pd.to_datetime(raw, errors="coerce")
    if parsed.isna().any():
        positions = np.flatnonzero(parsed.isna().to_numpy())[:5].tolist()
        raise InputValidationError("time", f"unparseable timestamps at positions {positions}")
    return pd.DatetimeIndex(parsed)


def normalize_bars(bars: BarsInput) -> pd.DataFrame:
    """
    Validate bars and return them as a Close/High/... DataFrame.

    Parameters
    ----------
    bars : DataFrame or sequence of bars
        OHLCV data ordered oldest to newest

    Returns
    -------
    pd.DataFrame
        Columns Open, High, Low, Close, Volume (float), indexed by time

    Raises
    ------
    InputValidationError
        Empty series, missing field, non-numeric or non-finite value, or
        time not strictly increasing
    """
    if isinstance(bars, pd.DataFrame):
        df = bars.rename(columns=lambda c: str(c).lower())
    else:
        df = _frame_from_records(bars)

    if len(df) == 0:
        raise InputValidationError("bars", "series is empty")

    missing = [name for name in REQUIRED_FIELDS if name not in df.columns]
    if missing:
        raise InputValidationError(missing[0], f"missing required column(s) {missing}")

    if "time" in df.columns:
        index = _time_index(df["time"])
    elif "date" in df.columns:
        index = pd.DatetimeIndex(pd.to_datetime(df["date"]))
    else:
        index = df.index

    if len(index) > 1 and not (index.is_monotonic_increasing and index.is_unique):
        raise InputValidationError("time", "timestamps must be strictly increasing")

    out = pd.DataFrame(
        {COLUMN_NAMES[name]: _coerce_numeric(df, name).to_numpy() for name in REQUIRED_FIELDS},
        index=index,
    )

    inverted = int((out["High"] < out["Low"]).sum())
    if inverted:
        logger.warning(f"{inverted} bars have high below low")

    return out


def bars_from_arrays(
    time: Sequence[Any],
    open: Sequence[float],
    high: Sequence[float],
    low: Sequence[float],
    close: Sequence[float],
    volume: Sequence[float]
) -> pd.DataFrame:
    """
    Build and validate a bar DataFrame from parallel arrays.

    Raises
    ------
    InputValidationError
        When any array's length differs from ``close``
    """
    arrays = {"time": time, "open": open, "high": high, "low": low, "close": close, "volume": volume}
    expected = len(close)
    for name, values in arrays.items():
        if len(values) != expected:
            raise InputValidationError(
                name, f"length {len(values)} does not match close length {expected}"
            )
    return normalize_bars(pd.DataFrame({name: list(values) for name, values in arrays.items()}))
