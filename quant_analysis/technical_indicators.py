"""
Technical Indicator Library

Point-in-time technical indicators over price arrays ordered oldest to newest,
organized into the usual families:

    TREND
        - SMA / EMA: simple and exponential moving averages
        - MACD: EMA(12) - EMA(26) with a 9-period signal line

    MOMENTUM OSCILLATORS
        - RSI: simple-average Relative Strength Index [0-100]
        - Stochastic Oscillator: %K with a 3-period %D
        - ROC: rate of change in percent

    VOLATILITY
        - ATR: Average True Range
        - Bollinger Bands: SMA +/- k population standard deviations

    LEVELS
        - Classic floor-trader pivot points

INSUFFICIENT DATA POLICY
    No indicator raises on short input. Each degrades to a documented neutral
    value: averages fall back to the latest price, oscillators to 50, deltas
    and ranges to 0.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from quant_analysis.config import (
    ConfidenceLevel,
    IndicatorParameters,
    OscillatorSignal,
    TrendDirection,
    VolatilityLevel,
)
from quant_analysis.statistical_primitives import mean, standard_deviation

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray]


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class MACDResult:
    """Latest MACD line, signal line and histogram."""
    macd: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class StochasticResult:
    """Latest %K and its 3-period average %D."""
    k: float
    d: float


@dataclass(frozen=True)
class BollingerBands:
    """Volatility bands around the simple moving average."""
    upper: float
    middle: float
    lower: float

    @property
    def width(self) -> float:
        return self.upper - self.lower

    def percent_b(self, price: float) -> float:
        """Position of price inside the bands (0 = lower, 1 = upper); 0.5 for flat bands."""
        if self.width == 0:
            return 0.5
        return (price - self.lower) / self.width


@dataclass(frozen=True)
class PivotPoints:
    """Classic pivot with two resistance and two support levels."""
    pivot: float
    r1: float
    r2: float
    s1: float
    s2: float


def _as_array(values: ArrayLike) -> np.ndarray:
    return np.asarray(values, dtype=float)


def _latest(arr: np.ndarray) -> float:
    return float(arr[-1]) if arr.size else 0.0


# =============================================================================
# MOVING AVERAGES
# =============================================================================

def calculate_sma(prices: ArrayLike, period: int) -> float:
    """
    Simple moving average of the last ``period`` prices.

    With fewer than ``period`` prices the latest price is returned as-is,
    not a partial average.
    """
    arr = _as_array(prices)
    if arr.size < period:
        return _latest(arr)
    return mean(arr[-period:])


def ema_series(prices: ArrayLike, period: int) -> np.ndarray:
    """
    Exponential moving average of every prefix of ``prices``.

    Element ``i`` equals ``calculate_ema(prices[:i + 1], period)`` once the
    seed window is complete; earlier elements are NaN.

    Parameters
    ----------
    prices : array-like
        Price series, oldest first
    period : int
        EMA period; the first value is the SMA of the first ``period`` prices

    Returns
    -------
    np.ndarray
        EMA values, same length as ``prices``
    """
    arr = _as_array(prices)
    out = np.full(arr.size, np.nan)
    if arr.size < period:
        return out

    multiplier = 2.0 / (period + 1)
    ema = mean(arr[:period])
    out[period - 1] = ema
    for i in range(period, arr.size):
        ema = (arr[i] - ema) * multiplier + ema
        out[i] = ema
    return out


def calculate_ema(prices: ArrayLike, period: int) -> float:
    """
    Exponential moving average seeded with the SMA of the first ``period`` prices.

    Falls back to the latest price when fewer than ``period`` prices exist.
    """
    arr = _as_array(prices)
    if arr.size < period:
        return _latest(arr)
    return float(ema_series(arr, period)[-1])


def calculate_macd(
    prices: ArrayLike,
    fast: int = 12,
    slow: int = 26,
    signal: int = 9
) -> MACDResult:
    """
    Calculate MACD line, signal line and histogram.

    MACD = EMA(fast) - EMA(slow)
    Signal = EMA(signal) of the MACD-line series
    Histogram = MACD - Signal

    The MACD-line series covers the prefixes of length ``slow + 1`` through
    ``len(prices)``. An empty series yields a signal of 0.
    """
    arr = _as_array(prices)
    macd_line = calculate_ema(arr, fast) - calculate_ema(arr, slow)

    if arr.size > slow:
        fast_ema = ema_series(arr, fast)
        slow_ema = ema_series(arr, slow)
        macd_values = (fast_ema - slow_ema)[slow:]
    else:
        macd_values = np.empty(0)

    signal_line = calculate_ema(macd_values, signal)
    return MACDResult(
        macd=float(macd_line),
        signal=float(signal_line),
        histogram=float(macd_line - signal_line),
    )


# =============================================================================
# MOMENTUM OSCILLATORS
# =============================================================================

def calculate_rsi(prices: ArrayLike, period: int = 14) -> float:
    """
    Relative Strength Index over the trailing ``period`` price changes.

    RSI = 100 - (100 / (1 + RS)), RS = average gain / average loss

    Uses simple averages, not Wilder smoothing. Returns 100 when there are no
    losses in the window and 50 when fewer than ``period + 1`` prices exist.
    """
    arr = _as_array(prices)
    if arr.size < period + 1:
        return 50.0

    changes = np.diff(arr)[-period:]
    avg_gain = mean(np.where(changes > 0, changes, 0.0))
    avg_loss = mean(np.where(changes < 0, -changes, 0.0))

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return float(100.0 - 100.0 / (1.0 + rs))


def _stochastic_k(close: float, highs: np.ndarray, lows: np.ndarray) -> float:
    highest_high = highs.max()
    lowest_low = lows.min()
    if highest_high == lowest_low:
        return 50.0
    return float((close - lowest_low) / (highest_high - lowest_low) * 100.0)


def calculate_stochastic(
    closes: ArrayLike,
    highs: ArrayLike,
    lows: ArrayLike,
    period: int = 14,
    d_period: int = 3
) -> StochasticResult:
    """
    Calculate the Stochastic Oscillator.

    %K = 100 * (Close - Lowest Low) / (Highest High - Lowest Low)
    %D = mean of the last ``d_period`` %K values, the window slid one bar at a time

    Parameters
    ----------
    closes, highs, lows : array-like
        Price data, oldest first
    period : int
        Lookback for the highest high / lowest low
    d_period : int
        Number of %K values averaged into %D

    Returns
    -------
    StochasticResult
        (50, 50) with fewer than ``period`` bars; %K is 50 for a flat range
    """
    c = _as_array(closes)
    h = _as_array(highs)
    l = _as_array(lows)
    if c.size < period:
        return StochasticResult(k=50.0, d=50.0)

    k = _stochastic_k(c[-1], h[-period:], l[-period:])

    first_end = max(period, c.size - d_period + 1)
    k_values = [
        _stochastic_k(c[end - 1], h[end - period:end], l[end - period:end])
        for end in range(first_end, c.size + 1)
    ]
    d = mean(k_values) if len(k_values) >= d_period else k

    return StochasticResult(k=k, d=float(d))


def calculate_roc(prices: ArrayLike, period: int) -> float:
    """
    Rate of Change in percent.

    ROC = 100 * (Close - Close[n]) / Close[n]

    Returns 0 without ``period + 1`` prices or when the past price is 0.
    """
    arr = _as_array(prices)
    if arr.size <= period:
        return 0.0
    current = arr[-1]
    past = arr[-1 - period]
    if past == 0:
        return 0.0
    return float((current - past) / past * 100.0)


# =============================================================================
# VOLATILITY
# =============================================================================

def true_ranges(highs: ArrayLike, lows: ArrayLike, closes: ArrayLike) -> np.ndarray:
    """True Range for every bar after the first."""
    h = _as_array(highs)
    l = _as_array(lows)
    c = _as_array(closes)
    if c.size < 2:
        return np.empty(0)
    prev_close = c[:-1]
    return np.maximum.reduce([
        h[1:] - l[1:],
        np.abs(h[1:] - prev_close),
        np.abs(l[1:] - prev_close),
    ])


def calculate_atr(
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    period: int = 14
) -> float:
    """
    Average True Range: simple mean of the trailing ``period`` True Ranges.

    TR = max(High - Low, |High - PrevClose|, |Low - PrevClose|)

    Returns 0 with fewer than ``period + 1`` bars.
    """
    if len(closes) < period + 1:
        return 0.0
    return mean(true_ranges(highs, lows, closes)[-period:])


def calculate_bollinger_bands(
    prices: ArrayLike,
    period: int = 20,
    multiplier: float = 2.0
) -> BollingerBands:
    """
    Calculate Bollinger Bands.

    Middle = SMA(period), Upper/Lower = Middle +/- multiplier * population
    std of the trailing ``period`` prices (or of all prices when fewer exist).
    """
    arr = _as_array(prices)
    middle = calculate_sma(arr, period)
    std = standard_deviation(arr[-period:])
    return BollingerBands(
        upper=middle + multiplier * std,
        middle=middle,
        lower=middle - multiplier * std,
    )


# =============================================================================
# LEVELS
# =============================================================================

def calculate_pivot_points(high: float, low: float, close: float) -> PivotPoints:
    """
    Classic pivot points.

    P = (H + L + C) / 3
    R1 = 2P - L,  R2 = P + (H - L)
    S1 = 2P - H,  S2 = P - (H - L)
    """
    pivot = (high + low + close) / 3.0
    return PivotPoints(
        pivot=pivot,
        r1=2.0 * pivot - low,
        r2=pivot + (high - low),
        s1=2.0 * pivot - high,
        s2=pivot - (high - low),
    )


# =============================================================================
# SIGNAL CLASSIFICATION
# =============================================================================

def classify_rsi(value: float, params: IndicatorParameters) -> OscillatorSignal:
    if value > params.rsi_overbought:
        return OscillatorSignal.OVERBOUGHT
    if value < params.rsi_oversold:
        return OscillatorSignal.OVERSOLD
    return OscillatorSignal.NEUTRAL


def classify_stochastic(k: float, params: IndicatorParameters) -> OscillatorSignal:
    if k > params.stochastic_overbought:
        return OscillatorSignal.OVERBOUGHT
    if k < params.stochastic_oversold:
        return OscillatorSignal.OVERSOLD
    return OscillatorSignal.NEUTRAL


def classify_atr(percent: float, params: IndicatorParameters) -> VolatilityLevel:
    """Bucket ATR expressed as a percent of price."""
    if percent > params.atr_high_pct:
        return VolatilityLevel.HIGH
    if percent > params.atr_medium_pct:
        return VolatilityLevel.MEDIUM
    return VolatilityLevel.LOW


def classify_volatility(annualized_pct: float, params: IndicatorParameters) -> VolatilityLevel:
    if annualized_pct > params.volatility_high_pct:
        return VolatilityLevel.HIGH
    if annualized_pct > params.volatility_medium_pct:
        return VolatilityLevel.MEDIUM
    return VolatilityLevel.LOW


def classify_momentum(roc_short: float, roc_long: float, params: IndicatorParameters) -> TrendDirection:
    """Bullish when the short ROC clears the threshold and the long ROC agrees."""
    threshold = params.momentum_threshold_pct
    if roc_short > threshold and roc_long > 0:
        return TrendDirection.BULLISH
    if roc_short < -threshold and roc_long < 0:
        return TrendDirection.BEARISH
    return TrendDirection.NEUTRAL


def classify_ma_trend(price: float, sma_medium: float, sma_long: float) -> TrendDirection:
    """Price above a rising stack of averages is bullish, the mirror is bearish."""
    if price > sma_medium > sma_long:
        return TrendDirection.BULLISH
    if price < sma_medium < sma_long:
        return TrendDirection.BEARISH
    return TrendDirection.NEUTRAL


def classify_regression_trend(slope: float, params: IndicatorParameters) -> TrendDirection:
    if slope > params.regression_slope_threshold:
        return TrendDirection.BULLISH
    if slope < -params.regression_slope_threshold:
        return TrendDirection.BEARISH
    return TrendDirection.NEUTRAL


def classify_regression_confidence(r2: float, params: IndicatorParameters) -> ConfidenceLevel:
    if r2 > params.regression_r2_high:
        return ConfidenceLevel.HIGH
    if r2 > params.regression_r2_medium:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW
