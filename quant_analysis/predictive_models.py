"""
Predictive Models

Four lightweight forecasters that run on the raw price series:

    1. K-NEAREST-NEIGHBORS
        Finds historical windows whose recent percent changes look most like
        the current window and averages what happened next, weighted by
        inverse distance.

    2. MONTE CARLO SIMULATION
        Geometric random walk with drift and volatility estimated from log
        returns. Reports the median, 10th/90th percentiles and the share of
        paths that finish above the current price.

    3. HOLT DOUBLE EXPONENTIAL SMOOTHING
        Level + trend state updated every bar, forecast = level + h * trend.

    4. CANDLESTICK PATTERN RECOGNITION
        Body/wick heuristics for classic reversal and continuation shapes,
        scored around a neutral base of 50.

None of the models raise on short input; each returns the neutral result
documented on its function.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from quant_analysis.statistical_primitives import (
    log_returns,
    mean,
    percent_changes,
    standard_deviation,
)

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray]


# =============================================================================
# CONSTANTS
# =============================================================================

PATTERN_BASE_SCORE: float = 50.0

# Bonus (positive) or malus (negative) added to the base score
HAMMER_BONUS: float = 15.0
SHOOTING_STAR_MALUS: float = -15.0
BULLISH_ENGULFING_BONUS: float = 20.0
BEARISH_ENGULFING_MALUS: float = -20.0
MORNING_STAR_BONUS: float = 25.0
EVENING_STAR_MALUS: float = -25.0
THREE_WHITE_SOLDIERS_BONUS: float = 20.0
THREE_BLACK_CROWS_MALUS: float = -20.0

# Shape ratios
SHADOW_TO_BODY_MIN: float = 2.0
OPPOSITE_SHADOW_MAX: float = 0.5
ENGULFING_BODY_RATIO: float = 1.5
STAR_BODY_RATIO: float = 0.3
DOJI_BODY_RATIO: float = 0.1

NEUTRAL_PATTERN: str = "Neutral"
DOJI_PATTERN: str = "Doji (Indecision)"
INSUFFICIENT_PATTERN: str = "Insufficient data"


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class KNNPrediction:
    """Next-horizon price estimate from the nearest historical analogues."""
    prediction: float
    confidence: float          # 0 to 100
    expected_change_pct: float
    neighbors_used: int


@dataclass(frozen=True)
class MonteCarloSummary:
    """Distribution of simulated terminal prices."""
    median: float
    low: float                 # 10th percentile
    high: float                # 90th percentile
    bullish_probability: float  # percent of paths above the current price


@dataclass(frozen=True)
class DetectedPattern:
    name: str
    contribution: float


@dataclass(frozen=True)
class PatternAnalysis:
    """Net candlestick score and the dominant pattern."""
    score: float
    pattern_name: str
    patterns: Tuple[DetectedPattern, ...] = field(default_factory=tuple)


# =============================================================================
# K-NEAREST-NEIGHBORS
# =============================================================================

def knn_predict(
    prices: ArrayLike,
    k: int = 5,
    lookback: int = 10,
    horizon: int = 7,
    confidence_scale: float = 5.0,
    epsilon: float = 0.001
) -> KNNPrediction:
    """
    Predict the price ``horizon`` bars ahead from the K most similar windows.

    Parameters
    ----------
    prices : array-like
        Closing prices, oldest first
    k : int
        Number of neighbours
    lookback : int
        Number of percent changes in each feature vector
    horizon : int
        Bars between a window's last price and its outcome
    confidence_scale : float
        Confidence = 100 - std(neighbour outcomes) * scale, clamped to [0, 100]
    epsilon : float
        Added to distances before inverting them into weights

    Returns
    -------
    KNNPrediction
        The latest price with confidence 0 when fewer than
        ``lookback + horizon + k`` prices exist
    """
    arr = np.asarray(prices, dtype=float)
    n = arr.size
    if n < lookback + horizon + k:
        return KNNPrediction(
            prediction=float(arr[-1]) if n else 0.0,
            confidence=0.0,
            expected_change_pct=0.0,
            neighbors_used=0,
        )

    changes = percent_changes(arr)  # changes[j] is the move into bar j + 1

    # Anchor i: features are the lookback changes ending at bar i, outcome
    # is the move from bar i to bar i + horizon.
    anchors = np.arange(lookback, n - horizon)
    features = np.stack([changes[i - lookback:i] for i in anchors])
    anchor_prices = arr[anchors]
    future_prices = arr[anchors + horizon]
    safe_anchor = np.where(anchor_prices == 0, 1.0, anchor_prices)
    outcomes = np.where(
        anchor_prices == 0, 0.0, (future_prices - anchor_prices) / safe_anchor * 100.0
    )

    current = changes[-lookback:]
    distances = np.sqrt(((features - current) ** 2).sum(axis=1))

    order = np.argsort(distances, kind="stable")[:k]
    nearest_distances = distances[order]
    nearest_outcomes = outcomes[order]

    weights = 1.0 / (nearest_distances + epsilon)
    predicted_change = float((weights * nearest_outcomes).sum() / weights.sum())

    dispersion = standard_deviation(nearest_outcomes)
    confidence = float(np.clip(100.0 - dispersion * confidence_scale, 0.0, 100.0))

    current_price = float(arr[-1])
    logger.debug(
        f"KNN: {len(anchors)} candidate windows, predicted change {predicted_change:.2f}%, "
        f"dispersion {dispersion:.3f}"
    )
    return KNNPrediction(
        prediction=current_price * (1.0 + predicted_change / 100.0),
        confidence=confidence,
        expected_change_pct=predicted_change,
        neighbors_used=int(order.size),
    )


# =============================================================================
# MONTE CARLO SIMULATION
# =============================================================================

def monte_carlo_simulation(
    prices: ArrayLike,
    simulations: int = 1000,
    days: int = 7,
    min_history: int = 30,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None
) -> MonteCarloSummary:
    """
    Simulate terminal prices of a geometric random walk.

    price[t+1] = price[t] * exp(mu + sigma * Z),  Z ~ N(0, 1)

    mu and sigma are the mean and population std of historical log returns.
    Paths are independent, so all ``simulations x days`` draws are taken in
    one batch.

    Parameters
    ----------
    prices : array-like
        Closing prices, oldest first
    simulations : int
        Number of simulated paths
    days : int
        Steps per path
    min_history : int
        Minimum number of prices for a meaningful estimate
    seed : int, optional
        Seed for a fresh ``numpy.random.default_rng``; ignored when ``rng`` is given
    rng : np.random.Generator, optional
        Generator to draw from

    Returns
    -------
    MonteCarloSummary
        Median and 10th/90th percentile order statistics, and the percent of
        paths ending above the current price. With fewer than ``min_history``
        prices every level is the current price and the probability is 50.
    """
    arr = np.asarray(prices, dtype=float)
    current_price = float(arr[-1]) if arr.size else 0.0
    if arr.size < min_history:
        return MonteCarloSummary(
            median=current_price,
            low=current_price,
            high=current_price,
            bullish_probability=50.0,
        )

    returns = log_returns(arr)
    mu = mean(returns)
    sigma = standard_deviation(returns)

    generator = rng if rng is not None else np.random.default_rng(seed)
    shocks = generator.standard_normal((simulations, days))
    cumulative = (mu + sigma * shocks).sum(axis=1)
    final_prices = np.sort(current_price * np.exp(cumulative))

    bullish = float((final_prices > current_price).sum()) / simulations * 100.0

    logger.debug(
        f"Monte Carlo: {simulations} paths x {days} days, mu={mu:.5f}, sigma={sigma:.5f}"
    )
    return MonteCarloSummary(
        median=float(final_prices[int(simulations * 0.5)]),
        low=float(final_prices[int(simulations * 0.1)]),
        high=float(final_prices[int(simulations * 0.9)]),
        bullish_probability=bullish,
    )


# =============================================================================
# HOLT DOUBLE EXPONENTIAL SMOOTHING
# =============================================================================

def holt_forecast(
    prices: ArrayLike,
    alpha: float = 0.3,
    beta: float = 0.1,
    horizon: int = 7
) -> float:
    """
    Forecast ``horizon`` bars ahead with Holt's linear trend method.

    level = alpha * price + (1 - alpha) * (level + trend)
    trend = beta * (level - prev_level) + (1 - beta) * trend

    The level starts at the first price and the trend at the first
    difference. Fewer than 3 prices return the latest price (0 when empty).
    """
    arr = np.asarray(prices, dtype=float)
    if arr.size < 3:
        return float(arr[-1]) if arr.size else 0.0

    level = arr[0]
    trend = arr[1] - arr[0]
    for price in arr[1:]:
        new_level = alpha * price + (1.0 - alpha) * (level + trend)
        trend = beta * (new_level - level) + (1.0 - beta) * trend
        level = new_level

    return float(level + horizon * trend)


# =============================================================================
# CANDLESTICK PATTERN RECOGNITION
# =============================================================================

@dataclass(frozen=True)
class _Candle:
    open: float
    high: float
    low: float
    close: float

    @property
    def body(self) -> float:
        return self.close - self.open

    @property
    def body_size(self) -> float:
        return abs(self.body)

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def upper_shadow(self) -> float:
        return self.high - max(self.open, self.close)

    @property
    def lower_shadow(self) -> float:
        return min(self.open, self.close) - self.low

    @property
    def midpoint(self) -> float:
        return (self.open + self.close) / 2.0


def recognize_patterns(
    opens: ArrayLike,
    highs: ArrayLike,
    lows: ArrayLike,
    closes: ArrayLike,
    min_candles: int = 5,
    body_window: int = 10
) -> PatternAnalysis:
    """
    Score the last three candles for classic reversal/continuation shapes.

    Patterns scanned, in order:
        Hammer (+15), Shooting Star (-15),
        Bullish Engulfing (+20), Bearish Engulfing (-20),
        Morning Star (+25), Evening Star (-25),
        Three White Soldiers (+20), Three Black Crows (-20)

    Contributions accumulate on a base of 50 and the total is clamped to
    [0, 100]. The dominant pattern is the one with the largest absolute
    contribution (first in scan order on ties). A Doji is reported only when
    nothing else fired.

    The star and Doji thresholds compare against the mean of the absolute
    bodies over the last ``body_window`` candles. Signed bodies are not
    averaged, so alternating up and down candles do not cancel out to a
    near-zero reference body.

    Returns
    -------
    PatternAnalysis
        (50, "Insufficient data") with fewer than ``min_candles`` candles
    """
    o = np.asarray(opens, dtype=float)
    h = np.asarray(highs, dtype=float)
    l = np.asarray(lows, dtype=float)
    c = np.asarray(closes, dtype=float)
    if o.size < min_candles:
        return PatternAnalysis(score=PATTERN_BASE_SCORE, pattern_name=INSUFFICIENT_PATTERN)

    def candle(offset: int) -> _Candle:
        i = o.size - 1 - offset
        return _Candle(open=o[i], high=h[i], low=l[i], close=c[i])

    c0, c1, c2 = candle(0), candle(1), candle(2)
    avg_body = mean(np.abs(c[-body_window:] - o[-body_window:]))

    detected: List[DetectedPattern] = []

    # Single-candle reversals
    if (c0.lower_shadow > c0.body_size * SHADOW_TO_BODY_MIN
            and c0.upper_shadow < c0.body_size * OPPOSITE_SHADOW_MAX):
        detected.append(DetectedPattern("Hammer (Bullish)", HAMMER_BONUS))
    if (c0.upper_shadow > c0.body_size * SHADOW_TO_BODY_MIN
            and c0.lower_shadow < c0.body_size * OPPOSITE_SHADOW_MAX):
        detected.append(DetectedPattern("Shooting Star (Bearish)", SHOOTING_STAR_MALUS))

    # Engulfing
    if c0.is_bullish and not c1.is_bullish and c0.body_size > c1.body_size * ENGULFING_BODY_RATIO:
        detected.append(DetectedPattern("Bullish Engulfing", BULLISH_ENGULFING_BONUS))
    if not c0.is_bullish and c1.is_bullish and c0.body_size > c1.body_size * ENGULFING_BODY_RATIO:
        detected.append(DetectedPattern("Bearish Engulfing", BEARISH_ENGULFING_MALUS))

    # Stars
    small_middle = c1.body_size < avg_body * STAR_BODY_RATIO
    if not c2.is_bullish and small_middle and c0.is_bullish and c0.close > c2.midpoint:
        detected.append(DetectedPattern("Morning Star (Bullish)", MORNING_STAR_BONUS))
    if c2.is_bullish and small_middle and not c0.is_bullish and c0.close < c2.midpoint:
        detected.append(DetectedPattern("Evening Star (Bearish)", EVENING_STAR_MALUS))

    # Three-candle continuations
    if (c0.is_bullish and c1.is_bullish and c2.is_bullish
            and c0.close > c1.close > c2.close):
        detected.append(DetectedPattern("Three White Soldiers", THREE_WHITE_SOLDIERS_BONUS))
    if (not c0.is_bullish and not c1.is_bullish and not c2.is_bullish
            and c0.close < c1.close < c2.close):
        detected.append(DetectedPattern("Three Black Crows", THREE_BLACK_CROWS_MALUS))

    score = PATTERN_BASE_SCORE + sum(p.contribution for p in detected)
    score = float(np.clip(score, 0.0, 100.0))

    if detected:
        dominant = max(detected, key=lambda p: abs(p.contribution))
        name = dominant.name
    elif c0.body_size < avg_body * DOJI_BODY_RATIO:
        name = DOJI_PATTERN
    else:
        name = NEUTRAL_PATTERN

    return PatternAnalysis(score=score, pattern_name=name, patterns=tuple(detected))
