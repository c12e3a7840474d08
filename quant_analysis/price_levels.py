"""
Level & Price-Target Synthesizer

Turns indicators and model output into concrete prices:

    FIBONACCI LEVELS
        Retracements at 23.6 / 38.2 / 50 / 61.8 / 78.6 % of the lookback
        range measured down from the high, plus the 161.8 % extension.

    DYNAMIC SUPPORT / RESISTANCE
        Swing highs and lows (local extrema found with scipy's
        argrelextrema) are clustered into bands. The band touched most often is
        "strong"; the nearest other band is "weak".

    OPTIMAL ENTRY / EXIT
        A weighted blend of nearest support/resistance, Bollinger band and
        nearest Fibonacci level, nudged by RSI and candlestick score, with a
        confidence percentage and the list of reasons behind it.

    RISK MANAGEMENT
        ATR-scaled stop-loss under support, take-profit under resistance and
        the resulting risk/reward ratio.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.signal import argrelextrema

from quant_analysis.config import (
    FIBONACCI_EXTENSION,
    FIBONACCI_RATIOS,
    IndicatorParameters,
    LevelParameters,
)
from quant_analysis.technical_indicators import BollingerBands

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray]


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass(frozen=True)
class FibonacciLevels:
    """Retracement levels measured from the window high, plus one extension."""
    swing_high: float
    swing_low: float
    level_236: float
    level_382: float
    level_500: float
    level_618: float
    level_786: float
    extension_1618: float

    def named_levels(self) -> List[Tuple[str, float]]:
        return [
            ("23.6%", self.level_236),
            ("38.2%", self.level_382),
            ("50.0%", self.level_500),
            ("61.8%", self.level_618),
            ("78.6%", self.level_786),
            ("161.8% extension", self.extension_1618),
        ]


@dataclass(frozen=True)
class LevelCluster:
    """A band of nearby swing points."""
    price: float
    touches: int


@dataclass(frozen=True)
class DynamicLevels:
    """Clustered support/resistance around the current price."""
    strong_support: float
    weak_support: float
    strong_resistance: float
    weak_resistance: float
    confidence: float          # 0 to 100, grows with touches of the strong bands
    support_touches: int = 0
    resistance_touches: int = 0

    @property
    def nearest_support(self) -> float:
        return max(self.strong_support, self.weak_support)

    @property
    def nearest_resistance(self) -> float:
        return min(self.strong_resistance, self.weak_resistance)


@dataclass(frozen=True)
class OptimalPrices:
    """Entry/exit targets with confidence, reasoning and risk levels."""
    fibonacci: FibonacciLevels
    dynamic_levels: DynamicLevels
    optimal_buy_price: float
    optimal_sell_price: float
    buy_confidence: float
    sell_confidence: float
    buy_reasoning: Tuple[str, ...] = field(default_factory=tuple)
    sell_reasoning: Tuple[str, ...] = field(default_factory=tuple)
    risk_reward_ratio: float = 0.0
    stop_loss: float = 0.0
    take_profit: float = 0.0


# =============================================================================
# FIBONACCI
# =============================================================================

def calculate_fibonacci_levels(
    highs: ArrayLike,
    lows: ArrayLike,
    lookback: int = 60
) -> FibonacciLevels:
    """
    Fibonacci retracements over the last ``lookback`` bars.

    level_r = High - r * (High - Low) for r in 23.6 .. 78.6 %
    extension = Low + 1.618 * (High - Low)

    A flat window puts every level on the high.
    """
    h = np.asarray(highs, dtype=float)[-lookback:]
    l = np.asarray(lows, dtype=float)[-lookback:]
    if h.size == 0:
        return FibonacciLevels(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    swing_high = float(h.max())
    swing_low = float(l.min())
    span = swing_high - swing_low
    r236, r382, r500, r618, r786 = (swing_high - ratio * span for ratio in FIBONACCI_RATIOS)

    return FibonacciLevels(
        swing_high=swing_high,
        swing_low=swing_low,
        level_236=r236,
        level_382=r382,
        level_500=r500,
        level_618=r618,
        level_786=r786,
        extension_1618=swing_low + FIBONACCI_EXTENSION * span,
    )


# =============================================================================
# SWING POINTS & CLUSTERING
# =============================================================================

def find_swing_points(
    highs: ArrayLike,
    lows: ArrayLike,
    order: int = 3
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Find local maxima of highs and local minima of lows.

    Parameters
    ----------
    highs, lows : array-like
        Price data, oldest first
    order : int
        How many points on each side to use for comparison

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        (swing_high_prices, swing_low_prices)
    """
    h = np.asarray(highs, dtype=float)
    l = np.asarray(lows, dtype=float)
    if h.size <= 2 * order:
        return np.empty(0), np.empty(0)

    high_idx = argrelextrema(h, np.greater, order=order)[0]
    low_idx = argrelextrema(l, np.less, order=order)[0]
    return h[high_idx], l[low_idx]


def cluster_levels(values: ArrayLike, tolerance_pct: float = 1.5) -> List[LevelCluster]:
    """
    Group sorted prices into bands.

    A price joins the current band while it lies within ``tolerance_pct``
    percent of the band's running mean.

    Returns
    -------
    List[LevelCluster]
        Bands in ascending price order
    """
    ordered = np.sort(np.asarray(values, dtype=float))
    clusters: List[List[float]] = []
    for value in ordered:
        if clusters:
            centre = float(np.mean(clusters[-1]))
            if abs(value - centre) <= abs(centre) * tolerance_pct / 100.0:
                clusters[-1].append(float(value))
                continue
        clusters.append([float(value)])
    return [LevelCluster(price=float(np.mean(c)), touches=len(c)) for c in clusters]


def _fallback_candidates(
    values: List[float],
    current_price: float,
    below: bool
) -> List[LevelCluster]:
    unique = sorted(set(values))
    if below:
        kept = [v for v in unique if v < current_price]
    else:
        kept = [v for v in unique if v > current_price]
    return [LevelCluster(price=v, touches=0) for v in kept]


def _strong_and_weak(candidates: List[LevelCluster], current_price: float) -> Tuple[LevelCluster, LevelCluster]:
    """Strong = most touches (nearest on ties); weak = nearest of the rest."""
    strong = max(candidates, key=lambda c: (c.touches, -abs(c.price - current_price)))
    others = [c for c in candidates if c is not strong]
    if not others:
        return strong, strong
    weak = min(others, key=lambda c: abs(c.price - current_price))
    return strong, weak


def calculate_dynamic_levels(
    highs: ArrayLike,
    lows: ArrayLike,
    current_price: float,
    atr: float,
    params: Optional[LevelParameters] = None
) -> DynamicLevels:
    """
    Cluster recent swing points into support and resistance bands.

    Candidate supports are bands below the current price and candidate
    resistances bands above it. When no swing band exists on a side, the
    recent and window extremes are used instead, and when those are not on
    the right side of price either, ``price -/+ ATR`` and ``price -/+ 2 ATR``
    (or percentage offsets when ATR is 0). Fallback candidates carry zero
    touches.

    Returns
    -------
    DynamicLevels
        Strong/weak bands per side and a confidence of
        ``touch_confidence * (support touches + resistance touches)``,
        capped at 100
    """
    params = params or LevelParameters()
    h = np.asarray(highs, dtype=float)[-params.swing_window:]
    l = np.asarray(lows, dtype=float)[-params.swing_window:]

    swing_highs, swing_lows = find_swing_points(h, l, params.swing_order)
    tolerance = params.cluster_tolerance_pct

    supports = [c for c in cluster_levels(swing_lows, tolerance) if c.price < current_price]
    resistances = [c for c in cluster_levels(swing_highs, tolerance) if c.price > current_price]
    logger.debug(
        f"Swing points: {swing_highs.size} highs, {swing_lows.size} lows; "
        f"{len(supports)} support and {len(resistances)} resistance bands"
    )

    if atr > 0:
        near_offset, far_offset = atr, 2.0 * atr
    else:
        near_offset = current_price * params.fallback_stop_pct / 100.0
        far_offset = 2.0 * near_offset

    if not supports and l.size:
        recent = l[-params.recent_window:]
        supports = _fallback_candidates([float(recent.min()), float(l.min())], current_price, below=True)
    if not supports:
        supports = [
            LevelCluster(price=current_price - near_offset, touches=0),
            LevelCluster(price=current_price - far_offset, touches=0),
        ]

    if not resistances and h.size:
        recent = h[-params.recent_window:]
        resistances = _fallback_candidates([float(recent.max()), float(h.max())], current_price, below=False)
    if not resistances:
        resistances = [
            LevelCluster(price=current_price + near_offset, touches=0),
            LevelCluster(price=current_price + far_offset, touches=0),
        ]

    strong_support, weak_support = _strong_and_weak(supports, current_price)
    strong_resistance, weak_resistance = _strong_and_weak(resistances, current_price)

    touches = strong_support.touches + strong_resistance.touches
    confidence = min(100.0, params.touch_confidence * touches)

    return DynamicLevels(
        strong_support=strong_support.price,
        weak_support=weak_support.price,
        strong_resistance=strong_resistance.price,
        weak_resistance=weak_resistance.price,
        confidence=confidence,
        support_touches=strong_support.touches,
        resistance_touches=strong_resistance.touches,
    )


# =============================================================================
# OPTIMAL ENTRY / EXIT
# =============================================================================

def _weighted_target(anchors: List[Tuple[float, float]]) -> Optional[float]:
    total = sum(weight for _, weight in anchors)
    if not anchors or total <= 0:
        return None
    return sum(price * weight for price, weight in anchors) / total


def _nearest_fibonacci(fib: FibonacciLevels, current_price: float, below: bool) -> Optional[Tuple[str, float]]:
    if below:
        candidates = [(name, lvl) for name, lvl in fib.named_levels() if lvl < current_price]
        return max(candidates, key=lambda item: item[1]) if candidates else None
    candidates = [(name, lvl) for name, lvl in fib.named_levels() if lvl > current_price]
    return min(candidates, key=lambda item: item[1]) if candidates else None


def _optimal_buy(
    current_price: float,
    fib: FibonacciLevels,
    levels: DynamicLevels,
    bands: BollingerBands,
    rsi: float,
    pattern_score: float,
    atr: float,
    indicator_params: IndicatorParameters,
    params: LevelParameters
) -> Tuple[float, float, List[str]]:
    reasons: List[str] = []
    anchors: List[Tuple[float, float]] = []

    support = levels.nearest_support
    if support < current_price:
        anchors.append((support, params.support_weight))
        reasons.append(f"Nearest support at {support:.2f}")
    if bands.lower < current_price:
        anchors.append((bands.lower, params.bollinger_weight))
        reasons.append(f"Lower Bollinger band at {bands.lower:.2f}")
    fib_level = _nearest_fibonacci(fib, current_price, below=True)
    if fib_level is not None:
        anchors.append((fib_level[1], params.fibonacci_weight))
        reasons.append(f"Fibonacci {fib_level[0]} retracement at {fib_level[1]:.2f}")

    target = _weighted_target(anchors)
    if target is None:
        offset = atr if atr > 0 else current_price * params.fallback_stop_pct / 100.0
        target = current_price - offset
        reasons.append("No level below price, entry one ATR under market")
    target = min(target, current_price)

    if rsi < indicator_params.rsi_oversold:
        target += 0.5 * (current_price - target)
        reasons.append(f"RSI oversold ({rsi:.1f}), entry pulled toward market")
    if pattern_score >= params.bullish_pattern_score:
        target += 0.25 * (current_price - target)
        reasons.append(f"Bullish candlestick score {pattern_score:.0f}")

    confidence = 50.0
    if rsi < indicator_params.rsi_oversold:
        confidence += 15.0
        reasons.append("Momentum exhausted on the downside")
    elif rsi < 45.0:
        confidence += 5.0
    elif rsi > indicator_params.rsi_overbought:
        confidence -= 10.0
        reasons.append(f"RSI overbought ({rsi:.1f}), buying is chasing")

    if current_price > 0 and (current_price - support) / current_price * 100.0 <= params.proximity_pct:
        confidence += 10.0
        reasons.append("Price is testing support")

    percent_b = bands.percent_b(current_price)
    if percent_b <= 0.2:
        confidence += 10.0
        reasons.append("Price in the lower Bollinger zone")
    elif percent_b >= 0.8:
        confidence -= 5.0

    confidence += (pattern_score - 50.0) * 0.3
    if levels.support_touches:
        confidence += min(15.0, 5.0 * levels.support_touches)
        reasons.append(f"Support band touched {levels.support_touches} times")

    return target, float(np.clip(confidence, 0.0, 100.0)), reasons


def _optimal_sell(
    current_price: float,
    fib: FibonacciLevels,
    levels: DynamicLevels,
    bands: BollingerBands,
    rsi: float,
    pattern_score: float,
    atr: float,
    indicator_params: IndicatorParameters,
    params: LevelParameters
) -> Tuple[float, float, List[str]]:
    reasons: List[str] = []
    anchors: List[Tuple[float, float]] = []

    resistance = levels.nearest_resistance
    if resistance > current_price:
        anchors.append((resistance, params.support_weight))
        reasons.append(f"Nearest resistance at {resistance:.2f}")
    if bands.upper > current_price:
        anchors.append((bands.upper, params.bollinger_weight))
        reasons.append(f"Upper Bollinger band at {bands.upper:.2f}")
    fib_level = _nearest_fibonacci(fib, current_price, below=False)
    if fib_level is not None:
        anchors.append((fib_level[1], params.fibonacci_weight))
        reasons.append(f"Fibonacci {fib_level[0]} at {fib_level[1]:.2f}")

    target = _weighted_target(anchors)
    if target is None:
        offset = atr if atr > 0 else current_price * params.fallback_stop_pct / 100.0
        target = current_price + offset
        reasons.append("No level above price, exit one ATR over market")
    target = max(target, current_price)

    if rsi > indicator_params.rsi_overbought:
        target -= 0.5 * (target - current_price)
        reasons.append(f"RSI overbought ({rsi:.1f}), exit pulled toward market")
    if pattern_score <= params.bearish_pattern_score:
        target -= 0.25 * (target - current_price)
        reasons.append(f"Bearish candlestick score {pattern_score:.0f}")

    confidence = 50.0
    if rsi > indicator_params.rsi_overbought:
        confidence += 15.0
        reasons.append("Momentum stretched on the upside")
    elif rsi > 55.0:
        confidence += 5.0
    elif rsi < indicator_params.rsi_oversold:
        confidence -= 10.0
        reasons.append(f"RSI oversold ({rsi:.1f}), selling into weakness")

    if current_price > 0 and (resistance - current_price) / current_price * 100.0 <= params.proximity_pct:
        confidence += 10.0
        reasons.append("Price is testing resistance")

    percent_b = bands.percent_b(current_price)
    if percent_b >= 0.8:
        confidence += 10.0
        reasons.append("Price in the upper Bollinger zone")
    elif percent_b <= 0.2:
        confidence -= 5.0

    confidence -= (pattern_score - 50.0) * 0.3
    if levels.resistance_touches:
        confidence += min(15.0, 5.0 * levels.resistance_touches)
        reasons.append(f"Resistance band touched {levels.resistance_touches} times")

    return target, float(np.clip(confidence, 0.0, 100.0)), reasons


def calculate_risk_levels(
    entry: float,
    nearest_support: float,
    nearest_resistance: float,
    atr: float,
    params: Optional[LevelParameters] = None
) -> Tuple[float, float, float]:
    """
    Stop-loss, take-profit and risk/reward for a long entry.

    stop = min(support, entry) - k * ATR
    target = resistance - buffer * ATR, raised to entry + 2 ATR when not above entry
    risk_reward = (target - entry) / (entry - stop)

    Percentage offsets replace ATR when ATR is 0. Risk/reward is 0 when the
    stop is not below the entry.

    Returns
    -------
    Tuple[float, float, float]
        (stop_loss, take_profit, risk_reward_ratio)
    """
    params = params or LevelParameters()
    floor = min(nearest_support, entry)
    if atr > 0:
        stop_loss = floor - params.stop_atr_multiplier * atr
        take_profit = nearest_resistance - params.target_atr_buffer * atr
        if take_profit <= entry:
            take_profit = entry + 2.0 * atr
    else:
        stop_loss = floor * (1.0 - params.fallback_stop_pct / 100.0)
        take_profit = nearest_resistance
        if take_profit <= entry:
            take_profit = entry * (1.0 + params.fallback_target_pct / 100.0)

    risk = entry - stop_loss
    risk_reward = (take_profit - entry) / risk if risk > 0 else 0.0
    return stop_loss, take_profit, risk_reward


def calculate_optimal_prices(
    current_price: float,
    highs: ArrayLike,
    lows: ArrayLike,
    bands: BollingerBands,
    rsi: float,
    pattern_score: float,
    atr: float,
    indicator_params: Optional[IndicatorParameters] = None,
    params: Optional[LevelParameters] = None
) -> OptimalPrices:
    """
    Synthesize entry and exit targets for the current bar.

    Parameters
    ----------
    current_price : float
        Latest close
    highs, lows : array-like
        Price data, oldest first
    bands : BollingerBands
        Current Bollinger Bands
    rsi : float
        Current RSI value
    pattern_score : float
        Candlestick score (50 = neutral)
    atr : float
        Current Average True Range
    indicator_params, params : optional
        RSI thresholds and level parameters; defaults when omitted

    Returns
    -------
    OptimalPrices
        Fibonacci and dynamic levels, buy/sell targets with confidence and
        reasoning, and the stop-loss/take-profit/risk-reward of a long entry
        at the buy target
    """
    indicator_params = indicator_params or IndicatorParameters()
    params = params or LevelParameters()

    fib = calculate_fibonacci_levels(highs, lows, params.fibonacci_lookback)
    levels = calculate_dynamic_levels(highs, lows, current_price, atr, params)

    buy, buy_confidence, buy_reasons = _optimal_buy(
        current_price, fib, levels, bands, rsi, pattern_score, atr, indicator_params, params
    )
    sell, sell_confidence, sell_reasons = _optimal_sell(
        current_price, fib, levels, bands, rsi, pattern_score, atr, indicator_params, params
    )
    stop_loss, take_profit, risk_reward = calculate_risk_levels(
        buy, levels.nearest_support, levels.nearest_resistance, atr, params
    )

    logger.debug(
        f"Optimal buy {buy:.2f} ({buy_confidence:.0f}%), sell {sell:.2f} ({sell_confidence:.0f}%), "
        f"R/R {risk_reward:.2f}"
    )
    return OptimalPrices(
        fibonacci=fib,
        dynamic_levels=levels,
        optimal_buy_price=float(buy),
        optimal_sell_price=float(sell),
        buy_confidence=buy_confidence,
        sell_confidence=sell_confidence,
        buy_reasoning=tuple(buy_reasons),
        sell_reasoning=tuple(sell_reasons),
        risk_reward_ratio=float(risk_reward),
        stop_loss=float(stop_loss),
        take_profit=float(take_profit),
    )
