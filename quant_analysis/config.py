"""
Configuration Module for the Quantitative Analysis Engine

This module centralizes all enumerations, lookback periods, model parameters
and signal thresholds used throughout the analysis pipeline.

All "magic numbers" are defined here so that:
1. There is a single source of truth for every parameter
2. The engine can be run at several parameter settings without code edits
3. Empirically tuned values (KNN confidence scale, Monte Carlo path count)
   are visible and overridable rather than buried in the models
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


# =============================================================================
# ENUMERATIONS
# =============================================================================

class TrendDirection(Enum):
    """Directional bias of a trend-following indicator."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class ConfidenceLevel(Enum):
    """Qualitative fit quality of the linear regression."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class OscillatorSignal(Enum):
    """Zone of a bounded oscillator (RSI, Stochastic)."""
    OVERBOUGHT = "overbought"
    OVERSOLD = "oversold"
    NEUTRAL = "neutral"


class VolatilityLevel(Enum):
    """Coarse volatility bucket used for ATR and annualized volatility."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ConsensusSignal(Enum):
    """Aggregated trading verdict."""
    STRONG_BUY = "strong_buy"
    BUY = "buy"
    HOLD = "hold"
    SELL = "sell"
    STRONG_SELL = "strong_sell"

    @property
    def is_bullish(self) -> bool:
        return self in (ConsensusSignal.STRONG_BUY, ConsensusSignal.BUY)

    @property
    def is_bearish(self) -> bool:
        return self in (ConsensusSignal.STRONG_SELL, ConsensusSignal.SELL)


# =============================================================================
# MARKET DATA RANGES
# =============================================================================

# Chart range -> bar interval, as served by the market-data endpoint.
RANGE_INTERVALS: Dict[str, str] = {
    "1d": "5m",
    "5d": "15m",
    "1mo": "1d",
    "3mo": "1d",
    "6mo": "1d",
    "1y": "1wk",
    "5y": "1mo",
    "max": "1mo",
}

# Range requested when the caller names none; a year of weekly bars feeds
# every model window.
DEFAULT_RANGE: str = "1y"

# Interval used for a range the table does not know.
FALLBACK_INTERVAL: str = "1d"


# =============================================================================
# INDICATOR PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class IndicatorParameters:
    """Lookback periods and zone thresholds for the indicator library."""

    # Moving averages
    sma_short: int = 20
    sma_medium: int = 50
    sma_long: int = 200
    ema_fast: int = 12
    ema_slow: int = 26
    macd_signal: int = 9

    # RSI
    rsi_period: int = 14
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0

    # Stochastic
    stochastic_period: int = 14
    stochastic_d_period: int = 3
    stochastic_overbought: float = 80.0
    stochastic_oversold: float = 20.0

    # ATR (levels in percent of price)
    atr_period: int = 14
    atr_high_pct: float = 3.0
    atr_medium_pct: float = 1.5

    # Momentum / ROC
    roc_short: int = 10
    roc_long: int = 20
    momentum_threshold_pct: float = 2.0

    # Bollinger Bands
    bollinger_period: int = 20
    bollinger_multiplier: float = 2.0

    # Volatility (annualized, percent)
    trading_days_year: int = 252
    volatility_high_pct: float = 40.0
    volatility_medium_pct: float = 20.0

    # Linear regression
    regression_window: int = 30
    regression_horizon: int = 7
    regression_slope_threshold: float = 0.01
    regression_r2_high: float = 0.7
    regression_r2_medium: float = 0.4

    # Pivot points
    pivot_window: int = 20

    def __post_init__(self):
        periods = {
            "sma_short": self.sma_short,
            "sma_medium": self.sma_medium,
            "sma_long": self.sma_long,
            "ema_fast": self.ema_fast,
            "ema_slow": self.ema_slow,
            "macd_signal": self.macd_signal,
            "rsi_period": self.rsi_period,
            "stochastic_period": self.stochastic_period,
            "stochastic_d_period": self.stochastic_d_period,
            "atr_period": self.atr_period,
            "roc_short": self.roc_short,
            "roc_long": self.roc_long,
            "bollinger_period": self.bollinger_period,
            "regression_window": self.regression_window,
            "pivot_window": self.pivot_window,
        }
        for name, value in periods.items():
            if value < 1:
                raise ValueError(f"{name} must be a positive period, got {value}")
        if self.rsi_oversold >= self.rsi_overbought:
            raise ValueError("rsi_oversold must be below rsi_overbought")
        if self.stochastic_oversold >= self.stochastic_overbought:
            raise ValueError("stochastic_oversold must be below stochastic_overbought")


# =============================================================================
# PREDICTIVE MODEL PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class ModelParameters:
    """
    Parameters for the predictive models.

    The KNN confidence scale and the Monte Carlo path count were tuned by eye;
    they are sensible defaults, not canonical values.
    """

    # K-Nearest-Neighbors
    knn_k: int = 5
    knn_lookback: int = 10
    knn_horizon: int = 7
    knn_confidence_scale: float = 5.0
    knn_distance_epsilon: float = 0.001

    # Monte Carlo
    monte_carlo_simulations: int = 1000
    monte_carlo_days: int = 7
    monte_carlo_min_history: int = 30
    monte_carlo_seed: Optional[int] = None

    # Holt double exponential smoothing
    holt_alpha: float = 0.3
    holt_beta: float = 0.1
    holt_horizon: int = 7

    # Candlestick patterns
    pattern_min_candles: int = 5
    pattern_body_window: int = 10

    def __post_init__(self):
        if self.knn_k < 1 or self.knn_lookback < 1 or self.knn_horizon < 1:
            raise ValueError("KNN k, lookback and horizon must be positive")
        if self.monte_carlo_simulations < 1 or self.monte_carlo_days < 1:
            raise ValueError("Monte Carlo simulations and days must be positive")
        if not 0.0 < self.holt_alpha <= 1.0:
            raise ValueError(f"holt_alpha must be in (0, 1], got {self.holt_alpha}")
        if not 0.0 <= self.holt_beta <= 1.0:
            raise ValueError(f"holt_beta must be in [0, 1], got {self.holt_beta}")
        if self.pattern_min_candles < 3:
            raise ValueError("pattern_min_candles must be at least 3")


# =============================================================================
# PRICE LEVEL PARAMETERS
# =============================================================================

FIBONACCI_RATIOS: Tuple[float, ...] = (0.236, 0.382, 0.5, 0.618, 0.786)
FIBONACCI_EXTENSION: float = 1.618


@dataclass(frozen=True)
class LevelParameters:
    """Parameters for support/resistance and price-target synthesis."""

    fibonacci_lookback: int = 60

    # Swing-point clustering
    swing_window: int = 60
    swing_order: int = 3
    cluster_tolerance_pct: float = 1.5
    recent_window: int = 20
    touch_confidence: float = 12.5

    # Optimal price anchors (renormalised over available anchors)
    support_weight: float = 0.4
    bollinger_weight: float = 0.3
    fibonacci_weight: float = 0.3
    proximity_pct: float = 2.0
    bullish_pattern_score: float = 65.0
    bearish_pattern_score: float = 35.0

    # Stop-loss / take-profit
    stop_atr_multiplier: float = 1.0
    target_atr_buffer: float = 0.25
    fallback_stop_pct: float = 2.0
    fallback_target_pct: float = 4.0

    def __post_init__(self):
        if self.fibonacci_lookback < 1 or self.swing_window < 1:
            raise ValueError("fibonacci_lookback and swing_window must be positive")
        if self.swing_order < 1:
            raise ValueError("swing_order must be positive")
        if self.cluster_tolerance_pct < 0:
            raise ValueError("cluster_tolerance_pct cannot be negative")


# =============================================================================
# CONSENSUS PARAMETERS
# =============================================================================

@dataclass(frozen=True)
class ConsensusParameters:
    """
    Weights and bucket thresholds for the consensus aggregator.

    Each sub-signal votes in [-1, +1]; the score is
    ``50 + sum(weight * vote)`` clamped to [0, 100].
    """

    regression_weight: float = 10.0
    moving_average_weight: float = 15.0
    rsi_weight: float = 10.0
    stochastic_weight: float = 10.0
    momentum_weight: float = 10.0
    pattern_weight: float = 15.0
    monte_carlo_weight: float = 10.0
    knn_weight: float = 5.0
    knn_bias_threshold_pct: float = 1.0

    strong_buy_threshold: float = 75.0
    buy_threshold: float = 60.0
    hold_threshold: float = 40.0
    sell_threshold: float = 25.0

    def __post_init__(self):
        ordered = (
            self.sell_threshold,
            self.hold_threshold,
            self.buy_threshold,
            self.strong_buy_threshold,
        )
        if list(ordered) != sorted(ordered):
            raise ValueError("Consensus thresholds must be increasing: sell < hold < buy < strong_buy")


# =============================================================================
# AGGREGATE CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class AnalysisConfig:
    """Complete engine configuration passed into QuantAnalysisEngine."""
    indicators: IndicatorParameters = field(default_factory=IndicatorParameters)
    models: ModelParameters = field(default_factory=ModelParameters)
    levels: LevelParameters = field(default_factory=LevelParameters)
    consensus: ConsensusParameters = field(default_factory=ConsensusParameters)


# =============================================================================
# GLOBAL CONFIGURATION INSTANCES
# =============================================================================

DEFAULT_CONFIG = AnalysisConfig()

ENGINE_VERSION: str = "1.0.0"


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_interval(range_name: str) -> str:
    """
    Get the bar interval for a chart range.

    Args:
        range_name: Chart range such as '1mo' or '1y'

    Returns:
        Interval string understood by the market-data provider; unknown
        ranges fall back to FALLBACK_INTERVAL
    """
    return RANGE_INTERVALS.get(range_name, FALLBACK_INTERVAL)
