"""
Analysis result structures.

Every section of the output is a frozen dataclass; ``AnalysisResult.to_dict``
renders the camelCase contract consumed by the presentation layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from quant_analysis.config import (
    ConfidenceLevel,
    ConsensusSignal,
    OscillatorSignal,
    TrendDirection,
    VolatilityLevel,
)
from quant_analysis.predictive_models import MonteCarloSummary
from quant_analysis.price_levels import OptimalPrices


@dataclass(frozen=True)
class LinearRegressionAnalysis:
    slope: float
    intercept: float
    r2: float
    predicted_price: float
    trend_direction: TrendDirection
    confidence_level: ConfidenceLevel

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slope": self.slope,
            "intercept": self.intercept,
            "r2": self.r2,
            "predictedPrice": self.predicted_price,
            "trendDirection": self.trend_direction.value,
            "confidenceLevel": self.confidence_level.value,
        }


@dataclass(frozen=True)
class MovingAverageAnalysis:
    sma20: float
    sma50: float
    sma200: float
    ema12: float
    ema26: float
    macd_line: float
    signal_line: float
    macd_histogram: float
    trend: TrendDirection

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sma20": self.sma20,
            "sma50": self.sma50,
            "sma200": self.sma200,
            "ema12": self.ema12,
            "ema26": self.ema26,
            "macdLine": self.macd_line,
            "signalLine": self.signal_line,
            "macdHistogram": self.macd_histogram,
            "trend": self.trend.value,
        }


@dataclass(frozen=True)
class RSIAnalysis:
    value: float
    signal: OscillatorSignal

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "signal": self.signal.value}


@dataclass(frozen=True)
class StochasticAnalysis:
    k: float
    d: float
    signal: OscillatorSignal

    def to_dict(self) -> Dict[str, Any]:
        return {"k": self.k, "d": self.d, "signal": self.signal.value}


@dataclass(frozen=True)
class ATRAnalysis:
    value: float
    percent: float
    level: VolatilityLevel

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "percent": self.percent, "level": self.level.value}


@dataclass(frozen=True)
class MomentumAnalysis:
    roc10: float
    roc20: float
    signal: TrendDirection

    def to_dict(self) -> Dict[str, Any]:
        return {"roc10": self.roc10, "roc20": self.roc20, "signal": self.signal.value}


@dataclass(frozen=True)
class VolatilityAnalysis:
    daily_volatility: float        # percent
    annualized_volatility: float   # percent
    bollinger_upper: float
    bollinger_middle: float
    bollinger_lower: float
    level: VolatilityLevel

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dailyVolatility": self.daily_volatility,
            "annualizedVolatility": self.annualized_volatility,
            "bollingerUpper": self.bollinger_upper,
            "bollingerMiddle": self.bollinger_middle,
            "bollingerLower": self.bollinger_lower,
            "level": self.level.value,
        }


@dataclass(frozen=True)
class SupportResistanceLevels:
    support1: float
    support2: float
    resistance1: float
    resistance2: float
    pivot_point: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "support1": self.support1,
            "support2": self.support2,
            "resistance1": self.resistance1,
            "resistance2": self.resistance2,
            "pivotPoint": self.pivot_point,
        }


@dataclass(frozen=True)
class MLPredictions:
    knn_prediction: float
    knn_confidence: float
    monte_carlo: MonteCarloSummary
    exponential_smoothing: float
    pattern_score: float
    pattern_name: str
    consensus_signal: ConsensusSignal
    consensus_score: float
    detected_patterns: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "knnPrediction": self.knn_prediction,
            "knnConfidence": self.knn_confidence,
            "monteCarlo": {
                "median": self.monte_carlo.median,
                "low": self.monte_carlo.low,
                "high": self.monte_carlo.high,
                "bullishProbability": self.monte_carlo.bullish_probability,
            },
            "exponentialSmoothing": self.exponential_smoothing,
            "patternScore": self.pattern_score,
            "patternName": self.pattern_name,
            "detectedPatterns": list(self.detected_patterns),
            "consensusSignal": self.consensus_signal.value,
            "consensusScore": self.consensus_score,
        }


def optimal_prices_to_dict(prices: OptimalPrices) -> Dict[str, Any]:
    fib = prices.fibonacci
    levels = prices.dynamic_levels
    return {
        "fibonacci": {
            "level236": fib.level_236,
            "level382": fib.level_382,
            "level500": fib.level_500,
            "level618": fib.level_618,
            "level786": fib.level_786,
            "extension1618": fib.extension_1618,
        },
        "dynamicLevels": {
            "strongSupport": levels.strong_support,
            "weakSupport": levels.weak_support,
            "strongResistance": levels.strong_resistance,
            "weakResistance": levels.weak_resistance,
            "confidence": levels.confidence,
        },
        "optimalBuyPrice": prices.optimal_buy_price,
        "optimalSellPrice": prices.optimal_sell_price,
        "buyConfidence": prices.buy_confidence,
        "sellConfidence": prices.sell_confidence,
        "buyReasoning": list(prices.buy_reasoning),
        "sellReasoning": list(prices.sell_reasoning),
        "riskRewardRatio": prices.risk_reward_ratio,
        "stopLoss": prices.stop_loss,
        "takeProfit": prices.take_profit,
    }


@dataclass(frozen=True)
class AnalysisResult:
    """
    Complete, immutable output of one analysis run.

    Built fresh from one bar series and never mutated afterwards.
    """
    linear_regression: LinearRegressionAnalysis
    moving_averages: MovingAverageAnalysis
    rsi: RSIAnalysis
    stochastic: StochasticAnalysis
    atr: ATRAnalysis
    momentum: MomentumAnalysis
    volatility: VolatilityAnalysis
    levels: SupportResistanceLevels
    ml_predictions: MLPredictions
    optimal_prices: OptimalPrices
    current_price: float

    # Metadata
    bar_count: int = 0
    version: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "linearRegression": self.linear_regression.to_dict(),
            "movingAverages": self.moving_averages.to_dict(),
            "rsi": self.rsi.to_dict(),
            "stochastic": self.stochastic.to_dict(),
            "atr": self.atr.to_dict(),
            "momentum": self.momentum.to_dict(),
            "volatility": self.volatility.to_dict(),
            "levels": self.levels.to_dict(),
            "mlPredictions": self.ml_predictions.to_dict(),
            "optimalPrices": optimal_prices_to_dict(self.optimal_prices),
            "currentPrice": self.current_price,
            "barCount": self.bar_count,
            "version": self.version,
        }
