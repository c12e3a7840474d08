"""
Quantitative Analysis Engine

Orchestrates the full pipeline for one instrument:

    OHLCV bars
      -> statistics primitives + indicator library   (independent reads)
      -> predictive models                           (raw series)
      -> level & price-target synthesizer            (indicators + models)
      -> consensus aggregator                        (everything)
      -> AnalysisResult                              (frozen)

The engine is pure and stateless: the same bars and configuration always
produce the same result, except for the Monte Carlo fields when no seed is
configured. It never raises on short series; malformed input is rejected
up front by ``normalize_bars``.

Usage
-----
>>> result = analyze(bars)
>>> result.ml_predictions.consensus_signal
"""

from __future__ import annotations

import logging
import math
from dataclasses import fields, is_dataclass, replace
from typing import Any, Dict, Optional

import numpy as np

from quant_analysis.config import DEFAULT_CONFIG, ENGINE_VERSION, AnalysisConfig
from quant_analysis.consensus import SignalInputs, calculate_consensus
from quant_analysis.predictive_models import (
    holt_forecast,
    knn_predict,
    monte_carlo_simulation,
    recognize_patterns,
)
from quant_analysis.price_levels import calculate_optimal_prices
from quant_analysis.results import (
    AnalysisResult,
    ATRAnalysis,
    LinearRegressionAnalysis,
    MLPredictions,
    MomentumAnalysis,
    MovingAverageAnalysis,
    RSIAnalysis,
    StochasticAnalysis,
    SupportResistanceLevels,
    VolatilityAnalysis,
)
from quant_analysis.statistical_primitives import linear_regression, log_returns, standard_deviation
from quant_analysis.technical_indicators import (
    calculate_atr,
    calculate_bollinger_bands,
    calculate_ema,
    calculate_macd,
    calculate_pivot_points,
    calculate_roc,
    calculate_rsi,
    calculate_sma,
    calculate_stochastic,
    classify_atr,
    classify_ma_trend,
    classify_momentum,
    classify_regression_confidence,
    classify_regression_trend,
    classify_rsi,
    classify_stochastic,
    classify_volatility,
)
from quant_analysis.validation import BarsInput, normalize_bars

logger = logging.getLogger(__name__)


# Fields whose neutral reading is the midpoint of a 0-100 scale; every
# other float falls back to 0.0.
NEUTRAL_DEFAULTS: Dict[str, float] = {
    "rsi.value": 50.0,
    "stochastic.k": 50.0,
    "stochastic.d": 50.0,
    "ml_predictions.pattern_score": 50.0,
    "ml_predictions.consensus_score": 50.0,
    "ml_predictions.monte_carlo.bullish_probability": 50.0,
}


def _finite(value: Any, name: str) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        default = NEUTRAL_DEFAULTS.get(name, 0.0)
        logger.warning(f"Non-finite value for {name}, replaced with {default}")
        return default
    return value


def _sanitize(obj: Any, path: str = "") -> Any:
    """Return a copy of a frozen dataclass tree with non-finite floats replaced."""
    if not is_dataclass(obj):
        return _finite(obj, path)
    changes = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        cleaned = _sanitize(value, f"{path}.{f.name}" if path else f.name)
        if cleaned is not value:
            changes[f.name] = cleaned
    return replace(obj, **changes) if changes else obj


class QuantAnalysisEngine:
    """
    Main orchestrator for the quantitative analysis pipeline.

    Parameters
    ----------
    config : AnalysisConfig, optional
        Indicator, model, level and consensus parameters; ``DEFAULT_CONFIG``
        when omitted

    Usage
    -----
    >>> engine = QuantAnalysisEngine(AnalysisConfig(models=ModelParameters(monte_carlo_seed=7)))
    >>> result = engine.process(df)
    >>> print(result.ml_predictions.consensus_signal.value)
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def process(self, bars: BarsInput) -> AnalysisResult:
        """
        Run every component over one bar series.

        Parameters
        ----------
        bars : DataFrame or sequence of bars
            OHLCV data ordered oldest to newest

        Returns
        -------
        AnalysisResult
            Immutable analysis bundle

        Raises
        ------
        InputValidationError
            When the bars are malformed
        """
        df = normalize_bars(bars)
        logger.info(f"Analyzing {len(df)} bars")

        opens = df["Open"].to_numpy()
        highs = df["High"].to_numpy()
        lows = df["Low"].to_numpy()
        closes = df["Close"].to_numpy()
        current_price = float(closes[-1])

        ind = self.config.indicators
        mdl = self.config.models

        # 1. Linear regression on the recent window
        recent = closes[-ind.regression_window:]
        fit = linear_regression(np.arange(recent.size, dtype=float), recent)
        regression = LinearRegressionAnalysis(
            slope=fit.slope,
            intercept=fit.intercept,
            r2=fit.r2,
            predicted_price=fit.predict(recent.size + ind.regression_horizon),
            trend_direction=classify_regression_trend(fit.slope, ind),
            confidence_level=classify_regression_confidence(fit.r2, ind),
        )

        # 2. Moving averages and MACD
        sma_medium = calculate_sma(closes, ind.sma_medium)
        sma_long = calculate_sma(closes, ind.sma_long)
        macd = calculate_macd(closes, ind.ema_fast, ind.ema_slow, ind.macd_signal)
        moving_averages = MovingAverageAnalysis(
            sma20=calculate_sma(closes, ind.sma_short),
            sma50=sma_medium,
            sma200=sma_long,
            ema12=calculate_ema(closes, ind.ema_fast),
            ema26=calculate_ema(closes, ind.ema_slow),
            macd_line=macd.macd,
            signal_line=macd.signal,
            macd_histogram=macd.histogram,
            trend=classify_ma_trend(current_price, sma_medium, sma_long),
        )

        # 3. Oscillators
        rsi_value = calculate_rsi(closes, ind.rsi_period)
        rsi = RSIAnalysis(value=rsi_value, signal=classify_rsi(rsi_value, ind))

        stoch = calculate_stochastic(closes, highs, lows, ind.stochastic_period, ind.stochastic_d_period)
        stochastic = StochasticAnalysis(k=stoch.k, d=stoch.d, signal=classify_stochastic(stoch.k, ind))

        # 4. ATR
        atr_value = calculate_atr(highs, lows, closes, ind.atr_period)
        atr_percent = atr_value / current_price * 100.0 if current_price != 0 else 0.0
        atr = ATRAnalysis(value=atr_value, percent=atr_percent, level=classify_atr(atr_percent, ind))

        # 5. Momentum
        roc_short = calculate_roc(closes, ind.roc_short)
        roc_long = calculate_roc(closes, ind.roc_long)
        momentum = MomentumAnalysis(
            roc10=roc_short,
            roc20=roc_long,
            signal=classify_momentum(roc_short, roc_long, ind),
        )

        # 6. Volatility
        daily_volatility = standard_deviation(log_returns(closes)) * 100.0
        annualized_volatility = daily_volatility * math.sqrt(ind.trading_days_year)
        bands = calculate_bollinger_bands(closes, ind.bollinger_period, ind.bollinger_multiplier)
        volatility = VolatilityAnalysis(
            daily_volatility=daily_volatility,
            annualized_volatility=annualized_volatility,
            bollinger_upper=bands.upper,
            bollinger_middle=bands.middle,
            bollinger_lower=bands.lower,
            level=classify_volatility(annualized_volatility, ind),
        )

        # 7. Pivot levels
        pivots = calculate_pivot_points(
            float(highs[-ind.pivot_window:].max()),
            float(lows[-ind.pivot_window:].min()),
            current_price,
        )
        levels = SupportResistanceLevels(
            support1=pivots.s1,
            support2=pivots.s2,
            resistance1=pivots.r1,
            resistance2=pivots.r2,
            pivot_point=pivots.pivot,
        )

        # 8. Predictive models
        knn = knn_predict(
            closes,
            k=mdl.knn_k,
            lookback=mdl.knn_lookback,
            horizon=mdl.knn_horizon,
            confidence_scale=mdl.knn_confidence_scale,
            epsilon=mdl.knn_distance_epsilon,
        )
        monte_carlo = monte_carlo_simulation(
            closes,
            simulations=mdl.monte_carlo_simulations,
            days=mdl.monte_carlo_days,
            min_history=mdl.monte_carlo_min_history,
            seed=mdl.monte_carlo_seed,
        )
        smoothing = holt_forecast(closes, mdl.holt_alpha, mdl.holt_beta, mdl.holt_horizon)
        patterns = recognize_patterns(
            opens, highs, lows, closes,
            min_candles=mdl.pattern_min_candles,
            body_window=mdl.pattern_body_window,
        )

        # 9. Price levels and targets
        optimal = calculate_optimal_prices(
            current_price,
            highs,
            lows,
            bands,
            rsi_value,
            patterns.score,
            atr_value,
            indicator_params=ind,
            params=self.config.levels,
        )

        # 10. Consensus
        consensus = calculate_consensus(
            SignalInputs(
                regression_trend=regression.trend_direction,
                moving_average_trend=moving_averages.trend,
                rsi_signal=rsi.signal,
                stochastic_signal=stochastic.signal,
                momentum_signal=momentum.signal,
                pattern_score=patterns.score,
                bullish_probability=monte_carlo.bullish_probability,
                knn_expected_change_pct=knn.expected_change_pct,
            ),
            self.config.consensus,
        )

        ml_predictions = MLPredictions(
            knn_prediction=knn.prediction,
            knn_confidence=knn.confidence,
            monte_carlo=monte_carlo,
            exponential_smoothing=smoothing,
            pattern_score=patterns.score,
            pattern_name=patterns.pattern_name,
            consensus_signal=consensus.signal,
            consensus_score=consensus.score,
            detected_patterns=tuple(p.name for p in patterns.patterns),
        )

        result = AnalysisResult(
            linear_regression=regression,
            moving_averages=moving_averages,
            rsi=rsi,
            stochastic=stochastic,
            atr=atr,
            momentum=momentum,
            volatility=volatility,
            levels=levels,
            ml_predictions=ml_predictions,
            optimal_prices=optimal,
            current_price=current_price,
            bar_count=len(df),
            version=ENGINE_VERSION,
        )

        logger.info(
            f"Consensus {consensus.signal.value} ({consensus.score:.1f}) at price {current_price:.2f}"
        )
        return _sanitize(result)


def analyze(bars: BarsInput, config: Optional[AnalysisConfig] = None) -> AnalysisResult:
    """
    Analyze one instrument's bar series.

    Parameters
    ----------
    bars : DataFrame or sequence of bars
        OHLCV data ordered oldest to newest
    config : AnalysisConfig, optional
        Engine parameters; ``DEFAULT_CONFIG`` when omitted

    Returns
    -------
    AnalysisResult
        Immutable analysis bundle
    """
    return QuantAnalysisEngine(config).process(bars)
