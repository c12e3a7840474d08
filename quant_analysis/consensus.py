"""
Consensus Aggregator

Every sub-signal is mapped onto a vote in [-1, +1]:

    Regression trend, MA trend, momentum   bullish +1 / bearish -1
    RSI, Stochastic                        oversold +1 / overbought -1
    Candlestick score                      (score - 50) / 50
    Monte Carlo bullish probability        (p - 50) / 50
    KNN expected move                      +1 above +threshold, -1 below -threshold

The weighted votes are added to a neutral 50, the total is clamped to
[0, 100] and bucketed into strong_buy / buy / hold / sell / strong_sell.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

import numpy as np

from quant_analysis.config import (
    ConsensusParameters,
    ConsensusSignal,
    OscillatorSignal,
    TrendDirection,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignalInputs:
    """Directional readings from every component feeding the consensus."""
    regression_trend: TrendDirection
    moving_average_trend: TrendDirection
    rsi_signal: OscillatorSignal
    stochastic_signal: OscillatorSignal
    momentum_signal: TrendDirection
    pattern_score: float = 50.0
    bullish_probability: float = 50.0
    knn_expected_change_pct: float = 0.0


@dataclass(frozen=True)
class ConsensusResult:
    signal: ConsensusSignal
    score: float
    votes: Dict[str, float] = field(default_factory=dict)


def trend_vote(direction: TrendDirection) -> float:
    if direction == TrendDirection.BULLISH:
        return 1.0
    if direction == TrendDirection.BEARISH:
        return -1.0
    return 0.0


def oscillator_vote(signal: OscillatorSignal) -> float:
    """Contrarian: oversold is a buy vote, overbought a sell vote."""
    if signal == OscillatorSignal.OVERSOLD:
        return 1.0
    if signal == OscillatorSignal.OVERBOUGHT:
        return -1.0
    return 0.0


def bucket_score(score: float, params: ConsensusParameters) -> ConsensusSignal:
    if score >= params.strong_buy_threshold:
        return ConsensusSignal.STRONG_BUY
    if score >= params.buy_threshold:
        return ConsensusSignal.BUY
    if score >= params.hold_threshold:
        return ConsensusSignal.HOLD
    if score >= params.sell_threshold:
        return ConsensusSignal.SELL
    return ConsensusSignal.STRONG_SELL


def calculate_consensus(
    inputs: SignalInputs,
    params: Optional[ConsensusParameters] = None
) -> ConsensusResult:
    """
    Combine all sub-signals into one verdict.

    Parameters
    ----------
    inputs : SignalInputs
        Component readings
    params : ConsensusParameters, optional
        Weights and thresholds; defaults when omitted

    Returns
    -------
    ConsensusResult
        Bucketed signal, the 0-100 score and the individual votes
    """
    params = params or ConsensusParameters()

    knn_threshold = params.knn_bias_threshold_pct
    if inputs.knn_expected_change_pct > knn_threshold:
        knn_vote = 1.0
    elif inputs.knn_expected_change_pct < -knn_threshold:
        knn_vote = -1.0
    else:
        knn_vote = 0.0

    votes = {
        "regression": trend_vote(inputs.regression_trend),
        "moving_averages": trend_vote(inputs.moving_average_trend),
        "rsi": oscillator_vote(inputs.rsi_signal),
        "stochastic": oscillator_vote(inputs.stochastic_signal),
        "momentum": trend_vote(inputs.momentum_signal),
        "pattern": float(np.clip((inputs.pattern_score - 50.0) / 50.0, -1.0, 1.0)),
        "monte_carlo": float(np.clip((inputs.bullish_probability - 50.0) / 50.0, -1.0, 1.0)),
        "knn": knn_vote,
    }
    weights = {
        "regression": params.regression_weight,
        "moving_averages": params.moving_average_weight,
        "rsi": params.rsi_weight,
        "stochastic": params.stochastic_weight,
        "momentum": params.momentum_weight,
        "pattern": params.pattern_weight,
        "monte_carlo": params.monte_carlo_weight,
        "knn": params.knn_weight,
    }

    raw = 50.0 + sum(weights[name] * vote for name, vote in votes.items())
    score = float(np.clip(raw, 0.0, 100.0))
    signal = bucket_score(score, params)

    logger.debug(f"Consensus votes: {votes} -> {score:.1f} ({signal.value})")
    return ConsensusResult(signal=signal, score=score, votes=votes)
