import pytest

from quant_analysis.config import (
    ConsensusParameters,
    ConsensusSignal,
    OscillatorSignal,
    TrendDirection,
)
from quant_analysis.consensus import SignalInputs, bucket_score, calculate_consensus

BULL = TrendDirection.BULLISH
BEAR = TrendDirection.BEARISH
FLAT = TrendDirection.NEUTRAL


def neutral_inputs(**overrides):
    values = dict(
        regression_trend=FLAT,
        moving_average_trend=FLAT,
        rsi_signal=OscillatorSignal.NEUTRAL,
        stochastic_signal=OscillatorSignal.NEUTRAL,
        momentum_signal=FLAT,
    )
    values.update(overrides)
    return SignalInputs(**values)


class TestConsensus:
    def test_all_neutral_is_hold(self):
        result = calculate_consensus(neutral_inputs())
        assert result.score == 50.0
        assert result.signal == ConsensusSignal.HOLD

    def test_everything_bullish_is_clamped_strong_buy(self):
        result = calculate_consensus(SignalInputs(
            regression_trend=BULL,
            moving_average_trend=BULL,
            rsi_signal=OscillatorSignal.OVERSOLD,
            stochastic_signal=OscillatorSignal.OVERSOLD,
            momentum_signal=BULL,
            pattern_score=100.0,
            bullish_probability=100.0,
            knn_expected_change_pct=5.0,
        ))
        assert result.score == 100.0
        assert result.signal == ConsensusSignal.STRONG_BUY
        assert result.signal.is_bullish

    def test_everything_bearish_is_strong_sell(self):
        result = calculate_consensus(SignalInputs(
            regression_trend=BEAR,
            moving_average_trend=BEAR,
            rsi_signal=OscillatorSignal.OVERBOUGHT,
            stochastic_signal=OscillatorSignal.OVERBOUGHT,
            momentum_signal=BEAR,
            pattern_score=0.0,
            bullish_probability=0.0,
            knn_expected_change_pct=-5.0,
        ))
        assert result.score == 0.0
        assert result.signal == ConsensusSignal.STRONG_SELL
        assert result.signal.is_bearish

    def test_trending_but_overbought(self):
        result = calculate_consensus(SignalInputs(
            regression_trend=BULL,
            moving_average_trend=FLAT,
            rsi_signal=OscillatorSignal.OVERBOUGHT,
            stochastic_signal=OscillatorSignal.OVERBOUGHT,
            momentum_signal=BULL,
            pattern_score=70.0,
            bullish_probability=100.0,
            knn_expected_change_pct=4.6,
        ))
        assert result.score == pytest.approx(71.0)
        assert result.signal == ConsensusSignal.BUY
        assert result.votes["rsi"] == -1.0
        assert result.votes["pattern"] == pytest.approx(0.4)

    def test_knn_vote_needs_move_beyond_threshold(self):
        assert calculate_consensus(neutral_inputs(knn_expected_change_pct=1.0)).votes["knn"] == 0.0
        assert calculate_consensus(neutral_inputs(knn_expected_change_pct=1.5)).votes["knn"] == 1.0
        assert calculate_consensus(neutral_inputs(knn_expected_change_pct=-1.5)).votes["knn"] == -1.0

    def test_moving_averages_carry_most_weight(self):
        result = calculate_consensus(neutral_inputs(moving_average_trend=BULL))
        assert result.score == 65.0
        assert result.signal == ConsensusSignal.BUY

    def test_custom_weights(self):
        params = ConsensusParameters(rsi_weight=40.0)
        result = calculate_consensus(neutral_inputs(rsi_signal=OscillatorSignal.OVERSOLD), params)
        assert result.score == 90.0


class TestBuckets:
    @pytest.mark.parametrize("score,expected", [
        (100.0, ConsensusSignal.STRONG_BUY),
        (75.0, ConsensusSignal.STRONG_BUY),
        (74.9, ConsensusSignal.BUY),
        (60.0, ConsensusSignal.BUY),
        (59.9, ConsensusSignal.HOLD),
        (40.0, ConsensusSignal.HOLD),
        (39.9, ConsensusSignal.SELL),
        (25.0, ConsensusSignal.SELL),
        (24.9, ConsensusSignal.STRONG_SELL),
        (0.0, ConsensusSignal.STRONG_SELL),
    ])
    def test_thresholds(self, score, expected):
        assert bucket_score(score, ConsensusParameters()) == expected

    def test_thresholds_must_increase(self):
        with pytest.raises(ValueError):
            ConsensusParameters(buy_threshold=80.0)
