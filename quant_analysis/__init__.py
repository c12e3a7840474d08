"""
Quantitative technical analysis engine for a single instrument.

>>> from quant_analysis import analyze
>>> result = analyze(bars)
>>> result.ml_predictions.consensus_signal
"""

from quant_analysis.config import (
    DEFAULT_CONFIG,
    ENGINE_VERSION,
    AnalysisConfig,
    ConsensusParameters,
    ConsensusSignal,
    IndicatorParameters,
    LevelParameters,
    ModelParameters,
)
from quant_analysis.engine import QuantAnalysisEngine, analyze
from quant_analysis.market_data import MarketDataClient, MarketDataError
from quant_analysis.results import AnalysisResult
from quant_analysis.validation import InputValidationError, OHLCVBar, bars_from_arrays, normalize_bars

__version__ = ENGINE_VERSION

__all__ = [
    "AnalysisConfig",
    "AnalysisResult",
    "ConsensusParameters",
    "ConsensusSignal",
    "DEFAULT_CONFIG",
    "IndicatorParameters",
    "InputValidationError",
    "LevelParameters",
    "MarketDataClient",
    "MarketDataError",
    "ModelParameters",
    "OHLCVBar",
    "QuantAnalysisEngine",
    "analyze",
    "bars_from_arrays",
    "normalize_bars",
]
