"""
Console report for one analysis result.
"""

from __future__ import annotations

from datetime import datetime

from quant_analysis.results import AnalysisResult


def format_number(value: float, precision: int = 2) -> str:
    """Format number with thousands separator."""
    return f"{value:,.{precision}f}"


def format_percent(value: float, precision: int = 1) -> str:
    """Format an already-scaled percentage with sign."""
    return f"{value:+.{precision}f}%"


def _section(title: str) -> None:
    print("\n" + "-" * 70)
    print(title)
    print("-" * 70)


def print_analysis_report(result: AnalysisResult, symbol: str = "") -> None:
    """
    Print a comprehensive analysis report to console.

    Parameters
    ----------
    result : AnalysisResult
        Output from QuantAnalysisEngine.process()
    symbol : str
        Instrument label for the header
    """
    reg = result.linear_regression
    ma = result.moving_averages
    ml = result.ml_predictions
    opt = result.optimal_prices

    print("\n" + "=" * 70)
    print("QUANTITATIVE ANALYSIS REPORT")
    print("=" * 70)
    if symbol:
        print(f"Symbol: {symbol}")
    print(f"Bars analyzed: {result.bar_count}")
    print(f"Current price: {format_number(result.current_price)}")
    print(f"Generated: {datetime.now().isoformat(timespec='seconds')}")
    print(f"Version: {result.version}")

    _section("CONSENSUS")
    print(f"Signal: {ml.consensus_signal.value.upper()}")
    print(f"Score: {ml.consensus_score:.1f} / 100")

    _section("TREND")
    print(f"Regression: {reg.trend_direction.value} (slope {reg.slope:.4f}, "
          f"R² {reg.r2:.3f}, {reg.confidence_level.value} confidence)")
    print(f"  Predicted price: {format_number(reg.predicted_price)}")
    print(f"Moving averages: {ma.trend.value}")
    print(f"  SMA20 {format_number(ma.sma20)} | SMA50 {format_number(ma.sma50)} | "
          f"SMA200 {format_number(ma.sma200)}")
    print(f"  EMA12 {format_number(ma.ema12)} | EMA26 {format_number(ma.ema26)}")
    print(f"  MACD {ma.macd_line:.3f} | Signal {ma.signal_line:.3f} | "
          f"Histogram {ma.macd_histogram:.3f}")

    _section("MOMENTUM & VOLATILITY")
    print(f"RSI(14): {result.rsi.value:.1f} ({result.rsi.signal.value})")
    print(f"Stochastic: %K {result.stochastic.k:.1f} %D {result.stochastic.d:.1f} "
          f"({result.stochastic.signal.value})")
    print(f"ROC10 {format_percent(result.momentum.roc10)} | ROC20 "
          f"{format_percent(result.momentum.roc20)} ({result.momentum.signal.value})")
    print(f"ATR: {format_number(result.atr.value)} ({result.atr.percent:.2f}% of price, "
          f"{result.atr.level.value})")
    vol = result.volatility
    print(f"Volatility: {vol.daily_volatility:.2f}% daily, {vol.annualized_volatility:.1f}% "
          f"annualized ({vol.level.value})")
    print(f"Bollinger: {format_number(vol.bollinger_lower)} / "
          f"{format_number(vol.bollinger_middle)} / {format_number(vol.bollinger_upper)}")

    _section("KEY LEVELS")
    lv = result.levels
    print(f"Pivot: {format_number(lv.pivot_point)}")
    print(f"Resistance: R1 {format_number(lv.resistance1)} | R2 {format_number(lv.resistance2)}")
    print(f"Support:    S1 {format_number(lv.support1)} | S2 {format_number(lv.support2)}")
    for name, level in opt.fibonacci.named_levels():
        print(f"  Fibonacci {name}: {format_number(level)}")
    dyn = opt.dynamic_levels
    print(f"Dynamic support: {format_number(dyn.strong_support)} (strong), "
          f"{format_number(dyn.weak_support)} (weak)")
    print(f"Dynamic resistance: {format_number(dyn.strong_resistance)} (strong), "
          f"{format_number(dyn.weak_resistance)} (weak)")
    print(f"Level confidence: {dyn.confidence:.0f}%")

    _section("PREDICTIVE MODELS")
    print(f"KNN: {format_number(ml.knn_prediction)} ({ml.knn_confidence:.0f}% confidence)")
    mc = ml.monte_carlo
    print(f"Monte Carlo: median {format_number(mc.median)}, range "
          f"{format_number(mc.low)} - {format_number(mc.high)}, "
          f"{mc.bullish_probability:.1f}% bullish")
    print(f"Holt forecast: {format_number(ml.exponential_smoothing)}")
    print(f"Candlestick: {ml.pattern_name} (score {ml.pattern_score:.0f})")
    for name in ml.detected_patterns:
        print(f"  -> {name}")

    _section("TRADE PLAN")
    print(f"Optimal buy:  {format_number(opt.optimal_buy_price)} "
          f"({opt.buy_confidence:.0f}% confidence)")
    for reason in opt.buy_reasoning:
        print(f"  -> {reason}")
    print(f"Optimal sell: {format_number(opt.optimal_sell_price)} "
          f"({opt.sell_confidence:.0f}% confidence)")
    for reason in opt.sell_reasoning:
        print(f"  -> {reason}")
    print(f"Stop loss: {format_number(opt.stop_loss)} | Take profit: "
          f"{format_number(opt.take_profit)} | R/R {opt.risk_reward_ratio:.2f}")

    print("\n" + "=" * 70)
