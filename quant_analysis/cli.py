"""
Quantitative Analysis - command line runner

EXECUTION
    quant-analysis --symbol AAPL
    quant-analysis --symbol MSFT --range 6mo --seed 42
    quant-analysis --input bars.csv --json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

import pandas as pd

from quant_analysis.config import DEFAULT_CONFIG, DEFAULT_RANGE, ENGINE_VERSION, RANGE_INTERVALS
from quant_analysis.engine import QuantAnalysisEngine
from quant_analysis.market_data import MarketDataClient, MarketDataError
from quant_analysis.report import print_analysis_report
from quant_analysis.validation import InputValidationError, normalize_bars

DEFAULT_SYMBOL: str = "AAPL"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quant-analysis",
        description="Quantitative technical analysis of one instrument",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  quant-analysis                              # Analyze AAPL over 1y
  quant-analysis --symbol MSFT --range 6mo    # Daily bars for six months
  quant-analysis --input bars.csv --json      # Offline, JSON output
        """
    )

    parser.add_argument(
        "--symbol", "-s",
        type=str,
        default=DEFAULT_SYMBOL,
        help=f"Ticker symbol (default: {DEFAULT_SYMBOL})"
    )

    parser.add_argument(
        "--range", "-r",
        dest="range_name",
        choices=sorted(RANGE_INTERVALS),
        default=DEFAULT_RANGE,
        help=f"Chart range (default: {DEFAULT_RANGE})"
    )

    parser.add_argument(
        "--input", "-i",
        type=str,
        default=None,
        help="Read bars from a CSV file instead of downloading them"
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the Monte Carlo simulation"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON instead of a report"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {ENGINE_VERSION}"
    )
    return parser


def main(argv: Optional[List[str]] = None, client: Optional[MarketDataClient] = None) -> int:
    """
    Main entry point.

    Returns
    -------
    int
        Exit code (0 for success, 1 for failure)
    """
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="  %(asctime)s │ %(levelname)s │ %(message)s",
        datefmt="%H:%M:%S"
    )
    logger = logging.getLogger(__name__)

    config = DEFAULT_CONFIG
    if args.seed is not None:
        config = replace(config, models=replace(config.models, monte_carlo_seed=args.seed))

    try:
        if args.input:
            logger.info(f"Reading bars from {args.input}")
            bars = normalize_bars(pd.read_csv(args.input))
            label = args.input
        else:
            bars = (client or MarketDataClient()).fetch_bars(args.symbol, args.range_name)
            label = args.symbol.upper()
        result = QuantAnalysisEngine(config).process(bars)
    except (InputValidationError, MarketDataError, OSError) as e:
        logger.error(f"Analysis failed: {e}")
        return 1

    if args.json:
        payload = result.to_dict()
        payload["generatedAt"] = datetime.now().isoformat()
        print(json.dumps(payload, indent=2))
    else:
        print_analysis_report(result, label)
    return 0


if __name__ == "__main__":
    sys.exit(main())
