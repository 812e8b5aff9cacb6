"""
PMZ Level Calculator

Loads 1-minute bars for a trading date, derives the pre-market zone levels,
and prints a report.

Usage (from repo root):
    python run_pmz.py --date 2025-03-14 --source synthetic
    python run_pmz.py --source csv --csv-path data/es_1m.csv --json
    python run_pmz.py --source csv --csv-path data/es_1m.csv --instruments

The exit status is the engine error code (0 on success, 5 when the data is
insufficient).
"""

import argparse
import json
import logging
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import List, Optional

from configs import config_loader
from infra.data.data_loader import DataLoader
from pmz.aggregation.bucketing import AggregationMode, aggregate
from pmz.analysis.instrument_stats import summarize_instruments
from pmz.errors import ErrorCode, InsufficientData, PMZError
from pmz.models.config import EngineConfig, GapPolicy
from pmz.models.ohlcv import Bar
from pmz.normalization.normalizer import normalize_bars
from pmz.orchestration.pipeline import PMZPipeline
from pmz.orchestration.report import (
    format_diagnostics,
    format_instrument_candles,
    format_instrument_summary,
    format_report,
)
from pmz.sessions.trading_calendar import latest_trading_day

logger = logging.getLogger(__name__)

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName", "levelname",
    "levelno", "lineno", "module", "msecs", "message", "pathname", "process",
    "processName", "relativeCreated", "thread", "threadName", "exc_info",
    "exc_text", "stack_info", "getMessage", "taskName",
}


class JSONFormatter(logging.Formatter):
    """One JSON object per log record, extra fields included."""

    def format(self, record):
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                log_obj[key] = value
        return json.dumps(log_obj, default=str)


def setup_logging(verbose: bool = False) -> Path:
    """Setup JSON logging to file plus a console handler."""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    log_file = log_dir / f"pmz_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}.json"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    root_logger.addHandler(console_handler)

    return log_file


def build_config(gap_policy: Optional[str] = None, symbol: Optional[str] = None) -> EngineConfig:
    """EngineConfig from on-disk JSON configs, with CLI overrides."""
    engine_cfg = dict(config_loader.get_config("engine"))
    if gap_policy:
        engine_cfg["gap_policy"] = gap_policy
    if symbol:
        engine_cfg["symbol"] = symbol
    return EngineConfig.from_configs(config_loader.get_config("sessions"), engine_cfg)


def report_instruments(bars: List[Bar], bucket_minutes: int, as_json: bool) -> int:
    """Print the per-instrument summary and each instrument's aggregated candles."""
    summaries = summarize_instruments(bars)
    candles = aggregate(bars, bucket_minutes, AggregationMode.MULTI_INSTRUMENT)
    logger.info("instrument_report", extra={"instruments": len(summaries), "candles": len(candles)})

    if as_json:
        print(json.dumps({
            "instruments": [s.to_dict() for s in summaries],
            "candles": [
                {
                    "timestamp": c.timestamp.isoformat(),
                    "instrument_id": c.instrument_id,
                    "symbol": c.symbol,
                    "open": str(c.open),
                    "high": str(c.high),
                    "low": str(c.low),
                    "close": str(c.close),
                    "volume": c.volume,
                }
                for c in candles
            ],
        }, indent=2))
    else:
        print(format_instrument_summary(summaries))
        print(f"\nAggregated into {len(candles)} {bucket_minutes}-minute candles")
        print(format_instrument_candles(candles))
    return int(ErrorCode.SUCCESS)


def run(args: argparse.Namespace) -> int:
    trading_date = args.date or latest_trading_day(datetime.now(timezone.utc).date())
    config = build_config(args.gap_policy, args.symbol)
    pipeline = PMZPipeline(config)

    loader = DataLoader({
        "source": args.source,
        "csv_path": args.csv_path,
        "price_format": args.price_format,
        "cache": {"path": args.cache_path},
    })
    start, end = pipeline.selector.query_range(trading_date)
    raw_bars = loader.fetch_raw_bars(config.symbol, start, end)
    logger.info("pmz_run_started", extra={
        "trading_date": trading_date.isoformat(),
        "symbol": config.symbol,
        "bars": len(raw_bars),
        "config_hash": config.config_hash.hash_value,
    })

    bars = normalize_bars(raw_bars, config.symbol, config.timezone)
    if args.instruments:
        return report_instruments(bars, config.bucket_minutes, args.json)

    levels = pipeline.compute_levels(bars, trading_date)
    try:
        result = pipeline.finalize(levels)
    except InsufficientData as e:
        if args.json:
            print(json.dumps({"error_code": int(e.code), "error_message": e.message,
                              "levels": levels.to_dict()}, indent=2))
        else:
            print(format_diagnostics(levels))
        return int(e.code)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(format_report(result, levels, config))
    return int(ErrorCode.SUCCESS)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="PMZ level calculator")
    parser.add_argument(
        "--date",
        type=_parse_date,
        default=None,
        help="Trading date YYYY-MM-DD (default: latest weekday)",
    )
    parser.add_argument("--symbol", default=None, help="Symbol (default: from configs/engine.json)")
    parser.add_argument(
        "--source",
        choices=["synthetic", "cache", "csv"],
        default="synthetic",
        help="Bar source (default: synthetic)",
    )
    parser.add_argument("--csv-path", default="data/bars_1m.csv", help="CSV file for --source csv")
    parser.add_argument(
        "--price-format",
        choices=["fixed", "decimal"],
        default="fixed",
        help="CSV price encoding: 1e-9 fixed-point integers or decimal prices (default: fixed)",
    )
    parser.add_argument("--cache-path", default="data/cache", help="Cache directory for --source cache")
    parser.add_argument(
        "--gap-policy",
        choices=[p.value for p in GapPolicy],
        default=None,
        help="Opening reference used for gap direction (default: from configs/engine.json)",
    )
    parser.add_argument(
        "--instruments",
        action="store_true",
        help="Print per-instrument summary and candles instead of PMZ levels",
    )
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--verbose", action="store_true", help="Log debug output to the console")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    log_file = setup_logging(args.verbose)
    try:
        return run(args)
    except PMZError as e:
        logger.error("pmz_run_failed", extra={"error": e.message, "error_code": int(e.code), "log_file": str(log_file)})
        print(f"Error: {e.message}", file=sys.stderr)
        return int(e.code)
    except (OSError, ValueError) as e:
        logger.error("pmz_run_failed", extra={"error": str(e), "log_file": str(log_file)})
        print(f"Error: {e}", file=sys.stderr)
        return int(ErrorCode.DATA_PROCESSING_FAILED)


if __name__ == "__main__":
    sys.exit(main())
