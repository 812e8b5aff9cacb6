#!/usr/bin/env python3
"""
Determinism Check: aggregate and derive the same day twice, verify 100% match

Validates that the engine is deterministic (replay-safe) by:
1. Loading synthetic 1-minute bars for one trading date
2. Aggregating to 5-minute bars and deriving PMZ levels, twice
3. Re-aggregating the 5-minute output (must be unchanged)
4. Writing artifacts/determinism_diff.txt with results
"""

import json
import os
import sys
import logging
from datetime import date, datetime, timezone
from pathlib import Path

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from infra.data.data_loader import DataLoader
from pmz.aggregation.bucketing import aggregate
from pmz.models.config import EngineConfig
from pmz.normalization.normalizer import normalize_bars
from pmz.orchestration.pipeline import PMZPipeline

logger = logging.getLogger(__name__)


def setup_logging():
    """Setup logging to console and file."""
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    log_file = log_dir / f"determinism_check_{datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S')}.log"

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    ))
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter(
        '%(levelname)s: %(message)s'
    ))
    root_logger.addHandler(console_handler)

    return log_file


def _bar_record(bar):
    return {
        "timestamp": bar.timestamp.isoformat(),
        "instrument_id": str(bar.instrument_id),
        "open": str(bar.open),
        "high": str(bar.high),
        "low": str(bar.low),
        "close": str(bar.close),
        "volume": str(bar.volume),
    }


def run_determinism_test(trading_date: date):
    """
    Run the same trading date twice and compare results.

    Returns:
        Tuple of (run1, run2, reaggregated) where each run is a dict of
        aggregated bars and derived levels
    """
    config = EngineConfig()
    pipeline = PMZPipeline(config)
    loader = DataLoader({"source": "synthetic"})

    start, end = pipeline.selector.query_range(trading_date)
    raw_bars = loader.fetch_raw_bars(config.symbol, start, end)
    logger.info("determinism_input_loaded", extra={"bars": len(raw_bars), "trading_date": trading_date.isoformat()})

    runs = []
    for _ in range(2):
        bars = normalize_bars(raw_bars, config.symbol, config.timezone)
        five_min = aggregate(bars, config.bucket_minutes)
        levels = pipeline.compute_levels(bars, trading_date)
        runs.append({
            "bars": [_bar_record(b) for b in five_min],
            "levels": levels.to_dict(),
        })

    reaggregated = [_bar_record(b) for b in aggregate(
        aggregate(normalize_bars(raw_bars, config.symbol, config.timezone), config.bucket_minutes),
        config.bucket_minutes,
    )]
    return runs[0], runs[1], reaggregated


def compare_runs(run1, run2, reaggregated):
    """
    Compare two runs and the re-aggregated output.

    Returns:
        Tuple of (is_match, diff_report)
    """
    diff_report = {
        "run1_count": len(run1["bars"]),
        "run2_count": len(run2["bars"]),
        "count_match": len(run1["bars"]) == len(run2["bars"]),
        "levels_match": run1["levels"] == run2["levels"],
        "idempotent": reaggregated == run1["bars"],
        "mismatches": []
    }

    if not diff_report["count_match"]:
        diff_report["mismatches"].append({
            "type": "count_mismatch",
            "run1": diff_report["run1_count"],
            "run2": diff_report["run2_count"]
        })

    for i, (b1, b2) in enumerate(zip(run1["bars"], run2["bars"])):
        for field, value in b1.items():
            if b2.get(field) != value:
                diff_report["mismatches"].append({
                    "index": i,
                    "field": field,
                    "run1": value,
                    "run2": b2.get(field)
                })

    if not diff_report["levels_match"]:
        diff_report["mismatches"].append({
            "type": "levels_mismatch",
            "run1": run1["levels"],
            "run2": run2["levels"]
        })
    if not diff_report["idempotent"]:
        diff_report["mismatches"].append({"type": "reaggregation_changed_output"})

    return not diff_report["mismatches"], diff_report


def main():
    """Main entry point."""
    print("\n" + "="*70)
    print("DETERMINISM CHECK: PMZ Replay Test")
    print("="*70)

    log_file = setup_logging()
    logger.info(f"Logging to {log_file}")

    trading_date = date.fromisoformat(sys.argv[1]) if len(sys.argv) > 1 else date(2025, 3, 14)
    run1, run2, reaggregated = run_determinism_test(trading_date)
    is_match, diff_report = compare_runs(run1, run2, reaggregated)

    diff_file = Path("artifacts") / "determinism_diff.txt"
    diff_file.parent.mkdir(parents=True, exist_ok=True)

    with open(diff_file, "w", encoding="utf-8") as f:
        f.write("="*70 + "\n")
        f.write("DETERMINISM CHECK RESULTS\n")
        f.write("="*70 + "\n\n")

        f.write(f"Trading Date: {trading_date.isoformat()}\n")
        f.write(f"Run 1 Bars: {diff_report['run1_count']}\n")
        f.write(f"Run 2 Bars: {diff_report['run2_count']}\n")
        f.write(f"Levels Match: {diff_report['levels_match']}\n")
        f.write(f"Re-aggregation Idempotent: {diff_report['idempotent']}\n\n")

        if diff_report["mismatches"]:
            f.write(f"Mismatches Found: {len(diff_report['mismatches'])}\n\n")
            for i, mismatch in enumerate(diff_report["mismatches"][:10]):
                f.write(f"Mismatch {i+1}:\n")
                f.write(json.dumps(mismatch, indent=2) + "\n\n")
        else:
            f.write("No mismatches found.\n")

    print(f"Run 1 Bars: {diff_report['run1_count']}")
    print(f"Run 2 Bars: {diff_report['run2_count']}")
    print(f"Levels Match: {diff_report['levels_match']}")
    print(f"Re-aggregation Idempotent: {diff_report['idempotent']}")

    if is_match:
        print(f"\nOK: 100% determinism match")
        print(f"Diff report: {diff_file}")
        return 0
    print(f"\nFAIL: Determinism mismatch detected")
    print(f"Mismatches: {len(diff_report['mismatches'])}")
    print(f"Diff report: {diff_file}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
