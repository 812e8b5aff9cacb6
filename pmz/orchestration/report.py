"""
Human-readable PMZ report.
"""

from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from ..analysis.instrument_stats import InstrumentSummary
from ..models.config import EngineConfig
from ..models.ohlcv import Bar
from ..models.result import PMZLevels, PMZResult
from ..models.session import SessionName

SEPARATOR = "-" * 37


def _fmt(value: Optional[Decimal]) -> str:
    return "N/A" if value is None else f"{value:.2f}"


def format_report(result: PMZResult, levels: Optional[PMZLevels] = None,
                  config: Optional[EngineConfig] = None) -> str:
    """
    Render a derived result.

    Args:
        result: Derived PMZ result
        levels: Intermediates of the same derivation, for the opening
            reference price and current-day LIS lines
        config: Engine config the result was derived with, for window labels

    Returns:
        Multi-line report text
    """
    config = config or EngineConfig()
    pm_start, pm_end = config.session_times[SessionName.PRE_MARKET]
    window = f"{pm_start.strftime('%H:%M')} - {pm_end.strftime('%H:%M')} ET"
    width_fraction = config.zone_far - config.zone_near

    lines: List[str] = [
        SEPARATOR,
        f"Date: {result.date.isoformat()}",
        f"Prev Day LIS: {_fmt(result.lis)}",
    ]
    if levels is not None:
        lines.append(f"Reference Price: {_fmt(levels.reference_close)}")
    lines += [
        f"Gap Direction: {result.gap_direction}",
        f"PMH ({window}): {_fmt(result.pmh)}",
        f"PML ({window}): {_fmt(result.pml)}",
        f"Risk Range (PMH-PML): {_fmt(result.risk_range)}",
        f"PMZ Width (Risk*{width_fraction}): {_fmt(result.zone_width)}",
        f"PMZ High: {_fmt(result.zone_high)}",
        f"PMZ Low: {_fmt(result.zone_low)}",
        f"Risk (PMZ High-PMZ Low): {_fmt(result.risk)}",
        f"Upper Risk (PMZ High + Risk Range): {_fmt(result.upper_risk)}",
        f"Lower Risk (PMZ Low - Risk Range): {_fmt(result.lower_risk)}",
    ]
    if levels is not None and levels.current_day_lis is not None:
        lines.append(f"Current Day LIS: {_fmt(levels.current_day_lis)}")
    lines.append(SEPARATOR)
    return "\n".join(lines)


def format_diagnostics(levels: PMZLevels) -> str:
    """Every intermediate of a failed derivation, absent values as N/A."""
    gap = {True: "Up", False: "Down", None: "Unknown"}[levels.is_gap_up]
    lines = [
        f"Failed to calculate complete PMZ values for {levels.trading_date.isoformat()}.",
        f"PMH: {_fmt(levels.pmh)}",
        f"PML: {_fmt(levels.pml)}",
        f"Previous Day LIS: {_fmt(levels.lis)}",
        f"Reference Price: {_fmt(levels.reference_close)}",
        f"Gap Direction: {gap}",
        f"PMZ High: {_fmt(levels.zone_high)}",
        f"PMZ Low: {_fmt(levels.zone_low)}",
        f"Risk: {_fmt(levels.risk)}",
        f"Missing: {', '.join(levels.missing_fields())}",
    ]
    return "\n".join(lines)


def format_instrument_summary(summaries: Sequence[InstrumentSummary]) -> str:
    """Table of every instrument seen in a dataset."""
    lines = [
        "Unique Instruments in Dataset:",
        f"{'Instrument ID':<13} | {'Symbol':<15} | {'Price Range':<21} | {'Total Volume':>12} | {'Bars':>5}",
        f"{'':-<13} | {'':-<15} | {'':-<21} | {'':->12} | {'':->5}",
    ]
    for s in summaries:
        price_range = f"{s.low:9.2f} - {s.high:9.2f}"
        lines.append(f"{s.instrument_id:<13} | {s.symbol:<15} | {price_range:<21} | {s.volume:>12} | {s.bar_count:>5}")
    return "\n".join(lines)


def format_instrument_candles(bars: Sequence[Bar]) -> str:
    """
    Aggregated candles, one table per instrument id (ascending).

    Args:
        bars: Bars from a multi-instrument aggregation, already time-ordered
    """
    by_instrument: Dict[int, List[Bar]] = {}
    for bar in bars:
        by_instrument.setdefault(bar.instrument_id, []).append(bar)

    lines: List[str] = []
    for instrument_id in sorted(by_instrument):
        candles = by_instrument[instrument_id]
        lines += [
            "",
            f"Instrument ID: {instrument_id} (Symbol: {candles[0].symbol})",
            "Timestamp (ET)      | Open      | High      | Low       | Close     | Volume",
            "--------------------|-----------|-----------|-----------|-----------|--------",
        ]
        for c in candles:
            lines.append(
                f"{c.timestamp.strftime('%Y-%m-%d %H:%M:%S')} | {c.open:9.2f} | {c.high:9.2f} "
                f"| {c.low:9.2f} | {c.close:9.2f} | {c.volume:>7}"
            )
    return "\n".join(lines)
