"""
Per-instrument summary of a bar collection.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from ..models.ohlcv import Bar


@dataclass(frozen=True)
class InstrumentSummary:
    """Price range and activity of one instrument."""
    instrument_id: int
    symbol: str
    low: Decimal
    high: Decimal
    volume: int
    bar_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "instrument_id": self.instrument_id,
            "symbol": self.symbol,
            "low": str(self.low),
            "high": str(self.high),
            "volume": self.volume,
            "bar_count": self.bar_count,
        }


def summarize_instruments(bars: Iterable[Bar]) -> List[InstrumentSummary]:
    """Min low, max high, and total volume per instrument id, ordered by id."""
    stats: Dict[int, dict] = {}
    for bar in bars:
        entry = stats.get(bar.instrument_id)
        if entry is None:
            stats[bar.instrument_id] = {
                "symbol": bar.symbol,
                "low": bar.low,
                "high": bar.high,
                "volume": bar.volume,
                "bar_count": 1,
            }
            continue
        entry["low"] = min(entry["low"], bar.low)
        entry["high"] = max(entry["high"], bar.high)
        entry["volume"] += bar.volume
        entry["bar_count"] += 1

    return [
        InstrumentSummary(instrument_id=iid, **entry)
        for iid, entry in sorted(stats.items())
    ]
