"""
OHLCV data models for price bars and time series.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class RawBar:
    """Decoded vendor record: UTC nanosecond timestamp, prices scaled by 1e-9."""
    ts_event: int
    instrument_id: int
    open: int
    high: int
    low: int
    close: int
    volume: int


@dataclass(frozen=True)
class Bar:
    """
    Single OHLCV bar (immutable).

    Price ordering (low <= open/close <= high) is passed through as received
    and is not validated here.
    """
    timestamp: datetime
    instrument_id: int
    symbol: str
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int

    def __post_init__(self):
        if self.timestamp.tzinfo is None:
            raise ValueError("Bar timestamp must be timezone-aware")
        if self.volume < 0:
            raise ValueError("Volume must be >= 0")


@dataclass(frozen=True)
class OHLCV:
    """Time series of OHLCV bars."""
    symbol: str
    bars: Tuple[Bar, ...]
    timeframe: str

    @property
    def first_bar(self) -> Optional[Bar]:
        return self.bars[0] if self.bars else None

    @property
    def latest_bar(self) -> Optional[Bar]:
        """Get the most recent bar."""
        return self.bars[-1] if self.bars else None

    @property
    def length(self) -> int:
        """Number of bars."""
        return len(self.bars)

    @property
    def highest_high(self) -> Optional[Decimal]:
        return max((b.high for b in self.bars), default=None)

    @property
    def lowest_low(self) -> Optional[Decimal]:
        return min((b.low for b in self.bars), default=None)
