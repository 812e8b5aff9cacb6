"""
Session window models for the PMZ trading day.
"""

from datetime import date, datetime
from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class SessionName(Enum):
    """Named intraday windows used by the derivation."""
    PRIOR_SESSION_REFERENCE = "prior_session_reference"
    PRE_MARKET = "pre_market"
    MARKET_OPEN = "market_open"
    SESSION_REFERENCE = "session_reference"


@dataclass(frozen=True)
class SessionWindow:
    """Half-open local time window [start, end) for one session on one day."""
    session_name: SessionName
    trading_date: date
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError("End time must be after start time")

    def contains(self, ts: datetime) -> bool:
        return self.start <= ts < self.end

    @property
    def bounds(self) -> Tuple[datetime, datetime]:
        return self.start, self.end
