"""
PMZ level models.

PMZLevels holds every intermediate of a derivation as Optional; PMZResult is
the all-or-nothing terminal value built from it.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional

# Fields that must be present before a PMZResult can be built
REQUIRED_LEVELS = (
    "pmh",
    "pml",
    "lis",
    "reference_close",
    "is_gap_up",
    "risk_range",
    "zone_high",
    "zone_low",
    "risk",
)


@dataclass(frozen=True)
class PMZLevels:
    """Intermediate values of one derivation; None marks an absent value."""
    trading_date: date
    pmh: Optional[Decimal] = None
    pml: Optional[Decimal] = None
    lis: Optional[Decimal] = None
    reference_close: Optional[Decimal] = None
    is_gap_up: Optional[bool] = None
    risk_range: Optional[Decimal] = None
    zone_high: Optional[Decimal] = None
    zone_low: Optional[Decimal] = None
    risk: Optional[Decimal] = None
    current_day_lis: Optional[Decimal] = None

    def missing_fields(self) -> List[str]:
        return [name for name in REQUIRED_LEVELS if getattr(self, name) is None]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, date):
                value = value.isoformat()
            out[f.name] = value
        return out


@dataclass(frozen=True)
class PMZResult:
    """Fully populated PMZ levels for one trading date (immutable)."""
    date: date
    pmh: Decimal
    pml: Decimal
    lis: Decimal
    is_gap_up: bool
    zone_high: Decimal
    zone_low: Decimal
    risk: Decimal

    @property
    def gap_direction(self) -> str:
        return "Up" if self.is_gap_up else "Down"

    @property
    def risk_range(self) -> Decimal:
        """Full pre-market excursion, PMH - PML."""
        return self.pmh - self.pml

    @property
    def zone_width(self) -> Decimal:
        """Distance between the zone bounds, (far - near) * risk_range."""
        return self.zone_high - self.zone_low

    @property
    def upper_risk(self) -> Decimal:
        return self.zone_high + self.risk_range

    @property
    def lower_risk(self) -> Decimal:
        return self.zone_low - self.risk_range

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "pmh": str(self.pmh),
            "pml": str(self.pml),
            "prev_day_lis": str(self.lis),
            "is_gap_up": self.is_gap_up,
            "gap_direction": self.gap_direction,
            "pmz_high": str(self.zone_high),
            "pmz_low": str(self.zone_low),
            "risk": str(self.risk),
            "risk_range": str(self.risk_range),
            "upper_risk": str(self.upper_risk),
            "lower_risk": str(self.lower_risk),
        }
