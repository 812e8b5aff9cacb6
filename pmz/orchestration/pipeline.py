"""PMZ derivation pipeline."""

import logging
from dataclasses import replace
from datetime import date, tzinfo
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from ..aggregation.bucketing import aggregate
from ..errors import InsufficientData
from ..models.config import EngineConfig, GapPolicy
from ..models.ohlcv import OHLCV, Bar, RawBar
from ..models.result import PMZLevels, PMZResult
from ..models.session import SessionName
from ..normalization.normalizer import normalize_bars
from ..sessions.session_windows import SessionWindowSelector
from ..utils.timeutils import EASTERN

logger = logging.getLogger(__name__)


class PMZPipeline:
    """
    Derives PMZ levels for one trading date from already-fetched bars.

    Holds configuration only; every call works on its own input and keeps
    no state between calls.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.selector = SessionWindowSelector(self.config)

    def window_bars(self, bars: Sequence[Bar], trading_date: date, session_name: SessionName) -> OHLCV:
        """Bars inside one session window, aggregated to the configured width."""
        win = self.selector.window(trading_date, session_name)
        subset = [b for b in bars if win.contains(b.timestamp)]
        aggregated = aggregate(subset, self.config.bucket_minutes)
        logger.debug("pmz_window_aggregated", extra={
            "session": session_name.value,
            "window_start": win.start.isoformat(),
            "window_end": win.end.isoformat(),
            "bars_in": len(subset),
            "bars_out": len(aggregated),
        })
        return OHLCV(
            symbol=subset[0].symbol if subset else self.config.symbol,
            bars=tuple(aggregated),
            timeframe=f"{self.config.bucket_minutes}m",
        )

    def _localize(self, bars: Iterable[Bar]) -> List[Bar]:
        tz = self.config.timezone
        return [b if b.timestamp.tzinfo is tz else replace(b, timestamp=b.timestamp.astimezone(tz)) for b in bars]

    def _reference_price(self, bars: Sequence[Bar], trading_date: date, pre_market: OHLCV) -> Optional[Decimal]:
        if self.config.gap_policy == GapPolicy.MARKET_OPEN:
            opening = self.window_bars(bars, trading_date, SessionName.MARKET_OPEN)
            return opening.first_bar.open if opening.first_bar else None
        return pre_market.latest_bar.close if pre_market.latest_bar else None

    def _zone(self, is_gap_up: Optional[bool], pmh: Optional[Decimal], pml: Optional[Decimal],
              risk_range: Optional[Decimal]) -> Tuple[Optional[Decimal], Optional[Decimal]]:
        """(zone_high, zone_low), anchored to PMH on a gap up and to PML on a gap down."""
        if is_gap_up is None or risk_range is None:
            return None, None
        near, far = self.config.zone_near, self.config.zone_far
        if is_gap_up:
            return pmh - near * risk_range, pmh - far * risk_range
        return pml + far * risk_range, pml + near * risk_range

    def compute_levels(self, bars: Sequence[Bar], trading_date: date) -> PMZLevels:
        """Every intermediate level; absent values stay None."""
        bars = self._localize(bars)

        prior = self.window_bars(bars, trading_date, SessionName.PRIOR_SESSION_REFERENCE)
        pre_market = self.window_bars(bars, trading_date, SessionName.PRE_MARKET)
        session_ref = self.window_bars(bars, trading_date, SessionName.SESSION_REFERENCE)

        lis = prior.latest_bar.close if prior.latest_bar else None
        pmh = pre_market.highest_high
        pml = pre_market.lowest_low
        reference = self._reference_price(bars, trading_date, pre_market)

        is_gap_up = reference >= lis if reference is not None and lis is not None else None
        risk_range = pmh - pml if pmh is not None and pml is not None else None
        zone_high, zone_low = self._zone(is_gap_up, pmh, pml, risk_range)
        risk = zone_high - zone_low if zone_high is not None and zone_low is not None else None

        return PMZLevels(
            trading_date=trading_date,
            pmh=pmh,
            pml=pml,
            lis=lis,
            reference_close=reference,
            is_gap_up=is_gap_up,
            risk_range=risk_range,
            zone_high=zone_high,
            zone_low=zone_low,
            risk=risk,
            current_day_lis=session_ref.latest_bar.close if session_ref.latest_bar else None,
        )

    @staticmethod
    def finalize(levels: PMZLevels) -> PMZResult:
        """
        Convert levels into a PMZResult.

        Raises:
            InsufficientData: Naming every required level that is absent
        """
        missing = levels.missing_fields()
        if missing:
            logger.warning("pmz_insufficient_data", extra={
                "trading_date": levels.trading_date.isoformat(),
                "missing": missing,
            })
            raise InsufficientData(missing, levels.trading_date)
        return PMZResult(
            date=levels.trading_date,
            pmh=levels.pmh,
            pml=levels.pml,
            lis=levels.lis,
            is_gap_up=levels.is_gap_up,
            zone_high=levels.zone_high,
            zone_low=levels.zone_low,
            risk=levels.risk,
        )

    def derive(self, bars: Sequence[Bar], trading_date: date) -> PMZResult:
        result = self.finalize(self.compute_levels(bars, trading_date))
        logger.info("pmz_derived", extra=result.to_dict())
        return result

    def derive_from_raw(self, raw_bars: Iterable[RawBar], trading_date: date,
                        symbol: Optional[str] = None) -> PMZResult:
        """Normalize raw records, then derive. InvalidTimestamp propagates."""
        bars = normalize_bars(raw_bars, symbol or self.config.symbol, self.config.timezone)
        return self.derive(bars, trading_date)


def derive(bars: Sequence[Bar], trading_date: date, tz: tzinfo = EASTERN,
           gap_policy: GapPolicy = GapPolicy.PRE_MARKET_CLOSE) -> PMZResult:
    """Derive PMZ levels with default session times and zone coefficients."""
    return PMZPipeline(EngineConfig(timezone=tz, gap_policy=gap_policy)).derive(bars, trading_date)
