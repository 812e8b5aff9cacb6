"""
Price/Time normalizer.

Turns decoded vendor records (UTC nanosecond timestamps, prices scaled by
1e-9) into Bar objects stamped in the engine's local timezone.
"""

import logging
from datetime import tzinfo
from typing import Iterable, List

from ..errors import InvalidTimestamp
from ..models.ohlcv import Bar, RawBar
from ..utils.numeric import PRICE_SCALE_EXPONENT, from_fixed_point
from ..utils.timeutils import EASTERN, from_epoch_ns

logger = logging.getLogger(__name__)


def normalize_bar(raw: RawBar, symbol: str, tz: tzinfo = EASTERN,
                  exponent: int = PRICE_SCALE_EXPONENT) -> Bar:
    """
    Convert one raw record into a Bar.

    Args:
        raw: Decoded vendor record
        symbol: Symbol to stamp on the bar
        tz: Target timezone (DST-aware)
        exponent: Fixed-point exponent of the raw prices

    Returns:
        Bar with local timestamp and Decimal prices

    Raises:
        InvalidTimestamp: If raw.ts_event is not a representable instant
    """
    return Bar(
        timestamp=from_epoch_ns(raw.ts_event, tz),
        instrument_id=raw.instrument_id,
        symbol=symbol,
        open=from_fixed_point(raw.open, exponent),
        high=from_fixed_point(raw.high, exponent),
        low=from_fixed_point(raw.low, exponent),
        close=from_fixed_point(raw.close, exponent),
        volume=raw.volume,
    )


def normalize_bars(raws: Iterable[RawBar], symbol: str, tz: tzinfo = EASTERN,
                   skip_invalid: bool = False,
                   exponent: int = PRICE_SCALE_EXPONENT) -> List[Bar]:
    """
    Normalize a batch, preserving input order.

    With skip_invalid=False the first InvalidTimestamp propagates. With
    skip_invalid=True bars that fail are dropped and logged.
    """
    bars: List[Bar] = []
    skipped = 0
    for raw in raws:
        try:
            bars.append(normalize_bar(raw, symbol, tz, exponent))
        except InvalidTimestamp as e:
            if not skip_invalid:
                raise
            skipped += 1
            logger.warning("bar_timestamp_invalid", extra={
                "instrument_id": raw.instrument_id,
                "ts_event": raw.ts_event,
                "error": e.message,
            })
    if skipped:
        logger.info("bars_normalized", extra={"bars": len(bars), "skipped": skipped})
    return bars
