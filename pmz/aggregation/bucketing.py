"""
Interval bucketing aggregator.

Rolls fine-grained bars into fixed-width buckets on the local wall clock:
a bar at 09:17 with a 5-minute width lands in the 09:15 bucket of its local
calendar day. Each bucket folds into one bar (open=first, close=last,
high=max, low=min, volume=sum) stamped with the bucket's start instant.
"""

import logging
from collections import OrderedDict
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Sequence

from ..errors import MalformedBucket
from ..models.ohlcv import Bar
from ..utils.timeutils import local_instant, wall_clock_exists

logger = logging.getLogger(__name__)


class AggregationMode(Enum):
    """Whether bars of different instruments sharing a bucket are merged."""
    SINGLE_INSTRUMENT = "single_instrument"
    MULTI_INSTRUMENT = "multi_instrument"


class BucketKey(NamedTuple):
    """Identifies one aggregation group within one local day."""
    date: date
    hour: int
    minute: int
    instrument_id: Optional[int] = None


def _check_width(width_minutes: int) -> None:
    if isinstance(width_minutes, bool) or not isinstance(width_minutes, int) or width_minutes <= 0:
        raise ValueError(f"width_minutes must be a positive int, got {width_minutes!r}")


def bucket_key(bar: Bar, width_minutes: int,
               mode: AggregationMode = AggregationMode.SINGLE_INSTRUMENT) -> BucketKey:
    """Bucket key of a bar: local date, hour, and minute floored to the width."""
    _check_width(width_minutes)
    ts = bar.timestamp
    instrument = bar.instrument_id if mode == AggregationMode.MULTI_INSTRUMENT else None
    return BucketKey(ts.date(), ts.hour, (ts.minute // width_minutes) * width_minutes, instrument)


def _bucket_start(key: BucketKey, group: Sequence[Bar]) -> datetime:
    """
    Rebuild the bucket's start instant from its key.

    The start is stamped in the first member's timezone with fold=0, so on a
    fall-back day the repeated hour merges into one bucket at its first
    occurrence.

    Raises:
        MalformedBucket: If the wall-clock start does not exist in that
            timezone.
    """
    start = local_instant(key.date, time(key.hour, key.minute), group[0].timestamp.tzinfo)
    if not wall_clock_exists(start):
        raise MalformedBucket(key, "bucket start is not a valid local time")
    return start


def _fold(key: BucketKey, group: Sequence[Bar]) -> Bar:
    first = group[0]
    return Bar(
        timestamp=_bucket_start(key, group),
        instrument_id=first.instrument_id,
        symbol=first.symbol,
        open=first.open,
        high=max(b.high for b in group),
        low=min(b.low for b in group),
        close=group[-1].close,
        volume=sum(b.volume for b in group),
    )


def _sort_key(bar: Bar):
    return bar.timestamp.astimezone(timezone.utc), bar.instrument_id


def aggregate(bars: Sequence[Bar], width_minutes: int,
              mode: AggregationMode = AggregationMode.SINGLE_INSTRUMENT) -> List[Bar]:
    """
    Aggregate bars into width_minutes buckets.

    Groups keep arrival order, so open/close come from the first/last bar as
    received, not as re-sorted by time. Output is sorted ascending by
    timestamp (then instrument id). A bucket whose start cannot be rebuilt is
    dropped with a warning; the rest of the aggregation still completes.

    Args:
        bars: Bars in arrival order
        width_minutes: Bucket width in minutes (positive)
        mode: Merge across instruments or keep them apart

    Returns:
        Aggregated bars; empty for empty input
    """
    _check_width(width_minutes)

    groups: Dict[BucketKey, List[Bar]] = OrderedDict()
    for bar in bars:
        groups.setdefault(bucket_key(bar, width_minutes, mode), []).append(bar)

    result: List[Bar] = []
    for key, group in groups.items():
        try:
            result.append(_fold(key, group))
        except MalformedBucket as e:
            logger.warning("bucket_dropped", extra={
                "bucket_date": key.date.isoformat(),
                "bucket_hour": key.hour,
                "bucket_minute": key.minute,
                "instrument_id": key.instrument_id,
                "bars": len(group),
                "reason": e.reason,
            })

    result.sort(key=_sort_key)
    return result
