"""
Timezone helpers.

All local times in the engine are US Eastern civil time unless a caller
passes another zone. Offsets come from the IANA database, so DST shifts
(EST -05:00 / EDT -04:00) are applied per instant.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..errors import ConfigError, InvalidTimestamp

DEFAULT_TIMEZONE_NAME = "America/New_York"
EASTERN = ZoneInfo(DEFAULT_TIMEZONE_NAME)

NANOS_PER_SECOND = 1_000_000_000
_UTC_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def resolve_timezone(tz: Union[str, tzinfo, None]) -> tzinfo:
    """Return a tzinfo for a name, a tzinfo, or None (engine default)."""
    if tz is None:
        return EASTERN
    if isinstance(tz, tzinfo):
        return tz
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"Unknown timezone: {tz!r}") from e


def from_epoch_ns(ts_ns: int, tz: tzinfo = EASTERN) -> datetime:
    """
    Interpret an integer nanosecond count as UTC and convert it to tz.

    Nanoseconds below microsecond resolution are truncated toward the
    earlier instant.

    Raises:
        InvalidTimestamp: If the value is not an int or falls outside the
            range datetime can represent.
    """
    if isinstance(ts_ns, bool) or not isinstance(ts_ns, int):
        raise InvalidTimestamp(ts_ns, "not an integer")
    micros = ts_ns // 1_000
    try:
        utc_ts = _UTC_EPOCH + timedelta(microseconds=micros)
        return utc_ts.astimezone(tz)
    except (OverflowError, ValueError) as e:
        raise InvalidTimestamp(ts_ns, str(e)) from e


def to_epoch_ns(ts: datetime) -> int:
    """Nanoseconds since the UTC epoch for an aware datetime."""
    if ts.tzinfo is None:
        raise ValueError("Timestamp must be timezone-aware")
    delta = ts.astimezone(timezone.utc) - _UTC_EPOCH
    return (delta.days * 86_400 + delta.seconds) * NANOS_PER_SECOND + delta.microseconds * 1_000


def local_instant(day: date, wall: time, tz: tzinfo = EASTERN, fold: int = 0) -> datetime:
    """Aware datetime for a local wall-clock time on a calendar day."""
    return datetime.combine(day, wall).replace(tzinfo=tz, fold=fold)


def wall_clock_exists(ts: datetime) -> bool:
    """False for local times skipped by a spring-forward transition."""
    round_trip = ts.astimezone(timezone.utc).astimezone(ts.tzinfo)
    return round_trip.replace(tzinfo=None) == ts.replace(tzinfo=None)
