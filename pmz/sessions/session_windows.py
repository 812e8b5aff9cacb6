"""
Session window selector.

Maps (trading date, session name, timezone) to a half-open local window.
Session times default to the fixed clock times below and can be overridden
through configs/sessions.json.

Default windows (local wall clock, end exclusive):
- prior_session_reference: 15:55 - 16:00 on the previous trading day
- pre_market:              07:25 - 09:25
- market_open:             09:30 - 09:35
- session_reference:       15:55 - 16:00
"""

import logging
from datetime import date, datetime, time, timezone, tzinfo
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ..models.config import DEFAULT_QUERY_END, DEFAULT_QUERY_START, DEFAULT_SESSION_TIMES, EngineConfig
from ..models.session import SessionName, SessionWindow
from ..utils.timeutils import EASTERN, local_instant
from .trading_calendar import previous_trading_day

logger = logging.getLogger(__name__)

SessionTimes = Mapping[SessionName, Tuple[time, time]]


def _as_session_name(session_name: Union[SessionName, str]) -> SessionName:
    if isinstance(session_name, SessionName):
        return session_name
    try:
        return SessionName(session_name)
    except ValueError as e:
        raise ValueError(f"Unknown session name: {session_name!r}") from e


def session_window(trading_date: date, session_name: Union[SessionName, str],
                   tz: tzinfo = EASTERN,
                   session_times: Optional[SessionTimes] = None) -> SessionWindow:
    """
    Compute the local [start, end) window of a session.

    The prior-session reference window is placed on the trading day before
    trading_date (weekends skipped). Every other session uses trading_date
    as given.
    """
    name = _as_session_name(session_name)
    times = session_times or DEFAULT_SESSION_TIMES
    start_time, end_time = times[name]

    day = previous_trading_day(trading_date) if name == SessionName.PRIOR_SESSION_REFERENCE else trading_date
    return SessionWindow(
        session_name=name,
        trading_date=day,
        start=local_instant(day, start_time, tz),
        end=local_instant(day, end_time, tz),
    )


def window(trading_date: date, session_name: Union[SessionName, str],
           tz: tzinfo = EASTERN) -> Tuple[datetime, datetime]:
    """(start, end) pair for a session; see session_window."""
    return session_window(trading_date, session_name, tz).bounds


def query_range(trading_date: date, tz: tzinfo = EASTERN,
                start: time = DEFAULT_QUERY_START,
                end: time = DEFAULT_QUERY_END) -> Tuple[datetime, datetime]:
    """
    Local [start, end) range of bars a fetch must cover for trading_date.

    Spans the prior trading day's reference window through the current
    day's reference window, padded by five minutes on each side.
    """
    return (
        local_instant(previous_trading_day(trading_date), start, tz),
        local_instant(trading_date, end, tz),
    )


def query_range_utc(trading_date: date, tz: tzinfo = EASTERN,
                    start: time = DEFAULT_QUERY_START,
                    end: time = DEFAULT_QUERY_END) -> Tuple[datetime, datetime]:
    local_start, local_end = query_range(trading_date, tz, start, end)
    return local_start.astimezone(timezone.utc), local_end.astimezone(timezone.utc)


class SessionWindowSelector:
    """Session windows driven by an EngineConfig."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.timezone = self.config.timezone
        self.session_times: Dict[SessionName, Tuple[time, time]] = dict(self.config.session_times)

        logger.debug("session_selector_initialized", extra={
            "timezone": str(self.timezone),
            "sessions": {n.value: [s.strftime("%H:%M"), e.strftime("%H:%M")] for n, (s, e) in self.session_times.items()},
        })

    @classmethod
    def from_configs(cls, sessions_cfg: Optional[Dict[str, Any]] = None) -> "SessionWindowSelector":
        return cls(EngineConfig.from_configs(sessions_cfg=sessions_cfg))

    def window(self, trading_date: date, session_name: Union[SessionName, str]) -> SessionWindow:
        return session_window(trading_date, session_name, self.timezone, self.session_times)

    def query_range(self, trading_date: date) -> Tuple[datetime, datetime]:
        return query_range(trading_date, self.timezone, self.config.query_start, self.config.query_end)

    def query_range_utc(self, trading_date: date) -> Tuple[datetime, datetime]:
        return query_range_utc(trading_date, self.timezone, self.config.query_start, self.config.query_end)
