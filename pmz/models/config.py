"""
Configuration models.
"""

from dataclasses import dataclass, field
from datetime import datetime, time, timezone, tzinfo
from decimal import Decimal
from enum import Enum
from hashlib import sha256
from typing import Any, Dict, Optional, Tuple
import json

from .session import SessionName
from ..errors import ConfigError
from ..utils.numeric import D
from ..utils.timeutils import EASTERN, resolve_timezone


class GapPolicy(Enum):
    """Which price stands in for the open when comparing against LIS."""
    PRE_MARKET_CLOSE = "pre_market_close"
    MARKET_OPEN = "market_open"


DEFAULT_SESSION_TIMES: Dict[SessionName, Tuple[time, time]] = {
    SessionName.PRIOR_SESSION_REFERENCE: (time(15, 55), time(16, 0)),
    SessionName.PRE_MARKET: (time(7, 25), time(9, 25)),
    SessionName.MARKET_OPEN: (time(9, 30), time(9, 35)),
    SessionName.SESSION_REFERENCE: (time(15, 55), time(16, 0)),
}

# Fetch range a collaborator must cover: prior trading day 15:50 to trading day 16:05
DEFAULT_QUERY_START = time(15, 50)
DEFAULT_QUERY_END = time(16, 5)


def parse_clock(value: str) -> time:
    """Parse 'HH:MM' into a time."""
    try:
        hour, minute = map(int, value.split(":"))
        return time(hour, minute)
    except (AttributeError, ValueError) as e:
        raise ConfigError(f"Invalid clock time: {value!r}") from e


@dataclass
class ConfigHash:
    """Configuration hash for reproducibility."""
    hash_value: str
    timestamp: str

    @staticmethod
    def compute(config_dict: Dict[str, Any]) -> str:
        """Compute SHA256 hash of config."""
        json_str = json.dumps(config_dict, sort_keys=True, default=str)
        return sha256(json_str.encode()).hexdigest()


@dataclass
class EngineConfig:
    """Typed engine configuration."""
    timezone: tzinfo = EASTERN
    bucket_minutes: int = 5
    zone_near: Decimal = Decimal("0.2")
    zone_far: Decimal = Decimal("0.4")
    gap_policy: GapPolicy = GapPolicy.PRE_MARKET_CLOSE
    session_times: Dict[SessionName, Tuple[time, time]] = field(
        default_factory=lambda: dict(DEFAULT_SESSION_TIMES)
    )
    query_start: time = DEFAULT_QUERY_START
    query_end: time = DEFAULT_QUERY_END
    symbol: str = "ES.c.0"
    config_hash: Optional[ConfigHash] = None

    def __post_init__(self):
        if isinstance(self.bucket_minutes, bool) or not isinstance(self.bucket_minutes, int) or self.bucket_minutes <= 0:
            raise ConfigError(f"bucket_minutes must be a positive int, got {self.bucket_minutes!r}")
        if not Decimal(0) <= self.zone_near < self.zone_far <= Decimal(1):
            raise ConfigError("zone coefficients must satisfy 0 <= near < far <= 1")
        for name, (start, end) in self.session_times.items():
            if end <= start:
                raise ConfigError(
                    f"Session {name.value} must end after it starts, got {start:%H:%M}-{end:%H:%M}"
                )
        if self.config_hash is None:
            self.config_hash = ConfigHash(
                hash_value=ConfigHash.compute(self.as_dict()),
                timestamp=datetime.now(timezone.utc).isoformat(),
            )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "timezone": str(self.timezone),
            "bucket_minutes": self.bucket_minutes,
            "zone_near": str(self.zone_near),
            "zone_far": str(self.zone_far),
            "gap_policy": self.gap_policy.value,
            "session_times": {
                name.value: [start.strftime("%H:%M"), end.strftime("%H:%M")]
                for name, (start, end) in sorted(self.session_times.items(), key=lambda kv: kv[0].value)
            },
            "query_start": self.query_start.strftime("%H:%M"),
            "query_end": self.query_end.strftime("%H:%M"),
            "symbol": self.symbol,
        }

    @classmethod
    def from_configs(cls, sessions_cfg: Optional[Dict[str, Any]] = None,
                     engine_cfg: Optional[Dict[str, Any]] = None) -> "EngineConfig":
        """Build from the `sessions` and `engine` JSON configs; absent keys keep defaults."""
        sessions_cfg = sessions_cfg or {}
        engine_cfg = engine_cfg or {}

        session_times = dict(DEFAULT_SESSION_TIMES)
        for name, window in (sessions_cfg.get("windows") or {}).items():
            try:
                session = SessionName(name)
            except ValueError as e:
                raise ConfigError(f"Unknown session name: {name!r}") from e
            session_times[session] = (parse_clock(window["start"]), parse_clock(window["end"]))

        query = sessions_cfg.get("query_range") or {}
        zone = engine_cfg.get("zone") or {}
        try:
            gap_policy = GapPolicy(engine_cfg.get("gap_policy", GapPolicy.PRE_MARKET_CLOSE.value))
        except ValueError as e:
            raise ConfigError(f"Unknown gap policy: {engine_cfg.get('gap_policy')!r}") from e

        return cls(
            timezone=resolve_timezone(sessions_cfg.get("timezone")),
            bucket_minutes=engine_cfg.get("bucket_minutes", 5),
            zone_near=D(zone.get("near", "0.2")),
            zone_far=D(zone.get("far", "0.4")),
            gap_policy=gap_policy,
            session_times=session_times,
            query_start=parse_clock(query.get("start", "15:50")),
            query_end=parse_clock(query.get("end", "16:05")),
            symbol=engine_cfg.get("symbol", "ES.c.0"),
        )

    @classmethod
    def from_loader(cls, loader) -> "EngineConfig":
        """Build from a ConfigLoader's `sessions` and `engine` configs."""
        return cls.from_configs(loader.get_config("sessions"), loader.get_config("engine"))
