"""
PMZ engine exception hierarchy.

    PMZError(Exception)              -- base; carries an ErrorCode
      InvalidTimestamp(PMZError)     -- raw timestamp cannot be normalized
      InsufficientData(PMZError)     -- one or more required levels missing
      MalformedBucket(PMZError)      -- bucket cannot be rebuilt (recovered in aggregator)
      ConfigError(PMZError)          -- configuration failed validation
"""

from enum import IntEnum
from typing import Any, Iterable, List


class ErrorCode(IntEnum):
    """Numeric error codes, also used as CLI exit status."""
    SUCCESS = 0
    INVALID_DATE = 2
    DATA_PROCESSING_FAILED = 4
    INSUFFICIENT_DATA = 5
    OTHER = 99


class PMZError(Exception):
    """Base class for engine errors."""
    code = ErrorCode.OTHER

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTimestamp(PMZError):
    """Raw nanosecond timestamp is not a representable calendar instant."""
    code = ErrorCode.DATA_PROCESSING_FAILED

    def __init__(self, value: Any, reason: str = ""):
        message = f"Invalid timestamp: {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.value = value
        self.reason = reason


class InsufficientData(PMZError):
    """Derivation could not compute every required field."""
    code = ErrorCode.INSUFFICIENT_DATA

    def __init__(self, missing: Iterable[str], trading_date: Any = None):
        self.missing: List[str] = list(missing)
        self.trading_date = trading_date
        where = f" for {trading_date}" if trading_date is not None else ""
        super().__init__(
            f"Could not calculate complete PMZ values{where}; missing: {', '.join(self.missing)}"
        )


class MalformedBucket(PMZError):
    """A bucket key could not be turned back into a consistent start instant."""
    code = ErrorCode.DATA_PROCESSING_FAILED

    def __init__(self, key: Any, reason: str):
        super().__init__(f"Malformed bucket {key!r}: {reason}")
        self.key = key
        self.reason = reason


class ConfigError(PMZError):
    """Configuration does not match its schema."""
    code = ErrorCode.OTHER
