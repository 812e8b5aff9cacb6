"""
Trading-day calendar.

Weekend skipping only: Saturdays and Sundays are never trading days;
exchange holidays are not modelled.
"""

from datetime import date, timedelta


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def previous_trading_day(day: date) -> date:
    """One calendar day back, then further back past any weekend."""
    prev = day - timedelta(days=1)
    while is_weekend(prev):
        prev -= timedelta(days=1)
    return prev


def latest_trading_day(day: date) -> date:
    """The day itself if a weekday, otherwise the Friday before it."""
    while is_weekend(day):
        day -= timedelta(days=1)
    return day
