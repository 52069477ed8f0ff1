"""Monthly benefit period helpers.

All time-dependent code takes an explicit clock so rollover and expiration
can be tested without touching the wall clock.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime
from typing import Callable

Clock = Callable[[], datetime]

_PERIOD_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def system_clock() -> datetime:
    return datetime.now()


def fixed_clock(moment: datetime) -> Clock:
    """Return a clock that always reports ``moment``."""
    return lambda: moment


def parse_period(period: str) -> tuple[int, int]:
    """Split a ``YYYY-MM`` period into (year, month).

    Raises:
        ValueError: If the string is not a valid period.
    """
    m = _PERIOD_PATTERN.match(period or "")
    if not m:
        raise ValueError(f"Invalid month period: {period!r} (expected YYYY-MM)")
    year, month = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month in period: {period!r}")
    return year, month


def month_period(when: date | datetime) -> str:
    return f"{when.year}-{when.month:02d}"


def current_period(clock: Clock = system_clock) -> str:
    return month_period(clock())


def period_expiry(period: str) -> date:
    """Last calendar day of the period."""
    year, month = parse_period(period)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, last_day)


def next_period(period: str) -> str:
    year, month = parse_period(period)
    if month == 12:
        return f"{year + 1}-01"
    return f"{year}-{month + 1:02d}"


def previous_period(period: str) -> str:
    year, month = parse_period(period)
    if month == 1:
        return f"{year - 1}-12"
    return f"{year}-{month - 1:02d}"


def is_expired(expires_at: str | date, clock: Clock = system_clock) -> bool:
    """True once the clock's date is past ``expires_at``."""
    if isinstance(expires_at, str):
        expires_at = date.fromisoformat(expires_at[:10])
    return clock().date() > expires_at
