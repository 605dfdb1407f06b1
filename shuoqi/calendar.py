"""Civil calendar conversions on the J2000 day scale.

Dates before 1582-10-15 are Julian calendar dates, later ones Gregorian. Years
are astronomical (year 0 precedes year 1).
"""

from __future__ import annotations

import math
from typing import Tuple

import erfa

from .oracle import AlmanacError, require_finite

J2000 = 2451545.0
SECONDS_PER_DAY = 86400
GREGORIAN_START = (1582, 10, 15)
_GREGORIAN_START_JD = 2299161  # first JD day number (noon-based) of the Gregorian calendar


class CalendarError(AlmanacError):
    """Raised when a year boundary cannot yield a usable day count."""


def julian_day(year: int, month: int, day: int) -> float:
    """Julian date at 0h of the civil date."""

    if (year, month, day) >= GREGORIAN_START:
        djm0, djm = erfa.cal2jd(year, month, day)
        return float(djm0) + float(djm)
    if month <= 2:
        year -= 1
        month += 12
    return (
        math.floor(365.25 * (year + 4716))
        + math.floor(30.6001 * (month + 1))
        + day
        - 1524.5
    )


def calendar_to_time(year: int, month: int, day: int) -> float:
    return julian_day(year, month, day) - J2000


def time_to_calendar(t: float) -> Tuple[int, int, int, float]:
    """Inverse of :func:`calendar_to_time`: ``(year, month, day, fraction_of_day)``."""

    jd = t + J2000 + 0.5
    z = math.floor(jd)
    fraction = jd - z
    if z >= _GREGORIAN_START_JD:
        alpha = math.floor((z - 1867216.25) / 36524.25)
        a = z + 1 + alpha - math.floor(alpha / 4)
    else:
        a = z
    b = a + 1524
    c = math.floor((b - 122.1) / 365.25)
    d = math.floor(365.25 * c)
    e = math.floor((b - d) / 30.6001)
    day = b - d - math.floor(30.6001 * e)
    month = e - 1 if e < 14 else e - 13
    year = c - 4716 if month > 2 else c - 4715
    return int(year), int(month), int(day), fraction


def format_instant(t: float) -> str:
    """Render *t* as ``YYYY-MM-DD HH:MM:SS`` on the same clock it is expressed in."""

    total = math.floor((t + 0.5) * SECONDS_PER_DAY + 0.5)
    days, seconds = divmod(total, SECONDS_PER_DAY)
    year, month, day, _ = time_to_calendar(days - 0.5)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{year:04d}-{month:02d}-{day:02d} {hours:02d}:{minutes:02d}:{secs:02d}"


def span_days(start: float, end: float, year: int) -> int:
    """Number of civil days between two year boundaries."""

    require_finite(start, f"start boundary of {year}")
    require_finite(end, f"end boundary of {year}")
    days = int(round(end - start))
    if days <= 0:
        raise CalendarError(f"Year {year} has a non-positive day count ({days})")
    return days


def year_bounds(year: int) -> Tuple[float, float]:
    return calendar_to_time(year, 1, 1), calendar_to_time(year + 1, 1, 1)


def day_count(year: int) -> int:
    start, end = year_bounds(year)
    return span_days(start, end, year)
