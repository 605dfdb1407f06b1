"""Per-day sampling of solar noon, sunrise and sunset.

Each day of the civil year is handled with one oracle call made at the local
noon of that day. Results are integer seconds after local midnight; sunrise and
sunset use :data:`NO_EVENT` for days on which the Sun does not cross the
horizon.
"""

from __future__ import annotations

import math
from typing import List

from .calendar import SECONDS_PER_DAY, span_days
from .models import EventKind, Location
from .oracle import EphemerisOracle, require_finite

NO_EVENT = -1

_TRANSIT_FIELDS = {
    EventKind.solar_noon: "noon",
    EventKind.sunrise: "sunrise",
    EventKind.sunset: "sunset",
}


def day_seconds(instant: float) -> int:
    """Seconds after midnight of the day containing *instant*, in ``[0, 86399]``.

    *instant* is counted from a noon epoch, hence the half-day shift. Rounding is
    half-up.
    """

    fraction = instant + 0.5
    fraction -= math.floor(fraction)
    seconds = math.floor(fraction * SECONDS_PER_DAY + 0.5)
    if seconds >= SECONDS_PER_DAY:
        seconds -= SECONDS_PER_DAY
    if seconds < 0:
        seconds += SECONDS_PER_DAY
    return int(seconds)


def seconds_to_fraction(seconds: int) -> float:
    """Day fraction on the noon-based scale for a :func:`day_seconds` value."""

    return seconds / SECONDS_PER_DAY - 0.5


def sample_day(
    oracle: EphemerisOracle, kind: EventKind, local_midnight: float, location: Location
) -> int:
    try:
        field = _TRANSIT_FIELDS[kind]
    except KeyError as exc:
        raise ValueError(f"{kind.value} is not a diurnal event") from exc

    zone = location.timezone / 24.0
    ut_noon = local_midnight + 0.5 - zone
    transit = oracle.solve_position(ut_noon, location)
    if kind is not EventKind.solar_noon and transit.degenerate:
        return NO_EVENT
    value = require_finite(getattr(transit, field), f"{kind.value} offset")
    return day_seconds(value + zone)


def sample_year(
    oracle: EphemerisOracle, kind: EventKind, year: int, location: Location
) -> List[int]:
    start = oracle.calendar_to_time(year, 1, 1)
    end = oracle.calendar_to_time(year + 1, 1, 1)
    days = span_days(start, end, year)
    return [sample_day(oracle, kind, start + index, location) for index in range(days)]
