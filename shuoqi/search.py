"""Coarse candidate generation and root deduplication for periodic events.

Candidates deliberately overshoot the civil year on both sides; adjacent years
rediscover the same roots and :func:`unique_sorted` collapses them.
"""

from __future__ import annotations

import math
from typing import Iterable, List

from .models import EventKind, SearchSettings
from .oracle import EphemerisOracle, require_finite

TAU = 2.0 * math.pi
DAYS_PER_CENTURY = 36525.0
DEDUP_TOLERANCE = 1e-9


def solar_term_angles(year: int, settings: SearchSettings) -> List[float]:
    """Unwrapped solar longitudes, one every 15 degrees, around *year*."""

    y = year - settings.reference_year
    low, high = settings.solar_term_window
    per_year = settings.terms_per_year
    return [(y + i / per_year + 1) * TAU for i in range(low, high)]


def new_moon_angles(year: int, settings: SearchSettings) -> List[float]:
    """Unwrapped elongations, one per lunation, around *year*."""

    y = year - settings.reference_year
    n0 = math.floor(y * (settings.tropical_year / settings.synodic_month))
    low, high = settings.new_moon_window
    return [(n0 + i) * TAU for i in range(low, high)]


def refine(
    oracle: EphemerisOracle, kind: EventKind, angle: float, settings: SearchSettings
) -> float:
    """Instant on the zone clock at which the tracked angle reaches *angle*."""

    t = require_finite(oracle.angle_to_time(kind, angle), f"{kind.value} time") * DAYS_PER_CENTURY
    correction = require_finite(oracle.time_correction(t), "time correction")
    return t - correction + settings.zone_offset_hours / 24.0


def candidates(
    oracle: EphemerisOracle, kind: EventKind, year: int, settings: SearchSettings
) -> List[float]:
    if kind is EventKind.solar_term:
        angles = solar_term_angles(year, settings)
    elif kind is EventKind.new_moon:
        angles = new_moon_angles(year, settings)
    else:
        raise ValueError(f"{kind.value} events are sampled per day, not searched")
    return [refine(oracle, kind, angle, settings) for angle in angles]


def unique_sorted(values: Iterable[float], tolerance: float = DEDUP_TOLERANCE) -> List[float]:
    """Sort *values* and drop any within *tolerance* of the previously kept one."""

    values = list(values)
    for value in values:
        if not math.isfinite(value):
            raise ValueError(f"Cannot deduplicate non-finite value {value!r}")
    kept: List[float] = []
    for value in sorted(values):
        if not kept or abs(value - kept[-1]) > tolerance:
            kept.append(value)
    return kept
