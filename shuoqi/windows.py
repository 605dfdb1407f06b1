"""Civil-year selection over deduplicated, ascending roots."""

from __future__ import annotations

from bisect import bisect_left
from typing import List, Sequence

from .search import DEDUP_TOLERANCE

SOLAR_TERMS_PER_YEAR = 24
NEW_MOON_COUNTS = frozenset({12, 13})


def select_solar_terms(
    roots: Sequence[float],
    start: float,
    count: int = SOLAR_TERMS_PER_YEAR,
    tolerance: float = DEDUP_TOLERANCE,
) -> List[float]:
    """The *count* roots starting with the first one at or after ``start - tolerance``.

    Returns fewer entries when *roots* runs out; the caller flags the year.
    """

    index = bisect_left(roots, start - tolerance)
    return list(roots[index:index + count])


def select_new_moons(
    roots: Sequence[float],
    start: float,
    end: float,
    tolerance: float = DEDUP_TOLERANCE,
) -> List[float]:
    low = start - tolerance
    high = end - tolerance
    return [t for t in roots if low <= t < high]


def solar_terms_anomalous(count: int, expected: int = SOLAR_TERMS_PER_YEAR) -> bool:
    return count != expected


def new_moons_anomalous(count: int) -> bool:
    return count not in NEW_MOON_COUNTS
