"""Interface of the astronomical model the event search runs against.

All times are fractional days from J2000.0 (JD 2451545.0) unless a signature
says otherwise.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .models import EventKind, Location


class AlmanacError(RuntimeError):
    """Raised when a collaborator breaks the batch and records would be corrupt."""


class OracleError(AlmanacError):
    """Raised when the oracle returns an unusable value."""


@dataclass(frozen=True)
class SolarTransit:
    """Result of the diurnal solver for one day, in UT days from J2000.

    ``hour_angle`` is the half-arc of the day at the horizon. It is exactly
    ``math.pi`` when the Sun does not cross the horizon (polar day or night).
    """

    noon: float
    sunrise: float
    sunset: float
    hour_angle: float

    @property
    def degenerate(self) -> bool:
        return self.hour_angle == math.pi


@runtime_checkable
class EphemerisOracle(Protocol):
    def angle_to_time(self, kind: EventKind, angle: float) -> float:
        """Julian centuries (TT) from J2000 at which the unwrapped tracked angle equals *angle*.

        The tracked angle is the apparent solar longitude for solar terms and the
        lunar-minus-solar elongation for new moons.
        """
        ...

    def time_correction(self, t: float) -> float:
        """ΔT (TT - UT) in days at *t*."""
        ...

    def solve_position(self, ut_noon: float, location: Location) -> SolarTransit:
        ...

    def calendar_to_time(self, year: int, month: int, day: int) -> float:
        """Civil date at 0h to days from J2000."""
        ...


def require_finite(value: float, what: str) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise OracleError(f"Oracle returned a non-finite {what}: {value!r}")
    return value
