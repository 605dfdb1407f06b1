from __future__ import annotations

import math
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from shuoqi.astro import (  # noqa: E402
    ELONGATION_J2000,
    ELONGATION_RATE,
    SUN_LONGITUDE_J2000,
    SUN_RATE,
    ErfaOracle,
)
from shuoqi.calendar import calendar_to_time  # noqa: E402
from shuoqi.models import EventKind, Location  # noqa: E402
from shuoqi.oracle import SolarTransit  # noqa: E402


class LinearOracle:
    """Uniform-motion oracle with fixed diurnal offsets (6h / 12h / 18h local)."""

    def __init__(self, correction: float = 0.0, hour_angle: float = math.pi / 2):
        self.correction = correction
        self.hour_angle = hour_angle

    def angle_to_time(self, kind: EventKind, angle: float) -> float:
        if kind is EventKind.solar_term:
            return (angle - SUN_LONGITUDE_J2000) / SUN_RATE
        return (angle - ELONGATION_J2000) / ELONGATION_RATE

    def time_correction(self, t: float) -> float:
        return self.correction

    def solve_position(self, ut_noon: float, location: Location) -> SolarTransit:
        return SolarTransit(
            noon=ut_noon,
            sunrise=ut_noon - 0.25,
            sunset=ut_noon + 0.25,
            hour_angle=self.hour_angle,
        )

    def calendar_to_time(self, year: int, month: int, day: int) -> float:
        return calendar_to_time(year, month, day)


@pytest.fixture
def linear_oracle() -> LinearOracle:
    return LinearOracle()


@pytest.fixture(scope="session")
def erfa_oracle() -> ErfaOracle:
    return ErfaOracle()


@pytest.fixture
def beijing() -> Location:
    return Location.from_degrees(116.3833, 39.9, 8.0)
