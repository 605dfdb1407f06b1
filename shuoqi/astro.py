"""Apparent solar and lunar longitudes, root finding and the diurnal solver.

:class:`ApparentLongitudeOracle` implements the oracle operations on top of two
primitives, the apparent ecliptic longitude of the Sun and of the Moon (and
their rates). :class:`ErfaOracle` supplies them from the analytic ERFA models;
the JPL kernel back-end lives in :mod:`shuoqi.ephemeris`.
"""

from __future__ import annotations

import logging
import math
import warnings
from functools import lru_cache
from typing import Tuple

import erfa
import numpy as np

from .calendar import J2000, calendar_to_time
from .models import EventKind, Location
from .oracle import OracleError, SolarTransit

__all__ = [
    "ApparentLongitudeOracle",
    "ErfaOracle",
    "delta_t_seconds",
    "ecliptic_longitude",
]

LOGGER = logging.getLogger(__name__)

TAU = 2.0 * math.pi
DAYS_PER_CENTURY = 36525.0
C_AU_PER_DAY = 173.144632674  # speed of light (AU/day)

# Mean motions used to seed the root finder (rad, rad per Julian century).
SUN_LONGITUDE_J2000 = 1.75347 + math.pi
SUN_RATE = 628.3319653318
ELONGATION_J2000 = -1.08472
ELONGATION_RATE = 7771.37714500204

HORIZON_ALTITUDE = math.radians(-50.0 / 60.0)  # refraction + semidiameter
TRANSIT_ITERATIONS = 2
CROSSING_ITERATIONS = 3


def _norm(angle: float) -> float:
    return angle - TAU * math.floor((angle + math.pi) / TAU)


def delta_t_seconds(year: float) -> float:
    """TT - UT1 in seconds (Stephenson & Morrison long-term parabola)."""

    t = (year - 1825.0) / 100.0
    return -150.568 + 31.4115 * t * t + 284.8436 * math.cos(TAU * (t + 0.75) / 14.0)


@lru_cache(maxsize=16)
def _ecliptic_frame(t: float) -> Tuple[np.ndarray, float, float]:
    """ICRS -> mean ecliptic of date matrix, nutation in longitude, true obliquity."""

    rotation = np.array(erfa.ecm06(J2000, t), dtype=float)
    dpsi, deps = erfa.nut00b(J2000, t)
    eps = float(erfa.obl06(J2000, t)) + float(deps)
    return rotation, float(dpsi), eps


def ecliptic_longitude(
    t: float, position: np.ndarray, velocity: np.ndarray
) -> Tuple[float, float]:
    """Apparent longitude of date and its rate from an ICRS vector (rad, rad/day)."""

    rotation, dpsi, _ = _ecliptic_frame(t)
    x = rotation @ position
    v = rotation @ velocity
    lam = (math.atan2(x[1], x[0]) + dpsi) % TAU
    lam_dot = (x[0] * v[1] - x[1] * v[0]) / (x[0] ** 2 + x[1] ** 2)
    return lam, float(lam_dot)


def _aberrate(position: np.ndarray, observer_velocity: np.ndarray) -> np.ndarray:
    """Relativistic annual aberration of *position*; *observer_velocity* in AU/day."""

    r = float(np.linalg.norm(position))
    n = position / r
    beta = observer_velocity / C_AU_PER_DAY
    beta2 = float(beta @ beta)
    gamma_inv = math.sqrt(max(0.0, 1.0 - beta2))
    nb = float(n @ beta)
    n_app = (gamma_inv * n + beta + (nb * beta) / (1.0 + gamma_inv)) / (1.0 + nb)
    return n_app / float(np.linalg.norm(n_app)) * r


def _horizon_hour_angle(dec: float, lat: float) -> float:
    """Half the diurnal arc above the horizon; ``math.pi`` when there is no crossing."""

    c = (math.sin(HORIZON_ALTITUDE) - math.sin(lat) * math.sin(dec)) / (
        math.cos(lat) * math.cos(dec)
    )
    if abs(c) > 1.0:
        return math.pi
    return math.acos(c)


class ApparentLongitudeOracle:
    """Oracle operations shared by every longitude back-end.

    Subclasses implement :meth:`sun_longitude` and :meth:`moon_longitude` for
    ``t`` in days (TT) from J2000.
    """

    eps_days = 1e-8
    max_iter = 20

    def sun_longitude(self, t: float) -> Tuple[float, float]:
        raise NotImplementedError

    def moon_longitude(self, t: float) -> Tuple[float, float]:
        raise NotImplementedError

    # ---- periodic events ----
    def _value_and_rate(self, kind: EventKind, t: float, angle: float) -> Tuple[float, float]:
        if kind is EventKind.solar_term:
            lam, lam_dot = self.sun_longitude(t)
        elif kind is EventKind.new_moon:
            lam_m, lam_dot_m = self.moon_longitude(t)
            lam_s, lam_dot_s = self.sun_longitude(t)
            lam, lam_dot = lam_m - lam_s, lam_dot_m - lam_dot_s
        else:
            raise ValueError(f"{kind.value} has no tracked angle")
        return _norm(lam - angle), lam_dot

    @staticmethod
    def _initial_guess(kind: EventKind, angle: float) -> float:
        if kind is EventKind.solar_term:
            return (angle - SUN_LONGITUDE_J2000) / SUN_RATE * DAYS_PER_CENTURY
        return (angle - ELONGATION_J2000) / ELONGATION_RATE * DAYS_PER_CENTURY

    def angle_to_time(self, kind: EventKind, angle: float) -> float:
        """Newton iteration with damped, backtracking steps; result in centuries."""

        t = self._initial_guess(kind, angle)
        f, f_dot = self._value_and_rate(kind, t, angle)
        for _ in range(self.max_iter):
            if abs(f_dot) < 1e-12:
                break
            delta = max(-3.0, min(3.0, f / f_dot))  # days
            t_new = t - delta
            f_new, f_dot_new = self._value_and_rate(kind, t_new, angle)

            backtracks = 0
            while abs(f_new) > abs(f) and abs(delta) > self.eps_days and backtracks < 20:
                delta *= 0.5
                t_new = t - delta
                f_new, f_dot_new = self._value_and_rate(kind, t_new, angle)
                backtracks += 1

            if abs(delta) < self.eps_days or f_new == 0.0:
                return t_new / DAYS_PER_CENTURY
            t, f, f_dot = t_new, f_new, f_dot_new

        raise OracleError(f"Root finding did not converge for {kind.value} at angle {angle!r}")

    def time_correction(self, t: float) -> float:
        year = 2000.0 + (t + 0.5) / 365.2425
        return delta_t_seconds(year) / 86400.0

    # ---- diurnal events ----
    def _sun_equatorial(self, t_ut: float) -> Tuple[float, float]:
        t = t_ut + self.time_correction(t_ut)
        lam, _ = self.sun_longitude(t)
        _, _, eps = _ecliptic_frame(t)
        ra = math.atan2(math.sin(lam) * math.cos(eps), math.cos(lam))
        dec = math.asin(math.sin(eps) * math.sin(lam))
        return ra, dec

    def _local_hour_angle(self, t_ut: float, longitude: float) -> Tuple[float, float]:
        ra, dec = self._sun_equatorial(t_ut)
        gst = float(erfa.gst00b(J2000, t_ut))
        return _norm(gst + longitude - ra), dec

    def _horizon_crossing(self, t: float, location: Location, side: float) -> Tuple[float, float]:
        arc = math.pi
        for _ in range(CROSSING_ITERATIONS):
            hour_angle, dec = self._local_hour_angle(t, location.longitude)
            arc = _horizon_hour_angle(dec, location.latitude)
            if arc == math.pi:
                break
            t += _norm(side * arc - hour_angle) / TAU
        return t, arc

    def solve_position(self, ut_noon: float, location: Location) -> SolarTransit:
        noon = ut_noon
        for _ in range(TRANSIT_ITERATIONS):
            hour_angle, _ = self._local_hour_angle(noon, location.longitude)
            noon -= hour_angle / TAU

        _, dec = self._sun_equatorial(noon)
        arc = _horizon_hour_angle(dec, location.latitude)
        if arc != math.pi:
            sunrise, rise_arc = self._horizon_crossing(noon - arc / TAU, location, -1.0)
            sunset, set_arc = self._horizon_crossing(noon + arc / TAU, location, 1.0)
            if math.pi not in (rise_arc, set_arc):
                return SolarTransit(noon=noon, sunrise=sunrise, sunset=sunset, hour_angle=arc)
        return SolarTransit(noon=noon, sunrise=noon - 0.5, sunset=noon + 0.5, hour_angle=math.pi)

    def calendar_to_time(self, year: int, month: int, day: int) -> float:
        return calendar_to_time(year, month, day)


class ErfaOracle(ApparentLongitudeOracle):
    """Analytic back-end: ``erfa.epv00`` for the Sun and ``erfa.moon98`` for the Moon.

    Accuracy is best within a few centuries of J2000 and degrades smoothly
    outside; the longitudes stay monotonic over the whole batch range.
    """

    def sun_longitude(self, t: float) -> Tuple[float, float]:
        with warnings.catch_warnings():
            # epv00 flags dates outside 1900-2100 but still evaluates them.
            warnings.simplefilter("ignore", erfa.ErfaWarning)
            pvh, pvb = erfa.epv00(J2000, t)
        position = -np.asarray(pvh["p"], dtype=float)
        velocity = -np.asarray(pvh["v"], dtype=float)
        apparent = _aberrate(position, np.asarray(pvb["v"], dtype=float))
        return ecliptic_longitude(t, apparent, velocity)

    def moon_longitude(self, t: float) -> Tuple[float, float]:
        pv = erfa.moon98(J2000, t)
        position = np.asarray(pv["p"], dtype=float)
        velocity = np.asarray(pv["v"], dtype=float)
        return ecliptic_longitude(t, position, velocity)
