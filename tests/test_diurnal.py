from __future__ import annotations

import math

import pytest

from conftest import LinearOracle
from shuoqi.calendar import CalendarError, calendar_to_time, day_count
from shuoqi.diurnal import NO_EVENT, day_seconds, sample_day, sample_year, seconds_to_fraction
from shuoqi.models import EventKind, Location
from shuoqi.oracle import OracleError, SolarTransit


def test_day_seconds_midnight_noon_and_wrap():
    assert day_seconds(-0.5) == 0
    assert day_seconds(0.0) == 43200
    assert day_seconds(0.25) == 64800
    assert day_seconds(7.0) == 43200
    assert day_seconds(-3.0) == 43200
    # rounds up to a full day and wraps to the next midnight
    assert day_seconds(0.5 - 0.2 / 86400) == 0


def test_day_seconds_rounds_half_up():
    # 1/256 and 3/256 of a day are exactly 337.5 s and 1012.5 s
    assert day_seconds(-0.5 + 1 / 256) == 338
    assert day_seconds(-0.5 + 3 / 256) == 1013


@pytest.mark.parametrize("instant", [-0.49, -0.3217, -0.1, 0.0, 0.123456, 0.4999])
def test_seconds_round_trip_within_one_second(instant):
    seconds = day_seconds(instant)
    assert 0 <= seconds < 86400
    assert abs(seconds_to_fraction(seconds) - instant) <= 1.0 / 86400


def test_values_always_in_range_for_dense_grid():
    for step in range(-2000, 2000):
        value = day_seconds(step * 0.0007371)
        assert 0 <= value <= 86399


@pytest.mark.parametrize(
    "kind, expected",
    [(EventKind.sunrise, 21600), (EventKind.solar_noon, 43200), (EventKind.sunset, 64800)],
)
def test_sample_year_converts_back_to_local_time(linear_oracle, beijing, kind, expected):
    values = sample_year(linear_oracle, kind, 2024, beijing)
    assert len(values) == 366
    assert set(values) == {expected}


def test_sample_year_length_matches_day_count(linear_oracle):
    location = Location.from_degrees(-75.0, 40.0, -5.0)
    for year in (1582, 1900, 2000, 2023, -1, 0):
        assert len(sample_year(linear_oracle, EventKind.sunset, year, location)) == day_count(year)


def test_degenerate_days_use_sentinel_except_noon(beijing):
    oracle = LinearOracle(hour_angle=math.pi)
    start = calendar_to_time(2024, 6, 21)
    assert sample_day(oracle, EventKind.sunrise, start, beijing) == NO_EVENT
    assert sample_day(oracle, EventKind.sunset, start, beijing) == NO_EVENT
    assert sample_day(oracle, EventKind.solar_noon, start, beijing) == 43200


def test_sampler_queries_local_noon_in_ut(beijing):
    seen = []

    class RecordingOracle(LinearOracle):
        def solve_position(self, ut_noon, location):
            seen.append((ut_noon, location))
            return super().solve_position(ut_noon, location)

    start = calendar_to_time(2024, 1, 1)
    sample_day(RecordingOracle(), EventKind.sunrise, start, beijing)
    ut_noon, location = seen[0]
    assert ut_noon == pytest.approx(start + 0.5 - 8.0 / 24.0)
    assert location is beijing


def test_non_finite_offsets_are_fatal(beijing):
    class BrokenOracle(LinearOracle):
        def solve_position(self, ut_noon, location):
            return SolarTransit(noon=math.nan, sunrise=math.nan, sunset=math.nan, hour_angle=1.0)

    with pytest.raises(OracleError):
        sample_year(BrokenOracle(), EventKind.solar_noon, 2024, beijing)


def test_non_positive_day_count_is_fatal(beijing):
    class BackwardsCalendar(LinearOracle):
        def calendar_to_time(self, year, month, day):
            return -float(year)

    with pytest.raises(CalendarError):
        sample_year(BackwardsCalendar(), EventKind.sunrise, 2024, beijing)


def test_rejects_periodic_kinds(linear_oracle, beijing):
    with pytest.raises(ValueError):
        sample_day(linear_oracle, EventKind.new_moon, 0.0, beijing)


# ---- analytic oracle scenarios ----
def test_beijing_2024_sunrise(erfa_oracle, beijing):
    values = sample_year(erfa_oracle, EventKind.sunrise, 2024, beijing)
    assert len(values) == 366
    assert NO_EVENT not in values
    assert all(4 * 3600 <= value <= 8 * 3600 for value in values)

    latest = values.index(max(values))
    earliest = values.index(min(values))
    # latest sunrise straddles the year boundary next to the winter solstice
    assert latest < 20 or latest > 345
    # earliest sunrise a week or so before the summer solstice (day 172)
    assert 150 <= earliest <= 180


def test_beijing_2024_sunset_and_noon(erfa_oracle, beijing):
    sunsets = sample_year(erfa_oracle, EventKind.sunset, 2024, beijing)
    noons = sample_year(erfa_oracle, EventKind.solar_noon, 2024, beijing)
    assert len(sunsets) == len(noons) == 366
    assert NO_EVENT not in sunsets
    assert 160 <= sunsets.index(max(sunsets)) <= 195
    assert 320 <= sunsets.index(min(sunsets)) <= 355
    # mean noon at 116.38E on UTC+8 is 12:14; equation of time stays within +-17 min
    assert all(11 * 3600 + 50 * 60 <= value <= 12 * 3600 + 40 * 60 for value in noons)
    sunrises = sample_year(erfa_oracle, EventKind.sunrise, 2024, beijing)
    for rise, noon, sunset in zip(sunrises, noons, sunsets):
        assert rise < noon < sunset


@pytest.mark.parametrize("month, day", [(6, 21), (12, 21)])
@pytest.mark.parametrize("latitude", [90.0, -90.0])
def test_pole_has_no_sunrise_or_sunset_near_solstice(erfa_oracle, latitude, month, day):
    pole = Location.from_degrees(0.0, latitude, 0.0)
    midnight = calendar_to_time(2024, month, day)
    assert sample_day(erfa_oracle, EventKind.sunrise, midnight, pole) == NO_EVENT
    assert sample_day(erfa_oracle, EventKind.sunset, midnight, pole) == NO_EVENT
    assert 0 <= sample_day(erfa_oracle, EventKind.solar_noon, midnight, pole) <= 86399


def test_arctic_winter_and_summer(erfa_oracle):
    tromso = Location.from_degrees(18.96, 69.65, 1.0)
    values = sample_year(erfa_oracle, EventKind.sunrise, 2024, tromso)
    assert values[355] == NO_EVENT  # polar night around 21 December
    assert values[172] == NO_EVENT  # midnight sun around 21 June
    assert values[80] != NO_EVENT  # equinox
