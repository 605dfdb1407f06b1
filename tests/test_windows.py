from __future__ import annotations

import pytest

from shuoqi.calendar import calendar_to_time
from shuoqi.windows import (
    new_moons_anomalous,
    select_new_moons,
    select_solar_terms,
    solar_terms_anomalous,
)

START = calendar_to_time(2024, 1, 1)
END = calendar_to_time(2025, 1, 1)


def _terms_from(first: float, count: int = 30) -> list[float]:
    return [first + 15.2 * i for i in range(count)]


def test_solar_terms_take_24_from_first_at_or_after_start():
    roots = _terms_from(START - 40.0)
    selected = select_solar_terms(roots, START)
    assert len(selected) == 24
    assert selected[0] == min(t for t in roots if t >= START - 1e-9)
    assert selected == sorted(selected)


def test_root_exactly_at_start_is_included():
    roots = [START - 15.0, START, START + 15.0] + _terms_from(START + 30.0, 22)
    assert select_solar_terms(roots, START)[0] == START


def test_root_within_tolerance_before_start_is_included():
    roots = [START - 5e-10] + _terms_from(START + 10.0, 23)
    assert select_solar_terms(roots, START)[0] == START - 5e-10


def test_root_exactly_one_tolerance_before_start_is_included():
    boundary = START - 1e-9
    roots = [boundary] + _terms_from(START + 10.0, 23)
    assert select_solar_terms(roots, START)[0] == boundary


def test_root_beyond_tolerance_is_excluded():
    roots = [START - 2e-9] + _terms_from(START + 10.0, 24)
    assert select_solar_terms(roots, START)[0] == START + 10.0


def test_short_input_yields_short_result_without_raising():
    roots = _terms_from(START + 1.0, 20)
    selected = select_solar_terms(roots, START)
    assert len(selected) == 20
    assert solar_terms_anomalous(len(selected))


def test_empty_roots():
    assert select_solar_terms([], START) == []
    assert select_new_moons([], START, END) == []


def test_new_moons_filter_half_open_year():
    roots = [START - 1.0, START - 5e-10, START + 100.0, END - 5e-10, END + 1.0]
    assert select_new_moons(roots, START, END) == [START - 5e-10, START + 100.0]


def test_new_moon_at_next_year_start_belongs_to_next_year():
    roots = [START + 3.0, END]
    assert select_new_moons(roots, START, END) == [START + 3.0]
    assert select_new_moons(roots, END, calendar_to_time(2026, 1, 1)) == [END]


@pytest.mark.parametrize("count, anomalous", [(11, True), (12, False), (13, False), (14, True)])
def test_new_moon_cardinality(count, anomalous):
    assert new_moons_anomalous(count) is anomalous


def test_solar_term_cardinality():
    assert not solar_terms_anomalous(24)
    assert solar_terms_anomalous(25)
