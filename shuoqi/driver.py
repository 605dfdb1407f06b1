"""Year-by-year orchestration of the event search over the configured range."""

from __future__ import annotations

import json
import logging
import time
from functools import partial
from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar, Union

from joblib import Parallel, delayed

from .calendar import span_days
from .diurnal import sample_year
from .models import (
    Anomaly,
    DiurnalSeries,
    DiurnalYearRecord,
    EventKind,
    EventSeries,
    Location,
    SearchSettings,
    YearRecord,
)
from .oracle import EphemerisOracle, require_finite
from .search import candidates, unique_sorted
from .windows import (
    new_moons_anomalous,
    select_new_moons,
    select_solar_terms,
    solar_terms_anomalous,
)

LOGGER = logging.getLogger(__name__)

PROGRESS_EVERY = 500

_R = TypeVar("_R")


class YearDriver:
    """Computes per-year event records and collects anomalous years.

    Years are independent of each other. With ``settings.n_jobs != 1`` they are
    evaluated through :class:`joblib.Parallel`; records always come back ordered
    by year.
    """

    def __init__(self, oracle: EphemerisOracle, settings: Optional[SearchSettings] = None):
        self.oracle = oracle
        self.settings = settings or SearchSettings()

    def year_bounds(self, year: int) -> Tuple[float, float]:
        start = require_finite(self.oracle.calendar_to_time(year, 1, 1), f"start of {year}")
        end = require_finite(self.oracle.calendar_to_time(year + 1, 1, 1), f"start of {year + 1}")
        span_days(start, end, year)
        return start, end

    def roots(self, kind: EventKind, year: int) -> List[float]:
        """Deduplicated refined candidates around *year*."""

        return unique_sorted(
            candidates(self.oracle, kind, year, self.settings), self.settings.tolerance
        )

    def solar_terms(self, year: int) -> YearRecord:
        start, _ = self.year_bounds(year)
        instants = select_solar_terms(
            self.roots(EventKind.solar_term, year),
            start,
            count=self.settings.terms_per_year,
            tolerance=self.settings.tolerance,
        )
        return YearRecord(
            year=year,
            instants=instants,
            anomalous=solar_terms_anomalous(len(instants), self.settings.terms_per_year),
        )

    def new_moons(self, year: int) -> YearRecord:
        start, end = self.year_bounds(year)
        instants = select_new_moons(
            self.roots(EventKind.new_moon, year), start, end, tolerance=self.settings.tolerance
        )
        return YearRecord(
            year=year, instants=instants, anomalous=new_moons_anomalous(len(instants))
        )

    def diurnal(self, kind: EventKind, year: int, location: Location) -> DiurnalYearRecord:
        start, end = self.year_bounds(year)
        days = span_days(start, end, year)
        seconds = sample_year(self.oracle, kind, year, location)
        return DiurnalYearRecord(
            year=year, seconds=seconds, day_count=days, anomalous=len(seconds) != days
        )

    def run(
        self,
        kind: EventKind,
        location: Optional[Location] = None,
        start_year: Optional[int] = None,
        end_year: Optional[int] = None,
    ) -> Union[EventSeries, DiurnalSeries]:
        first = self.settings.start_year if start_year is None else start_year
        last = self.settings.end_year if end_year is None else end_year
        if last < first:
            raise ValueError(f"end year {last} precedes start year {first}")
        years = range(first, last + 1)

        LOGGER.info(
            json.dumps(
                {"event": "run_started", "kind": kind.value, "start_year": first, "end_year": last}
            )
        )
        started = time.perf_counter()

        if kind.diurnal:
            if location is None:
                raise ValueError(f"{kind.value} needs an observer location")
            records = self._evaluate(partial(self.diurnal, kind, location=location), years)
            series: Union[EventSeries, DiurnalSeries] = DiurnalSeries(
                kind=kind, start_year=first, end_year=last, location=location, records=records
            )
            counts = [len(record.seconds) for record in records]
        else:
            compute = self.solar_terms if kind is EventKind.solar_term else self.new_moons
            records = self._evaluate(compute, years)
            series = EventSeries(
                kind=kind,
                start_year=first,
                end_year=last,
                zone_offset_hours=self.settings.zone_offset_hours,
                records=records,
            )
            counts = [len(record.instants) for record in records]

        for record, count in zip(records, counts):
            if record.anomalous:
                series.anomalies.append(Anomaly(year=record.year, count=count))
                LOGGER.warning(
                    json.dumps(
                        {
                            "event": "year_anomaly",
                            "kind": kind.value,
                            "year": record.year,
                            "count": count,
                        }
                    )
                )

        LOGGER.info(
            json.dumps(
                {
                    "event": "run_finished",
                    "kind": kind.value,
                    "years": len(records),
                    "anomalies": len(series.anomalies),
                    "duration_s": round(time.perf_counter() - started, 3),
                }
            )
        )
        return series

    def run_all(
        self,
        location: Location,
        kinds: Iterable[EventKind] = tuple(EventKind),
    ) -> Dict[EventKind, Union[EventSeries, DiurnalSeries]]:
        return {kind: self.run(kind, location=location) for kind in kinds}

    def _evaluate(self, compute: Callable[[int], _R], years: range) -> List[_R]:
        if self.settings.n_jobs == 1:
            results = []
            for year in years:
                results.append(compute(year))
                if (year - years.start) % PROGRESS_EVERY == 0:
                    LOGGER.debug(json.dumps({"event": "run_progress", "year": year}))
            return results
        return Parallel(n_jobs=self.settings.n_jobs)(delayed(compute)(year) for year in years)
