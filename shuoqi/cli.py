"""Command line entry point: compute event tables and write them as JSON."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from .astro import ErfaOracle
from .calendar import format_instant
from .driver import YearDriver
from .ephemeris import SpkOracle
from .models import BEIJING, EventKind, EventSeries, Location, SearchSettings
from .oracle import AlmanacError, EphemerisOracle

LOGGER = logging.getLogger("shuoqi")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shuoqi",
        description="Solar terms, new moons and daily sunrise/sunset/noon tables per civil year",
    )
    parser.add_argument(
        "--kind",
        action="append",
        choices=[kind.value for kind in EventKind],
        help="Event table to compute (repeatable, default: all)",
    )
    parser.add_argument("--start", type=int, default=None, help="First year (default -2000)")
    parser.add_argument("--end", type=int, default=None, help="Last year, inclusive (default 5000)")
    parser.add_argument(
        "--lon", type=float, default=BEIJING.longitude_deg, help="Longitude in degrees (east +)"
    )
    parser.add_argument(
        "--lat", type=float, default=BEIJING.latitude_deg, help="Latitude in degrees"
    )
    parser.add_argument(
        "--tz", type=float, default=BEIJING.timezone, help="Observer zone offset in hours"
    )
    parser.add_argument(
        "--zone",
        type=float,
        default=None,
        help="Clock of solar-term and new-moon instants, hours from UTC (default 8)",
    )
    parser.add_argument("--ephemeris", choices=("erfa", "spk"), default="erfa")
    parser.add_argument(
        "--kernel", type=Path, default=None, help="DE kernel file or directory (spk)"
    )
    parser.add_argument("--jobs", type=int, default=None, help="joblib n_jobs for the year loop")
    parser.add_argument(
        "--iso", action="store_true", help="Add ISO timestamps for periodic events"
    )
    parser.add_argument(
        "--output", type=Path, default=None, help="JSON output file (default: stdout)"
    )
    parser.add_argument(
        "--log-level", default="INFO", choices=("DEBUG", "INFO", "WARNING", "ERROR")
    )
    return parser


def _build_oracle(args: argparse.Namespace) -> EphemerisOracle:
    if args.ephemeris == "spk":
        if args.kernel is not None:
            return SpkOracle(args.kernel)
        return SpkOracle.from_environment()
    return ErfaOracle()


def _series_payload(series, iso: bool) -> Dict[str, object]:
    payload = series.model_dump(mode="json")
    if isinstance(series, EventSeries):
        payload["anomaly_count"] = len(series.anomalies)
        if iso:
            payload["iso"] = [
                [format_instant(t) for t in record.instants] for record in series.records
            ]
    else:
        payload["day_counts"] = series.day_counts
    return payload


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(message)s")

    try:
        settings = SearchSettings.from_env(
            start_year=args.start,
            end_year=args.end,
            zone_offset_hours=args.zone,
            n_jobs=args.jobs,
        )
        location = Location.from_degrees(args.lon, args.lat, args.tz)
    except ValidationError as exc:
        messages = ", ".join(error["msg"] for error in exc.errors())
        LOGGER.error(json.dumps({"event": "invalid_arguments", "error": messages}))
        return 2

    kinds = [EventKind(value) for value in args.kind] if args.kind else list(EventKind)
    try:
        driver = YearDriver(_build_oracle(args), settings)
        payload = {
            kind.value: _series_payload(driver.run(kind, location=location), args.iso)
            for kind in kinds
        }
    except AlmanacError as exc:
        LOGGER.error(json.dumps({"event": "run_aborted", "error": str(exc)}))
        return 1

    text = json.dumps(payload)
    if args.output is None:
        sys.stdout.write(text + "\n")
    else:
        args.output.write_text(text, encoding="utf-8")
        LOGGER.info(json.dumps({"event": "output_written", "path": str(args.output)}))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
