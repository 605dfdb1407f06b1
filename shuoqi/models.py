"""Pydantic models for batch settings and the produced event tables."""

from __future__ import annotations

import math
import os
from enum import Enum
from typing import List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class EventKind(str, Enum):
    """Enumeration of the event tables computed by the batch."""

    solar_term = "solar_term"
    new_moon = "new_moon"
    sunrise = "sunrise"
    sunset = "sunset"
    solar_noon = "solar_noon"

    @property
    def diurnal(self) -> bool:
        return self in DIURNAL_KINDS


DIURNAL_KINDS = frozenset({EventKind.sunrise, EventKind.sunset, EventKind.solar_noon})

_ENV_SETTINGS = {
    "SHUOQI_START_YEAR": "start_year",
    "SHUOQI_END_YEAR": "end_year",
    "SHUOQI_ZONE_HOURS": "zone_offset_hours",
    "SHUOQI_N_JOBS": "n_jobs",
}


class Location(BaseModel):
    """Observer location used by the diurnal sampler.

    Angles are radians (east-positive longitude), the zone offset is in hours.
    Instances are frozen and are passed explicitly into every diurnal call.
    """

    model_config = ConfigDict(frozen=True)

    longitude: float = Field(..., ge=-math.pi, le=math.pi, description="Longitude in radians")
    latitude: float = Field(
        ..., ge=-math.pi / 2.0, le=math.pi / 2.0, description="Latitude in radians"
    )
    timezone: float = Field(..., ge=-14.0, le=14.0, description="Zone offset in hours")

    @classmethod
    def from_degrees(cls, longitude: float, latitude: float, timezone: float) -> "Location":
        return cls(
            longitude=math.radians(longitude),
            latitude=math.radians(latitude),
            timezone=timezone,
        )

    @property
    def longitude_deg(self) -> float:
        return math.degrees(self.longitude)

    @property
    def latitude_deg(self) -> float:
        return math.degrees(self.latitude)


BEIJING = Location.from_degrees(116.3833, 39.9, 8.0)


class SearchSettings(BaseModel):
    """Tunable constants of the candidate search and the batch range.

    ``tolerance`` and the candidate windows were tuned against the civil-year
    boundary cases; change them only together with those tests.
    """

    model_config = ConfigDict(frozen=True)

    reference_year: int = 2000
    zone_offset_hours: float = Field(
        8.0, ge=-14.0, le=14.0, description="Clock on which periodic instants are reported"
    )
    tolerance: float = Field(1e-9, gt=0.0, description="Root identity tolerance in days")
    solar_term_window: Tuple[int, int] = (-30, 60)
    new_moon_window: Tuple[int, int] = (-3, 17)
    terms_per_year: int = Field(24, gt=0)
    tropical_year: float = Field(365.2422, gt=0.0)
    synodic_month: float = Field(29.53058886, gt=0.0)
    start_year: int = -2000
    end_year: int = 5000
    n_jobs: int = 1

    @field_validator("solar_term_window", "new_moon_window")
    @classmethod
    def validate_window(cls, value: Tuple[int, int]) -> Tuple[int, int]:
        low, high = value
        if high <= low:
            raise ValueError("candidate window must be a non-empty [low, high) range")
        return value

    @field_validator("n_jobs")
    @classmethod
    def validate_n_jobs(cls, value: int) -> int:
        if value == 0:
            raise ValueError("n_jobs must be a positive count or a negative joblib count")
        return value

    @model_validator(mode="after")
    def validate_year_range(self) -> "SearchSettings":
        if self.end_year < self.start_year:
            raise ValueError("end_year must not precede start_year")
        return self

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides: object
    ) -> "SearchSettings":
        """Build settings from ``SHUOQI_*`` variables, then apply *overrides*."""

        env = os.environ if environ is None else environ
        values = {field: env[key] for key, field in _ENV_SETTINGS.items() if env.get(key)}
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    @property
    def years(self) -> range:
        return range(self.start_year, self.end_year + 1)


class Anomaly(BaseModel):
    """A year whose event count deviates from the expected cardinality."""

    year: int
    count: int


class YearRecord(BaseModel):
    """Solar-term or new-moon instants of one civil year (days from J2000)."""

    year: int
    instants: List[float]
    anomalous: bool = False


class DiurnalYearRecord(BaseModel):
    """Seconds of the local day, one per calendar day; -1 marks no event."""

    year: int
    seconds: List[int]
    day_count: int
    anomalous: bool = False


class EventSeries(BaseModel):
    kind: EventKind
    start_year: int
    end_year: int
    zone_offset_hours: float
    records: List[YearRecord] = Field(default_factory=list)
    anomalies: List[Anomaly] = Field(default_factory=list)

    def for_year(self, year: int) -> YearRecord:
        if not self.start_year <= year <= self.end_year:
            raise KeyError(year)
        return self.records[year - self.start_year]


class DiurnalSeries(BaseModel):
    kind: EventKind
    start_year: int
    end_year: int
    location: Location
    records: List[DiurnalYearRecord] = Field(default_factory=list)
    anomalies: List[Anomaly] = Field(default_factory=list)

    @property
    def day_counts(self) -> List[int]:
        return [record.day_count for record in self.records]

    def for_year(self, year: int) -> DiurnalYearRecord:
        if not self.start_year <= year <= self.end_year:
            raise KeyError(year)
        return self.records[year - self.start_year]
