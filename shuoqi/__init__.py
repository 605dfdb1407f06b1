"""Batch tables of solar terms, new moons and daily solar events."""

from .astro import ErfaOracle
from .driver import YearDriver
from .models import EventKind, Location, SearchSettings
from .oracle import AlmanacError, EphemerisOracle, OracleError, SolarTransit

__all__ = [
    "AlmanacError",
    "EphemerisOracle",
    "ErfaOracle",
    "EventKind",
    "Location",
    "OracleError",
    "SearchSettings",
    "SolarTransit",
    "YearDriver",
]
