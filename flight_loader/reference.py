"""Airline and airport lookup tables built from OpenFlights extracts."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Sequence

from .errors import ReferenceLoadError
from .models import AirlineRef, AirportRef
from .sources import iter_rows

LOGGER = logging.getLogger(__name__)

NULL_MARKER = "\\N"

# Columns: ID, Name, Alias, IATA, ICAO, Callsign, Country, Active
AIRLINE_NAME = 1
AIRLINE_CODE = 3
AIRLINE_MIN_FIELDS = 4

# Columns: ID, Name, City, Country, IATA, ICAO, Lat, Lon, Alt, UTC offset, DST, Tz, ...
AIRPORT_NAME = 1
AIRPORT_CITY = 2
AIRPORT_COUNTRY = 3
AIRPORT_IATA = 4
AIRPORT_LATITUDE = 6
AIRPORT_LONGITUDE = 7
AIRPORT_TIMEZONE = 11
AIRPORT_MIN_FIELDS = 12


@dataclass(frozen=True)
class ReferenceTables:
    airlines: Mapping[str, AirlineRef]
    airports: Mapping[str, AirportRef]


def _code(value: str) -> str:
    code = value.strip()
    return "" if code == NULL_MARKER else code


def _check_width(row: Sequence[str], minimum: int, line: int, kind: str) -> None:
    if len(row) < minimum:
        raise ReferenceLoadError(
            f"{kind} row {line} has {len(row)} fields, expected at least {minimum}"
        )


def load_airlines(rows: Iterable[Sequence[str]]) -> Mapping[str, AirlineRef]:
    airlines: Dict[str, AirlineRef] = {}
    for line, row in enumerate(rows, start=1):
        _check_width(row, AIRLINE_MIN_FIELDS, line, "Airline")
        code = _code(row[AIRLINE_CODE])
        # Some airlines do not have an IATA code.
        if not code:
            continue
        airlines[code] = AirlineRef(carrier_code=code, airline_name=row[AIRLINE_NAME])
    return MappingProxyType(airlines)


def load_airports(rows: Iterable[Sequence[str]]) -> Mapping[str, AirportRef]:
    airports: Dict[str, AirportRef] = {}
    for line, row in enumerate(rows, start=1):
        _check_width(row, AIRPORT_MIN_FIELDS, line, "Airport")
        code = _code(row[AIRPORT_IATA])
        if not code:
            continue
        airports[code] = AirportRef(
            iata_code=code,
            name=row[AIRPORT_NAME],
            city=row[AIRPORT_CITY],
            country=row[AIRPORT_COUNTRY],
            latitude=row[AIRPORT_LATITUDE],
            longitude=row[AIRPORT_LONGITUDE],
            timezone_id=row[AIRPORT_TIMEZONE],
        )
    return MappingProxyType(airports)


def _read_reference(path: Path, loader, kind: str):
    LOGGER.debug("Parsing %s from %s", kind, path)
    try:
        table = loader(iter_rows(path))
    except (ReferenceLoadError, OSError, csv.Error, UnicodeDecodeError) as exc:
        raise ReferenceLoadError(f"Reading {kind} file {path}: {exc}") from exc
    LOGGER.info("Loaded %s %s", len(table), kind)
    return table


def load_reference_tables(airlines_path: Path, airports_path: Path) -> ReferenceTables:
    airlines = _read_reference(airlines_path, load_airlines, "airlines")
    airports = _read_reference(airports_path, load_airports, "airports")
    return ReferenceTables(airlines=airlines, airports=airports)
