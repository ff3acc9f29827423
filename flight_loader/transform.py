"""Turn one positional BTS row into an enriched FlightRecord."""

from __future__ import annotations

from typing import Optional, Sequence

from .coerce import cancellation_reason, present, to_count, to_flag, to_minutes
from .errors import CoercionError, LoaderError, LookupMissError
from .identity import build_flight_id
from .models import AirportRef, FlightRecord
from .reference import ReferenceTables
from .timezones import normalize_clock, parse_flight_date, resolve_timezone

HEADER_TOKEN = "FL_DATE"

FL_DATE = 0
CARRIER = 1
TAIL_NUM = 2
FL_NUM = 3
ORIGIN = 4
DEST = 5
CRS_DEP_TIME = 6
DEP_TIME = 7
DEP_DELAY = 8
TAXI_OUT = 9
TAXI_IN = 10
CRS_ARR_TIME = 11
ARR_TIME = 12
ARR_DELAY = 13
CANCELLED = 14
CANCELLATION_CODE = 15
DIVERTED = 16
CRS_ELAPSED_TIME = 17
ACTUAL_ELAPSED_TIME = 18
AIR_TIME = 19
FLIGHTS = 20
DISTANCE = 21
CARRIER_DELAY = 22
WEATHER_DELAY = 23
NAS_DELAY = 24
SECURITY_DELAY = 25
LATE_AIRCRAFT_DELAY = 26
ROW_FIELDS = 27


def is_header(row: Sequence[str]) -> bool:
    return bool(row) and row[FL_DATE] == HEADER_TOKEN


def row_identity(row: Sequence[str]) -> Optional[str]:
    if len(row) <= CRS_DEP_TIME:
        return None
    return build_flight_id(
        row[FL_DATE],
        row[CRS_DEP_TIME],
        row[CARRIER],
        row[FL_NUM],
        row[TAIL_NUM],
        row[ORIGIN],
        row[DEST],
    )


class RecordTransformer:
    """Enrich flight rows from read-only airline and airport tables."""

    def __init__(self, tables: ReferenceTables):
        self._tables = tables

    def transform(self, row: Sequence[str]) -> Optional[FlightRecord]:
        """Return the enriched record, or ``None`` for a header row.

        Any coercion or airport lookup failure is raised with the record id
        attached; an unknown carrier only leaves the airline name empty.
        """
        if is_header(row):
            return None

        flight_id = row_identity(row)
        if len(row) < ROW_FIELDS:
            raise CoercionError(
                f"Flight row has {len(row)} fields, expected {ROW_FIELDS}",
                record_id=flight_id,
            )

        try:
            return self._build(flight_id, row)
        except LoaderError as exc:
            if exc.record_id is None:
                exc.record_id = flight_id
            raise

    def _airport(self, code: str, role: str, flight_id: str) -> AirportRef:
        airport = self._tables.airports.get(code)
        if airport is None:
            raise LookupMissError(
                f"Error getting {role} airport {code!r}", record_id=flight_id
            )
        return airport

    def _build(self, flight_id: str, row: Sequence[str]) -> FlightRecord:
        carrier = row[CARRIER]
        airline = self._tables.airlines.get(carrier)
        origin = self._airport(row[ORIGIN], "origin", flight_id)
        dest = self._airport(row[DEST], "destination", flight_id)

        flight_date = parse_flight_date(row[FL_DATE])
        origin_tz = resolve_timezone(origin.timezone_id)
        dest_tz = resolve_timezone(dest.timezone_id)

        return FlightRecord(
            flight_id=flight_id,
            airline=airline.airline_name if airline else "",
            carrier=carrier,
            tail=present(row[TAIL_NUM]),
            number=row[FL_NUM],
            origin=origin.iata_code,
            origin_geo=origin.geo,
            origin_name=origin.name,
            origin_city=origin.city,
            origin_country=origin.country,
            destination=dest.iata_code,
            destination_geo=dest.geo,
            destination_name=dest.name,
            destination_city=dest.city,
            destination_country=dest.country,
            scheduled_departure_time=normalize_clock(flight_date, row[CRS_DEP_TIME], origin_tz),
            actual_departure_time=normalize_clock(flight_date, row[DEP_TIME], origin_tz),
            scheduled_arrival_time=normalize_clock(flight_date, row[CRS_ARR_TIME], dest_tz),
            actual_arrival_time=normalize_clock(flight_date, row[ARR_TIME], dest_tz),
            dep_delay_min=to_minutes(row[DEP_DELAY], "Dep Delay Min"),
            taxi_out_min=to_minutes(row[TAXI_OUT], "Taxi Out Min"),
            taxi_in_min=to_minutes(row[TAXI_IN], "Taxi In Min"),
            arrival_delay_min=to_minutes(row[ARR_DELAY], "Arr Delay Min"),
            canceled=to_flag(row[CANCELLED], "Canceled"),
            cancellation_reason=cancellation_reason(row[CANCELLATION_CODE]),
            diverted=to_flag(row[DIVERTED], "Diverted"),
            scheduled_elapsed_min=to_minutes(row[CRS_ELAPSED_TIME], "Sched Elapsed Min"),
            actual_elapsed_min=to_minutes(row[ACTUAL_ELAPSED_TIME], "Act Elapsed Min"),
            air_time_min=to_minutes(row[AIR_TIME], "Air Time Min"),
            flight_segments=to_count(row[FLIGHTS], "Flight Segments"),
            distance_miles=to_count(row[DISTANCE], "Distance Btwn Airports"),
            carrier_delay_min=to_minutes(row[CARRIER_DELAY], "Carrier Delay Min"),
            weather_delay_min=to_minutes(row[WEATHER_DELAY], "Weather Delay Min"),
            national_air_system_delay_min=to_minutes(row[NAS_DELAY], "NAS Delay Min"),
            security_delay_min=to_minutes(row[SECURITY_DELAY], "Sec Delay Min"),
            late_aircraft_delay_min=to_minutes(row[LATE_AIRCRAFT_DELAY], "Late Aircraft Delay Min"),
        )
