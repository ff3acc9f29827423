"""Immutable record types produced while loading flights."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional


@dataclass(frozen=True)
class AirlineRef:
    carrier_code: str
    airline_name: str


@dataclass(frozen=True)
class AirportRef:
    iata_code: str
    name: str
    city: str
    country: str
    latitude: str
    longitude: str
    timezone_id: str

    @property
    def geo(self) -> str:
        return f"{self.latitude},{self.longitude}"


@dataclass(frozen=True)
class FlightRecord:
    flight_id: str
    airline: str
    carrier: str
    tail: Optional[str]
    number: str

    origin: str
    origin_geo: str
    origin_name: str
    origin_city: str
    origin_country: str
    destination: str
    destination_geo: str
    destination_name: str
    destination_city: str
    destination_country: str

    scheduled_departure_time: Optional[datetime]
    actual_departure_time: Optional[datetime]
    scheduled_arrival_time: Optional[datetime]
    actual_arrival_time: Optional[datetime]

    dep_delay_min: Optional[int]
    taxi_out_min: Optional[int]
    taxi_in_min: Optional[int]
    arrival_delay_min: Optional[int]

    canceled: bool
    cancellation_reason: Optional[str]
    diverted: bool

    scheduled_elapsed_min: Optional[int]
    actual_elapsed_min: Optional[int]
    air_time_min: Optional[int]
    flight_segments: int
    distance_miles: int

    carrier_delay_min: Optional[int]
    weather_delay_min: Optional[int]
    national_air_system_delay_min: Optional[int]
    security_delay_min: Optional[int]
    late_aircraft_delay_min: Optional[int]

    def to_document(self) -> Dict[str, object]:
        """Build the JSON document indexed under ``flight_id``.

        Absent optional values are left out of the document entirely.
        """
        doc: Dict[str, object] = {
            "airline": self.airline,
            "carrier": self.carrier,
            "tail": self.tail,
            "number": self.number,
            "origin": self.origin,
            "origin_geo": self.origin_geo,
            "origin_name": self.origin_name,
            "origin_city": self.origin_city,
            "origin_country": self.origin_country,
            "destination": self.destination,
            "destination_geo": self.destination_geo,
            "destination_name": self.destination_name,
            "destination_city": self.destination_city,
            "destination_country": self.destination_country,
            "scheduled_departure_time": _rfc3339(self.scheduled_departure_time),
            "actual_departure_time": _rfc3339(self.actual_departure_time),
            "dep_delay_min": self.dep_delay_min,
            "taxi_out_min": self.taxi_out_min,
            "taxi_in_min": self.taxi_in_min,
            "scheduled_arrival_time": _rfc3339(self.scheduled_arrival_time),
            "actual_arrival_time": _rfc3339(self.actual_arrival_time),
            "arrival_delay_min": self.arrival_delay_min,
            "canceled": self.canceled,
            "cancelation_reason": self.cancellation_reason,
            "diverted": self.diverted,
            "scheduled_elapsed_min": self.scheduled_elapsed_min,
            "actual_elapsed_min": self.actual_elapsed_min,
            "air_time_min": self.air_time_min,
            "flight_segments": self.flight_segments,
            "distance_between_airports_miles": self.distance_miles,
            "carrier_delay_min": self.carrier_delay_min,
            "weather_delay_min": self.weather_delay_min,
            "national_air_system_delay_min": self.national_air_system_delay_min,
            "security_delay_min": self.security_delay_min,
            "late_aircraft_delay_min": self.late_aircraft_delay_min,
        }
        return {key: value for key, value in doc.items() if value is not None}


def _rfc3339(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()
