"""Deterministic flight identity, also used as the Elasticsearch _id."""

from __future__ import annotations

from typing import Optional


def build_flight_id(
    flight_date: str,
    scheduled_departure: str,
    carrier: str,
    number: str,
    tail: Optional[str],
    origin: str,
    destination: str,
) -> str:
    # 2017-01-31.1200.AA123.N1234.ORD.SFO
    return "{}.{}.{}{}.{}.{}.{}".format(
        flight_date,
        scheduled_departure,
        carrier,
        number,
        tail or "",
        origin,
        destination,
    )
