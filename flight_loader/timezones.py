"""Turn local BTS clock readings into timezone-aware instants."""

from __future__ import annotations

from datetime import date, datetime, time
from functools import lru_cache
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .coerce import present
from .errors import CoercionError, TimezoneError

END_OF_DAY = "2400"
LAST_MINUTE = "2359"


@lru_cache(maxsize=None)
def resolve_timezone(tz_id: str) -> ZoneInfo:
    name = (tz_id or "").strip()
    if not name or name == "\\N":
        raise TimezoneError(f"Error getting timezone of {tz_id!r}")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise TimezoneError(f"Error getting timezone of {tz_id!r}") from exc


def parse_flight_date(text: Optional[str]) -> date:
    value = present(text)
    if value is None:
        raise CoercionError("Flight date is blank")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise CoercionError(f"Error parsing flight date {value!r}") from exc


def parse_clock(clock: str) -> time:
    """Parse a zero padded 24 hour reading such as "0600" or "1447"."""
    if len(clock) != 4 or not clock.isdigit():
        raise CoercionError(f"Error parsing clock {clock!r}: expected HHMM")
    hour, minute = int(clock[:2]), int(clock[2:])
    if hour > 23 or minute > 59:
        raise CoercionError(f"Error parsing clock {clock!r}: out of range")
    return time(hour, minute)


def normalize_clock(
    flight_date: date, clock: Optional[str], tz: Union[str, ZoneInfo]
) -> Optional[datetime]:
    """Combine a flight date and a local clock reading into an aware datetime.

    "2400" is read as "2359" of the same day rather than midnight of the next
    one. The UTC offset is whatever the zone observes on ``flight_date``.
    """
    text = present(clock)
    if text is None:
        return None
    if text == END_OF_DAY:
        text = LAST_MINUTE

    zone = tz if isinstance(tz, ZoneInfo) else resolve_timezone(tz)
    return datetime.combine(flight_date, parse_clock(text)).replace(tzinfo=zone)
