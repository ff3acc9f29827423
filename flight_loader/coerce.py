"""Convert raw BTS text fields into typed values."""

from __future__ import annotations

import math
from typing import Optional

from .errors import CoercionError

CANCELLATION_REASONS = {
    "A": "Carrier",
    "B": "Weather",
    "C": "National Air System",
    "D": "Security",
}


def present(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def to_float(value: Optional[str], field: str) -> Optional[float]:
    text = present(value)
    if text is None:
        return None
    try:
        number = float(text)
    except (TypeError, ValueError) as exc:
        raise CoercionError(f"Converting {field} to float: {text!r}") from exc
    if not math.isfinite(number):
        raise CoercionError(f"Converting {field} to float: {text!r} is not finite")
    return number


def to_minutes(value: Optional[str], field: str) -> Optional[int]:
    """Parse a decimal minute value ("12.0") and truncate it toward zero.

    Blank input stays absent, it is never turned into zero.
    """
    number = to_float(value, field)
    if number is None:
        return None
    return int(number)


def to_count(value: Optional[str], field: str) -> int:
    number = to_minutes(value, field)
    if number is None:
        raise CoercionError(f"Converting {field} to int: value is blank")
    return number


def to_flag(value: Optional[str], field: str) -> bool:
    """Interpret a 0/1 float indicator ("1.00") as a boolean.

    The value is rounded to the nearest whole number first; anything other
    than 0 or 1 after rounding is rejected.
    """
    number = to_float(value, field)
    if number is None:
        raise CoercionError(f"Converting {field} to bool: value is blank")
    rounded = round(number)
    if rounded == 1:
        return True
    if rounded == 0:
        return False
    raise CoercionError(f"Converting {field} to bool: {value!r} is not a 0/1 indicator")


def cancellation_reason(code: Optional[str]) -> Optional[str]:
    text = present(code)
    if text is None:
        return None
    return CANCELLATION_REASONS.get(text)
