"""
Calendar-day helpers for the route progress engine.

All trip dates are local, naive calendar days stored as canonical ISO
strings (YYYY-MM-DD). Nothing here looks at a time of day.
"""

from datetime import date, datetime
from typing import Union

DateLike = Union[str, date, datetime]

# Dates are parsed at noon so a DST shift can never move them across midnight
NEUTRAL_TIME = "T12:00:00"


def normalize_date(value: DateLike) -> str:
    """Return the canonical YYYY-MM-DD form of a date-like value.

    Raises ValueError for anything that is not already a canonical ISO date.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        raise ValueError(f"Not a calendar date: {value!r}")

    text = value.strip()
    try:
        parsed = date.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Malformed date: {value!r}") from None
    # fromisoformat also takes compact forms like 20260612
    if parsed.isoformat() != text:
        raise ValueError(f"Malformed date: {value!r}")
    return text


def to_ordinal_day(date_str: DateLike) -> int:
    """Convert a calendar date into a comparable integer day count."""
    canonical = normalize_date(date_str)
    return datetime.fromisoformat(canonical + NEUTRAL_TIME).toordinal()


def day_difference(a: DateLike, b: DateLike) -> int:
    """Whole days from a to b (negative when b is earlier)."""
    return to_ordinal_day(b) - to_ordinal_day(a)


def today() -> str:
    """Today's local date, normalized like every stored date."""
    return date.today().isoformat()
