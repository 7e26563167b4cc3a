from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("Ngày không hợp lệ (YYYY-MM-DD)")


def parse_optional_date(value: Optional[str]) -> Optional[date]:
    if value is None or not str(value).strip():
        return None
    return parse_iso_date(str(value))


def parse_clock(value: str) -> time:
    """Parse HH:MM (or HH:MM:SS) into a time of day."""
    v = (value or "").strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(v, fmt).time()
        except ValueError:
            continue
    raise ValidationError("Giờ không hợp lệ (HH:MM)")


def parse_optional_clock(value: Optional[str]) -> Optional[time]:
    if value is None or not str(value).strip():
        return None
    return parse_clock(str(value))


def format_clock(value: time) -> str:
    return value.strftime("%H:%M")


def at_clock(day: date, clock: time) -> datetime:
    return datetime.combine(day, clock)


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60.0


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
