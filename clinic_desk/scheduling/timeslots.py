"""Time-of-day parsing and slot generation.

Slots are stored and compared as 24-hour ``"HH:MM"`` strings. Both the 24-hour
form and the 12-hour ``"09:00 AM"`` form are accepted on input.
"""

import re
from datetime import time

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])?\s*$")
_RANGE_RE = re.compile(r"^\s*(.+?)\s*-\s*(.+?)\s*$")


def parse_time(value: str | time) -> time:
    """Parse ``"09:00"``, ``"9:00"``, ``"09:00 AM"`` or ``"9:00 pm"``."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str):
        raise ValueError(f"Invalid time: {value!r}")

    m = _TIME_RE.match(value)
    if not m:
        raise ValueError(f"Invalid time: {value!r}")

    hour, minute, meridiem = int(m.group(1)), int(m.group(2)), m.group(3)
    if minute > 59:
        raise ValueError(f"Invalid time: {value!r}")

    if meridiem:
        if not 1 <= hour <= 12:
            raise ValueError(f"Invalid 12-hour time: {value!r}")
        hour = hour % 12
        if meridiem.lower() == "pm":
            hour += 12
    elif hour > 23:
        raise ValueError(f"Invalid time: {value!r}")

    return time(hour, minute)


def normalize_time(value: str | time) -> str:
    """Return the canonical ``"HH:MM"`` form of *value*."""
    return parse_time(value).strftime("%H:%M")


def format_display(value: str | time) -> str:
    """Human-readable form, e.g. ``"02:30 PM"``."""
    return parse_time(value).strftime("%I:%M %p")


def to_minutes(value: str | time) -> int:
    t = parse_time(value)
    return t.hour * 60 + t.minute


def from_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def generate_time_slots(start: str, end: str, interval_minutes: int = 30) -> list[str]:
    """Step from *start* (inclusive) to *end* (exclusive) every *interval_minutes*."""
    if interval_minutes <= 0:
        raise ValueError("interval_minutes must be positive")

    slots: list[str] = []
    current = to_minutes(start)
    end_minutes = to_minutes(end)
    while current < end_minutes:
        slots.append(from_minutes(current))
        current += interval_minutes
    return slots


def parse_range(value: str) -> tuple[str, str] | None:
    """Parse a ``"09:00 - 13:00"`` range. Returns ``None`` if unparseable."""
    m = _RANGE_RE.match(value or "")
    if not m:
        return None
    try:
        start, end = normalize_time(m.group(1)), normalize_time(m.group(2))
    except ValueError:
        return None
    if end <= start:
        return None
    return start, end
