"""Wall-clock time parsing and half-open interval arithmetic.

Times are ``HH:MM`` strings on a 24-hour clock. Every comparison in the
service runs on minutes since midnight, and intervals are half-open
``[start, end)`` so that a booking ending at 11:00 never collides with one
starting at 11:00.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from zoneinfo import ZoneInfo

from roomguard.core.config import Settings, get_settings
from roomguard.core.exceptions import ValidationError

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

WEEKDAYS: tuple[str, ...] = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
_ALL_DAYS: tuple[str, ...] = WEEKDAYS + ("Saturday", "Sunday")

MINUTES_PER_DAY = 24 * 60


def to_minutes(value: str) -> int:
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise ValidationError(
            f"Invalid time format: {value!r}. Expected HH:MM (00:00-23:59)",
            details={"value": value},
        )
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(minutes: int) -> str:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValidationError(f"Minute offset {minutes} is outside a single day")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    return start_a < end_b and start_b < end_a


def validate_interval(start: str, end: str) -> tuple[int, int]:
    """Parse both ends and reject zero-length or inverted intervals."""
    start_minutes = to_minutes(start)
    end_minutes = to_minutes(end)
    if end_minutes <= start_minutes:
        raise ValidationError(
            f"Invalid time range {start}-{end}: end time must be after start time",
            details={"start_time": start, "end_time": end},
        )
    return start_minutes, end_minutes


def times_overlap(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    return overlaps(to_minutes(start_a), to_minutes(end_a), to_minutes(start_b), to_minutes(end_b))


def weekday_name(value: date) -> str:
    return _ALL_DAYS[value.weekday()]


def normalize_day(value: str) -> str:
    cleaned = (value or "").strip()
    for day in _ALL_DAYS:
        if day.lower() == cleaned.lower():
            return day
    raise ValidationError(f"Invalid day value: {value!r}", details={"day": value})


def next_weekday(day: str) -> str:
    current = normalize_day(day)
    if current not in WEEKDAYS:
        return WEEKDAYS[0]
    return WEEKDAYS[(WEEKDAYS.index(current) + 1) % len(WEEKDAYS)]


def local_now(settings: Settings | None = None) -> datetime:
    resolved = settings or get_settings()
    return datetime.now(ZoneInfo(resolved.timezone))


def minutes_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute
