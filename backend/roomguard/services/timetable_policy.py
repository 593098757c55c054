from __future__ import annotations

from typing import Iterable, Protocol

from roomguard.core.exceptions import ValidationError
from roomguard.services.time_intervals import WEEKDAYS, to_minutes

EARLIEST_START_HOUR = 8
LATEST_START_HOUR = 17
EARLIEST_END_HOUR = 9
LATEST_END_HOUR = 18
ALLOWED_DURATIONS_MINUTES = (60, 120)


class EntryLike(Protocol):
    day: str
    start_time: str
    end_time: str


def validate_timetable_time_policy(entries: Iterable[EntryLike]) -> None:
    """Reject the first entry that breaks the institutional class-time policy.

    Classes run Monday to Friday on whole hours, start between 08:00 and
    17:00, end between 09:00 and 18:00 and last exactly one or two hours.
    """
    for entry in entries:
        day = (entry.day or "").strip()
        if day.lower() not in {name.lower() for name in WEEKDAYS}:
            raise ValidationError(
                f"Class day must be a weekday (Monday to Friday): {entry.day}",
                details={"day": entry.day},
            )

        start = to_minutes(entry.start_time)
        end = to_minutes(entry.end_time)

        if start % 60:
            raise ValidationError(
                f"Start time must be on the hour (e.g., 09:00, 10:00): {entry.start_time}",
                details={"start_time": entry.start_time},
            )
        if end % 60:
            raise ValidationError(
                f"End time must be on the hour (e.g., 09:00, 10:00): {entry.end_time}",
                details={"end_time": entry.end_time},
            )

        if not EARLIEST_START_HOUR <= start // 60 <= LATEST_START_HOUR:
            raise ValidationError(
                f"Start time must be between 08:00 and 17:00: {entry.start_time}",
                details={"start_time": entry.start_time},
            )
        if not EARLIEST_END_HOUR <= end // 60 <= LATEST_END_HOUR:
            raise ValidationError(
                f"End time must be between 09:00 and 18:00: {entry.end_time}",
                details={"end_time": entry.end_time},
            )

        duration = end - start
        if duration not in ALLOWED_DURATIONS_MINUTES:
            raise ValidationError(
                f"Class duration must be exactly 1 or 2 hours (got {duration / 60:g} hours)",
                details={"start_time": entry.start_time, "end_time": entry.end_time},
            )
