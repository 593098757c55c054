from types import SimpleNamespace

import pytest

from roomguard.core.exceptions import ValidationError
from roomguard.services.timetable_policy import validate_timetable_time_policy


def entry(day="Monday", start="09:00", end="10:00"):
    return SimpleNamespace(day=day, start_time=start, end_time=end)


def test_accepts_one_and_two_hour_classes_within_the_day():
    validate_timetable_time_policy([entry(), entry("Tuesday", "08:00", "10:00"), entry("Friday", "16:00", "18:00")])


def test_empty_timetable_is_valid():
    validate_timetable_time_policy([])


def test_quarter_past_start_is_rejected_with_the_value():
    with pytest.raises(ValidationError) as excinfo:
        validate_timetable_time_policy([entry(start="09:15", end="10:00")])
    assert "09:15" in excinfo.value.message
    assert "on the hour" in excinfo.value.message


@pytest.mark.parametrize(
    ("start", "end", "fragment"),
    [
        ("07:00", "08:00", "between 08:00 and 17:00"),
        ("18:00", "19:00", "between 08:00 and 17:00"),
        ("17:00", "19:00", "between 09:00 and 18:00"),
        ("09:00", "12:00", "exactly 1 or 2 hours"),
        ("09:00", "09:30", "on the hour"),
    ],
)
def test_out_of_policy_times(start, end, fragment):
    with pytest.raises(ValidationError) as excinfo:
        validate_timetable_time_policy([entry(start=start, end=end)])
    assert fragment in excinfo.value.message


def test_weekend_and_malformed_entries_are_rejected():
    with pytest.raises(ValidationError):
        validate_timetable_time_policy([entry(day="Saturday")])
    with pytest.raises(ValidationError):
        validate_timetable_time_policy([entry(start="9am")])


def test_first_violation_wins():
    with pytest.raises(ValidationError) as excinfo:
        validate_timetable_time_policy([entry(start="10:30", end="11:00"), entry(start="07:00", end="08:00")])
    assert "10:30" in excinfo.value.message
