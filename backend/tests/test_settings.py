import pydantic
import pytest

from roomguard.core.config import Settings


def test_cors_origins_accept_comma_separated_and_json_lists():
    assert Settings(cors_origins="http://a.test, http://b.test ,").cors_origins == ["http://a.test", "http://b.test"]
    assert Settings(cors_origins='["http://c.test"]').cors_origins == ["http://c.test"]


def test_auto_reject_hour_must_be_a_clock_hour():
    assert Settings(auto_reject_hour=0).auto_reject_hour == 0
    with pytest.raises(pydantic.ValidationError):
        Settings(auto_reject_hour=24)


def test_reservation_policy_defaults():
    settings = Settings()
    assert settings.reservation_max_days_in_advance == 30
    assert settings.reservation_max_hours == 4
    assert settings.student_requires_approval is True
    assert settings.timetable_cache_ttl_seconds == 300
