from datetime import date

import pytest

from roomguard.core.exceptions import ResourceNotFoundError, ValidationError
from roomguard.models import ReservationStatus, RoomCategory, RoomType, UserRole
from roomguard.services.availability import AvailabilityService

MONDAY = date(2026, 10, 19)
TUESDAY = date(2026, 10, 20)


def test_overlapping_reservation_blocks_and_touching_does_not(seed, db_session):
    student = seed.user(UserRole.student)
    room = seed.room("A101")
    seed.reservation(student, room, MONDAY, "10:00", "11:00", ReservationStatus.approved)

    service = AvailabilityService(db_session)
    assert service.is_room_available(room.id, MONDAY, "10:30", "11:30") is False
    assert service.is_room_available(room.id, MONDAY, "11:00", "12:00") is True
    assert service.is_room_available(room.id, TUESDAY, "10:30", "11:30") is True


def test_pending_blocks_like_approved(seed, db_session):
    student = seed.user(UserRole.student)
    room = seed.room()
    seed.reservation(student, room, MONDAY, "14:00", "15:00", ReservationStatus.pending)
    assert AvailabilityService(db_session).is_room_available(room.id, MONDAY, "14:30", "15:30") is False


@pytest.mark.parametrize("status", [ReservationStatus.rejected, ReservationStatus.canceled, ReservationStatus.used])
def test_closed_reservations_do_not_block(seed, db_session, status):
    student = seed.user(UserRole.student)
    room = seed.room()
    seed.reservation(student, room, MONDAY, "14:00", "15:00", status)
    assert AvailabilityService(db_session).is_room_available(room.id, MONDAY, "14:00", "15:00") is True


def test_timetable_entry_blocks_by_legacy_label(seed, db_session):
    room = seed.room("B-204")
    seed.class_group(
        "CS101",
        entries=[{"day": "monday", "location": " b-204 ", "start_time": "09:00", "end_time": "11:00"}],
    )
    service = AvailabilityService(db_session)
    assert service.is_room_available(room.id, MONDAY, "10:00", "10:30") is False
    assert service.is_room_available(room.id, TUESDAY, "10:00", "10:30") is True


def test_timetable_entry_blocks_by_canonical_id(seed, db_session):
    room = seed.room("B-205")
    seed.class_group("CS102", entries=[{"day": "Monday", "location": room.id, "start_time": "13:00", "end_time": "14:00"}])
    assert AvailabilityService(db_session).is_room_available(room.id, MONDAY, "13:30", "14:30") is False


def test_unresolvable_location_is_ignored(seed, db_session):
    room = seed.room("B-206")
    seed.class_group("CS103", entries=[{"day": "Monday", "location": "Annex", "start_time": "13:00", "end_time": "14:00"}])
    assert AvailabilityService(db_session).is_room_available(room.id, MONDAY, "13:00", "14:00") is True


def test_excluded_class_group_is_skipped(seed, db_session):
    room = seed.room("B-207")
    group = seed.class_group(
        "CS104", entries=[{"day": "Monday", "location": "B-207", "start_time": "09:00", "end_time": "10:00"}]
    )
    service = AvailabilityService(db_session)
    assert service.is_room_available_for_class_group(room.id, MONDAY, "09:00", "10:00", group.id) is True
    assert service.is_room_available_for_class_group(room.id, MONDAY, "09:00", "10:00", "other") is False


def test_excluded_reservation_is_skipped(seed, db_session):
    student = seed.user(UserRole.student)
    room = seed.room()
    reservation = seed.reservation(student, room, MONDAY, "10:00", "11:00")
    service = AvailabilityService(db_session)
    assert service.is_room_available(room.id, MONDAY, "10:00", "11:00", exclude_reservation_id=reservation.id) is True


def test_malformed_stored_time_fails_closed(seed, db_session):
    room = seed.room("B-208")
    seed.class_group("CS105", entries=[{"day": "Monday", "location": "B-208", "start_time": "9h", "end_time": "10:00"}])
    assert AvailabilityService(db_session).is_room_available(room.id, MONDAY, "15:00", "16:00") is False


def test_invalid_request_fails_closed(seed, db_session):
    room = seed.room()
    service = AvailabilityService(db_session)
    assert service.is_room_available(room.id, MONDAY, "11:00", "10:00") is False
    assert service.is_room_available(room.id, MONDAY, "25:00", "26:00") is False


def test_storage_failure_fails_closed(seed, db_session, monkeypatch):
    room_id = seed.room().id

    def broken_execute(*args, **kwargs):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(db_session, "execute", broken_execute)
    assert AvailabilityService(db_session).is_room_available(room_id, MONDAY, "10:00", "11:00") is False


def test_unknown_room_fails_closed(seed, db_session):
    service = AvailabilityService(db_session)
    assert service.is_room_available("no-such-room", MONDAY, "10:00", "11:00") is False
    assert service.is_room_available_for_class_group("no-such-room", MONDAY, "10:00", "11:00", None) is False


def test_conflict_info_lists_both_sources(seed, db_session):
    student = seed.user(UserRole.student, name="Sara Idrissi")
    room = seed.room("A102")
    seed.reservation(student, room, MONDAY, "10:00", "11:00", ReservationStatus.pending)
    seed.class_group(
        "MA201",
        entries=[{"name": "Algebra", "day": "Monday", "location": "A102", "start_time": "10:00", "end_time": "12:00"}],
    )

    info = AvailabilityService(db_session).get_conflict_info(room.id, MONDAY, "10:30", "11:30")
    assert info.has_conflicts
    assert info.reservation_conflicts == ["Reservation by Sara Idrissi from 10:00 to 11:00 (PENDING)"]
    assert info.class_conflicts == ["Class 'Algebra' (MA201 group) from 10:00 to 12:00"]
    assert info.short_message() == "1 class schedule conflict(s) and 1 reservation conflict(s)"
    assert "Class schedule conflicts:" in info.detailed_message()


def test_conflict_info_without_conflicts(seed, db_session):
    room = seed.room()
    info = AvailabilityService(db_session).get_conflict_info(room.id, MONDAY, "10:00", "11:00")
    assert not info.has_conflicts
    assert info.short_message() == "Available"
    assert info.detailed_message() == "No conflicts found"


def test_conflict_info_raises_for_bad_input(seed, db_session):
    room = seed.room()
    service = AvailabilityService(db_session)
    with pytest.raises(ValidationError):
        service.get_conflict_info(room.id, MONDAY, "10:00", "10:00")
    with pytest.raises(ResourceNotFoundError):
        service.get_conflict_info("missing", MONDAY, "10:00", "11:00")


def test_find_available_rooms_filters_and_checks(seed, db_session):
    student = seed.user(UserRole.student)
    busy = seed.room("S-1", category=RoomCategory.study_room, room_type=RoomType.study, capacity=6)
    free = seed.room("S-2", category=RoomCategory.study_room, room_type=RoomType.study, capacity=8)
    seed.room("S-3", category=RoomCategory.study_room, room_type=RoomType.study, capacity=2)
    seed.room("L-1", room_type=RoomType.lab, capacity=30)
    seed.reservation(student, busy, MONDAY, "10:00", "12:00", ReservationStatus.approved)

    rooms = AvailabilityService(db_session).find_available_rooms(
        MONDAY, "11:00", "12:00", category=RoomCategory.study_room, min_capacity=4
    )
    assert [room.id for room in rooms] == [free.id]
