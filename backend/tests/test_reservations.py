from datetime import date, datetime

import pytest
from sqlalchemy import select

from roomguard.core.config import get_settings
from roomguard.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from roomguard.models import Notification, ReservationStatus, UserRole
from roomguard.schemas.reservation import ReservationCreate, ReservationUpdate
from roomguard.services.reservations import (
    append_note,
    approve_reservation,
    can_transition,
    cancel_reservation,
    create_reservation,
    edit_reservation,
    list_reservations,
    reject_reservation,
)

NOW = datetime(2026, 10, 19, 8, 0)
TUESDAY = date(2026, 10, 20)


def request_for(room, on_date=TUESDAY, start="10:00", end="11:00", purpose="Group revision"):
    return ReservationCreate(room_id=room.id, date=on_date, start_time=start, end_time=end, purpose=purpose)


def notification_titles(db, user):
    return db.execute(select(Notification.title).where(Notification.user_id == user.id)).scalars().all()


def test_student_reservation_is_pending_and_admins_are_told(seed, db_session, sent_emails):
    admin = seed.user(UserRole.admin)
    student = seed.user(UserRole.student, name="Yasmine Alaoui")
    room = seed.room("B-101")

    reservation = create_reservation(db_session, student, request_for(room), now=NOW)

    assert reservation.status == ReservationStatus.pending
    assert notification_titles(db_session, admin) == ["New Reservation Request"]
    assert notification_titles(db_session, student) == []
    assert [mail["to"] for mail in sent_emails] == [admin.email]
    assert sent_emails[0]["subject"] == "RoomGuard: New Reservation Request"


def test_admin_reservation_is_approved_immediately(seed, db_session, sent_emails):
    admin = seed.user(UserRole.admin)
    room = seed.room()

    reservation = create_reservation(db_session, admin, request_for(room), now=NOW)

    assert reservation.status == ReservationStatus.approved
    assert sent_emails == []


def test_professor_can_skip_approval_when_configured(seed, db_session, monkeypatch):
    monkeypatch.setattr(get_settings(), "professor_requires_approval", False)
    professor = seed.user(UserRole.professor)
    room = seed.room()

    assert create_reservation(db_session, professor, request_for(room), now=NOW).status == ReservationStatus.approved


def test_overlapping_request_is_refused_but_touching_one_is_accepted(seed, db_session):
    first = seed.user(UserRole.student)
    second = seed.user(UserRole.student)
    room = seed.room("B-101")
    seed.reservation(first, room, TUESDAY, "10:00", "11:00")

    with pytest.raises(ConflictError) as exc_info:
        create_reservation(db_session, second, request_for(room, start="10:30", end="11:30"), now=NOW)
    assert exc_info.value.details["summary"] == "1 reservation conflict(s)"
    assert exc_info.value.details["reservationConflicts"]

    adjacent = create_reservation(db_session, second, request_for(room, start="11:00", end="12:00"), now=NOW)
    assert adjacent.status == ReservationStatus.pending


def test_class_on_same_weekday_blocks_reservation(seed, db_session):
    student = seed.user(UserRole.student)
    room = seed.room("C-5")
    seed.class_group("CS1", entries=[{"day": "Tuesday", "location": "C-5", "start_time": "09:00", "end_time": "11:00"}])

    with pytest.raises(ConflictError) as exc_info:
        create_reservation(db_session, student, request_for(room, start="10:00", end="11:00"), now=NOW)
    assert exc_info.value.details["summary"] == "1 class schedule conflict(s)"


def test_invalid_times_and_unknown_room(seed, db_session):
    student = seed.user(UserRole.student)
    room = seed.room()

    with pytest.raises(ValidationError):
        create_reservation(db_session, student, request_for(room, start="11:00", end="10:00"), now=NOW)
    with pytest.raises(ValidationError):
        create_reservation(db_session, student, request_for(room, start="25:00", end="26:00"), now=NOW)
    with pytest.raises(ResourceNotFoundError):
        create_reservation(
            db_session,
            student,
            ReservationCreate(room_id="missing", date=TUESDAY, start_time="10:00", end_time="11:00", purpose="x"),
            now=NOW,
        )


@pytest.mark.parametrize(
    ("on_date", "start", "end", "message"),
    [
        (date(2026, 10, 18), "10:00", "11:00", "Cannot reserve a room for a past date"),
        (date(2026, 10, 19), "07:00", "09:00", "Reservations for today must start in the future"),
        (date(2026, 12, 1), "10:00", "11:00", "Reservations can be made at most 30 days in advance"),
        (TUESDAY, "08:00", "13:00", "Reservations cannot exceed 4 hours"),
    ],
)
def test_policy_limits(seed, db_session, on_date, start, end, message):
    student = seed.user(UserRole.student)
    room = seed.room()

    with pytest.raises(ValidationError) as exc_info:
        create_reservation(db_session, student, request_for(room, on_date, start, end), now=NOW)
    assert exc_info.value.message == message


def test_weekly_limit_counts_active_reservations_in_the_same_week(seed, db_session, monkeypatch):
    monkeypatch.setattr(get_settings(), "reservation_max_per_week", 2)
    student = seed.user(UserRole.student)
    room = seed.room()
    seed.reservation(student, room, date(2026, 10, 21), "10:00", "11:00")
    seed.reservation(student, room, date(2026, 10, 22), "10:00", "11:00", status=ReservationStatus.canceled)
    seed.reservation(student, room, date(2026, 10, 27), "10:00", "11:00")

    create_reservation(db_session, student, request_for(room), now=NOW)
    with pytest.raises(ValidationError) as exc_info:
        create_reservation(db_session, student, request_for(room, date(2026, 10, 23)), now=NOW)
    assert exc_info.value.message.startswith("Weekly reservation limit reached")


def test_edit_moves_pending_reservation_and_ignores_itself(seed, db_session):
    student = seed.user(UserRole.student)
    room = seed.room("B-1")
    other_room = seed.room("B-2")
    reservation = create_reservation(db_session, student, request_for(room), now=NOW)

    moved = edit_reservation(
        db_session,
        student,
        reservation.id,
        ReservationUpdate(start_time="10:30", end_time="11:30"),
        now=NOW,
    )
    assert (moved.start_time, moved.end_time) == ("10:30", "11:30")

    relocated = edit_reservation(db_session, student, reservation.id, ReservationUpdate(room_id=other_room.id), now=NOW)
    assert relocated.room_id == other_room.id
    assert relocated.room.room_number == "B-2"


def test_edit_is_limited_to_owner_and_pending(seed, db_session):
    owner = seed.user(UserRole.student)
    stranger = seed.user(UserRole.student)
    room = seed.room()
    reservation = seed.reservation(owner, room, TUESDAY, "10:00", "11:00", status=ReservationStatus.approved)

    with pytest.raises(PermissionDeniedError):
        edit_reservation(db_session, stranger, reservation.id, ReservationUpdate(purpose="Mine"), now=NOW)
    with pytest.raises(InvalidTransitionError) as exc_info:
        edit_reservation(db_session, owner, reservation.id, ReservationUpdate(purpose="Later"), now=NOW)
    assert exc_info.value.details == {"current_status": "APPROVED"}


def test_edit_into_an_occupied_slot_is_refused(seed, db_session):
    student = seed.user(UserRole.student)
    other = seed.user(UserRole.student)
    room = seed.room()
    seed.reservation(other, room, TUESDAY, "14:00", "15:00", status=ReservationStatus.approved)
    reservation = create_reservation(db_session, student, request_for(room), now=NOW)

    with pytest.raises(ConflictError):
        edit_reservation(
            db_session,
            student,
            reservation.id,
            ReservationUpdate(start_time="14:30", end_time="15:30"),
            now=NOW,
        )


def test_approve_then_cancel(seed, db_session, sent_emails):
    admin = seed.user(UserRole.admin)
    student = seed.user(UserRole.student)
    room = seed.room()
    reservation = seed.reservation(student, room, TUESDAY, "10:00", "11:00")

    approved = approve_reservation(db_session, reservation.id, actor=admin)
    assert approved.status == ReservationStatus.approved
    assert notification_titles(db_session, student) == ["Reservation Approved"]
    assert any(mail["to"] == student.email for mail in sent_emails)

    canceled = cancel_reservation(db_session, student, reservation.id, today=date(2026, 10, 19))
    assert canceled.status == ReservationStatus.canceled
    assert "Reservation Canceled" in notification_titles(db_session, admin)

    with pytest.raises(InvalidTransitionError):
        approve_reservation(db_session, reservation.id, actor=admin)


def test_reject_appends_reason_to_notes(seed, db_session):
    student = seed.user(UserRole.student)
    room = seed.room()
    reservation = seed.reservation(student, room, TUESDAY, "10:00", "11:00", notes="Projector needed")

    rejected = reject_reservation(db_session, reservation.id, reason="  Room under maintenance ")

    assert rejected.status == ReservationStatus.rejected
    assert rejected.notes == "Projector needed | Room under maintenance"
    assert notification_titles(db_session, student) == ["Reservation Rejected"]
    with pytest.raises(InvalidTransitionError):
        reject_reservation(db_session, reservation.id)


def test_cancel_rules(seed, db_session):
    owner = seed.user(UserRole.student)
    stranger = seed.user(UserRole.student)
    admin = seed.user(UserRole.admin)
    room = seed.room()
    past = seed.reservation(owner, room, date(2026, 10, 16), "10:00", "11:00", status=ReservationStatus.approved)
    upcoming = seed.reservation(owner, room, TUESDAY, "10:00", "11:00")
    used = seed.reservation(owner, room, date(2026, 10, 12), "10:00", "11:00", status=ReservationStatus.used)

    with pytest.raises(ValidationError):
        cancel_reservation(db_session, owner, past.id, today=date(2026, 10, 19))
    with pytest.raises(PermissionDeniedError):
        cancel_reservation(db_session, stranger, upcoming.id, today=date(2026, 10, 19))
    with pytest.raises(InvalidTransitionError):
        cancel_reservation(db_session, owner, used.id, today=date(2026, 10, 19))

    assert cancel_reservation(db_session, admin, upcoming.id, today=date(2026, 10, 19)).status == ReservationStatus.canceled


def test_canceled_reservation_frees_the_room(seed, db_session):
    first = seed.user(UserRole.student)
    second = seed.user(UserRole.student)
    room = seed.room()
    reservation = create_reservation(db_session, first, request_for(room), now=NOW)
    cancel_reservation(db_session, first, reservation.id, today=date(2026, 10, 19))

    assert create_reservation(db_session, second, request_for(room), now=NOW).status == ReservationStatus.pending


def test_transition_table_never_returns_to_pending():
    for status in ReservationStatus:
        assert not can_transition(status, ReservationStatus.pending)
    assert can_transition(ReservationStatus.approved, ReservationStatus.used)
    assert not can_transition(ReservationStatus.used, ReservationStatus.canceled)
    assert not can_transition(ReservationStatus.rejected, ReservationStatus.approved)


def test_append_note_uses_separator_only_between_notes():
    assert append_note(None, "first") == "first"
    assert append_note("   ", "first") == "first"
    assert append_note("first", "second") == "first | second"


def test_list_reservations_filters_by_status(seed, db_session):
    student = seed.user(UserRole.student)
    room = seed.room()
    seed.reservation(student, room, TUESDAY, "10:00", "11:00")
    seed.reservation(student, room, TUESDAY, "12:00", "13:00", status=ReservationStatus.approved)

    pending = list_reservations(db_session, status=ReservationStatus.pending)
    assert [item.start_time for item in pending] == ["10:00"]
    assert len(list_reservations(db_session, limit=1)) == 1
