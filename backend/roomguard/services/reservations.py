"""Ad-hoc reservation workflow.

Status moves only along ``ALLOWED_TRANSITIONS``; nothing ever returns to
PENDING. Every mutation validates first, then changes state and commits once.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from roomguard.core.config import Settings, get_settings
from roomguard.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    PermissionDeniedError,
    ResourceNotFoundError,
    ValidationError,
)
from roomguard.models.reservation import BLOCKING_STATUSES, Reservation, ReservationStatus
from roomguard.models.room import Room
from roomguard.models.user import User, UserRole
from roomguard.schemas.reservation import ReservationCreate, ReservationUpdate
from roomguard.services.audit import log_activity
from roomguard.services.availability import AvailabilityService
from roomguard.services.reservation_notifications import notify_admins_of_request, notify_reservation_status
from roomguard.services.time_intervals import local_now, minutes_of_day, validate_interval

logger = logging.getLogger(__name__)

NOTE_SEPARATOR = " | "

ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.pending: frozenset(
        {ReservationStatus.approved, ReservationStatus.rejected, ReservationStatus.canceled}
    ),
    ReservationStatus.approved: frozenset({ReservationStatus.used, ReservationStatus.canceled}),
    ReservationStatus.rejected: frozenset(),
    ReservationStatus.used: frozenset(),
    ReservationStatus.canceled: frozenset(),
}


def can_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(reservation: Reservation, target: ReservationStatus) -> None:
    if not can_transition(reservation.status, target):
        raise InvalidTransitionError(
            f"Cannot change reservation from {reservation.status.value} to {target.value}",
            current_status=reservation.status.value,
        )


def append_note(existing: str | None, note: str) -> str:
    if existing and existing.strip():
        return f"{existing}{NOTE_SEPARATOR}{note}"
    return note


def requires_approval(user: User, settings: Settings | None = None) -> bool:
    resolved = settings or get_settings()
    if user.role == UserRole.admin:
        return False
    if user.role == UserRole.professor:
        return resolved.professor_requires_approval
    return resolved.student_requires_approval


def get_reservation(db: Session, reservation_id: str) -> Reservation:
    reservation = db.get(Reservation, reservation_id)
    if reservation is None:
        raise ResourceNotFoundError("Reservation", reservation_id)
    return reservation


def _get_room(db: Session, room_id: str) -> Room:
    room = db.get(Room, room_id)
    if room is None:
        raise ResourceNotFoundError("Room", room_id)
    return room


def _enforce_policy(
    db: Session,
    user: User,
    on_date: date,
    start: int,
    end: int,
    now: datetime,
    *,
    exclude_reservation_id: str | None = None,
) -> None:
    settings = get_settings()
    today = now.date()

    if on_date < today:
        raise ValidationError("Cannot reserve a room for a past date", details={"date": on_date.isoformat()})
    if on_date == today:
        earliest_start = minutes_of_day(now) + settings.reservation_min_hours_before * 60
        if start < earliest_start:
            raise ValidationError(
                "Reservations for today must start in the future"
                + (
                    f" and at least {settings.reservation_min_hours_before} hour(s) ahead"
                    if settings.reservation_min_hours_before
                    else ""
                ),
                details={"date": on_date.isoformat()},
            )
    if (on_date - today).days > settings.reservation_max_days_in_advance:
        raise ValidationError(
            f"Reservations can be made at most {settings.reservation_max_days_in_advance} days in advance",
            details={"date": on_date.isoformat()},
        )
    if end - start > settings.reservation_max_hours * 60:
        raise ValidationError(
            f"Reservations cannot exceed {settings.reservation_max_hours} hours",
            details={"duration_minutes": end - start},
        )

    week_start = on_date - timedelta(days=on_date.weekday())
    week_end = week_start + timedelta(days=6)
    query = select(func.count(Reservation.id)).where(
        Reservation.user_id == user.id,
        Reservation.status.in_(BLOCKING_STATUSES),
        Reservation.date >= week_start,
        Reservation.date <= week_end,
    )
    if exclude_reservation_id is not None:
        query = query.where(Reservation.id != exclude_reservation_id)
    active_this_week = db.execute(query).scalar_one()
    if active_this_week >= settings.reservation_max_per_week:
        raise ValidationError(
            f"Weekly reservation limit reached ({settings.reservation_max_per_week} per week)",
            details={"week_start": week_start.isoformat()},
        )


def _raise_unavailable(db: Session, room: Room, on_date: date, start_time: str, end_time: str) -> None:
    info = AvailabilityService(db).get_conflict_info(room.id, on_date, start_time, end_time)
    details = info.to_dict()
    details["summary"] = info.short_message()
    raise ConflictError(
        f"Room {room.room_number} is not available on {on_date.isoformat()} from {start_time} to {end_time}",
        details=details,
    )


def create_reservation(
    db: Session,
    user: User,
    payload: ReservationCreate,
    now: datetime | None = None,
) -> Reservation:
    current = now or local_now()
    room = _get_room(db, payload.room_id)
    start, end = validate_interval(payload.start_time, payload.end_time)
    _enforce_policy(db, user, payload.date, start, end, current)

    if not AvailabilityService(db).is_room_available(room.id, payload.date, payload.start_time, payload.end_time):
        _raise_unavailable(db, room, payload.date, payload.start_time, payload.end_time)

    status = ReservationStatus.pending if requires_approval(user) else ReservationStatus.approved
    reservation = Reservation(
        user=user,
        room=room,
        date=payload.date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        purpose=payload.purpose,
        notes=payload.notes,
        status=status,
    )
    db.add(reservation)
    db.flush()

    log_activity(
        db,
        user=user,
        action="reservation.create",
        entity_type="reservation",
        entity_id=reservation.id,
        details={"room_id": room.id, "date": payload.date.isoformat(), "status": status.value},
    )
    if status == ReservationStatus.pending:
        notify_admins_of_request(db, reservation, event="created")

    db.commit()
    db.refresh(reservation)
    logger.info(
        "Reservation %s created for room %s on %s %s-%s (%s)",
        reservation.id,
        room.room_number,
        reservation.date,
        reservation.start_time,
        reservation.end_time,
        status.value,
    )
    return reservation


def edit_reservation(
    db: Session,
    user: User,
    reservation_id: str,
    payload: ReservationUpdate,
    now: datetime | None = None,
) -> Reservation:
    current = now or local_now()
    reservation = get_reservation(db, reservation_id)
    if reservation.user_id != user.id:
        raise PermissionDeniedError("Only the requester can edit this reservation")
    if reservation.status != ReservationStatus.pending:
        raise InvalidTransitionError(
            "Only pending reservations can be edited",
            current_status=reservation.status.value,
        )

    changes = payload.model_dump(exclude_unset=True)
    room_id = changes.get("room_id") or reservation.room_id
    on_date = changes.get("date") or reservation.date
    start_time = changes.get("start_time") or reservation.start_time
    end_time = changes.get("end_time") or reservation.end_time

    room = _get_room(db, room_id)
    start, end = validate_interval(start_time, end_time)
    slot_changed = (room_id, on_date, start_time, end_time) != (
        reservation.room_id,
        reservation.date,
        reservation.start_time,
        reservation.end_time,
    )
    if slot_changed:
        _enforce_policy(db, user, on_date, start, end, current, exclude_reservation_id=reservation.id)
        available = AvailabilityService(db).is_room_available(
            room.id, on_date, start_time, end_time, exclude_reservation_id=reservation.id
        )
        if not available:
            _raise_unavailable(db, room, on_date, start_time, end_time)

    reservation.room = room
    reservation.date = on_date
    reservation.start_time = start_time
    reservation.end_time = end_time
    if "purpose" in changes and changes["purpose"]:
        reservation.purpose = changes["purpose"]
    if "notes" in changes:
        reservation.notes = changes["notes"]
    db.flush()

    log_activity(
        db,
        user=user,
        action="reservation.update",
        entity_type="reservation",
        entity_id=reservation.id,
        details={"fields": sorted(changes)},
    )
    notify_admins_of_request(db, reservation, event="updated")
    db.commit()
    db.refresh(reservation)
    return reservation


def approve_reservation(db: Session, reservation_id: str, actor: User | None = None) -> Reservation:
    reservation = get_reservation(db, reservation_id)
    ensure_transition(reservation, ReservationStatus.approved)

    reservation.status = ReservationStatus.approved
    log_activity(
        db,
        user=actor,
        action="reservation.approve",
        entity_type="reservation",
        entity_id=reservation.id,
    )
    notify_reservation_status(db, reservation)
    db.commit()
    db.refresh(reservation)
    logger.info("Reservation %s approved", reservation.id)
    return reservation


def reject_reservation(
    db: Session,
    reservation_id: str,
    reason: str | None = None,
    actor: User | None = None,
) -> Reservation:
    reservation = get_reservation(db, reservation_id)
    if reservation.status != ReservationStatus.pending:
        raise InvalidTransitionError(
            "Only pending reservations can be rejected",
            current_status=reservation.status.value,
        )

    reservation.status = ReservationStatus.rejected
    cleaned_reason = (reason or "").strip()
    if cleaned_reason:
        reservation.notes = append_note(reservation.notes, cleaned_reason)
    log_activity(
        db,
        user=actor,
        action="reservation.reject",
        entity_type="reservation",
        entity_id=reservation.id,
        details={"reason": cleaned_reason} if cleaned_reason else None,
    )
    notify_reservation_status(db, reservation, reason=cleaned_reason or None)
    db.commit()
    db.refresh(reservation)
    logger.info("Reservation %s rejected", reservation.id)
    return reservation


def cancel_reservation(
    db: Session,
    user: User,
    reservation_id: str,
    today: date | None = None,
) -> Reservation:
    current_day = today or local_now().date()
    reservation = get_reservation(db, reservation_id)
    if reservation.user_id != user.id and user.role != UserRole.admin:
        raise PermissionDeniedError("Only the requester can cancel this reservation")
    ensure_transition(reservation, ReservationStatus.canceled)
    if reservation.date < current_day:
        raise ValidationError(
            "Cannot cancel a reservation whose date has passed",
            details={"date": reservation.date.isoformat()},
        )

    reservation.status = ReservationStatus.canceled
    log_activity(
        db,
        user=user,
        action="reservation.cancel",
        entity_type="reservation",
        entity_id=reservation.id,
    )
    notify_admins_of_request(db, reservation, event="canceled")
    db.commit()
    db.refresh(reservation)
    logger.info("Reservation %s canceled by %s", reservation.id, user.id)
    return reservation


def list_user_reservations(db: Session, user_id: str) -> list[Reservation]:
    return list(
        db.execute(
            select(Reservation)
            .where(Reservation.user_id == user_id)
            .order_by(Reservation.date.desc(), Reservation.start_time.desc())
        ).scalars()
    )


def list_reservations(
    db: Session,
    *,
    status: ReservationStatus | None = None,
    limit: int | None = None,
) -> list[Reservation]:
    query = select(Reservation).order_by(Reservation.created_at.desc(), Reservation.id)
    if status is not None:
        query = query.where(Reservation.status == status)
    if limit is not None:
        query = query.limit(limit)
    return list(db.execute(query).scalars())
