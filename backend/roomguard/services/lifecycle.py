"""Time-driven reservation transitions.

Two sweeps move reservations whose time has come:

* the daily auto-reject rejects PENDING reservations dated today or earlier;
* the status refresh marks finished APPROVED reservations USED and rejects
  PENDING ones whose start time has passed.

Each reservation is handled inside its own SAVEPOINT and its status is
re-read there first, so a sweep can run any number of times and overlap with
manual approvals without double-transitioning anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from roomguard.core.exceptions import TransientInfrastructureError
from roomguard.models.reservation import Reservation, ReservationStatus
from roomguard.services.reservation_notifications import (
    notify_admins_of_sweep_errors,
    notify_reservation_status,
)
from roomguard.services.reservations import append_note
from roomguard.services.time_intervals import local_now, minutes_of_day, to_minutes

logger = logging.getLogger(__name__)

DATE_ARRIVED_NOTE = "Auto-rejected: Reservation date arrived without approval."
TIME_PASSED_NOTE = "Auto-rejected: reservation time passed without approval."


@dataclass(frozen=True)
class SweepResult:
    rejected_count: int
    error_count: int
    total_found: int

    @property
    def successful(self) -> bool:
        return self.error_count == 0

    def to_dict(self) -> dict:
        return {
            "rejectedCount": self.rejected_count,
            "errorCount": self.error_count,
            "totalFound": self.total_found,
        }


@dataclass(frozen=True)
class StatusRefreshResult:
    used_count: int
    rejected_count: int
    error_count: int
    total_found: int

    def to_dict(self) -> dict:
        return {
            "usedCount": self.used_count,
            "rejectedCount": self.rejected_count,
            "errorCount": self.error_count,
            "totalFound": self.total_found,
        }


def _reload(db: Session, reservation_id: str) -> Reservation | None:
    return db.get(Reservation, reservation_id, populate_existing=True)


def _reject_pending(db: Session, reservation_id: str, note: str) -> bool:
    """Reject one reservation if it is still PENDING. Returns False when it already moved on."""
    try:
        with db.begin_nested():
            reservation = _reload(db, reservation_id)
            if reservation is None or reservation.status != ReservationStatus.pending:
                return False
            reservation.status = ReservationStatus.rejected
            reservation.notes = append_note(reservation.notes, note)
            db.flush()
            notify_reservation_status(db, reservation, automatic=True)
    except SQLAlchemyError as exc:
        raise TransientInfrastructureError(f"Could not reject reservation {reservation_id}") from exc
    return True


def _mark_used(db: Session, reservation_id: str) -> bool:
    try:
        with db.begin_nested():
            reservation = _reload(db, reservation_id)
            if reservation is None or reservation.status != ReservationStatus.approved:
                return False
            reservation.status = ReservationStatus.used
            db.flush()
            notify_reservation_status(db, reservation)
    except SQLAlchemyError as exc:
        raise TransientInfrastructureError(f"Could not mark reservation {reservation_id} as used") from exc
    return True


def auto_reject_expired_pending(db: Session, today: date | None = None) -> SweepResult:
    current_day = today or local_now().date()
    logger.info("Starting auto-rejection of pending reservations dated on or before %s", current_day)

    expired_ids = list(
        db.execute(
            select(Reservation.id).where(
                Reservation.status == ReservationStatus.pending,
                Reservation.date <= current_day,
            )
        ).scalars()
    )
    logger.info("Found %s expired pending reservations", len(expired_ids))

    rejected_count = 0
    error_count = 0
    for reservation_id in expired_ids:
        try:
            if _reject_pending(db, reservation_id, DATE_ARRIVED_NOTE):
                rejected_count += 1
                logger.info("Auto-rejected reservation %s", reservation_id)
        except Exception:
            error_count += 1
            logger.error("Error auto-rejecting reservation %s", reservation_id, exc_info=True)

    if error_count:
        notify_admins_of_sweep_errors(
            db,
            sweep_name="Auto-Rejection Process",
            error_count=error_count,
            success_count=rejected_count,
        )
    db.commit()

    logger.info("Auto-rejection completed: %s rejected, %s errors", rejected_count, error_count)
    return SweepResult(rejected_count=rejected_count, error_count=error_count, total_found=len(expired_ids))


def _is_due(reservation_date: date, boundary_time: str, today: date, now_minutes: int) -> bool:
    if reservation_date < today:
        return True
    return reservation_date == today and to_minutes(boundary_time) <= now_minutes


def refresh_reservation_statuses(db: Session, now: datetime | None = None) -> StatusRefreshResult:
    current = now or local_now()
    today = current.date()
    now_minutes = minutes_of_day(current)

    candidates = db.execute(
        select(Reservation.id, Reservation.status, Reservation.date, Reservation.start_time, Reservation.end_time).where(
            Reservation.status.in_((ReservationStatus.approved, ReservationStatus.pending)),
            Reservation.date <= today,
        )
    ).all()

    used_count = 0
    rejected_count = 0
    error_count = 0
    total_found = 0
    for row in candidates:
        try:
            if row.status == ReservationStatus.approved:
                if not _is_due(row.date, row.end_time, today, now_minutes):
                    continue
                total_found += 1
                if _mark_used(db, row.id):
                    used_count += 1
            else:
                if not _is_due(row.date, row.start_time, today, now_minutes):
                    continue
                total_found += 1
                if _reject_pending(db, row.id, TIME_PASSED_NOTE):
                    rejected_count += 1
        except Exception:
            error_count += 1
            logger.error("Error refreshing status of reservation %s", row.id, exc_info=True)

    if error_count:
        notify_admins_of_sweep_errors(
            db,
            sweep_name="Reservation Status Refresh",
            error_count=error_count,
            success_count=used_count + rejected_count,
        )
    db.commit()

    if used_count or rejected_count:
        logger.info(
            "Status refresh updated %s APPROVED to USED and %s PENDING to REJECTED",
            used_count,
            rejected_count,
        )
    else:
        logger.debug("Status refresh found no reservations to update")
    return StatusRefreshResult(
        used_count=used_count,
        rejected_count=rejected_count,
        error_count=error_count,
        total_found=total_found,
    )


def run_lifecycle_sweep(db: Session, today: date | None = None) -> dict:
    """On-demand auto-rejection; returns ``{rejectedCount, errorCount, totalFound}``."""
    return auto_reject_expired_pending(db, today).to_dict()
