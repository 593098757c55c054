from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from roomguard.core.config import get_settings
from roomguard.models.notification import Notification, NotificationType
from roomguard.models.reservation import Reservation, ReservationStatus
from roomguard.models.user import UserRole
from roomguard.services.notifications import create_notification, notify_roles

logger = logging.getLogger(__name__)


def _slot(reservation: Reservation) -> str:
    room_label = reservation.room.room_number if reservation.room is not None else "the room"
    return (
        f"{room_label} on {reservation.date.strftime('%d/%m/%Y')} "
        f"from {reservation.start_time} to {reservation.end_time}"
    )


def notify_reservation_status(
    db: Session,
    reservation: Reservation,
    *,
    reason: str | None = None,
    automatic: bool = False,
) -> Notification | None:
    """Tell the requester their reservation changed status. USED is not announced."""
    if reservation.status == ReservationStatus.approved:
        title = "Reservation Approved"
        message = f"Your reservation for {_slot(reservation)} has been approved."
    elif reservation.status == ReservationStatus.rejected and automatic:
        title = "Reservation Auto-Rejected"
        message = (
            f"Your reservation for {_slot(reservation)} has been automatically rejected "
            "because it was not approved in time. "
            "For future reservations, please submit requests earlier to allow time for approval."
        )
    elif reservation.status == ReservationStatus.rejected:
        title = "Reservation Rejected"
        message = f"Your reservation for {_slot(reservation)} has been rejected."
        if reason:
            message += f" Reason: {reason}"
    else:
        return None

    settings = get_settings()
    return create_notification(
        db,
        user_id=reservation.user_id,
        title=title,
        message=message,
        notification_type=NotificationType.reservation,
        recipient=reservation.user,
        deliver_email=settings.email_notifications,
    )


def notify_admins_of_request(db: Session, reservation: Reservation, *, event: str) -> list[Notification]:
    requester = reservation.user
    titles = {
        "created": "New Reservation Request",
        "updated": "Reservation Request Updated",
        "canceled": "Reservation Canceled",
    }
    verbs = {
        "created": "submitted a reservation request for",
        "updated": "updated their reservation request for",
        "canceled": "canceled their reservation for",
    }
    message = (
        f"{requester.name} ({requester.role.value}) {verbs[event]} {_slot(reservation)}. "
        f"Purpose: {reservation.purpose}"
    )
    settings = get_settings()
    return notify_roles(
        db,
        roles=(UserRole.admin,),
        title=titles[event],
        message=message,
        notification_type=NotificationType.reservation,
        exclude_user_id=requester.id,
        deliver_email=settings.email_notifications and event == "created",
    )


def notify_admins_of_sweep_errors(
    db: Session,
    *,
    sweep_name: str,
    error_count: int,
    success_count: int,
) -> list[Notification]:
    logger.warning("%s finished with %s errors and %s successful updates", sweep_name, error_count, success_count)
    return notify_roles(
        db,
        roles=(UserRole.admin,),
        title=f"{sweep_name} Completed with Errors",
        message=(
            f"The {sweep_name.lower()} completed with {error_count} errors and "
            f"{success_count} successful updates. Please check the system logs for details."
        ),
        notification_type=NotificationType.system,
    )
