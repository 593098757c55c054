from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from roomguard.models.notification import Notification, NotificationType
from roomguard.models.user import User, UserRole
from roomguard.services.email import EmailDeliveryError, send_email

logger = logging.getLogger(__name__)


def _send_notification_email(recipient: User, *, title: str, message: str) -> None:
    if not recipient.email:
        return
    try:
        send_email(
            to_email=recipient.email,
            subject=f"RoomGuard: {title}",
            text_content=f"{title}\n\n{message}",
        )
    except EmailDeliveryError:
        logger.warning("Notification email delivery failed for %s", recipient.email, exc_info=True)


def create_notification(
    db: Session,
    *,
    user_id: str,
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.system,
    recipient: User | None = None,
    deliver_email: bool = False,
) -> Notification:
    record = Notification(
        user_id=user_id,
        title=title,
        message=message,
        notification_type=notification_type,
    )
    db.add(record)
    db.flush()

    if deliver_email and recipient is not None:
        _send_notification_email(recipient, title=title, message=message)
    return record


def notify_users(
    db: Session,
    *,
    user_ids: list[str] | set[str] | tuple[str, ...],
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.system,
    exclude_user_id: str | None = None,
    deliver_email: bool = False,
) -> list[Notification]:
    requested_ids = [item for item in dict.fromkeys(user_ids) if item and item != exclude_user_id]
    if not requested_ids:
        return []

    recipients = list(
        db.execute(
            select(User).where(
                User.id.in_(requested_ids),
                User.is_active.is_(True),
            )
        ).scalars()
    )
    return [
        create_notification(
            db,
            user_id=recipient.id,
            title=title,
            message=message,
            notification_type=notification_type,
            recipient=recipient,
            deliver_email=deliver_email,
        )
        for recipient in recipients
    ]


def notify_roles(
    db: Session,
    *,
    roles: list[UserRole] | set[UserRole] | tuple[UserRole, ...],
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.system,
    exclude_user_id: str | None = None,
    deliver_email: bool = False,
) -> list[Notification]:
    if not roles:
        return []
    recipients = list(
        db.execute(
            select(User).where(
                User.role.in_(list(roles)),
                User.is_active.is_(True),
            )
        ).scalars()
    )
    results: list[Notification] = []
    for recipient in recipients:
        if exclude_user_id and recipient.id == exclude_user_id:
            continue
        results.append(
            create_notification(
                db,
                user_id=recipient.id,
                title=title,
                message=message,
                notification_type=notification_type,
                recipient=recipient,
                deliver_email=deliver_email,
            )
        )
    return results


def mark_notification_read(db: Session, *, notification: Notification) -> Notification:
    notification.is_read = True
    db.flush()
    return notification
