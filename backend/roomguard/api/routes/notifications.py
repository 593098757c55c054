from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from roomguard.api.deps import get_current_user, get_db
from roomguard.core.exceptions import ResourceNotFoundError
from roomguard.models.notification import Notification, NotificationType
from roomguard.models.user import User
from roomguard.schemas.notification import NotificationOut
from roomguard.services.notifications import mark_notification_read

router = APIRouter()


@router.get("/notifications", response_model=list[NotificationOut])
def list_notifications(
    notification_type: NotificationType | None = Query(default=None),
    is_read: bool | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[NotificationOut]:
    query = (
        select(Notification)
        .where(Notification.user_id == current_user.id)
        .order_by(Notification.created_at.desc())
    )
    if notification_type:
        query = query.where(Notification.notification_type == notification_type)
    if is_read is not None:
        query = query.where(Notification.is_read == is_read)
    return list(db.execute(query.offset(offset).limit(limit)).scalars())


@router.post("/notifications/{notification_id}/read", response_model=NotificationOut)
def read_notification(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> NotificationOut:
    notification = db.get(Notification, notification_id)
    if notification is None or notification.user_id != current_user.id:
        raise ResourceNotFoundError("Notification", notification_id)
    mark_notification_read(db, notification=notification)
    db.commit()
    db.refresh(notification)
    return notification


@router.post("/notifications/read-all")
def read_all_notifications(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict[str, int]:
    unread = list(
        db.execute(
            select(Notification).where(
                Notification.user_id == current_user.id,
                Notification.is_read.is_(False),
            )
        ).scalars()
    )
    for notification in unread:
        mark_notification_read(db, notification=notification)
    db.commit()
    return {"updated": len(unread)}
