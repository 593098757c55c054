from __future__ import annotations

from sqlalchemy.orm import Session

from roomguard.models.activity_log import ActivityLog
from roomguard.models.user import User


def log_activity(
    db: Session,
    *,
    user: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: dict | None = None,
) -> ActivityLog:
    """Stage an audit row in the caller's transaction; ``user`` is None for sweeps."""
    record = ActivityLog(
        user_id=user.id if user is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details or {},
    )
    db.add(record)
    return record
