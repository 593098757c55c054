from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from roomguard.db.base import Base
from roomguard.db.session import engine as default_engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "role", "branch_id"},
    "rooms": {"id", "room_number", "category", "type", "capacity"},
    "class_groups": {"id", "course_code", "branch_id", "professor_id"},
    "timetable_entries": {"id", "class_group_id", "owner_user_id", "source_class_group_id", "day", "location", "start_time", "end_time"},
    "reservations": {"id", "user_id", "room_id", "date", "start_time", "end_time", "status", "notes"},
    "notifications": {"id", "user_id", "notification_type", "is_read"},
}


def missing_schema_items(engine: Engine) -> list[str]:
    with engine.connect() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            if table_name not in table_names:
                missing.append(table_name)
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            missing.extend(f"{table_name}.{column}" for column in sorted(required - existing))
        return missing


def ensure_runtime_schema(engine: Engine | None = None) -> None:
    target = engine or default_engine
    try:
        # Development convenience; alembic migrations remain the source of truth.
        Base.metadata.create_all(bind=target)
        missing = missing_schema_items(target)
    except Exception as exc:
        logger.exception("Runtime schema bootstrap failed")
        raise RuntimeError("Runtime schema bootstrap failed") from exc
    if missing:
        raise RuntimeError(f"Missing required schema items: {', '.join(missing)}")
