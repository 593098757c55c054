from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from roomguard.core.exceptions import ConflictError, ResourceNotFoundError, ValidationError
from roomguard.models.branch import Branch
from roomguard.models.class_group import ClassGroup, TimetableEntry
from roomguard.models.notification import NotificationType
from roomguard.models.user import User, UserRole
from roomguard.schemas.class_group import ClassGroupCreate, ClassGroupUpdate
from roomguard.schemas.timetable import TimetableEntryPayload
from roomguard.services.audit import log_activity
from roomguard.services.conflict_checker import ConflictChecker, ProposedEntry
from roomguard.services.notifications import notify_users
from roomguard.services.time_intervals import WEEKDAYS, normalize_day
from roomguard.services.timetable_cache import timetable_cache
from roomguard.services.timetable_policy import validate_timetable_time_policy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimetableView:
    id: str
    day: str
    name: str
    instructor: str | None
    location: str | None
    start_time: str
    end_time: str
    color: str
    type: str
    class_group_id: str | None


def _day_order(day: str) -> int:
    try:
        return WEEKDAYS.index(normalize_day(day))
    except (ValidationError, ValueError):
        return len(WEEKDAYS)


def _sorted_views(views: list[TimetableView]) -> list[TimetableView]:
    return sorted(views, key=lambda item: (_day_order(item.day), item.start_time, item.name))


def get_class_group(db: Session, class_group_id: str) -> ClassGroup:
    group = db.get(ClassGroup, class_group_id)
    if group is None:
        raise ResourceNotFoundError("ClassGroup", class_group_id)
    return group


def list_class_groups(
    db: Session,
    *,
    professor_id: str | None = None,
    branch_id: str | None = None,
) -> list[ClassGroup]:
    query = select(ClassGroup).order_by(ClassGroup.course_code, ClassGroup.name)
    if professor_id is not None:
        query = query.where(ClassGroup.professor_id == professor_id)
    if branch_id is not None:
        query = query.where(ClassGroup.branch_id == branch_id)
    return list(db.execute(query).scalars())


def _resolve_branch(db: Session, branch_id: str | None) -> Branch | None:
    if branch_id is None:
        return None
    branch = db.get(Branch, branch_id)
    if branch is None:
        raise ResourceNotFoundError("Branch", branch_id)
    return branch


def _resolve_professor(db: Session, professor_id: str | None) -> User | None:
    if professor_id is None:
        return None
    professor = db.get(User, professor_id)
    if professor is None:
        raise ResourceNotFoundError("User", professor_id)
    if professor.role != UserRole.professor:
        raise ValidationError(f"User with id {professor_id} is not a professor", details={"professor_id": professor_id})
    return professor


def _build_entries(payloads: Sequence[TimetableEntryPayload]) -> list[TimetableEntry]:
    return [
        TimetableEntry(
            position=index,
            day=normalize_day(payload.day),
            name=payload.name,
            instructor=payload.instructor,
            location=(payload.location or "").strip() or None,
            start_time=payload.start_time,
            end_time=payload.end_time,
            color=payload.color,
            type=payload.type,
        )
        for index, payload in enumerate(payloads)
    ]


def remove_synced_entries(professor: User, group: ClassGroup) -> int:
    stale = [entry for entry in professor.personal_entries if entry.source_class_group_id == group.id]
    for entry in stale:
        professor.personal_entries.remove(entry)
    return len(stale)


def sync_professor_entries(professor: User, group: ClassGroup) -> None:
    """Mirror the group's entries into the professor's personal timetable as ``"<code>: <name>"``."""
    remove_synced_entries(professor, group)
    next_position = max((entry.position for entry in professor.personal_entries), default=-1) + 1
    for offset, entry in enumerate(group.entries):
        professor.personal_entries.append(
            TimetableEntry(
                position=next_position + offset,
                source_class_group_id=group.id,
                day=entry.day,
                name=f"{group.course_code}: {entry.name}",
                instructor=entry.instructor or "",
                location=entry.location,
                start_time=entry.start_time,
                end_time=entry.end_time,
                color=entry.color,
                type=entry.type,
            )
        )


def _gate_entries(db: Session, group: ClassGroup, entries: Sequence[TimetableEntryPayload]) -> None:
    validate_timetable_time_policy(entries)
    _raise_on_conflicts(db, group, entries)


def _raise_on_conflicts(db: Session, group: ClassGroup, entries: Sequence[ProposedEntry]) -> None:
    result = ConflictChecker(db).check_conflicts(group.id, entries)
    if result.has_conflicts:
        raise ConflictError(
            f"Timetable conflicts detected for class group {group.name}",
            details=result.to_dict(),
        )


def _audience(db: Session, group: ClassGroup) -> list[str]:
    user_ids: list[str] = []
    if group.professor_id:
        user_ids.append(group.professor_id)
    if group.branch_id:
        user_ids.extend(
            db.execute(
                select(User.id).where(User.branch_id == group.branch_id, User.role == UserRole.student)
            ).scalars()
        )
    return user_ids


def validate_and_save_timetable(
    db: Session,
    class_group_id: str,
    entries: Sequence[TimetableEntryPayload],
    actor: User | None = None,
) -> list[TimetableEntry]:
    group = get_class_group(db, class_group_id)
    _gate_entries(db, group, entries)

    group.entries = _build_entries(entries)
    db.flush()
    if group.professor is not None:
        sync_professor_entries(group.professor, group)

    log_activity(
        db,
        user=actor,
        action="class_group.timetable.replace",
        entity_type="class_group",
        entity_id=group.id,
        details={"entry_count": len(group.entries)},
    )
    notify_users(
        db,
        user_ids=_audience(db, group),
        title="Timetable Updated",
        message=f"The timetable for {group.course_code} ({group.name}) has been updated.",
        notification_type=NotificationType.timetable,
        exclude_user_id=actor.id if actor is not None else None,
    )
    db.commit()
    timetable_cache.invalidate()
    db.refresh(group)
    logger.info("Saved %s timetable entries for class group %s", len(group.entries), group.id)
    return list(group.entries)


def create_class_group(db: Session, payload: ClassGroupCreate, actor: User | None = None) -> ClassGroup:
    if payload.entries:
        validate_timetable_time_policy(payload.entries)
    branch = _resolve_branch(db, payload.branch_id)
    professor = _resolve_professor(db, payload.professor_id)

    group = ClassGroup(
        name=payload.name,
        course_code=payload.course_code,
        description=payload.description,
        academic_year=payload.academic_year,
        semester=payload.semester,
        branch=branch,
        professor=professor,
    )
    db.add(group)
    db.flush()

    if payload.entries:
        _gate_entries(db, group, payload.entries)
        group.entries = _build_entries(payload.entries)
        db.flush()
        if professor is not None:
            sync_professor_entries(professor, group)

    log_activity(
        db,
        user=actor,
        action="class_group.create",
        entity_type="class_group",
        entity_id=group.id,
        details={"course_code": group.course_code},
    )
    db.commit()
    timetable_cache.invalidate()
    db.refresh(group)
    return group


def update_class_group(
    db: Session,
    class_group_id: str,
    payload: ClassGroupUpdate,
    actor: User | None = None,
) -> ClassGroup:
    group = get_class_group(db, class_group_id)
    changes = payload.model_dump(exclude_unset=True)
    previous_professor = group.professor

    if "branch_id" in changes:
        group.branch = _resolve_branch(db, changes["branch_id"])
    if "professor_id" in changes:
        group.professor = _resolve_professor(db, changes["professor_id"])
    for field_name in ("name", "course_code"):
        if changes.get(field_name):
            setattr(group, field_name, changes[field_name])
    for field_name in ("description", "academic_year", "semester"):
        if field_name in changes:
            setattr(group, field_name, changes[field_name])

    if previous_professor is not None:
        remove_synced_entries(previous_professor, group)
    if group.entries and ("professor_id" in changes or "branch_id" in changes):
        db.flush()
        _raise_on_conflicts(db, group, list(group.entries))
    if group.professor is not None:
        sync_professor_entries(group.professor, group)

    log_activity(
        db,
        user=actor,
        action="class_group.update",
        entity_type="class_group",
        entity_id=group.id,
        details={"fields": sorted(changes)},
    )
    db.commit()
    timetable_cache.invalidate()
    db.refresh(group)
    return group


def delete_class_group(db: Session, class_group_id: str, actor: User | None = None) -> None:
    group = get_class_group(db, class_group_id)
    if group.professor is not None:
        remove_synced_entries(group.professor, group)
    log_activity(
        db,
        user=actor,
        action="class_group.delete",
        entity_type="class_group",
        entity_id=group.id,
        details={"course_code": group.course_code},
    )
    db.delete(group)
    db.commit()
    timetable_cache.invalidate()


def _group_views(groups: Sequence[ClassGroup]) -> list[TimetableView]:
    views = [
        TimetableView(
            id=entry.id,
            day=entry.day,
            name=f"{group.course_code}: {entry.name}",
            instructor=entry.instructor,
            location=entry.location,
            start_time=entry.start_time,
            end_time=entry.end_time,
            color=entry.color,
            type=entry.type,
            class_group_id=group.id,
        )
        for group in groups
        for entry in group.entries
    ]
    return _sorted_views(views)


def get_professor_timetable(db: Session, professor_id: str) -> list[TimetableView]:
    professor = db.get(User, professor_id)
    if professor is None:
        raise ResourceNotFoundError("User", professor_id)
    return _group_views(list_class_groups(db, professor_id=professor.id))


def get_student_timetable(db: Session, student_id: str) -> list[TimetableView]:
    student = db.get(User, student_id)
    if student is None:
        raise ResourceNotFoundError("User", student_id)
    if student.branch_id is None:
        return []
    return _group_views(list_class_groups(db, branch_id=student.branch_id))
