"""Multi-party conflict detection for class-group timetables.

A proposed set of weekly entries for one class group is checked against the
rest of the institution's recurring schedule along three axes: the group's
professor, the students of the group's branch and the rooms named in the
entries. Each conflicting party is attributed to the proposed slot it
collides with, keyed ``"<day> (<start> - <end>)"``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Iterable, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from roomguard.core.exceptions import ResourceNotFoundError, ValidationError
from roomguard.models.class_group import ClassGroup, TimetableEntry
from roomguard.models.user import User, UserRole
from roomguard.services.room_resolver import RoomDirectory
from roomguard.services.time_intervals import (
    MINUTES_PER_DAY,
    format_minutes,
    next_weekday,
    overlaps,
    to_minutes,
    validate_interval,
)

logger = logging.getLogger(__name__)

MAX_LISTED_STUDENTS = 3
NO_CONFLICT_MESSAGE = "No conflicts detected for this time slot."


class PartyKind(str, Enum):
    CLASSROOM = "CLASSROOM"
    PROFESSOR = "PROFESSOR"
    STUDENT = "STUDENT"


KIND_ORDER = (PartyKind.PROFESSOR, PartyKind.STUDENT, PartyKind.CLASSROOM)

HEADLINES = {
    PartyKind.CLASSROOM: "CLASSROOM CONFLICT: The requested hall is already booked during this time.",
    PartyKind.PROFESSOR: "PROFESSOR CONFLICT: The assigned professor has a schedule conflict during this time.",
    PartyKind.STUDENT: "STUDENT CONFLICT: One or more students have schedule conflicts during this time.",
}


class ProposedEntry(Protocol):
    day: str
    start_time: str
    end_time: str
    location: str | None


@dataclass(frozen=True)
class ConflictParty:
    id: str
    name: str
    kind: PartyKind

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "kind": self.kind.value}


@dataclass
class ConflictResult:
    slots: dict[str, list[ConflictParty]] = field(default_factory=dict)

    def add(self, slot_key: str, party: ConflictParty) -> None:
        parties = self.slots.setdefault(slot_key, [])
        if any(existing.kind == party.kind and existing.id == party.id for existing in parties):
            return
        parties.append(party)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.slots)

    @property
    def conflict_kinds(self) -> list[PartyKind]:
        present = {party.kind for parties in self.slots.values() for party in parties}
        return [kind for kind in KIND_ORDER if kind in present]

    @property
    def affected_parties(self) -> list[ConflictParty]:
        seen: set[tuple[PartyKind, str]] = set()
        collected: list[ConflictParty] = []
        for parties in self.slots.values():
            for party in parties:
                if (party.kind, party.id) in seen:
                    continue
                seen.add((party.kind, party.id))
                collected.append(party)
        return collected

    def formatted_message(self) -> str:
        if not self.has_conflicts:
            return ""
        kinds = self.conflict_kinds
        lines = [HEADLINES[kind] for kind in (PartyKind.CLASSROOM, PartyKind.PROFESSOR, PartyKind.STUDENT) if kind in kinds]
        lines.append("The following time slots have conflicts:")
        for slot_key, parties in self.slots.items():
            lines.append(f"- {slot_key}: {_describe_parties(parties)}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "conflicts": {key: [party.to_dict() for party in parties] for key, parties in self.slots.items()},
            "conflictTypes": [kind.value for kind in self.conflict_kinds],
            "message": self.formatted_message(),
        }


@dataclass(frozen=True)
class AlternativeSlot:
    day: str
    start_time: str
    end_time: str

    @property
    def label(self) -> str:
        return f"{self.day} at {self.start_time}"

    def to_dict(self) -> dict:
        return {"day": self.day, "start_time": self.start_time, "end_time": self.end_time, "label": self.label}


@dataclass
class SingleEntryReport:
    has_conflict: bool
    message: str
    conflict_types: list[PartyKind] = field(default_factory=list)
    affected_parties: list[ConflictParty] = field(default_factory=list)
    alternatives: list[AlternativeSlot] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "has_conflict": self.has_conflict,
            "conflict_types": [kind.value for kind in self.conflict_types],
            "message": self.message,
            "affected_parties": [party.to_dict() for party in self.affected_parties],
            "alternatives": [slot.to_dict() for slot in self.alternatives],
        }


def _describe_parties(parties: Sequence[ConflictParty]) -> str:
    classrooms = [f"Classroom {party.name} is already booked" for party in parties if party.kind == PartyKind.CLASSROOM]
    professors = [f"Professor {party.name}" for party in parties if party.kind == PartyKind.PROFESSOR]
    students = [party.name for party in parties if party.kind == PartyKind.STUDENT]

    segments: list[str] = []
    if classrooms:
        segments.append("Classrooms: " + ", ".join(classrooms))
    if professors:
        segments.append("Professors: " + ", ".join(professors))
    if students:
        if len(students) <= MAX_LISTED_STUDENTS:
            segments.append("Students: " + ", ".join(students))
        else:
            segments.append(f"Students: {len(students)} students")
    return "; ".join(segments)


def slot_key(entry: ProposedEntry) -> str:
    return f"{entry.day} ({entry.start_time} - {entry.end_time})"


def _same_day(left: str | None, right: str | None) -> bool:
    return (left or "").strip().lower() == (right or "").strip().lower()


def _entries_collide(proposed: ProposedEntry, existing: TimetableEntry) -> bool:
    if not _same_day(proposed.day, existing.day):
        return False
    start, end = to_minutes(proposed.start_time), to_minutes(proposed.end_time)
    try:
        existing_start, existing_end = to_minutes(existing.start_time), to_minutes(existing.end_time)
    except ValidationError:
        logger.warning(
            "Stored timetable entry %s has unreadable times %r-%r; treating it as a collision",
            existing.id,
            existing.start_time,
            existing.end_time,
        )
        return True
    return overlaps(start, end, existing_start, existing_end)


def generate_alternatives(entry: ProposedEntry) -> list[AlternativeSlot]:
    """Same-duration suggestions: +30 min, +60 min, then the same time on the next weekday."""
    start, end = validate_interval(entry.start_time, entry.end_time)
    duration = end - start

    suggestions: list[AlternativeSlot] = []
    for offset in (30, 60):
        shifted_start = start + offset
        shifted_end = shifted_start + duration
        if shifted_end >= MINUTES_PER_DAY:
            continue
        suggestions.append(
            AlternativeSlot(day=entry.day, start_time=format_minutes(shifted_start), end_time=format_minutes(shifted_end))
        )
    suggestions.append(AlternativeSlot(day=next_weekday(entry.day), start_time=entry.start_time, end_time=entry.end_time))
    return suggestions


class ConflictChecker:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _load_group(self, class_group_id: str) -> ClassGroup:
        group = self.db.get(ClassGroup, class_group_id)
        if group is None:
            raise ResourceNotFoundError("ClassGroup", class_group_id)
        return group

    def check_conflicts(self, class_group_id: str, entries: Sequence[ProposedEntry]) -> ConflictResult:
        group = self._load_group(class_group_id)
        result = ConflictResult()
        if not entries:
            return result

        self._check_professor(group, entries, result)
        self._check_students(group, entries, result)
        self._check_rooms(group, entries, result)

        if result.has_conflicts:
            logger.info("Timetable conflicts for class group %s:\n%s", group.id, result.formatted_message())
        else:
            logger.info("No timetable conflicts for class group %s", group.id)
        return result

    def check_single_entry_conflicts(self, class_group_id: str, entry: ProposedEntry) -> SingleEntryReport:
        validate_interval(entry.start_time, entry.end_time)
        result = self.check_conflicts(class_group_id, [entry])
        logger.info(
            "Single entry check for class group %s on %s %s-%s at %s: %s",
            class_group_id,
            entry.day,
            entry.start_time,
            entry.end_time,
            entry.location,
            "conflict" if result.has_conflicts else "clear",
        )
        if not result.has_conflicts:
            return SingleEntryReport(has_conflict=False, message=NO_CONFLICT_MESSAGE)
        return SingleEntryReport(
            has_conflict=True,
            message=result.formatted_message(),
            conflict_types=result.conflict_kinds,
            affected_parties=result.affected_parties,
            alternatives=generate_alternatives(entry),
        )

    def _other_group_entries(self, group: ClassGroup, *criteria) -> list[TimetableEntry]:
        query = (
            select(TimetableEntry)
            .join(ClassGroup, TimetableEntry.class_group_id == ClassGroup.id)
            .where(ClassGroup.id != group.id, *criteria)
        )
        return list(self.db.execute(query).scalars())

    def _record(
        self,
        entries: Iterable[ProposedEntry],
        existing: Sequence[TimetableEntry],
        parties: Sequence[ConflictParty],
        result: ConflictResult,
    ) -> None:
        for proposed in entries:
            for current in existing:
                if _entries_collide(proposed, current):
                    for party in parties:
                        result.add(slot_key(proposed), party)
                    break

    def _check_professor(self, group: ClassGroup, entries: Sequence[ProposedEntry], result: ConflictResult) -> None:
        professor = group.professor
        if professor is None:
            return
        existing = self._other_group_entries(group, ClassGroup.professor_id == professor.id)
        existing.extend(entry for entry in professor.personal_entries if entry.source_class_group_id != group.id)

        party = ConflictParty(id=professor.id, name=professor.name, kind=PartyKind.PROFESSOR)
        self._record(entries, existing, [party], result)

    def _check_students(self, group: ClassGroup, entries: Sequence[ProposedEntry], result: ConflictResult) -> None:
        if group.branch_id is None:
            return
        students = list(
            self.db.execute(
                select(User)
                .where(User.branch_id == group.branch_id, User.role == UserRole.student)
                .order_by(User.name)
            ).scalars()
        )
        if not students:
            return
        # Every student of a branch follows the same class groups, so one scan covers the cohort.
        existing = self._other_group_entries(group, ClassGroup.branch_id == group.branch_id)
        parties = [ConflictParty(id=student.id, name=student.name, kind=PartyKind.STUDENT) for student in students]
        self._record(entries, existing, parties, result)

    def _check_rooms(self, group: ClassGroup, entries: Sequence[ProposedEntry], result: ConflictResult) -> None:
        locations: list[str] = []
        for entry in entries:
            label = (entry.location or "").strip()
            if label and label not in locations:
                locations.append(label)
        if not locations:
            return

        directory = RoomDirectory.load(self.db)
        others = self._other_group_entries(group)
        for location in locations:
            room_id = directory.resolve(location)
            if room_id is not None:
                same_room = [entry for entry in others if directory.resolve(entry.location) == room_id]
            else:
                same_room = [entry for entry in others if (entry.location or "").strip() == location]
            if not same_room:
                continue
            proposed_here = [entry for entry in entries if (entry.location or "").strip() == location]
            party = ConflictParty(id=f"room:{location}", name=location, kind=PartyKind.CLASSROOM)
            self._record(proposed_here, same_room, [party], result)
