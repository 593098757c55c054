"""Room availability across ad-hoc reservations and recurring timetables.

The booking gate (``is_room_available``) always scans live state and fails
closed: any error while answering is reported as "not available". A wrong
"unavailable" can be retried; a wrong "available" double-books a room.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from roomguard.core.exceptions import ResourceNotFoundError, ValidationError
from roomguard.models.class_group import ClassGroup, TimetableEntry
from roomguard.models.reservation import BLOCKING_STATUSES, Reservation
from roomguard.models.room import Room, RoomCategory, RoomType
from roomguard.services.room_resolver import RoomDirectory
from roomguard.services.time_intervals import WEEKDAYS, overlaps, to_minutes, validate_interval, weekday_name
from roomguard.services.timetable_cache import CachedEntry, TimetableCache, timetable_cache

logger = logging.getLogger(__name__)


@dataclass
class ConflictInfo:
    reservation_conflicts: list[str] = field(default_factory=list)
    class_conflicts: list[str] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.reservation_conflicts or self.class_conflicts)

    def detailed_message(self) -> str:
        if not self.has_conflicts:
            return "No conflicts found"
        lines = ["Conflicts detected:"]
        if self.class_conflicts:
            lines.append("Class schedule conflicts:")
            lines.extend(f"  - {item}" for item in self.class_conflicts)
        if self.reservation_conflicts:
            lines.append("Reservation conflicts:")
            lines.extend(f"  - {item}" for item in self.reservation_conflicts)
        return "\n".join(lines)

    def short_message(self) -> str:
        if not self.has_conflicts:
            return "Available"
        issues: list[str] = []
        if self.class_conflicts:
            issues.append(f"{len(self.class_conflicts)} class schedule conflict(s)")
        if self.reservation_conflicts:
            issues.append(f"{len(self.reservation_conflicts)} reservation conflict(s)")
        return " and ".join(issues)

    def to_dict(self) -> dict:
        return {
            "reservationConflicts": list(self.reservation_conflicts),
            "classConflicts": list(self.class_conflicts),
        }


class AvailabilityService:
    def __init__(self, db: Session, cache: TimetableCache | None = None) -> None:
        self.db = db
        self.cache = cache or timetable_cache

    def is_room_available(
        self,
        room_id: str,
        on_date: date,
        start_time: str,
        end_time: str,
        *,
        exclude_reservation_id: str | None = None,
    ) -> bool:
        return self._check(
            room_id,
            on_date,
            start_time,
            end_time,
            exclude_reservation_id=exclude_reservation_id,
        )

    def is_room_available_for_class_group(
        self,
        room_id: str,
        on_date: date,
        start_time: str,
        end_time: str,
        exclude_class_group_id: str | None,
    ) -> bool:
        return self._check(
            room_id,
            on_date,
            start_time,
            end_time,
            exclude_class_group_id=exclude_class_group_id,
        )

    def _check(
        self,
        room_id: str,
        on_date: date,
        start_time: str,
        end_time: str,
        *,
        exclude_reservation_id: str | None = None,
        exclude_class_group_id: str | None = None,
    ) -> bool:
        try:
            start, end = validate_interval(start_time, end_time)
            if self.db.get(Room, room_id) is None:
                logger.warning("Availability requested for unknown room %s; reporting unavailable", room_id)
                return False

            clashing = self._reservation_clashes(
                room_id, on_date, start, end, exclude_reservation_id=exclude_reservation_id, first_only=True
            )
            if clashing:
                reservation = clashing[0]
                logger.info(
                    "Room %s has a %s reservation %s-%s on %s",
                    room_id,
                    reservation.status.value,
                    reservation.start_time,
                    reservation.end_time,
                    on_date,
                )
                return False

            directory = RoomDirectory.load(self.db)
            clashes = self._timetable_clashes(
                directory,
                room_id,
                on_date,
                start,
                end,
                exclude_class_group_id=exclude_class_group_id,
                strict=True,
                first_only=True,
            )
            if clashes:
                entry = clashes[0]
                logger.info(
                    "Room %s is scheduled for class group '%s' (%s) on %s %s-%s",
                    room_id,
                    entry.class_group.name,
                    entry.name,
                    entry.day,
                    entry.start_time,
                    entry.end_time,
                )
                return False
        except Exception:
            logger.exception(
                "Availability check failed for room %s on %s %s-%s; reporting unavailable",
                room_id,
                on_date,
                start_time,
                end_time,
            )
            return False
        return True

    def get_conflict_info(self, room_id: str, on_date: date, start_time: str, end_time: str) -> ConflictInfo:
        start, end = validate_interval(start_time, end_time)
        if self.db.get(Room, room_id) is None:
            raise ResourceNotFoundError("Room", room_id)

        info = ConflictInfo()
        for reservation in self._reservation_clashes(room_id, on_date, start, end):
            info.reservation_conflicts.append(
                f"Reservation by {reservation.user.name} from {reservation.start_time} "
                f"to {reservation.end_time} ({reservation.status.value})"
            )

        directory = RoomDirectory.load(self.db)
        for entry in self._timetable_clashes(directory, room_id, on_date, start, end, strict=False):
            info.class_conflicts.append(
                f"Class '{entry.name}' ({entry.class_group.name}) from {entry.start_time} to {entry.end_time}"
            )
        return info

    def find_available_rooms(
        self,
        on_date: date,
        start_time: str,
        end_time: str,
        *,
        room_type: RoomType | None = None,
        category: RoomCategory | None = None,
        min_capacity: int = 0,
    ) -> list[Room]:
        validate_interval(start_time, end_time)
        query = select(Room).where(Room.capacity >= min_capacity).order_by(Room.room_number)
        if room_type is not None:
            query = query.where(Room.type == room_type)
        if category is not None:
            query = query.where(Room.category == category)
        candidates = list(self.db.execute(query).scalars())
        return [room for room in candidates if self.is_room_available(room.id, on_date, start_time, end_time)]

    def room_schedule(self, room_id: str, day: str | None = None) -> list[CachedEntry]:
        """Display-only weekly schedule served from the eventually consistent cache."""
        if self.db.get(Room, room_id) is None:
            raise ResourceNotFoundError("Room", room_id)
        entries = self.cache.get_or_refresh(self.db).get(room_id, ())
        if day is not None:
            entries = tuple(item for item in entries if item.day.lower() == day.strip().lower())
        return sorted(
            entries,
            key=lambda item: (WEEKDAYS.index(item.day) if item.day in WEEKDAYS else len(WEEKDAYS), item.start_time),
        )

    def _reservation_clashes(
        self,
        room_id: str,
        on_date: date,
        start: int,
        end: int,
        *,
        exclude_reservation_id: str | None = None,
        first_only: bool = False,
    ) -> list[Reservation]:
        query = select(Reservation).where(
            Reservation.room_id == room_id,
            Reservation.date == on_date,
            Reservation.status.in_(BLOCKING_STATUSES),
        )
        if exclude_reservation_id is not None:
            query = query.where(Reservation.id != exclude_reservation_id)

        clashing: list[Reservation] = []
        for reservation in self.db.execute(query).scalars():
            if overlaps(start, end, to_minutes(reservation.start_time), to_minutes(reservation.end_time)):
                clashing.append(reservation)
                if first_only:
                    break
        return clashing

    def _timetable_clashes(
        self,
        directory: RoomDirectory,
        room_id: str,
        on_date: date,
        start: int,
        end: int,
        *,
        exclude_class_group_id: str | None = None,
        strict: bool = True,
        first_only: bool = False,
    ) -> list[TimetableEntry]:
        day = weekday_name(on_date).lower()
        query = (
            select(TimetableEntry)
            .join(ClassGroup, TimetableEntry.class_group_id == ClassGroup.id)
            .options(joinedload(TimetableEntry.class_group))
        )
        if exclude_class_group_id is not None:
            query = query.where(TimetableEntry.class_group_id != exclude_class_group_id)

        clashing: list[TimetableEntry] = []
        for entry in self.db.execute(query).scalars():
            if (entry.day or "").strip().lower() != day:
                continue
            if not directory.matches(room_id, entry.location):
                continue
            try:
                entry_start, entry_end = to_minutes(entry.start_time), to_minutes(entry.end_time)
            except ValidationError:
                if strict:
                    raise
                # Unreadable stored slot on this room and day: report it rather than hide it.
                clashing.append(entry)
                continue
            if overlaps(start, end, entry_start, entry_end):
                clashing.append(entry)
                if first_only:
                    break
        return clashing
