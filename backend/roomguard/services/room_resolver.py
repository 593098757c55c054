from __future__ import annotations

from dataclasses import dataclass, field
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from roomguard.models.room import Room

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoomDirectory:
    """Point-in-time index of rooms used to resolve timetable locations.

    Historical timetable entries store either a canonical room id or a human
    room number. Resolution precedence: exact id, exact room number, then
    case-insensitive room number.
    """

    ids: frozenset[str] = frozenset()
    by_label: dict[str, str] = field(default_factory=dict)
    by_folded_label: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_rooms(cls, rooms) -> "RoomDirectory":
        by_label: dict[str, str] = {}
        by_folded_label: dict[str, str] = {}
        for room in rooms:
            label = (room.room_number or "").strip()
            if not label:
                continue
            by_label.setdefault(label, room.id)
            by_folded_label.setdefault(label.casefold(), room.id)
        return cls(
            ids=frozenset(room.id for room in rooms),
            by_label=by_label,
            by_folded_label=by_folded_label,
        )

    @classmethod
    def load(cls, db: Session) -> "RoomDirectory":
        return cls.from_rooms(list(db.execute(select(Room)).scalars()))

    def resolve(self, raw_label: str | None) -> str | None:
        if raw_label is None:
            return None
        label = raw_label.strip()
        if not label:
            return None
        if label in self.ids:
            return label
        if label in self.by_label:
            return self.by_label[label]
        resolved = self.by_folded_label.get(label.casefold())
        if resolved is None:
            logger.debug("Could not resolve location %r to a room", label)
        return resolved

    def matches(self, room_id: str, raw_label: str | None) -> bool:
        resolved = self.resolve(raw_label)
        return resolved is not None and resolved == room_id.strip()
