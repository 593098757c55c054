from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
import threading
from types import MappingProxyType
from typing import Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from roomguard.core.config import get_settings
from roomguard.models.class_group import TimetableEntry
from roomguard.services.room_resolver import RoomDirectory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CachedEntry:
    entry_id: str
    class_group_id: str
    class_group_name: str
    day: str
    name: str
    start_time: str
    end_time: str
    instructor: str | None
    location: str | None


@dataclass(frozen=True)
class TimetableSnapshot:
    by_room: Mapping[str, tuple[CachedEntry, ...]] = field(default_factory=dict)
    refreshed_at: datetime | None = None

    def get(self, room_id: str, default=()):
        return self.by_room.get(room_id, default)


class TimetableCache:
    """Room -> weekly class entries, for schedule display only.

    Readers always see a complete snapshot; a rebuild constructs a new map
    and swaps it in whole. Booking decisions never read from here.
    """

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else get_settings().timetable_cache_ttl_seconds
        self._snapshot = TimetableSnapshot()
        self._generation = 0
        self._built_generation = -1
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> TimetableSnapshot:
        return self._snapshot

    def invalidate(self) -> None:
        self._generation += 1

    def is_fresh(self, now: datetime | None = None) -> bool:
        snapshot = self._snapshot
        if self._built_generation != self._generation or snapshot.refreshed_at is None:
            return False
        current = now or datetime.now(timezone.utc)
        return (current - snapshot.refreshed_at).total_seconds() < self.ttl_seconds

    def get_or_refresh(self, db: Session, now: datetime | None = None) -> TimetableSnapshot:
        if self.is_fresh(now):
            return self._snapshot
        with self._lock:
            # Another caller may have rebuilt while we waited.
            if self.is_fresh(now):
                return self._snapshot
            generation = self._generation
            self._snapshot = self._build(db, now or datetime.now(timezone.utc))
            self._built_generation = generation
            return self._snapshot

    def _build(self, db: Session, now: datetime) -> TimetableSnapshot:
        directory = RoomDirectory.load(db)
        entries = db.execute(
            select(TimetableEntry)
            .where(TimetableEntry.class_group_id.is_not(None))
            .options(joinedload(TimetableEntry.class_group))
        ).scalars()

        grouped: dict[str, list[CachedEntry]] = {}
        skipped = 0
        for entry in entries:
            room_id = directory.resolve(entry.location)
            if room_id is None:
                skipped += 1
                continue
            grouped.setdefault(room_id, []).append(
                CachedEntry(
                    entry_id=entry.id,
                    class_group_id=entry.class_group_id,
                    class_group_name=entry.class_group.name,
                    day=entry.day,
                    name=entry.name,
                    start_time=entry.start_time,
                    end_time=entry.end_time,
                    instructor=entry.instructor,
                    location=entry.location,
                )
            )

        logger.info(
            "Timetable cache rebuilt: %s rooms, %s entries skipped with unresolved locations",
            len(grouped),
            skipped,
        )
        return TimetableSnapshot(
            by_room=MappingProxyType({room_id: tuple(items) for room_id, items in grouped.items()}),
            refreshed_at=now,
        )


timetable_cache = TimetableCache()
