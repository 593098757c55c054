from datetime import date as date_type

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.orm import Session

from roomguard.api.deps import get_current_user, get_db
from roomguard.core.exceptions import ResourceNotFoundError
from roomguard.models.room import Room, RoomCategory, RoomType
from roomguard.models.user import User
from roomguard.schemas.room import AvailabilityOut, ConflictInfoOut, RoomOut
from roomguard.schemas.timetable import RoomScheduleEntryOut
from roomguard.services.availability import AvailabilityService
from roomguard.services.time_intervals import validate_interval

router = APIRouter()


def _get_room(db: Session, room_id: str) -> Room:
    room = db.get(Room, room_id)
    if room is None:
        raise ResourceNotFoundError("Room", room_id)
    return room


@router.get("/", response_model=list[RoomOut])
def list_rooms(
    category: RoomCategory | None = Query(default=None),
    room_type: RoomType | None = Query(default=None, alias="type"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[RoomOut]:
    query = select(Room).order_by(Room.room_number)
    if category is not None:
        query = query.where(Room.category == category)
    if room_type is not None:
        query = query.where(Room.type == room_type)
    return list(db.execute(query).scalars())


@router.get("/search", response_model=list[RoomOut])
def search_available_rooms(
    date: date_type = Query(...),
    start_time: str = Query(..., max_length=5),
    end_time: str = Query(..., max_length=5),
    category: RoomCategory | None = Query(default=None),
    room_type: RoomType | None = Query(default=None, alias="type"),
    min_capacity: int = Query(default=0, ge=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[RoomOut]:
    return AvailabilityService(db).find_available_rooms(
        date,
        start_time,
        end_time,
        room_type=room_type,
        category=category,
        min_capacity=min_capacity,
    )


@router.get("/{room_id}/availability", response_model=AvailabilityOut)
def check_availability(
    room_id: str,
    date: date_type = Query(...),
    start_time: str = Query(..., max_length=5),
    end_time: str = Query(..., max_length=5),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> AvailabilityOut:
    validate_interval(start_time, end_time)
    room = _get_room(db, room_id)
    available = AvailabilityService(db).is_room_available(room.id, date, start_time, end_time)
    return AvailabilityOut(
        room_id=room.id,
        date=date.isoformat(),
        start_time=start_time,
        end_time=end_time,
        available=available,
    )


@router.get("/{room_id}/conflicts", response_model=ConflictInfoOut)
def conflict_info(
    room_id: str,
    date: date_type = Query(...),
    start_time: str = Query(..., max_length=5),
    end_time: str = Query(..., max_length=5),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ConflictInfoOut:
    info = AvailabilityService(db).get_conflict_info(room_id, date, start_time, end_time)
    return ConflictInfoOut(
        room_id=room_id,
        has_conflicts=info.has_conflicts,
        reservation_conflicts=info.reservation_conflicts,
        class_conflicts=info.class_conflicts,
        message=info.detailed_message(),
        summary=info.short_message(),
    )


@router.get("/{room_id}/schedule", response_model=list[RoomScheduleEntryOut])
def room_schedule(
    room_id: str,
    day: str | None = Query(default=None, max_length=20),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[RoomScheduleEntryOut]:
    return AvailabilityService(db).room_schedule(room_id, day)
