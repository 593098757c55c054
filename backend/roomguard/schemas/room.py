from datetime import datetime

from pydantic import BaseModel, Field

from roomguard.models.room import RoomCategory, RoomType


class RoomOut(BaseModel):
    id: str
    room_number: str
    category: RoomCategory
    type: RoomType
    capacity: int
    features: list[str] = Field(default_factory=list)
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class AvailabilityOut(BaseModel):
    room_id: str
    date: str
    start_time: str
    end_time: str
    available: bool


class ConflictInfoOut(BaseModel):
    room_id: str
    has_conflicts: bool
    reservation_conflicts: list[str]
    class_conflicts: list[str]
    message: str
    summary: str
