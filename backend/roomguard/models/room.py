import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from roomguard.db.base import Base


class RoomCategory(str, Enum):
    classroom = "classroom"
    study_room = "study_room"


class RoomType(str, Enum):
    lecture = "lecture"
    lab = "lab"
    amphitheater = "amphitheater"
    seminar = "seminar"
    study = "study"


class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    room_number: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    category: Mapped[RoomCategory] = mapped_column(
        SAEnum(RoomCategory, name="room_category"), nullable=False, default=RoomCategory.classroom
    )
    type: Mapped[RoomType] = mapped_column(SAEnum(RoomType, name="room_type"), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    features: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
