from datetime import date as date_type, datetime

from pydantic import BaseModel, Field

from roomguard.models.reservation import ReservationStatus


class ReservationCreate(BaseModel):
    room_id: str = Field(min_length=1, max_length=36)
    date: date_type
    start_time: str = Field(min_length=1, max_length=5)
    end_time: str = Field(min_length=1, max_length=5)
    purpose: str = Field(min_length=1, max_length=500)
    notes: str | None = Field(default=None, max_length=2000)


class ReservationUpdate(BaseModel):
    room_id: str | None = Field(default=None, min_length=1, max_length=36)
    date: date_type | None = None
    start_time: str | None = Field(default=None, min_length=1, max_length=5)
    end_time: str | None = Field(default=None, min_length=1, max_length=5)
    purpose: str | None = Field(default=None, min_length=1, max_length=500)
    notes: str | None = Field(default=None, max_length=2000)


class ReservationReject(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class ReservationOut(BaseModel):
    id: str
    user_id: str
    room_id: str
    date: date_type
    start_time: str
    end_time: str
    purpose: str
    notes: str | None = None
    status: ReservationStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
