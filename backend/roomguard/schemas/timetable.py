from pydantic import BaseModel, Field

from roomguard.models.class_group import DEFAULT_ENTRY_COLOR, DEFAULT_ENTRY_TYPE


class TimetableEntryPayload(BaseModel):
    # Times stay plain strings here; the timetable policy gate reports bad values with context.
    day: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1, max_length=200)
    instructor: str | None = Field(default=None, max_length=200)
    location: str | None = Field(default=None, max_length=100)
    start_time: str = Field(min_length=1, max_length=5)
    end_time: str = Field(min_length=1, max_length=5)
    color: str = Field(default=DEFAULT_ENTRY_COLOR, max_length=20)
    type: str = Field(default=DEFAULT_ENTRY_TYPE, max_length=50)


class TimetableReplaceRequest(BaseModel):
    entries: list[TimetableEntryPayload] = Field(default_factory=list, max_length=200)


class TimetableEntryOut(BaseModel):
    id: str
    day: str
    name: str
    instructor: str | None = None
    location: str | None = None
    start_time: str
    end_time: str
    color: str
    type: str
    class_group_id: str | None = None

    model_config = {"from_attributes": True}


class RoomScheduleEntryOut(BaseModel):
    entry_id: str
    class_group_id: str
    class_group_name: str
    day: str
    name: str
    start_time: str
    end_time: str
    instructor: str | None = None
    location: str | None = None

    model_config = {"from_attributes": True}
