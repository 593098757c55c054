from datetime import datetime

from pydantic import BaseModel, Field

from roomguard.schemas.timetable import TimetableEntryOut, TimetableEntryPayload


class ClassGroupBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    course_code: str = Field(min_length=1, max_length=50)
    description: str | None = None
    academic_year: str | None = Field(default=None, max_length=20)
    semester: str | None = Field(default=None, max_length=20)
    branch_id: str | None = None
    professor_id: str | None = None


class ClassGroupCreate(ClassGroupBase):
    entries: list[TimetableEntryPayload] = Field(default_factory=list, max_length=200)


class ClassGroupUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    course_code: str | None = Field(default=None, min_length=1, max_length=50)
    description: str | None = None
    academic_year: str | None = Field(default=None, max_length=20)
    semester: str | None = Field(default=None, max_length=20)
    branch_id: str | None = None
    professor_id: str | None = None


class ClassGroupOut(ClassGroupBase):
    id: str
    entries: list[TimetableEntryOut] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
