from typing import Literal

from pydantic import BaseModel, Field

from roomguard.schemas.timetable import TimetableEntryPayload


class ConflictPartyOut(BaseModel):
    id: str
    name: str
    kind: Literal["CLASSROOM", "PROFESSOR", "STUDENT"]


class AlternativeSlot(BaseModel):
    day: str
    start_time: str
    end_time: str
    label: str


class SingleEntryCheckRequest(BaseModel):
    entry: TimetableEntryPayload


class SingleEntryCheckOut(BaseModel):
    has_conflict: bool
    conflict_types: list[str] = Field(default_factory=list)
    message: str
    affected_parties: list[ConflictPartyOut] = Field(default_factory=list)
    alternatives: list[AlternativeSlot] = Field(default_factory=list)
