from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.course_assignment import AssignmentType
from app.schemas.schedule_config import TIME_PATTERN, parse_time_to_minutes, validate_day_number


class ScheduleBase(BaseModel):
    course_assignment_id: int
    day_of_week: int
    start_time: str
    end_time: str
    classroom: str | None = Field(default=None, max_length=100)

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, value: int) -> int:
        return validate_day_number(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_time_order(self) -> "ScheduleBase":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class CreateScheduleRequest(ScheduleBase):
    pass


class UpdateScheduleRequest(ScheduleBase):
    id: int


class DeleteScheduleRequest(BaseModel):
    id: int


class BatchCreateRequest(BaseModel):
    schedules: list[CreateScheduleRequest] = Field(min_length=1, max_length=500)


class ScheduleOut(ScheduleBase):
    model_config = {"from_attributes": True, "frozen": True}

    id: int
    teacher_id: int
    section_id: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TempSchedule(BaseModel):
    """An uncommitted placement living only inside an edit session."""

    model_config = {"frozen": True}

    id: str
    course_assignment_id: int
    teacher_id: int
    section_id: int
    day_of_week: int
    start_time: str
    end_time: str
    classroom: str | None = None
    is_pending: Literal[True] = True


ScheduleEntry = Union[ScheduleOut, TempSchedule]


class ChangeAction(str, Enum):
    create = "create"
    update = "update"
    delete = "delete"


class ScheduleChange(BaseModel):
    model_config = {"frozen": True}

    action: ChangeAction
    schedule: ScheduleOut | TempSchedule
    original: ScheduleOut | None = None


class PendingChangeCounts(BaseModel):
    created: int = 0
    updated: int = 0
    deleted: int = 0
    total: int = 0


class CourseAssignmentOut(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    section_id: int
    course_id: int
    teacher_id: int
    assignment_type: AssignmentType
    course_name: str
    course_code: str
    course_color: str | None = None
    teacher_name: str


class EditSessionCreate(BaseModel):
    section_id: int


class DropRequest(BaseModel):
    course_assignment_id: int
    day_of_week: int
    start_time: str

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, value: int) -> int:
        return validate_day_number(value)

    @field_validator("start_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value


class MoveRequest(BaseModel):
    schedule_id: int | str
    day_of_week: int
    start_time: str

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, value: int) -> int:
        return validate_day_number(value)

    @field_validator("start_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value


class GridCellOut(BaseModel):
    day_of_week: int
    start_time: str
    schedules: list[ScheduleOut | TempSchedule]


class EditSessionOut(BaseModel):
    id: str
    section_id: int
    state: Literal["clean", "dirty"]
    committing: bool
    counts: PendingChangeCounts
    changes: list[ScheduleChange]
    temp_schedules: list[TempSchedule]
    cells: list[GridCellOut]
    defects: list[GridCellOut]


class CommitResultOut(BaseModel):
    session: EditSessionOut
    committed: PendingChangeCounts
