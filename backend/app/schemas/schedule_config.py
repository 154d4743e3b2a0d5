from __future__ import annotations

from datetime import datetime
from enum import Enum, IntEnum
import re
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


class DayOfWeek(IntEnum):
    """ISO 8601 weekday numbers, Monday first."""

    monday = 1
    tuesday = 2
    wednesday = 3
    thursday = 4
    friday = 5
    saturday = 6
    sunday = 7

    @property
    def label(self) -> str:
        return DAY_NAMES[self]


DAY_NAMES: dict[DayOfWeek, str] = {
    DayOfWeek.monday: "Lunes",
    DayOfWeek.tuesday: "Martes",
    DayOfWeek.wednesday: "Miércoles",
    DayOfWeek.thursday: "Jueves",
    DayOfWeek.friday: "Viernes",
    DayOfWeek.saturday: "Sábado",
    DayOfWeek.sunday: "Domingo",
}

def validate_day_number(value: int) -> int:
    if value not in DayOfWeek._value2member_map_:
        raise ValueError(f"Invalid day value {value}; expected 1-7")
    return value


class SlotType(str, Enum):
    break_ = "break"
    lunch = "lunch"
    activity = "activity"
    free = "free"
    class_ = "class"
    custom = "custom"


class ScheduleSlot(BaseModel):
    """A configured break, lunch, activity or class interval on one day."""

    start: str
    end: str
    label: str = Field(default="", max_length=100)
    type: SlotType = SlotType.break_
    is_class: bool = False
    description: str | None = Field(default=None, max_length=300)

    @field_validator("start", "end")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @field_validator("label")
    @classmethod
    def normalize_label(cls, value: str) -> str:
        return value.strip()

    @property
    def counts_as_class(self) -> bool:
        return self.is_class or self.type == SlotType.class_

    @property
    def start_minutes(self) -> int:
        return parse_time_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return parse_time_to_minutes(self.end)


class TimeSlot(BaseModel):
    model_config = {"frozen": True}

    start: str
    end: str
    label: str | None = None
    is_break: bool = False

    @property
    def start_minutes(self) -> int:
        return parse_time_to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return parse_time_to_minutes(self.end)


class ScheduleConfigBase(BaseModel):
    working_days: list[int] = Field(default_factory=list, max_length=7)
    start_time: str
    end_time: str
    class_duration: int
    break_slots: dict[int, list[ScheduleSlot]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def expand_legacy_break_slots(cls, data: Any) -> Any:
        # Older configs stored a single flat list applied to every working day.
        if isinstance(data, dict) and isinstance(data.get("break_slots"), list):
            from app.services.day_slots import expand_legacy_break_slots

            data = {
                **data,
                "break_slots": expand_legacy_break_slots(data["break_slots"], data.get("working_days") or []),
            }
        return data

    @field_validator("working_days")
    @classmethod
    def normalize_working_days(cls, value: list[int]) -> list[int]:
        for day in value:
            validate_day_number(day)
        return sorted(set(value))

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @field_validator("break_slots")
    @classmethod
    def validate_break_slot_days(cls, value: dict[int, list[ScheduleSlot]]) -> dict[int, list[ScheduleSlot]]:
        for day in value:
            validate_day_number(day)
        return {day: value[day] for day in sorted(value)}

    @property
    def start_minutes(self) -> int:
        return parse_time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return parse_time_to_minutes(self.end_time)

    @property
    def days(self) -> list[DayOfWeek]:
        return [DayOfWeek(day) for day in self.working_days]


class SaveConfigRequest(ScheduleConfigBase):
    pass


class ScheduleConfigOut(ScheduleConfigBase):
    id: int | None = None
    section_id: int
    is_default: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class ScheduleConfigPreset(BaseModel):
    key: str
    name: str
    description: str
    config: ScheduleConfigBase


class ApplySlotsRequest(BaseModel):
    source_day: int
    target_days: list[int] = Field(min_length=1, max_length=7)

    @field_validator("source_day")
    @classmethod
    def validate_source_day(cls, value: int) -> int:
        return validate_day_number(value)

    @field_validator("target_days")
    @classmethod
    def validate_target_days(cls, value: list[int]) -> list[int]:
        for day in value:
            validate_day_number(day)
        return sorted(set(value))


class TimeAxisRow(BaseModel):
    start: str
    end: str
    cells: dict[int, TimeSlot | None]


class TimeSlotsOut(BaseModel):
    section_id: int
    is_fallback: bool = False
    slots_by_day: dict[int, list[TimeSlot]]
    axis: list[TimeAxisRow]


RECREO = ScheduleSlot(start="10:00", end="10:15", label="RECREO", type=SlotType.break_)
ALMUERZO = ScheduleSlot(start="13:15", end="14:00", label="ALMUERZO", type=SlotType.lunch)

DEFAULT_TIME_SLOTS: list[TimeSlot] = [
    TimeSlot(start="07:00", end="07:45", label="07:00 - 07:45"),
    TimeSlot(start="07:45", end="08:30", label="07:45 - 08:30"),
    TimeSlot(start="08:30", end="09:15", label="08:30 - 09:15"),
    TimeSlot(start="09:15", end="10:00", label="09:15 - 10:00"),
    TimeSlot(start="10:00", end="10:15", label="RECREO", is_break=True),
    TimeSlot(start="10:15", end="11:00", label="10:15 - 11:00"),
    TimeSlot(start="11:00", end="11:45", label="11:00 - 11:45"),
    TimeSlot(start="11:45", end="12:30", label="11:45 - 12:30"),
    TimeSlot(start="12:30", end="13:15", label="12:30 - 13:15"),
    TimeSlot(start="13:15", end="14:00", label="ALMUERZO", is_break=True),
    TimeSlot(start="14:00", end="14:45", label="14:00 - 14:45"),
    TimeSlot(start="14:45", end="15:30", label="14:45 - 15:30"),
    TimeSlot(start="15:30", end="16:15", label="15:30 - 16:15"),
    TimeSlot(start="16:15", end="17:00", label="16:15 - 17:00"),
]

DEFAULT_SCHEDULE_CONFIG = ScheduleConfigBase(
    working_days=[1, 2, 3, 4, 5],
    start_time="07:00",
    end_time="17:00",
    class_duration=45,
    break_slots={day: [RECREO, ALMUERZO] for day in (1, 2, 3, 4, 5)},
)

PRESET_CONFIGS: dict[str, ScheduleConfigPreset] = {
    "standard": ScheduleConfigPreset(
        key="standard",
        name="Jornada completa",
        description="Lunes a viernes, 07:00-17:00, clases de 45 minutos con recreo y almuerzo.",
        config=DEFAULT_SCHEDULE_CONFIG,
    ),
    "extended": ScheduleConfigPreset(
        key="extended",
        name="Jornada extendida",
        description="Lunes a sábado, 07:00-18:00, clases de 50 minutos; el sábado es más corto.",
        config=ScheduleConfigBase(
            working_days=[1, 2, 3, 4, 5, 6],
            start_time="07:00",
            end_time="18:00",
            class_duration=50,
            break_slots={
                **{
                    day: [
                        ScheduleSlot(start="09:30", end="09:45", label="RECREO", type=SlotType.break_),
                        ScheduleSlot(start="13:00", end="14:00", label="ALMUERZO", type=SlotType.lunch),
                        ScheduleSlot(start="15:30", end="15:45", label="RECREO", type=SlotType.break_),
                    ]
                    for day in (1, 2, 3, 4)
                },
                5: [
                    ScheduleSlot(start="09:30", end="09:45", label="RECREO", type=SlotType.break_),
                    ScheduleSlot(
                        start="13:00", end="13:30", label="CLASE ESPECIAL", type=SlotType.class_, is_class=True
                    ),
                    ScheduleSlot(start="13:30", end="14:00", label="ACTIVIDAD CÍVICA", type=SlotType.activity),
                    ScheduleSlot(start="15:30", end="15:45", label="RECREO", type=SlotType.break_),
                ],
                6: [
                    ScheduleSlot(start="09:30", end="09:45", label="RECREO", type=SlotType.break_),
                    ScheduleSlot(start="12:00", end="13:00", label="ALMUERZO", type=SlotType.lunch),
                ],
            },
        ),
    ),
    "intensive": ScheduleConfigPreset(
        key="intensive",
        name="Jornada intensiva",
        description="Mañanas de 07:30 a 13:00 con asamblea cívica los martes.",
        config=ScheduleConfigBase(
            working_days=[1, 2, 3, 4, 5],
            start_time="07:30",
            end_time="13:00",
            class_duration=50,
            break_slots={
                day: (
                    [ScheduleSlot(start="07:30", end="08:00", label="ASAMBLEA CÍVICA", type=SlotType.activity)]
                    if day == 2
                    else []
                )
                + [
                    ScheduleSlot(start="09:00", end="09:15", label="RECREO", type=SlotType.break_),
                    ScheduleSlot(start="11:00", end="11:30", label="ALMUERZO", type=SlotType.lunch),
                ]
                for day in (1, 2, 3, 4, 5)
            },
        ),
    ),
}
