from __future__ import annotations

from collections.abc import Sequence
from typing import Literal, Protocol

from pydantic import BaseModel

from app.core.exceptions import ConfigurationError
from app.schemas.schedule_config import (
    DayOfWeek,
    ScheduleConfigBase,
    parse_time_to_minutes,
)
from app.services.day_slots import DaySlotTable
from app.services.time_slots import generate_time_slots_for_day, slots_overlap

MIN_CLASS_DURATION = 1
MAX_CLASS_DURATION = 240

IssueCode = Literal["outside_working_days", "outside_time_range", "invalid_duration", "overlaps_break"]


class ScheduleLike(Protocol):
    id: int | str
    day_of_week: int
    start_time: str
    end_time: str


def collect_config_errors(config: ScheduleConfigBase) -> list[str]:
    errors: list[str] = []
    start = parse_time_to_minutes(config.start_time)
    end = parse_time_to_minutes(config.end_time)

    if not config.working_days:
        errors.append("At least one working day is required")
    if start >= end:
        errors.append(f"Start time {config.start_time} must be before end time {config.end_time}")
    if not MIN_CLASS_DURATION <= config.class_duration <= MAX_CLASS_DURATION:
        errors.append(
            f"Class duration must be between {MIN_CLASS_DURATION} and {MAX_CLASS_DURATION} minutes, "
            f"got {config.class_duration}"
        )

    table = DaySlotTable.from_config(config)
    for day in config.days:
        day_name = day.label
        ordered = []
        for slot in table.for_day(day):
            slot_start, slot_end = slot.start_minutes, slot.end_minutes
            interval = f"{slot.label or slot.type.value} {slot.start}-{slot.end}"
            if slot_end <= slot_start:
                errors.append(f"{day_name}: slot {interval} must end after it starts")
                continue
            if start < end and (slot_start < start or slot_end > end):
                errors.append(
                    f"{day_name}: slot {interval} is outside working hours {config.start_time}-{config.end_time}"
                )
            ordered.append((slot_start, slot_end, interval))

        ordered.sort()
        for index, (slot_start, slot_end, interval) in enumerate(ordered):
            for other_start, other_end, other_interval in ordered[index + 1 :]:
                if other_start >= slot_end:
                    break
                if slots_overlap(slot_start, slot_end, other_start, other_end):
                    errors.append(f"{day_name}: {interval} overlaps {other_interval}")
    return errors


def ensure_valid_config(config: ScheduleConfigBase) -> None:
    errors = collect_config_errors(config)
    if errors:
        raise ConfigurationError("Schedule configuration is invalid", errors=errors)


class ScheduleIssue(BaseModel):
    schedule_id: int | str
    code: IssueCode
    message: str
    day_of_week: int
    start_time: str
    end_time: str
    recommendation: str
    suggested_start_time: str | None = None
    suggested_end_time: str | None = None


class ConfigChangeSummary(BaseModel):
    duration_changed: bool
    working_days_changed: bool
    start_time_changed: bool
    end_time_changed: bool
    break_slots_changed: bool


class ConfigImpactReport(BaseModel):
    is_valid: bool
    config_errors: list[str]
    issues: list[ScheduleIssue]
    changes: ConfigChangeSummary


def check_schedule_against_config(
    schedule: ScheduleLike,
    config: ScheduleConfigBase,
    table: DaySlotTable | None = None,
) -> tuple[IssueCode, str, str] | None:
    """Return ``(code, message, recommendation)`` for the first failing rule."""
    if schedule.day_of_week not in config.working_days:
        day_names = ", ".join(day.label for day in config.days)
        return (
            "outside_working_days",
            f"Schedule is on {DayOfWeek(schedule.day_of_week).label}, which is not a working day",
            f"Move it to a working day: {day_names}",
        )

    start = parse_time_to_minutes(schedule.start_time)
    end = parse_time_to_minutes(schedule.end_time)
    if start < config.start_minutes or end > config.end_minutes:
        return (
            "outside_time_range",
            f"Schedule {schedule.start_time}-{schedule.end_time} is outside {config.start_time}-{config.end_time}",
            f"Fit it inside {config.start_time}-{config.end_time}",
        )

    if end - start != config.class_duration:
        return (
            "invalid_duration",
            f"Schedule lasts {end - start} min but classes last {config.class_duration} min",
            f"Use a {config.class_duration} minute slot",
        )

    slot_table = table if table is not None else DaySlotTable.from_config(config)
    for slot in slot_table.for_day(schedule.day_of_week):
        if slot.counts_as_class:
            continue
        if slots_overlap(start, end, slot.start_minutes, slot.end_minutes):
            return (
                "overlaps_break",
                f"Schedule {schedule.start_time}-{schedule.end_time} overlaps {slot.label or slot.type.value} "
                f"{slot.start}-{slot.end}",
                "Move it out of the configured breaks",
            )
    return None


def suggest_valid_time_slot(schedule: ScheduleLike, config: ScheduleConfigBase) -> tuple[str, str] | None:
    if not config.working_days:
        return None
    day = schedule.day_of_week if schedule.day_of_week in config.working_days else config.working_days[0]
    try:
        slots = generate_time_slots_for_day(config, day)
    except ConfigurationError:
        return None
    for slot in slots:
        if not slot.is_break:
            return slot.start, slot.end
    return None


def validate_schedules_against_config(
    schedules: Sequence[ScheduleLike],
    old_config: ScheduleConfigBase,
    new_config: ScheduleConfigBase,
) -> ConfigImpactReport:
    """Report which existing schedules a proposed configuration would invalidate."""
    config_errors = collect_config_errors(new_config)
    issues: list[ScheduleIssue] = []
    if not config_errors:
        table = DaySlotTable.from_config(new_config)
        for schedule in schedules:
            failure = check_schedule_against_config(schedule, new_config, table)
            if failure is None:
                continue
            code, message, recommendation = failure
            suggestion = suggest_valid_time_slot(schedule, new_config)
            issues.append(
                ScheduleIssue(
                    schedule_id=schedule.id,
                    code=code,
                    message=message,
                    day_of_week=schedule.day_of_week,
                    start_time=schedule.start_time,
                    end_time=schedule.end_time,
                    recommendation=recommendation,
                    suggested_start_time=suggestion[0] if suggestion else None,
                    suggested_end_time=suggestion[1] if suggestion else None,
                )
            )

    old_slots = {day: [slot.model_dump() for slot in slots] for day, slots in old_config.break_slots.items()}
    new_slots = {day: [slot.model_dump() for slot in slots] for day, slots in new_config.break_slots.items()}
    return ConfigImpactReport(
        is_valid=not config_errors and not issues,
        config_errors=config_errors,
        issues=issues,
        changes=ConfigChangeSummary(
            duration_changed=old_config.class_duration != new_config.class_duration,
            working_days_changed=old_config.working_days != new_config.working_days,
            start_time_changed=old_config.start_time != new_config.start_time,
            end_time_changed=old_config.end_time != new_config.end_time,
            break_slots_changed=old_slots != new_slots,
        ),
    )
