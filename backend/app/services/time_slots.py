from __future__ import annotations

from collections.abc import Mapping
import logging

from app.core.exceptions import ConfigurationError
from app.schemas.schedule_config import (
    DEFAULT_TIME_SLOTS,
    DayOfWeek,
    ScheduleConfigBase,
    ScheduleSlot,
    TimeAxisRow,
    TimeSlot,
    format_minutes,
    parse_time_to_minutes,
)
from app.services.day_slots import DaySlotTable

logger = logging.getLogger(__name__)


def slots_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    return start_a < end_b and start_b < end_a


def _first_blocking_slot(start: int, end: int, day_slots: list[ScheduleSlot]) -> ScheduleSlot | None:
    for slot in day_slots:
        if slot.counts_as_class:
            continue
        if slots_overlap(start, end, slot.start_minutes, slot.end_minutes):
            return slot
    return None


def generate_time_slots_for_day(
    config: ScheduleConfigBase,
    day: int,
    table: DaySlotTable | None = None,
) -> list[TimeSlot]:
    """Carve one day of the section grid into class and break slots.

    Class slots of ``class_duration`` minutes are cut from ``start_time``
    onward. A candidate touching a non-class override is replaced by a single
    break slot spanning that override, and carving resumes at its end. A tail
    shorter than one class is dropped.
    """
    day_start = parse_time_to_minutes(config.start_time)
    day_end = parse_time_to_minutes(config.end_time)
    if day_start >= day_end:
        raise ConfigurationError(f"Start time {config.start_time} must be before end time {config.end_time}")
    if config.class_duration <= 0:
        raise ConfigurationError(f"Class duration must be positive, got {config.class_duration}")

    slot_table = table if table is not None else DaySlotTable.from_config(config)
    day_slots = sorted(
        (slot for slot in slot_table.for_day(day) if slot.start_minutes < slot.end_minutes),
        key=lambda slot: slot.start_minutes,
    )

    slots: list[TimeSlot] = []
    cursor = day_start
    while cursor < day_end:
        candidate_end = cursor + config.class_duration
        blocking = _first_blocking_slot(cursor, min(candidate_end, day_end), day_slots)
        if blocking is not None:
            break_start = max(blocking.start_minutes, cursor)
            break_end = min(blocking.end_minutes, day_end)
            slots.append(
                TimeSlot(
                    start=format_minutes(break_start),
                    end=format_minutes(break_end),
                    label=blocking.label or blocking.type.value.upper(),
                    is_break=True,
                )
            )
            cursor = break_end
            continue

        if candidate_end > day_end:
            break

        start_label = format_minutes(cursor)
        end_label = format_minutes(candidate_end)
        slots.append(TimeSlot(start=start_label, end=end_label, label=f"{start_label} - {end_label}"))
        cursor = candidate_end

    return slots


def generate_time_slots(config: ScheduleConfigBase) -> dict[DayOfWeek, list[TimeSlot]]:
    table = DaySlotTable.from_config(config)
    return {day: generate_time_slots_for_day(config, day, table) for day in config.days}


def build_time_slots(config: ScheduleConfigBase | None) -> tuple[dict[DayOfWeek, list[TimeSlot]], bool]:
    """Render-path generation; never raises.

    Returns the per-day slots plus a flag telling whether the default slot
    set was substituted for an unusable configuration.
    """
    if config is not None and config.working_days:
        try:
            return generate_time_slots(config), False
        except ConfigurationError as exc:
            logger.warning("Falling back to default time slots: %s", exc.message)
        days = config.days
    else:
        days = [DayOfWeek(day) for day in range(1, 6)]
    return {day: list(DEFAULT_TIME_SLOTS) for day in days}, True


def build_time_axis(slots_by_day: Mapping[int, list[TimeSlot]]) -> list[TimeAxisRow]:
    """Union the per-day slots into one ordered axis.

    Each row is a distinct (start, end) interval. A day whose own grid has no
    slot with exactly that interval gets ``None`` for the row.
    """
    intervals: set[tuple[int, int]] = set()
    by_day: dict[int, dict[tuple[int, int], TimeSlot]] = {}
    for day, slots in slots_by_day.items():
        lookup: dict[tuple[int, int], TimeSlot] = {}
        for slot in slots:
            key = (slot.start_minutes, slot.end_minutes)
            lookup[key] = slot
            intervals.add(key)
        by_day[int(day)] = lookup

    rows: list[TimeAxisRow] = []
    for start, end in sorted(intervals):
        rows.append(
            TimeAxisRow(
                start=format_minutes(start),
                end=format_minutes(end),
                cells={day: lookup.get((start, end)) for day, lookup in sorted(by_day.items())},
            )
        )
    return rows


def find_time_slot(config: ScheduleConfigBase, day: int, start_time: str) -> TimeSlot | None:
    try:
        slots = generate_time_slots_for_day(config, day)
    except ConfigurationError:
        return None
    for slot in slots:
        if slot.start == start_time:
            return slot
    return None
