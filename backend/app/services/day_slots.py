"""Per-day break/lunch slot table.

The table always holds exactly one entry per weekday, so asking for a day
that was never configured yields an empty tuple rather than a missing key.
Overlaps are not rejected here; they are reported by
``app.services.config_validation`` when a configuration is saved.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
import logging
from typing import Any

from app.schemas.schedule_config import DayOfWeek, ScheduleConfigBase, ScheduleSlot, SlotType

logger = logging.getLogger(__name__)

_ALL_DAYS: tuple[DayOfWeek, ...] = tuple(DayOfWeek)


def _empty_entries() -> tuple[tuple[ScheduleSlot, ...], ...]:
    return tuple(() for _ in _ALL_DAYS)


@dataclass(frozen=True)
class DaySlotTable:
    entries: tuple[tuple[ScheduleSlot, ...], ...] = field(default_factory=_empty_entries)

    def __post_init__(self) -> None:
        if len(self.entries) != len(_ALL_DAYS):
            raise ValueError(f"DaySlotTable needs {len(_ALL_DAYS)} entries, got {len(self.entries)}")

    def for_day(self, day: int) -> tuple[ScheduleSlot, ...]:
        return self.entries[DayOfWeek(day) - 1]

    def replace(self, day: int, slots: Iterable[ScheduleSlot]) -> "DaySlotTable":
        index = DayOfWeek(day) - 1
        copied = tuple(slot.model_copy() for slot in slots)
        return DaySlotTable(self.entries[:index] + (copied,) + self.entries[index + 1 :])

    def to_mapping(self, days: Iterable[int] | None = None) -> dict[int, list[ScheduleSlot]]:
        selected = _ALL_DAYS if days is None else sorted({DayOfWeek(day) for day in days})
        return {int(day): list(self.for_day(day)) for day in selected}

    @classmethod
    def from_config(cls, config: ScheduleConfigBase) -> "DaySlotTable":
        return normalize_break_slots(config.break_slots, config.working_days)


def _coerce_slot(raw: ScheduleSlot | Mapping[str, Any]) -> ScheduleSlot:
    if isinstance(raw, ScheduleSlot):
        return raw.model_copy()
    data = dict(raw)
    data.setdefault("type", SlotType.break_.value)
    data.setdefault("is_class", False)
    data.setdefault("label", "")
    return ScheduleSlot.model_validate(data)


def _coerce_day(key: Any) -> DayOfWeek | None:
    try:
        return DayOfWeek(int(key))
    except (TypeError, ValueError):
        return None


def expand_legacy_break_slots(
    slots: Sequence[ScheduleSlot | Mapping[str, Any]],
    working_days: Iterable[int],
) -> dict[int, list[ScheduleSlot]]:
    """Turn a legacy flat slot list into a per-day mapping over ``working_days``."""
    coerced = [_coerce_slot(item) for item in slots]
    result: dict[int, list[ScheduleSlot]] = {}
    for raw_day in working_days:
        day = _coerce_day(raw_day)
        if day is None:
            continue
        result[int(day)] = [slot.model_copy() for slot in coerced]
    return result


def normalize_break_slots(
    raw: Mapping[Any, Sequence[Any]] | Sequence[Any] | None,
    working_days: Iterable[int],
) -> DaySlotTable:
    """Build a table from a per-day mapping or a legacy flat list."""
    if raw is None:
        return DaySlotTable()
    if not isinstance(raw, Mapping):
        raw = expand_legacy_break_slots(list(raw), working_days)

    table = DaySlotTable()
    for key, items in raw.items():
        day = _coerce_day(key)
        if day is None:
            logger.warning("Ignoring break slots for unknown day key %r", key)
            continue
        table = table.replace(day, [_coerce_slot(item) for item in items or []])
    return table


def initialize_for_days(days: Iterable[int], default_slots: Sequence[ScheduleSlot]) -> DaySlotTable:
    table = DaySlotTable()
    for day in days:
        table = table.replace(day, default_slots)
    return table


def get_slots_for_day(table: DaySlotTable, day: int) -> list[ScheduleSlot]:
    if _coerce_day(day) is None:
        return []
    return list(table.for_day(day))


def update_slots_for_day(table: DaySlotTable, day: int, slots: Sequence[ScheduleSlot]) -> DaySlotTable:
    return table.replace(day, slots)


def apply_slots_to_days(table: DaySlotTable, days: Iterable[int], slots: Sequence[ScheduleSlot]) -> DaySlotTable:
    for day in days:
        table = update_slots_for_day(table, day, slots)
    return table
