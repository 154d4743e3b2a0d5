from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from app.schemas.schedule import ChangeAction, ScheduleChange, ScheduleEntry, ScheduleOut, TempSchedule
from app.schemas.schedule_config import TimeSlot

CellKey = tuple[int, str]


@dataclass(frozen=True)
class ScheduleGridIndex:
    """Read-only lookup of ``(day_of_week, start_time)`` to the schedules in that cell.

    Built from persisted rows, in-session temp rows and the pending ledger.
    Never mutated after construction; rebuild instead.
    """

    cells: Mapping[CellKey, tuple[ScheduleEntry, ...]]

    @classmethod
    def empty(cls) -> "ScheduleGridIndex":
        return cls(MappingProxyType({}))

    @classmethod
    def build(
        cls,
        persisted: Iterable[ScheduleOut],
        temp: Iterable[TempSchedule],
        pending: Iterable[ScheduleChange],
    ) -> "ScheduleGridIndex":
        deleted: set[int | str] = set()
        updated: dict[int | str, ScheduleEntry] = {}
        for change in pending:
            if change.action == ChangeAction.delete:
                deleted.add(change.schedule.id)
            elif change.action == ChangeAction.update:
                updated[change.schedule.id] = change.schedule

        grouped: dict[CellKey, list[ScheduleEntry]] = defaultdict(list)
        for entry in [*persisted, *temp]:
            if entry.id in deleted:
                continue
            current = updated.get(entry.id, entry)
            grouped[(current.day_of_week, current.start_time)].append(current)

        frozen = {key: tuple(entries) for key, entries in sorted(grouped.items())}
        return cls(MappingProxyType(frozen))

    def cells_for(self, day: int, time_slot: TimeSlot | str) -> tuple[ScheduleEntry, ...]:
        start = time_slot if isinstance(time_slot, str) else time_slot.start
        return self.cells.get((int(day), start), ())

    def entries(self) -> list[ScheduleEntry]:
        return [entry for entries in self.cells.values() for entry in entries]

    def find(self, schedule_id: int | str) -> ScheduleEntry | None:
        for entry in self.entries():
            if entry.id == schedule_id:
                return entry
        return None

    def occupied_cells(self) -> list[CellKey]:
        return [key for key, entries in self.cells.items() if entries]

    def defects(self) -> dict[CellKey, tuple[ScheduleEntry, ...]]:
        """Cells holding more than one schedule after the merge."""
        return {key: entries for key, entries in self.cells.items() if len(entries) > 1}
