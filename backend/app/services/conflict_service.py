from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Literal, Protocol

from app.schemas.schedule import ScheduleEntry
from app.schemas.schedule_config import TimeSlot
from app.services.grid_index import ScheduleGridIndex

ASSIGNMENT_NOT_FOUND = "assignment not found"
SLOT_NOT_BOOKABLE = "slot not bookable"
DUPLICATE_PLACEMENT = "duplicate placement"


class AssignmentLike(Protocol):
    id: int
    teacher_id: int
    section_id: int
    course_name: str


@dataclass(frozen=True)
class DropDecision:
    status: Literal["ok", "rejected", "skipped"]
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def accept(cls) -> "DropDecision":
        return cls("ok")

    @classmethod
    def reject(cls, reason: str) -> "DropDecision":
        return cls("rejected", reason)

    @classmethod
    def skip(cls) -> "DropDecision":
        return cls("skipped")


def occupant_label(entry: ScheduleEntry, assignments: Mapping[int, AssignmentLike]) -> str:
    assignment = assignments.get(entry.course_assignment_id)
    if assignment is not None and assignment.course_name:
        return assignment.course_name
    return f"assignment #{entry.course_assignment_id}"


class ConflictEngine:
    """Advisory, single-writer placement checks against a grid index.

    The database unique constraint on (section, day, start) stays the
    authority; a check passing here can still fail at commit time.
    """

    def __init__(
        self,
        assignments: Mapping[int, AssignmentLike],
        working_days: Iterable[int] | None = None,
    ) -> None:
        self.assignments = assignments
        self.working_days = set(working_days) if working_days is not None else None

    def _check_target(
        self,
        assignment_id: int,
        day: int,
        time_slot: TimeSlot,
        index: ScheduleGridIndex,
        section_id: int | None,
        *,
        moving_id: int | str | None = None,
    ) -> DropDecision:
        if assignment_id not in self.assignments:
            return DropDecision.reject(ASSIGNMENT_NOT_FOUND)
        if section_id is None:
            return DropDecision.skip()
        if time_slot.is_break or (self.working_days is not None and day not in self.working_days):
            return DropDecision.reject(SLOT_NOT_BOOKABLE)

        occupants = [entry for entry in index.cells_for(day, time_slot) if entry.id != moving_id]
        others = [entry for entry in occupants if entry.course_assignment_id != assignment_id]
        if others:
            return DropDecision.reject(f"slot occupied by {occupant_label(others[0], self.assignments)}")
        # Only copies of the same course are left in the cell.
        if occupants:
            return DropDecision.reject(DUPLICATE_PLACEMENT)
        return DropDecision.accept()

    def check_drop(
        self,
        assignment_id: int,
        day: int,
        time_slot: TimeSlot,
        index: ScheduleGridIndex,
        section_id: int | None,
    ) -> DropDecision:
        return self._check_target(assignment_id, day, time_slot, index, section_id)

    def check_move(
        self,
        entry: ScheduleEntry,
        day: int,
        time_slot: TimeSlot,
        index: ScheduleGridIndex,
        section_id: int | None,
    ) -> DropDecision:
        return self._check_target(
            entry.course_assignment_id,
            day,
            time_slot,
            index,
            section_id,
            moving_id=entry.id,
        )


def check_drop(
    assignment_id: int,
    day: int,
    time_slot: TimeSlot,
    index: ScheduleGridIndex,
    *,
    assignments: Mapping[int, AssignmentLike],
    section_id: int | None,
    working_days: Iterable[int] | None = None,
) -> DropDecision:
    return ConflictEngine(assignments, working_days).check_drop(assignment_id, day, time_slot, index, section_id)
