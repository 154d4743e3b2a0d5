from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
import logging
from threading import RLock
import time
import uuid

from app.core.exceptions import ConflictError, ResourceNotFoundError, SessionLockedError
from app.schemas.schedule import (
    ChangeAction,
    PendingChangeCounts,
    ScheduleChange,
    ScheduleEntry,
    ScheduleOut,
    TempSchedule,
)
from app.schemas.schedule_config import ScheduleConfigBase, TimeSlot
from app.services.conflict_service import (
    ASSIGNMENT_NOT_FOUND,
    SLOT_NOT_BOOKABLE,
    AssignmentLike,
    ConflictEngine,
    DropDecision,
)
from app.services.grid_index import ScheduleGridIndex
from app.services.time_slots import build_time_slots

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    clean = "clean"
    dirty = "dirty"


@dataclass
class ChangeSet:
    deletes: list[ScheduleChange] = field(default_factory=list)
    updates: list[ScheduleChange] = field(default_factory=list)
    creates: list[ScheduleChange] = field(default_factory=list)

    def partitions(self) -> list[tuple[ChangeAction, list[ScheduleChange]]]:
        """Partitions in commit order: deletes free cells before creates claim them."""
        return [
            (ChangeAction.delete, self.deletes),
            (ChangeAction.update, self.updates),
            (ChangeAction.create, self.creates),
        ]

    def __len__(self) -> int:
        return len(self.deletes) + len(self.updates) + len(self.creates)


def new_temp_id() -> str:
    return f"temp_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


class EditSession:
    """Pending create/update/delete ledger for one section's timetable.

    Persisted rows are never touched; every edit lands in the ledger (and, for
    creates, in the temp cache) and the grid index is rebuilt afterwards.
    """

    def __init__(
        self,
        section_id: int | None,
        *,
        config: ScheduleConfigBase | None,
        assignments: Iterable[AssignmentLike],
        persisted: Iterable[ScheduleOut] = (),
        session_id: str | None = None,
    ) -> None:
        self.id = session_id or uuid.uuid4().hex
        self.section_id = section_id
        self.config = config
        self.assignments: dict[int, AssignmentLike] = {item.id: item for item in assignments}
        self._persisted: tuple[ScheduleOut, ...] = tuple(persisted)
        self._changes: list[ScheduleChange] = []
        self._temp: list[TempSchedule] = []
        self._committing = False
        self._lock = RLock()

        slots_by_day, self.uses_fallback_slots = build_time_slots(config)
        self._slots: dict[int, dict[str, TimeSlot]] = {
            int(day): {slot.start: slot for slot in slots} for day, slots in slots_by_day.items()
        }
        self._engine = ConflictEngine(self.assignments, self._slots.keys())
        self.index = self.rebuild_index()

    @property
    def state(self) -> SessionState:
        return SessionState.dirty if self._changes else SessionState.clean

    @property
    def is_dirty(self) -> bool:
        return self.state == SessionState.dirty

    @property
    def committing(self) -> bool:
        return self._committing

    @property
    def changes(self) -> tuple[ScheduleChange, ...]:
        return tuple(self._changes)

    @property
    def temp_schedules(self) -> tuple[TempSchedule, ...]:
        return tuple(self._temp)

    @property
    def persisted(self) -> tuple[ScheduleOut, ...]:
        return self._persisted

    def rebuild_index(self) -> ScheduleGridIndex:
        self.index = ScheduleGridIndex.build(self._persisted, self._temp, self._changes)
        return self.index

    def counts(self) -> PendingChangeCounts:
        created = sum(1 for change in self._changes if change.action == ChangeAction.create)
        updated = sum(1 for change in self._changes if change.action == ChangeAction.update)
        deleted = sum(1 for change in self._changes if change.action == ChangeAction.delete)
        return PendingChangeCounts(created=created, updated=updated, deleted=deleted, total=len(self._changes))

    def time_slot(self, day: int, start: TimeSlot | str) -> TimeSlot | None:
        if isinstance(start, TimeSlot):
            return start
        return self._slots.get(int(day), {}).get(start)

    def _reject(self, decision: DropDecision, day: int, start: str) -> None:
        logger.info("Session %s rejected placement on day %s at %s: %s", self.id, day, start, decision.reason)
        raise ConflictError(decision.reason or "rejected", details={"day_of_week": day, "start_time": start})

    def drop(self, assignment_id: int, day: int, time_slot: TimeSlot | str) -> TempSchedule | None:
        """Place an assignment on a cell; returns ``None`` when no section is active."""
        with self._lock:
            start = time_slot if isinstance(time_slot, str) else time_slot.start
            if assignment_id not in self.assignments:
                self._reject(DropDecision.reject(ASSIGNMENT_NOT_FOUND), day, start)
            slot = self.time_slot(day, time_slot)
            if slot is None:
                if self.section_id is None:
                    return None
                self._reject(DropDecision.reject(SLOT_NOT_BOOKABLE), day, start)

            decision = self._engine.check_drop(assignment_id, day, slot, self.index, self.section_id)
            if decision.status == "skipped":
                return None
            if not decision.ok:
                self._reject(decision, day, slot.start)

            assignment = self.assignments[assignment_id]
            temp = TempSchedule(
                id=new_temp_id(),
                course_assignment_id=assignment.id,
                teacher_id=assignment.teacher_id,
                section_id=assignment.section_id,
                day_of_week=day,
                start_time=slot.start,
                end_time=slot.end,
            )
            self.append(ScheduleChange(action=ChangeAction.create, schedule=temp))
            return temp

    def move(self, schedule_id: int | str, day: int, time_slot: TimeSlot | str) -> ScheduleEntry:
        with self._lock:
            entry = self.index.find(schedule_id)
            if entry is None:
                raise ResourceNotFoundError("Schedule", str(schedule_id))
            start = time_slot if isinstance(time_slot, str) else time_slot.start
            slot = self.time_slot(day, time_slot)
            if slot is None:
                self._reject(DropDecision.reject(SLOT_NOT_BOOKABLE), day, start)
            if entry.day_of_week == day and entry.start_time == slot.start:
                return entry

            decision = self._engine.check_move(entry, day, slot, self.index, self.section_id)
            if decision.status == "skipped":
                return entry
            if not decision.ok:
                self._reject(decision, day, slot.start)

            moved = entry.model_copy(update={"day_of_week": day, "start_time": slot.start, "end_time": slot.end})
            if isinstance(moved, TempSchedule):
                self.append(ScheduleChange(action=ChangeAction.create, schedule=moved))
            else:
                self.append(
                    ScheduleChange(action=ChangeAction.update, schedule=moved, original=self._find_persisted(moved.id))
                )
            return moved

    def remove(self, schedule_id: int | str) -> None:
        with self._lock:
            temp = self._find_temp(schedule_id)
            if temp is not None:
                self.append(ScheduleChange(action=ChangeAction.delete, schedule=temp))
                return
            original = self._find_persisted(schedule_id)
            if original is None:
                raise ResourceNotFoundError("Schedule", str(schedule_id))
            self.append(ScheduleChange(action=ChangeAction.delete, schedule=original))

    def append(self, change: ScheduleChange) -> None:
        """Merge one change into the ledger.

        At most one entry exists per schedule id. Changes to temp schedules
        rewrite their ``create`` entry instead of stacking updates, and deleting
        a temp schedule simply forgets it.
        """
        with self._lock:
            schedule = change.schedule
            if isinstance(schedule, TempSchedule):
                self._merge_temp_change(change.action, schedule)
            else:
                self._merge_persisted_change(change)
            self.rebuild_index()

    def _merge_temp_change(self, action: ChangeAction, schedule: TempSchedule) -> None:
        position = next((i for i, item in enumerate(self._temp) if item.id == schedule.id), None)
        if action == ChangeAction.delete:
            if position is not None:
                del self._temp[position]
            self._changes = [item for item in self._changes if item.schedule.id != schedule.id]
            return

        create = ScheduleChange(action=ChangeAction.create, schedule=schedule)
        if position is None:
            self._temp.append(schedule)
            self._changes.append(create)
            return
        self._temp[position] = schedule
        self._changes = [create if item.schedule.id == schedule.id else item for item in self._changes]

    def _merge_persisted_change(self, change: ScheduleChange) -> None:
        schedule_id = change.schedule.id
        existing = [item for item in self._changes if item.schedule.id == schedule_id]
        if any(item.action == ChangeAction.delete for item in existing):
            # Already marked for deletion; later edits to it are moot.
            return

        others = [item for item in self._changes if item.schedule.id != schedule_id]
        if change.action == ChangeAction.delete:
            original = self._find_persisted(schedule_id) or change.schedule
            self._changes = others + [ScheduleChange(action=ChangeAction.delete, schedule=original)]
            return

        original = change.original or self._find_persisted(schedule_id)
        if original is not None and (
            original.day_of_week == change.schedule.day_of_week
            and original.start_time == change.schedule.start_time
            and original.end_time == change.schedule.end_time
            and original.classroom == change.schedule.classroom
        ):
            # Moved back to where it started: nothing left to update.
            self._changes = others
            return

        merged = ScheduleChange(action=ChangeAction.update, schedule=change.schedule, original=original)
        if existing:
            self._changes = [merged if item.schedule.id == schedule_id else item for item in self._changes]
        else:
            self._changes.append(merged)

    def discard(self) -> None:
        with self._lock:
            if self._committing:
                raise SessionLockedError("Cannot discard while a commit is in progress")
            dropped = len(self._changes)
            self._changes = []
            self._temp = []
            self.rebuild_index()
        logger.info("Session %s discarded %s pending change(s)", self.id, dropped)

    def drain(self) -> ChangeSet:
        """Snapshot the ledger split by action; entries stay until acknowledged."""
        with self._lock:
            change_set = ChangeSet()
            for change in self._changes:
                if change.action == ChangeAction.delete:
                    change_set.deletes.append(change)
                elif change.action == ChangeAction.update:
                    change_set.updates.append(change)
                else:
                    change_set.creates.append(change)
            return change_set

    def acknowledge(self, committed: Iterable[ScheduleChange]) -> None:
        """Drop changes that reached persistence; edits made meanwhile survive."""
        with self._lock:
            done = list(committed)
            self._changes = [item for item in self._changes if not any(item is other for other in done)]
            still_pending = {item.schedule.id for item in self._changes}
            promoted = {
                item.schedule.id
                for item in done
                if item.action == ChangeAction.create and item.schedule.id not in still_pending
            }
            self._temp = [item for item in self._temp if item.id not in promoted]
            self.rebuild_index()

    def apply_committed(
        self,
        *,
        created: Iterable[ScheduleOut] = (),
        updated: Iterable[ScheduleOut] = (),
        deleted: Iterable[int] = (),
    ) -> None:
        """Fold the collaborator's results into the persisted snapshot."""
        with self._lock:
            deleted_ids = set(deleted)
            updated_by_id = {item.id: item for item in updated}
            rows = [updated_by_id.get(item.id, item) for item in self._persisted if item.id not in deleted_ids]
            self._persisted = tuple([*rows, *created])
            self.rebuild_index()

    def refresh(self, persisted: Iterable[ScheduleOut]) -> None:
        with self._lock:
            self._persisted = tuple(persisted)
            self.rebuild_index()

    def begin_commit(self) -> None:
        with self._lock:
            if self._committing:
                raise SessionLockedError("A commit is already in progress for this session")
            self._committing = True

    def end_commit(self) -> None:
        with self._lock:
            self._committing = False

    def _find_temp(self, schedule_id: int | str) -> TempSchedule | None:
        return next((item for item in self._temp if item.id == schedule_id), None)

    def _find_persisted(self, schedule_id: int | str) -> ScheduleOut | None:
        return next((item for item in self._persisted if item.id == schedule_id), None)
