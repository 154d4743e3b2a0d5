from __future__ import annotations

from dataclasses import dataclass, field
import logging

from app.core.exceptions import CommitError, ResourceNotFoundError
from app.schemas.schedule import (
    ChangeAction,
    CreateScheduleRequest,
    DeleteScheduleRequest,
    PendingChangeCounts,
    ScheduleChange,
    ScheduleOut,
    UpdateScheduleRequest,
)
from app.schemas.schedule_config import format_minutes
from app.services.edit_session import EditSession
from app.services.schedule_store import ScheduleRepository

logger = logging.getLogger(__name__)


@dataclass
class CommitResult:
    created: list[ScheduleOut] = field(default_factory=list)
    updated: list[ScheduleOut] = field(default_factory=list)
    deleted: list[int] = field(default_factory=list)

    @property
    def counts(self) -> PendingChangeCounts:
        total = len(self.created) + len(self.updated) + len(self.deleted)
        return PendingChangeCounts(
            created=len(self.created),
            updated=len(self.updated),
            deleted=len(self.deleted),
            total=total,
        )


def to_create_request(change: ScheduleChange) -> CreateScheduleRequest:
    schedule = change.schedule
    return CreateScheduleRequest(
        course_assignment_id=schedule.course_assignment_id,
        day_of_week=schedule.day_of_week,
        start_time=schedule.start_time,
        end_time=schedule.end_time,
        classroom=schedule.classroom,
    )


def to_update_request(change: ScheduleChange) -> UpdateScheduleRequest:
    schedule = change.schedule
    return UpdateScheduleRequest(
        id=schedule.id,
        course_assignment_id=schedule.course_assignment_id,
        day_of_week=schedule.day_of_week,
        start_time=schedule.start_time,
        end_time=schedule.end_time,
        classroom=schedule.classroom,
    )


class BatchCommitter:
    """Flushes an edit session's ledger to persistence.

    Partitions run in the order deletes, updates, creates; creates go out as a
    single multi-row call. Deletes and updates are acknowledged on the session
    one row at a time as each call succeeds, so a failure leaves only the rows
    that never reached the database pending.

    Updates are ordered so a row never moves into a cell another pending update
    has yet to vacate. When the remaining updates wait on each other in a cycle,
    one row is parked on a free minute of its day and moved to its target once
    the cycle has opened up.
    """

    def __init__(self, repository: ScheduleRepository) -> None:
        self.repository = repository

    def commit(self, session: EditSession) -> CommitResult:
        session.begin_commit()
        try:
            result = CommitResult()
            change_set = session.drain()
            if not change_set:
                return result

            for action, changes in change_set.partitions():
                if not changes:
                    continue
                try:
                    if action == ChangeAction.delete:
                        self._commit_deletes(session, changes, result)
                    elif action == ChangeAction.update:
                        self._commit_updates(session, changes, result)
                    else:
                        self._commit_creates(session, changes, result)
                except Exception as exc:
                    logger.warning(
                        "Commit of session %s failed during %s partition",
                        session.id,
                        action.value,
                        exc_info=True,
                    )
                    pending = session.counts()
                    raise CommitError(
                        action.value,
                        f"Failed to {action.value} {_pending_for(action, pending)} schedule(s): {exc}",
                        details={
                            "committed": result.counts.model_dump(),
                            "pending": pending.model_dump(),
                        },
                    ) from exc

            if session.section_id is not None:
                session.refresh(self.repository.list_for_section(session.section_id))
            logger.info(
                "Session %s committed %s create(s), %s update(s), %s delete(s)",
                session.id,
                len(result.created),
                len(result.updated),
                len(result.deleted),
            )
            return result
        finally:
            session.end_commit()

    def _commit_deletes(self, session: EditSession, changes: list[ScheduleChange], result: CommitResult) -> None:
        for change in changes:
            schedule_id = int(change.schedule.id)
            try:
                self.repository.delete_schedule(DeleteScheduleRequest(id=schedule_id))
            except ResourceNotFoundError:
                logger.info("Schedule %s was already deleted", schedule_id)
            result.deleted.append(schedule_id)
            session.acknowledge([change])
            session.apply_committed(deleted=[schedule_id])

    def _commit_updates(self, session: EditSession, changes: list[ScheduleChange], result: CommitResult) -> None:
        remaining = list(changes)
        parked: set[int | str] = set()
        while remaining:
            held = {_current_cell(session, change): change for change in remaining}
            change = next((item for item in remaining if held.get(_target_cell(item), item) is item), None)
            if change is None:
                blocked = next((item for item in remaining if item.schedule.id not in parked), None)
                if blocked is not None:
                    parked.add(blocked.schedule.id)
                    self._park(session, blocked, remaining)
                    continue
                # Parking did not free anything; let the repository report the clash.
                change = remaining[0]
            row = self.repository.update_schedule(to_update_request(change))
            result.updated.append(row)
            session.acknowledge([change])
            session.apply_committed(updated=[row])
            remaining.remove(change)

    def _park(self, session: EditSession, change: ScheduleChange, remaining: list[ScheduleChange]) -> None:
        day = _current_cell(session, change)[0]
        taken = {row.start_time for row in session.persisted if row.day_of_week == day}
        taken.update(item.schedule.start_time for item in remaining if item.schedule.day_of_week == day)
        minute = 0
        while format_minutes(minute) in taken:
            minute += 1
        request = to_update_request(change).model_copy(
            update={
                "day_of_week": day,
                "start_time": format_minutes(minute),
                "end_time": format_minutes(minute + 1),
            }
        )
        logger.info("Parking schedule %s at day %s %s to break an update cycle", request.id, day, request.start_time)
        session.apply_committed(updated=[self.repository.update_schedule(request)])

    def _commit_creates(self, session: EditSession, changes: list[ScheduleChange], result: CommitResult) -> None:
        created = self.repository.create_schedules([to_create_request(change) for change in changes])
        result.created.extend(created)
        session.acknowledge(changes)
        session.apply_committed(created=created)


def _current_cell(session: EditSession, change: ScheduleChange) -> tuple[int, str]:
    row = next(
        (item for item in session.persisted if item.id == change.schedule.id),
        change.original or change.schedule,
    )
    return row.day_of_week, row.start_time


def _target_cell(change: ScheduleChange) -> tuple[int, str]:
    return change.schedule.day_of_week, change.schedule.start_time


def _pending_for(action: ChangeAction, counts: PendingChangeCounts) -> int:
    if action == ChangeAction.delete:
        return counts.deleted
    if action == ChangeAction.update:
        return counts.updated
    return counts.created
