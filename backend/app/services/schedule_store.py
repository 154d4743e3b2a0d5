from __future__ import annotations

from collections.abc import Sequence
import logging
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ResourceNotFoundError
from app.models.course_assignment import CourseAssignment
from app.models.schedule import Schedule
from app.models.schedule_config import ScheduleConfig
from app.schemas.schedule import CreateScheduleRequest, DeleteScheduleRequest, ScheduleOut, UpdateScheduleRequest
from app.schemas.schedule_config import DEFAULT_SCHEDULE_CONFIG, ScheduleConfigBase, ScheduleConfigOut

logger = logging.getLogger(__name__)


class ScheduleRepository(Protocol):
    def list_for_section(self, section_id: int) -> list[ScheduleOut]: ...

    def create_schedules(self, requests: Sequence[CreateScheduleRequest]) -> list[ScheduleOut]: ...

    def update_schedule(self, request: UpdateScheduleRequest) -> ScheduleOut: ...

    def delete_schedule(self, request: DeleteScheduleRequest) -> None: ...


class SqlAlchemyScheduleRepository:
    """Each call runs in its own transaction and rolls back on failure."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def list_for_section(self, section_id: int) -> list[ScheduleOut]:
        rows = self.db.execute(
            select(Schedule)
            .where(Schedule.section_id == section_id)
            .order_by(Schedule.day_of_week, Schedule.start_time)
        ).scalars()
        return [ScheduleOut.model_validate(row) for row in rows]

    def _assignment(self, assignment_id: int) -> CourseAssignment:
        assignment = self.db.get(CourseAssignment, assignment_id)
        if assignment is None:
            raise ResourceNotFoundError("Course assignment", str(assignment_id))
        return assignment

    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def create_schedules(self, requests: Sequence[CreateScheduleRequest]) -> list[ScheduleOut]:
        rows: list[Schedule] = []
        try:
            for request in requests:
                assignment = self._assignment(request.course_assignment_id)
                rows.append(
                    Schedule(
                        course_assignment_id=assignment.id,
                        teacher_id=assignment.teacher_id,
                        section_id=assignment.section_id,
                        day_of_week=request.day_of_week,
                        start_time=request.start_time,
                        end_time=request.end_time,
                        classroom=request.classroom,
                    )
                )
        except ResourceNotFoundError:
            self.db.rollback()
            raise
        self.db.add_all(rows)
        self._commit()
        for row in rows:
            self.db.refresh(row)
        logger.info("Created %s schedule(s)", len(rows))
        return [ScheduleOut.model_validate(row) for row in rows]

    def update_schedule(self, request: UpdateScheduleRequest) -> ScheduleOut:
        row = self.db.get(Schedule, request.id)
        if row is None:
            raise ResourceNotFoundError("Schedule", str(request.id))
        assignment = self._assignment(request.course_assignment_id)
        row.course_assignment_id = assignment.id
        row.teacher_id = assignment.teacher_id
        row.section_id = assignment.section_id
        row.day_of_week = request.day_of_week
        row.start_time = request.start_time
        row.end_time = request.end_time
        row.classroom = request.classroom
        self._commit()
        self.db.refresh(row)
        return ScheduleOut.model_validate(row)

    def delete_schedule(self, request: DeleteScheduleRequest) -> None:
        row = self.db.get(Schedule, request.id)
        if row is None:
            raise ResourceNotFoundError("Schedule", str(request.id))
        self.db.delete(row)
        self._commit()


def get_config_record(db: Session, section_id: int) -> ScheduleConfig | None:
    return db.execute(select(ScheduleConfig).where(ScheduleConfig.section_id == section_id)).scalar_one_or_none()


def build_schedule_config(section_id: int, record: ScheduleConfig | None) -> ScheduleConfigOut:
    if record is None:
        return ScheduleConfigOut(section_id=section_id, is_default=True, **DEFAULT_SCHEDULE_CONFIG.model_dump())
    return ScheduleConfigOut.model_validate(record)


def load_schedule_config(db: Session, section_id: int) -> ScheduleConfigOut:
    return build_schedule_config(section_id, get_config_record(db, section_id))


def save_schedule_config(db: Session, section_id: int, payload: ScheduleConfigBase) -> ScheduleConfigOut:
    record = get_config_record(db, section_id)
    data = payload.model_dump(mode="json")
    if record is None:
        record = ScheduleConfig(section_id=section_id, **data)
        db.add(record)
    else:
        for key, value in data.items():
            setattr(record, key, value)
    db.commit()
    db.refresh(record)
    logger.info("Saved schedule config for section %s", section_id)
    return ScheduleConfigOut.model_validate(record)


def list_course_assignments(db: Session, section_id: int) -> list[CourseAssignment]:
    return list(
        db.execute(
            select(CourseAssignment).where(CourseAssignment.section_id == section_id).order_by(CourseAssignment.id)
        ).scalars()
    )
