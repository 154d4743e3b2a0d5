import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_registry, get_schedule_repository
from app.schemas.schedule import (
    CommitResultOut,
    CourseAssignmentOut,
    DropRequest,
    EditSessionCreate,
    EditSessionOut,
    GridCellOut,
    MoveRequest,
)
from app.services.batch_committer import BatchCommitter
from app.services.edit_session import EditSession
from app.services.schedule_store import SqlAlchemyScheduleRepository, list_course_assignments, load_schedule_config
from app.services.session_registry import InMemoryEditSessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_schedule_id(value: str) -> int | str:
    return int(value) if value.isdigit() else value


def serialize_session(session: EditSession) -> EditSessionOut:
    index = session.index
    return EditSessionOut(
        id=session.id,
        section_id=session.section_id,
        state=session.state.value,
        committing=session.committing,
        counts=session.counts(),
        changes=list(session.changes),
        temp_schedules=list(session.temp_schedules),
        cells=[
            GridCellOut(day_of_week=day, start_time=start, schedules=list(entries))
            for (day, start), entries in index.cells.items()
        ],
        defects=[
            GridCellOut(day_of_week=day, start_time=start, schedules=list(entries))
            for (day, start), entries in index.defects().items()
        ],
    )


@router.post("/schedule-sessions", response_model=EditSessionOut, status_code=status.HTTP_201_CREATED)
def open_session(
    payload: EditSessionCreate,
    db: Session = Depends(get_db),
    registry: InMemoryEditSessionRegistry = Depends(get_registry),
) -> EditSessionOut:
    config = load_schedule_config(db, payload.section_id)
    assignments = [CourseAssignmentOut.model_validate(item) for item in list_course_assignments(db, payload.section_id)]
    persisted = SqlAlchemyScheduleRepository(db).list_for_section(payload.section_id)
    session = registry.add(
        EditSession(payload.section_id, config=config, assignments=assignments, persisted=persisted)
    )
    logger.info("Opened edit session %s for section %s", session.id, payload.section_id)
    return serialize_session(session)


@router.get("/schedule-sessions/{session_id}", response_model=EditSessionOut)
def get_session(
    session_id: str,
    registry: InMemoryEditSessionRegistry = Depends(get_registry),
) -> EditSessionOut:
    return serialize_session(registry.get(session_id))


@router.post("/schedule-sessions/{session_id}/drops", response_model=EditSessionOut)
def drop_assignment(
    session_id: str,
    payload: DropRequest,
    registry: InMemoryEditSessionRegistry = Depends(get_registry),
) -> EditSessionOut:
    session = registry.get(session_id)
    session.drop(payload.course_assignment_id, payload.day_of_week, payload.start_time)
    return serialize_session(session)


@router.post("/schedule-sessions/{session_id}/moves", response_model=EditSessionOut)
def move_schedule(
    session_id: str,
    payload: MoveRequest,
    registry: InMemoryEditSessionRegistry = Depends(get_registry),
) -> EditSessionOut:
    session = registry.get(session_id)
    session.move(payload.schedule_id, payload.day_of_week, payload.start_time)
    return serialize_session(session)


@router.delete("/schedule-sessions/{session_id}/schedules/{schedule_id}", response_model=EditSessionOut)
def remove_schedule(
    session_id: str,
    schedule_id: str,
    registry: InMemoryEditSessionRegistry = Depends(get_registry),
) -> EditSessionOut:
    session = registry.get(session_id)
    session.remove(_parse_schedule_id(schedule_id))
    return serialize_session(session)


@router.post("/schedule-sessions/{session_id}/discard", response_model=EditSessionOut)
def discard_changes(
    session_id: str,
    registry: InMemoryEditSessionRegistry = Depends(get_registry),
) -> EditSessionOut:
    session = registry.get(session_id)
    session.discard()
    return serialize_session(session)


@router.post("/schedule-sessions/{session_id}/commit", response_model=CommitResultOut)
def commit_session(
    session_id: str,
    registry: InMemoryEditSessionRegistry = Depends(get_registry),
    repository: SqlAlchemyScheduleRepository = Depends(get_schedule_repository),
) -> CommitResultOut:
    session = registry.get(session_id)
    result = BatchCommitter(repository).commit(session)
    return CommitResultOut(session=serialize_session(session), committed=result.counts)


@router.delete("/schedule-sessions/{session_id}")
def close_session(
    session_id: str,
    registry: InMemoryEditSessionRegistry = Depends(get_registry),
) -> dict:
    session = registry.remove(session_id)
    if session.is_dirty:
        logger.info("Closed session %s with %s unsaved change(s)", session.id, len(session.changes))
    return {"success": True}
