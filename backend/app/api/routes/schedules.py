import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError

from app.api.deps import get_schedule_repository
from app.schemas.schedule import (
    BatchCreateRequest,
    CreateScheduleRequest,
    DeleteScheduleRequest,
    ScheduleOut,
    UpdateScheduleRequest,
)
from app.services.schedule_store import SqlAlchemyScheduleRepository

logger = logging.getLogger(__name__)

router = APIRouter()

CELL_TAKEN = "Another schedule already occupies this section, day and start time"


def _cell_taken(exc: IntegrityError) -> HTTPException:
    logger.info("Rejected schedule write: %s", exc.orig)
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CELL_TAKEN)


@router.get("/schedules", response_model=list[ScheduleOut])
def list_schedules(
    section_id: int,
    repository: SqlAlchemyScheduleRepository = Depends(get_schedule_repository),
) -> list[ScheduleOut]:
    return repository.list_for_section(section_id)


@router.post("/schedules", response_model=ScheduleOut, status_code=status.HTTP_201_CREATED)
def create_schedule(
    payload: CreateScheduleRequest,
    repository: SqlAlchemyScheduleRepository = Depends(get_schedule_repository),
) -> ScheduleOut:
    try:
        return repository.create_schedules([payload])[0]
    except IntegrityError as exc:
        raise _cell_taken(exc) from exc


@router.post("/schedules/batch", response_model=list[ScheduleOut], status_code=status.HTTP_201_CREATED)
def create_schedules_batch(
    payload: BatchCreateRequest,
    repository: SqlAlchemyScheduleRepository = Depends(get_schedule_repository),
) -> list[ScheduleOut]:
    try:
        return repository.create_schedules(payload.schedules)
    except IntegrityError as exc:
        raise _cell_taken(exc) from exc


@router.put("/schedules/{schedule_id}", response_model=ScheduleOut)
def update_schedule(
    schedule_id: int,
    payload: CreateScheduleRequest,
    repository: SqlAlchemyScheduleRepository = Depends(get_schedule_repository),
) -> ScheduleOut:
    request = UpdateScheduleRequest(id=schedule_id, **payload.model_dump())
    try:
        return repository.update_schedule(request)
    except IntegrityError as exc:
        raise _cell_taken(exc) from exc


@router.delete("/schedules/{schedule_id}")
def delete_schedule(
    schedule_id: int,
    repository: SqlAlchemyScheduleRepository = Depends(get_schedule_repository),
) -> dict:
    repository.delete_schedule(DeleteScheduleRequest(id=schedule_id))
    return {"success": True}
